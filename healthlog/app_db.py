# -*- coding: utf-8 -*-
"""App database (users/journals/derived records): SQLite helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                height_cm REAL,
                weight_goal_kg REAL,
                current_weight_kg REAL,
                medical_conditions_json TEXT NOT NULL DEFAULT '[]',
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS journal_entries (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                raw_text TEXT NOT NULL,
                processing_status TEXT NOT NULL,
                is_processed INTEGER NOT NULL DEFAULT 0,
                parsed_data_json TEXT,
                processing_error TEXT,
                ai_response TEXT,
                tags_json TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_journal_entries_user_date ON journal_entries(user_id, date DESC);"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_journal_entries_user_status ON journal_entries(user_id, processing_status);"
        )
        # Derived records only reference journal_entries by id: deleting an entry
        # leaves its records in place.
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS meals (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                time TEXT NOT NULL,
                food_items_json TEXT NOT NULL,
                total_calories REAL NOT NULL DEFAULT 0,
                notes TEXT,
                is_from_journal INTEGER NOT NULL DEFAULT 0,
                journal_entry_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS medicines (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                dosage TEXT NOT NULL,
                time TEXT NOT NULL,
                frequency TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT,
                duration_days INTEGER,
                category TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                notes TEXT,
                is_from_journal INTEGER NOT NULL DEFAULT 0,
                journal_entry_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS body_stats (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                weight REAL,
                water_intake REAL,
                sleep_hours REAL,
                steps INTEGER,
                systolic REAL,
                diastolic REAL,
                heart_rate REAL,
                temperature REAL,
                mood TEXT,
                energy TEXT,
                notes TEXT,
                is_from_journal INTEGER NOT NULL DEFAULT 0,
                journal_entry_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS lab_tests (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                test_name TEXT NOT NULL,
                date TEXT NOT NULL,
                result TEXT NOT NULL,
                result_value REAL,
                unit TEXT,
                reference_range_json TEXT,
                status TEXT NOT NULL,
                category TEXT NOT NULL,
                lab_name TEXT,
                doctor_name TEXT,
                notes TEXT,
                is_from_journal INTEGER NOT NULL DEFAULT 0,
                journal_entry_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        for table in ("meals", "medicines", "body_stats", "lab_tests"):
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_user_journal ON {table}(user_id, journal_entry_id);"
            )
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
