# -*- coding: utf-8 -*-
"""Derived health records: SQLite storage.

Every create helper validates through the Pydantic model first, so a record that
violates its field constraints raises ``pydantic.ValidationError`` before anything
is written.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from .models import BodyStat, FoodItem, LabTest, Meal, Medicine, ReferenceRange


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _add_days(iso8601: str, days: int) -> Optional[str]:
    try:
        start = datetime.fromisoformat(iso8601.replace("Z", "+00:00"))
    except ValueError:
        return None
    return (start + timedelta(days=days)).isoformat()


def _page_sql(
    table: str,
    user_id: str,
    journal_entry_id: Optional[str],
    order_by: str,
) -> Tuple[str, List[Any]]:
    sql = f"SELECT * FROM {table} WHERE user_id = ?"
    params: List[Any] = [user_id]
    if journal_entry_id:
        sql += " AND journal_entry_id = ?"
        params.append(journal_entry_id)
    sql += f" ORDER BY {order_by}"
    return sql, params


def _fetch(table: str, user_id: str, journal_entry_id: Optional[str], order_by: str) -> List[Dict[str, Any]]:
    sql, params = _page_sql(table, user_id, journal_entry_id, order_by)
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(sql, params).fetchall()
    return [dict(r) for r in rows]


# ---------- Meals ----------


def create_meal(
    *,
    user_id: str,
    date: str,
    time: str,
    food_items: List[Dict[str, Any]],
    notes: Optional[str] = None,
    is_from_journal: bool = False,
    journal_entry_id: Optional[str] = None,
) -> Meal:
    items = [FoodItem.model_validate(i) for i in food_items]
    meal = Meal(
        id=str(uuid4()),
        user_id=user_id,
        date=date,
        time=time,
        food_items=items,
        total_calories=round(sum(i.calories for i in items), 1),
        notes=notes,
        is_from_journal=is_from_journal,
        journal_entry_id=journal_entry_id,
        created_at=_utc_now(),
    )
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO meals (
                id, user_id, date, time, food_items_json, total_calories, notes,
                is_from_journal, journal_entry_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                meal.id,
                meal.user_id,
                meal.date,
                meal.time.value,
                json.dumps([i.model_dump(mode="json") for i in meal.food_items], ensure_ascii=False),
                meal.total_calories,
                meal.notes,
                int(meal.is_from_journal),
                meal.journal_entry_id,
                meal.created_at,
            ),
        )
    return meal


def _row_to_meal(row: Dict[str, Any]) -> Meal:
    row["food_items"] = json.loads(row.pop("food_items_json") or "[]")
    row["is_from_journal"] = bool(row["is_from_journal"])
    return Meal.model_validate(row)


def list_meals(user_id: str, *, journal_entry_id: Optional[str] = None) -> List[Meal]:
    return [_row_to_meal(r) for r in _fetch("meals", user_id, journal_entry_id, "date DESC, created_at DESC")]


# ---------- Medicines ----------


def create_medicine(
    *,
    user_id: str,
    name: str,
    dosage: str,
    time: str,
    start_date: str,
    frequency: str = "daily",
    duration_days: Optional[int] = None,
    category: str = "other",
    notes: Optional[str] = None,
    is_from_journal: bool = False,
    journal_entry_id: Optional[str] = None,
) -> Medicine:
    end_date = _add_days(start_date, duration_days) if duration_days else None
    medicine = Medicine(
        id=str(uuid4()),
        user_id=user_id,
        name=name,
        dosage=dosage,
        time=time,
        frequency=frequency,
        start_date=start_date,
        end_date=end_date,
        duration_days=duration_days,
        category=category,
        notes=notes,
        is_from_journal=is_from_journal,
        journal_entry_id=journal_entry_id,
        created_at=_utc_now(),
    )
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO medicines (
                id, user_id, name, dosage, time, frequency, start_date, end_date,
                duration_days, category, is_active, notes, is_from_journal,
                journal_entry_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                medicine.id,
                medicine.user_id,
                medicine.name,
                medicine.dosage,
                medicine.time.value,
                medicine.frequency.value,
                medicine.start_date,
                medicine.end_date,
                medicine.duration_days,
                medicine.category.value,
                int(medicine.is_active),
                medicine.notes,
                int(medicine.is_from_journal),
                medicine.journal_entry_id,
                medicine.created_at,
            ),
        )
    return medicine


def list_medicines(user_id: str, *, journal_entry_id: Optional[str] = None) -> List[Medicine]:
    out: List[Medicine] = []
    for row in _fetch("medicines", user_id, journal_entry_id, "start_date DESC, created_at DESC"):
        row["is_active"] = bool(row["is_active"])
        row["is_from_journal"] = bool(row["is_from_journal"])
        out.append(Medicine.model_validate(row))
    return out


# ---------- Body stats ----------

BODY_STAT_FIELDS = (
    "weight",
    "water_intake",
    "sleep_hours",
    "steps",
    "systolic",
    "diastolic",
    "heart_rate",
    "temperature",
    "mood",
    "energy",
)


def create_body_stat(
    *,
    user_id: str,
    date: str,
    values: Dict[str, Any],
    notes: Optional[str] = None,
    is_from_journal: bool = False,
    journal_entry_id: Optional[str] = None,
) -> BodyStat:
    unknown = set(values) - set(BODY_STAT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown body stat fields: {sorted(unknown)}")
    stat = BodyStat(
        id=str(uuid4()),
        user_id=user_id,
        date=date,
        notes=notes,
        is_from_journal=is_from_journal,
        journal_entry_id=journal_entry_id,
        created_at=_utc_now(),
        **values,
    )
    data = stat.model_dump(mode="json")
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            f"""
            INSERT INTO body_stats (
                id, user_id, date, {", ".join(BODY_STAT_FIELDS)}, notes,
                is_from_journal, journal_entry_id, created_at
            ) VALUES ({", ".join("?" for _ in range(len(BODY_STAT_FIELDS) + 7))})
            """,
            (
                stat.id,
                stat.user_id,
                stat.date,
                *[data[f] for f in BODY_STAT_FIELDS],
                stat.notes,
                int(stat.is_from_journal),
                stat.journal_entry_id,
                stat.created_at,
            ),
        )
    return stat


def list_body_stats(user_id: str, *, journal_entry_id: Optional[str] = None) -> List[BodyStat]:
    out: List[BodyStat] = []
    for row in _fetch("body_stats", user_id, journal_entry_id, "date DESC, created_at DESC"):
        row["is_from_journal"] = bool(row["is_from_journal"])
        out.append(BodyStat.model_validate(row))
    return out


# ---------- Lab tests ----------


def create_lab_test(
    *,
    user_id: str,
    test_name: str,
    date: str,
    result: str,
    result_value: Optional[float] = None,
    unit: Optional[str] = None,
    reference_range: Optional[Dict[str, Any]] = None,
    category: str = "blood",
    notes: Optional[str] = None,
    is_from_journal: bool = False,
    journal_entry_id: Optional[str] = None,
) -> LabTest:
    test = LabTest(
        id=str(uuid4()),
        user_id=user_id,
        test_name=test_name,
        date=date,
        result=result,
        result_value=result_value,
        unit=unit,
        reference_range=ReferenceRange.model_validate(reference_range) if reference_range else None,
        category=category,
        notes=notes,
        is_from_journal=is_from_journal,
        journal_entry_id=journal_entry_id,
        created_at=_utc_now(),
    )
    ref_json = test.reference_range.model_dump_json() if test.reference_range else None
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO lab_tests (
                id, user_id, test_name, date, result, result_value, unit,
                reference_range_json, status, category, lab_name, doctor_name, notes,
                is_from_journal, journal_entry_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                test.id,
                test.user_id,
                test.test_name,
                test.date,
                test.result,
                test.result_value,
                test.unit,
                ref_json,
                test.status.value,
                test.category.value,
                test.lab_name,
                test.doctor_name,
                test.notes,
                int(test.is_from_journal),
                test.journal_entry_id,
                test.created_at,
            ),
        )
    return test


def list_lab_tests(user_id: str, *, journal_entry_id: Optional[str] = None) -> List[LabTest]:
    out: List[LabTest] = []
    for row in _fetch("lab_tests", user_id, journal_entry_id, "date DESC, created_at DESC"):
        raw_ref = row.pop("reference_range_json", None)
        row["reference_range"] = json.loads(raw_ref) if raw_ref else None
        row["is_from_journal"] = bool(row["is_from_journal"])
        out.append(LabTest.model_validate(row))
    return out
