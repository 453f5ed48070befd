# -*- coding: utf-8 -*-
"""Journal storage helpers (SQLite).

Status changes go through ``_apply_transition``: the next status comes from the
lifecycle table in ``state.py`` and the UPDATE only matches the status it was
computed from, so two callers racing on one entry cannot both win.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from .errors import InvalidStateError, JournalNotFoundError
from .models import JournalEntry, ParsedJournal
from .state import INITIAL_STATUS, ProcessingEvent, transition

logger = logging.getLogger(__name__)

DEFAULT_PROCESSING_ERROR = "AI API call failed"
WORDS_PER_MINUTE = 200

_TAG_KEYWORDS = (
    ("food", ("ate", "food", "meal", "breakfast", "lunch", "dinner")),
    ("medicine", ("medicine", "pill", "tablet", "medication", "prescription")),
    ("hydration", ("water", "drank", "hydration", "glass", "litre", "liter")),
    ("exercise", ("exercise", "workout", "walk", "run", "gym")),
    ("health", ("pain", "fever", "sick", "test", "doctor")),
)
_TAG_PATTERNS = [
    (tag, re.compile(r"\b(?:" + "|".join(words) + ")", re.IGNORECASE)) for tag, words in _TAG_KEYWORDS
]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def derive_tags(raw_text: str) -> List[str]:
    """Keyword tags for an entry. Keywords match at the start of a word ('walked', 'pills')."""
    text = raw_text or ""
    return [tag for tag, pattern in _TAG_PATTERNS if pattern.search(text)]


def _row_to_entry(row: Dict[str, Any]) -> JournalEntry:
    parsed = None
    raw_parsed = row.get("parsed_data_json")
    if raw_parsed:
        try:
            parsed = ParsedJournal.model_validate(json.loads(raw_parsed))
        except ValueError:
            logger.warning("journal %s has unreadable parsed_data", row.get("id"), exc_info=True)
    words = len((row.get("raw_text") or "").split())
    return JournalEntry(
        id=row["id"],
        user_id=row["user_id"],
        date=row["date"],
        raw_text=row["raw_text"],
        processing_status=row["processing_status"],
        is_processed=bool(row.get("is_processed")),
        parsed_data=parsed,
        processing_error=row.get("processing_error"),
        ai_response=row.get("ai_response"),
        tags=json.loads(row.get("tags_json") or "[]"),
        word_count=words,
        reading_time_minutes=math.ceil(words / WORDS_PER_MINUTE),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_journal_entry(*, user_id: str, raw_text: str, date: Optional[str] = None) -> JournalEntry:
    entry_id = str(uuid4())
    now = _utc_now()
    text = raw_text.strip()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO journal_entries (
                id, user_id, date, raw_text, processing_status, is_processed,
                tags_json, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
            """,
            (
                entry_id,
                user_id,
                date or now,
                text,
                INITIAL_STATUS.value,
                json.dumps(derive_tags(text), ensure_ascii=False),
                now,
                now,
            ),
        )
    return require_journal_entry(user_id=user_id, journal_id=entry_id)


def get_journal_entry(*, user_id: str, journal_id: str) -> Optional[JournalEntry]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM journal_entries WHERE id = ? AND user_id = ?",
            (journal_id, user_id),
        ).fetchone()
    return _row_to_entry(dict(row)) if row else None


def require_journal_entry(*, user_id: str, journal_id: str) -> JournalEntry:
    entry = get_journal_entry(user_id=user_id, journal_id=journal_id)
    if entry is None:
        raise JournalNotFoundError(journal_id)
    return entry


def list_journal_entries(*, user_id: str, status: Optional[str] = None) -> List[JournalEntry]:
    sql = "SELECT * FROM journal_entries WHERE user_id = ?"
    params: List[Any] = [user_id]
    if status:
        sql += " AND processing_status = ?"
        params.append(status)
    sql += " ORDER BY date DESC, created_at DESC"
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_entry(dict(r)) for r in rows]


def delete_journal_entry(*, user_id: str, journal_id: str) -> bool:
    # Derived records keep their journal_entry_id; there is no cascade.
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM journal_entries WHERE id = ? AND user_id = ?",
            (journal_id, user_id),
        )
        return cur.rowcount > 0


def _apply_transition(
    *,
    user_id: str,
    journal_id: str,
    event: ProcessingEvent,
    updates: Dict[str, Any],
) -> JournalEntry:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT processing_status FROM journal_entries WHERE id = ? AND user_id = ?",
            (journal_id, user_id),
        ).fetchone()
        if not row:
            raise JournalNotFoundError(journal_id)
        current = row["processing_status"]
        nxt = transition(current, event)

        fields = {"processing_status": nxt.value, "updated_at": _utc_now(), **updates}
        assignments = ", ".join(f"{col} = ?" for col in fields)
        cur = conn.execute(
            f"UPDATE journal_entries SET {assignments} WHERE id = ? AND user_id = ? AND processing_status = ?",
            (*fields.values(), journal_id, user_id, current),
        )
        if cur.rowcount != 1:
            raise InvalidStateError(current, event.value)
    logger.debug("journal %s: %s -> %s (%s)", journal_id, current, nxt.value, event.value)
    return require_journal_entry(user_id=user_id, journal_id=journal_id)


def mark_retry(*, user_id: str, journal_id: str) -> JournalEntry:
    return _apply_transition(
        user_id=user_id,
        journal_id=journal_id,
        event=ProcessingEvent.retry,
        updates={"processing_error": None},
    )


def mark_started(*, user_id: str, journal_id: str) -> JournalEntry:
    return _apply_transition(user_id=user_id, journal_id=journal_id, event=ProcessingEvent.start, updates={})


def mark_completed(
    *,
    user_id: str,
    journal_id: str,
    parsed_data: ParsedJournal,
    ai_response: str,
) -> JournalEntry:
    return _apply_transition(
        user_id=user_id,
        journal_id=journal_id,
        event=ProcessingEvent.succeed,
        updates={
            "parsed_data_json": parsed_data.model_dump_json(),
            "ai_response": ai_response,
            "is_processed": 1,
            "processing_error": None,
        },
    )


def mark_failed(
    *,
    user_id: str,
    journal_id: str,
    error: str,
    ai_response: Optional[str] = None,
) -> JournalEntry:
    updates: Dict[str, Any] = {
        "processing_error": (error or "").strip() or DEFAULT_PROCESSING_ERROR,
        "is_processed": 0,
    }
    if ai_response is not None:
        updates["ai_response"] = ai_response
    return _apply_transition(
        user_id=user_id,
        journal_id=journal_id,
        event=ProcessingEvent.fail,
        updates=updates,
    )
