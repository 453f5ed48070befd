# -*- coding: utf-8 -*-
"""Auth: user rows in the app database.

Rows are returned as plain dicts with ``medical_conditions`` decoded and
``is_active`` as a bool; the password hash stays in the dict for login checks.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings

_PROFILE_COLUMNS = ("name", "height_cm", "weight_goal_kg", "current_weight_kg")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _row_to_user(row: Any) -> Dict[str, Any]:
    user = dict(row)
    user["medical_conditions"] = json.loads(user.pop("medical_conditions_json", None) or "[]")
    user["is_active"] = bool(user.get("is_active"))
    return user


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower().strip(),)).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row) if row else None


def create_user(
    *,
    name: str,
    email: str,
    password_hash: str,
    height_cm: Optional[float] = None,
    weight_goal_kg: Optional[float] = None,
    current_weight_kg: Optional[float] = None,
    medical_conditions: Optional[List[str]] = None,
) -> Dict[str, Any]:
    user_id = str(uuid4())
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO users (
                id, name, email, password_hash, height_cm, weight_goal_kg,
                current_weight_kg, medical_conditions_json, is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                user_id,
                name.strip(),
                email.lower().strip(),
                password_hash,
                height_cm,
                weight_goal_kg,
                current_weight_kg,
                json.dumps(medical_conditions or [], ensure_ascii=False),
                now,
                now,
            ),
        )
    user = get_user_by_id(user_id)
    if user is None:
        raise RuntimeError(f"user {user_id} missing after insert")
    return user


def update_profile(user_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply only the given profile fields; ``None`` values clear measurements."""
    fields: Dict[str, Any] = {}
    for col in _PROFILE_COLUMNS:
        if col in changes:
            fields[col] = changes[col]
    if "medical_conditions" in changes:
        fields["medical_conditions_json"] = json.dumps(changes["medical_conditions"] or [], ensure_ascii=False)
    if fields:
        fields["updated_at"] = _utc_now()
        assignments = ", ".join(f"{col} = ?" for col in fields)
        with db_conn(settings.app_db_path) as conn:
            conn.execute(f"UPDATE users SET {assignments} WHERE id = ?", (*fields.values(), user_id))
    return get_user_by_id(user_id)
