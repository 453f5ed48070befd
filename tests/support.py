# -*- coding: utf-8 -*-
"""Shared fixtures: point the app at a throwaway SQLite database."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict
from uuid import uuid4

_BOOT_ROOT = Path(tempfile.mkdtemp(prefix="healthlog-test-boot-"))
# Set before healthlog is imported so the import-time DB init stays out of the repo.
os.environ.setdefault("HEALTHLOG_DATA_ROOT", str(_BOOT_ROOT))
os.environ.setdefault("HEALTHLOG_DB_PATH", str(_BOOT_ROOT / "healthlog.db"))
os.environ.setdefault("HEALTHLOG_JWT_SECRET", "test-secret")

from healthlog.app_db import init_app_db  # noqa: E402
from healthlog.auth.security import hash_password  # noqa: E402
from healthlog.auth.storage import create_user  # noqa: E402
from healthlog.config import settings  # noqa: E402


def use_temp_database(prefix: str = "healthlog-test-") -> Path:
    """Create a fresh data root, repoint settings at it and create the schema."""
    tmp = Path(tempfile.mkdtemp(prefix=prefix))
    settings.data_root = tmp
    settings.app_db_path = tmp / "healthlog.db"
    settings.jwt_secret = "test-secret"
    init_app_db(settings.app_db_path)
    return tmp


def drop_temp_database(tmp: Path) -> None:
    shutil.rmtree(tmp, ignore_errors=True)


def make_user(email: str | None = None) -> Dict[str, Any]:
    return create_user(
        name="Test User",
        email=email or f"user-{uuid4().hex[:8]}@example.com",
        password_hash=hash_password("password123"),
    )
