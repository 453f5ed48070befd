from __future__ import annotations

import os
from pathlib import Path
from typing import List


class Settings:
    """Centralized configuration for the healthlog backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("HEALTHLOG_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("HEALTHLOG_DB_PATH") or (self.data_root / "healthlog.db")
        ).expanduser()
        # In production you MUST set HEALTHLOG_JWT_SECRET. The dev secret keeps local
        # demos easy but is not safe for public deployments.
        self.jwt_secret: str = os.environ.get("HEALTHLOG_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("HEALTHLOG_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = (os.environ.get("HEALTHLOG_COOKIE_SECURE") or "").strip() in {"1", "true", "True"}
        self.log_level: str = (os.environ.get("HEALTHLOG_LOG_LEVEL") or "INFO").strip().upper()

        # ---- Journal extraction (OpenAI-compatible chat completions) ----
        self.ai_api_url: str = os.environ.get(
            "AI_API_URL", "https://api.perplexity.ai/chat/completions"
        )
        self.ai_api_key: str | None = os.environ.get("AI_API_KEY")
        self.ai_model: str = os.environ.get("AI_MODEL", "sonar")
        self.ai_timeout: float = float(os.environ.get("AI_TIMEOUT", "60"))
        self.ai_max_tokens: int = int(os.environ.get("AI_MAX_TOKENS", "2000"))
        self.ai_temperature: float = float(os.environ.get("AI_TEMPERATURE", "0.1"))

        cors = os.environ.get("HEALTHLOG_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
