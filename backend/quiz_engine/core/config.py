import json

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve backend root (…/backend/) regardless of current working directory
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Quiz Attempt Engine"
    ENV: str = "dev"
    # One origin or several, comma separated.
    # Example: "http://localhost:5173,https://example.com"
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    DATABASE_URL: str = "sqlite:///./quiz_engine.db"

    # Create missing tables on startup. Production deployments run Alembic instead.
    AUTO_CREATE_TABLES: bool = True

    # ===== Async Queue (RQ/Redis) =====
    ASYNC_QUEUE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    RQ_DEFAULT_TIMEOUT_SEC: int = 1800

    # ===== Auto-submit of timed attempts =====
    # When a quiz has a global timer, the start endpoint schedules a job that tries
    # to complete the attempt at its deadline. Requires ASYNC_QUEUE_ENABLED.
    AUTO_SUBMIT_ENABLED: bool = True
    AUTO_SUBMIT_QUEUE: str = "auto_submit"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None or v == "":
            return []

        if isinstance(v, list):
            return v

        # JSON list first, then comma separated
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                try:
                    return json.loads(s)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]

        return v


settings = Settings()
