# Fichier: skillmap/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List
from pydantic import AnyHttpUrl, ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    ENVIRONMENT: str = "development"

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
    ]

    # --- Tree generator (LLM) ---
    TREE_GENERATOR: str = "openai"  # "openai" | "static"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-5-mini-2025-08-07"
    TREE_GENERATOR_MAX_RETRIES: int = 2

    # --- Downstream services (best effort) ---
    LEARNER_AI_URL: AnyHttpUrl | None = None
    DIRECTORY_URL: AnyHttpUrl | None = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # --- Alias resolution ---
    ALIAS_SIMILARITY_THRESHOLD: int = 80
    ALIAS_CANDIDATE_LIMIT: int = 25

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure database URLs use a synchronous SQLAlchemy driver.

        Managed Postgres providers still hand out ``postgres://`` URLs, which
        SQLAlchemy no longer accepts, and older deployments of this service
        were configured with async drivers (``+asyncpg`` / ``+aiosqlite``).
        The taxonomy store only uses synchronous sessions, so every variant is
        rewritten to its psycopg2 / pysqlite equivalent.
        """

        if not isinstance(value, str):
            return value

        replacements = {
            "postgres://": "postgresql+psycopg2://",
            "postgresql://": "postgresql+psycopg2://",
            "postgresql+asyncpg://": "postgresql+psycopg2://",
            "postgresql+psycopg://": "postgresql+psycopg2://",
            "sqlite+aiosqlite://": "sqlite://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("TREE_GENERATOR", mode="before")
    @classmethod
    def _normalize_generator(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The settings object is built at import time, so a missing variable surfaces
    as an import error far away from its cause. The structured error payload is
    printed before the exception is re-raised so the culprit shows up first in
    the server logs.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
