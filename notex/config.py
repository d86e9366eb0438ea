"""
NoteX Backend — Application Configuration
==========================================

What:  Process environment settings using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file) and
       validates types/ranges. Credentials are NOT here: they come from
       Secret Manager through the configuration loader.
Who:   `settings` is used for logging setup; the loader builds a fresh
       `Settings()` on every load attempt.

Environment:
    DB_HOST            PostgreSQL host (required, checked by the loader)
    DB_PORT            PostgreSQL port (default 5432)
    SECRET_PROJECT_ID  Project that owns the db-user/db-pass/db-name/backup-bucket secrets
    DB_POOL_SIZE       Persistent pooled connections
    DB_MAX_OVERFLOW    Extra connections for spikes
    EXPORT_PREFIX      Object key prefix for note exports
    LOG_LEVEL          DEBUG, INFO, WARNING, ERROR, CRITICAL
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Configuration assembled once per process by the loader.

    Secret values come from Secret Manager; host and port from the
    environment. Never refreshed after a successful load.
    """

    db_user: str
    db_password: str = field(repr=False)
    db_name: str
    db_host: str
    export_bucket: str
    db_port: int = 5432


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Host has no default: an unset DB_HOST is a configuration error
    db_host: Optional[str] = Field(default=None, description="PostgreSQL host address")
    db_port: int = Field(default=5432, ge=1, le=65535)

    # Cloud function instances each hold their own pool; keep it small
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=5, ge=0, le=50)

    # ── Secret Manager ────────────────────────────────────────────────────
    secret_project_id: str = Field(
        default="fluid-house-477701-v2",
        description="Project holding the database and bucket secrets",
    )
    secret_version: str = Field(default="latest")

    # ── Export ────────────────────────────────────────────────────────────
    export_prefix: str = Field(default="note_exports/")

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("db_host")
    @classmethod
    def blank_host_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """An empty DB_HOST counts as missing."""
        if v is not None and not v.strip():
            return None
        return v

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def secret_name(self, secret_id: str) -> str:
        """Fully-qualified Secret Manager version name for `secret_id`."""
        return (
            f"projects/{self.secret_project_id}/secrets/{secret_id}"
            f"/versions/{self.secret_version}"
        )


# Singleton instance used for process-level concerns (logging)
settings = Settings()
