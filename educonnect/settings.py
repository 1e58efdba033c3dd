from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (a SQLite file next to the repo).
    - Every field can be overridden with an `EDUCONNECT_` env var.
    - Token signing settings are read separately by `educonnect.identity.config`.
    """

    model_config = SettingsConfigDict(env_prefix="EDUCONNECT_", extra="ignore")

    db_url: str | None = None
    capabilities_path: str | None = None
    log_level: str = "INFO"

    # Fixed delay before the single retry of an idempotent read.
    read_retry_delay_seconds: float = 0.05

    # Optional bootstrap of the first platform admin (see init_db).
    first_admin_email: str | None = None
    first_admin_password: str | None = None
    first_admin_name: str = "Platform Admin"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "educonnect.db"
        return f"sqlite:///{db_path}"

    def resolved_capabilities_path(self) -> Path:
        if self.capabilities_path:
            return Path(self.capabilities_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "capabilities.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
