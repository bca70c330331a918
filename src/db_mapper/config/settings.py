"""Environment settings.

Every field reads ``DB_MAPPER_<NAME>`` from the environment or a ``.env``
file, e.g. ``DB_MAPPER_PROFILE=local`` or
``DB_MAPPER_DATABASE_URL=sqlite:///app.db``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Profiles
    config_file: Path = Path("db.toml")
    profile: str | None = None

    # Direct connection (bypasses profiles)
    database_url: str | None = None

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = SettingsConfigDict(
        env_prefix="DB_MAPPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()
