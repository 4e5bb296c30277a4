from __future__ import annotations

from functools import lru_cache

from pydantic import PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for a scrub run.

    Values are loaded from ``ROWSCRUB_*`` environment variables by default and
    may be overridden via CLI flags by the application entrypoint.
    """

    # Storage
    database_url: str = "sqlite:///rowscrub.db"
    page_size: PositiveInt = 500
    storage_timeout_seconds: PositiveFloat = 30.0
    max_concurrent_tables: PositiveInt = 1

    # Formatter configuration file (YAML or JSON)
    config_path: str = "rowscrub.yaml"
    # Restrict the run to these configured tables; empty means all of them.
    tables: list[str] = []

    # Fake data
    faker_locale: str | None = None
    faker_seed: int | None = None

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="ROWSCRUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
