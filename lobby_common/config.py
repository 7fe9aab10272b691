"""
Lobby Signal infrastructure settings: the database the worker reads from and
the refresh loop's cadence. Scoring and privacy constants live in
lobby_signal.config.

Usage:
    from lobby_common.config import get_db_settings, worker_settings

    dsn = get_db_settings().connection_url
    every = worker_settings.poll_interval_seconds
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import quote

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings

_ENV = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class DatabaseSettings(BaseSettings):
    """DATABASE_URL wins; otherwise the DSN is assembled from POSTGRES_*."""

    database_url: Optional[str] = None
    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_db: str = "lobby"
    postgres_user: str = "lobby"
    postgres_password: Optional[str] = None

    db_pool_min: int = Field(default=1, ge=1)
    db_pool_max: int = Field(default=10, ge=1)

    model_config = _ENV

    @model_validator(mode='after')
    def check_credentials_and_pool(self) -> 'DatabaseSettings':
        if not (self.database_url or self.postgres_password):
            raise ValueError('set DATABASE_URL or POSTGRES_PASSWORD')
        if self.db_pool_min > self.db_pool_max:
            raise ValueError('db_pool_min must not exceed db_pool_max')
        return self

    @computed_field
    @property
    def connection_url(self) -> str:
        if self.database_url:
            return self.database_url
        # Credentials may contain '@' or ':'
        user = quote(self.postgres_user, safe="")
        password = quote(self.postgres_password or "", safe="")
        return f"postgresql://{user}:{password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


class WorkerSettings(BaseSettings):
    """Refresh worker cadence (LOBBY_WORKER_* variables)."""

    # Cached scores older than this are recomputed
    stale_minutes: int = Field(default=5, ge=1)
    refresh_batch_size: int = Field(default=100, ge=1)
    poll_interval_seconds: int = Field(default=60, ge=1)
    log_level: str = "INFO"

    model_config = {**_ENV, "env_prefix": "LOBBY_WORKER_"}


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    # Deferred: importing the core must not require database credentials
    return DatabaseSettings()


# Singleton instance - import directly
worker_settings = WorkerSettings()
