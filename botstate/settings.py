"""Service configuration loaded from BOTSTATE_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_NAME = "botstorage"
DEFAULT_COLLECTION_NAME = "conversations"
DEFAULT_CACHE_EXPIRATION = 1_209_600  # 14 days


class BotStateSettings(BaseSettings):
    """botstate settings.

    All fields are read from environment variables with the ``BOTSTATE_``
    prefix.  For example, ``BOTSTATE_REDIS_URL=redis://localhost:6379/0``
    maps to ``redis_url`` and turns the cache tier on.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOTSTATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Durable store ---------------------------------------------------------
    mongo_uri: str | None = None
    """MongoDB connection string.  Required."""

    database: str = DEFAULT_DATABASE_NAME
    collection: str = DEFAULT_COLLECTION_NAME

    safe_writes: bool = False
    """Wait for majority acknowledgment on bulk writes and deletes.

    Off by default: writes are sent unacknowledged (``w=0``), trading the
    most recent durable write on a crash for latency.
    """

    # -- Cache -----------------------------------------------------------------
    redis_url: str | None = None
    """Redis connection string.  Unset disables the cache tier."""

    cache_expiration: int = DEFAULT_CACHE_EXPIRATION
    """Cache TTL in seconds."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> BotStateSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return BotStateSettings()
