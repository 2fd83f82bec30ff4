"""Exception hierarchy for the state store.

Operation errors raised by the drivers (``pymongo.errors.PyMongoError``,
``redis.exceptions.RedisError``) are not wrapped -- they propagate unchanged
from ``read`` / ``write`` / ``delete``.
"""

from __future__ import annotations


class BotStateError(Exception):
    """Base class for errors raised by botstate itself."""


class ConfigurationError(BotStateError, ValueError):
    """Raised at construction time for an unusable configuration."""


class BackendConnectionError(BotStateError, ConnectionError):
    """Raised by ``connect()`` when a backend cannot be reached."""

    def __init__(self, backend: str, reason: str) -> None:
        self.backend = backend
        super().__init__(f"{backend}: connection failed ({reason})")


class StoreStateError(BotStateError, RuntimeError):
    """Raised when the store is used out of lifecycle order."""
