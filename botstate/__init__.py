"""Two-tier (MongoDB + optional Redis) key-value state store."""

from botstate.errors import BackendConnectionError, BotStateError, ConfigurationError, StoreStateError
from botstate.models import ConnectionStatus, HealthResult
from botstate.store.tiered import TieredStateStore, create_state_store

__all__ = [
    "BackendConnectionError",
    "BotStateError",
    "ConfigurationError",
    "ConnectionStatus",
    "HealthResult",
    "StoreStateError",
    "TieredStateStore",
    "create_state_store",
]
