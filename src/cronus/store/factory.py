"""Registry store factory."""

from __future__ import annotations

from cronus.config import settings
from cronus.errors import ConfigurationError
from cronus.store.base import RegistryStore
from cronus.store.memory import InMemoryStore
from cronus.store.redis import RedisStore
from cronus.store.sql import SqlAlchemyStore

_store: RegistryStore | None = None


def get_store() -> RegistryStore:
    """Return a singleton RegistryStore based on settings."""
    global _store
    if _store is not None:
        return _store

    backend = settings.store_backend.lower()
    if backend == "redis":
        _store = RedisStore()
    elif backend == "sql":
        if not settings.database_url:
            raise ConfigurationError("DATABASE_URL is required for store_backend='sql'")
        _store = SqlAlchemyStore(database_url=settings.database_url)
    elif backend == "memory":
        _store = InMemoryStore()
    else:
        raise ConfigurationError(
            "Unsupported store_backend. Supported values: redis, sql, memory."
        )
    return _store


def reset_store() -> None:
    """Close and forget the singleton store."""
    global _store
    if _store is not None:
        _store.close()
        _store = None
