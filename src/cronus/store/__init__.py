"""Registry store backends.

- Redis (JSON document per id, Lua compare-and-swap)
- Any SQLAlchemy database (row per id, version column)
- In-memory (tests, single process)
"""

from cronus.store.base import RegistryStore
from cronus.store.factory import get_store, reset_store
from cronus.store.memory import InMemoryStore
from cronus.store.redis import RedisStore
from cronus.store.sql import SqlAlchemyStore

__all__ = [
    "RegistryStore",
    "InMemoryStore",
    "RedisStore",
    "SqlAlchemyStore",
    "get_store",
    "reset_store",
]
