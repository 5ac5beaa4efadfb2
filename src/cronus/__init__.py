"""Cronus: limit concurrent job instances across a fleet of hosts.

Example:
    from cronus import ProcessRegistry, get_store

    registry = ProcessRegistry(get_store())
    if registry.acquire("nightly-report", minutes_before_expire=60):
        ...
"""

from cronus.core import (
    ProcessIdentity,
    ProcessRegistry,
    RegistryDocument,
    Slot,
    registry_only,
)
from cronus.errors import ConfigurationError, CronusError, InvalidArgumentError, StoreError
from cronus.store import (
    InMemoryStore,
    RedisStore,
    RegistryStore,
    SqlAlchemyStore,
    get_store,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CronusError",
    "InMemoryStore",
    "InvalidArgumentError",
    "ProcessIdentity",
    "ProcessRegistry",
    "RedisStore",
    "RegistryDocument",
    "RegistryStore",
    "Slot",
    "SqlAlchemyStore",
    "StoreError",
    "get_store",
    "registry_only",
]
