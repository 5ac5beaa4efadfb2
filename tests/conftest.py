"""Global pytest configuration and fixtures.

Provides fakes for the registry's injected collaborators (clock, identity,
liveness) and a registry factory over a shared in-memory store.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from cronus.core.identity import ProcessIdentity
from cronus.core.registry import ProcessRegistry
from cronus.store.memory import InMemoryStore
from tests.fakes import HOSTNAME, FakeClock, FakeLivenessChecker


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def liveness() -> FakeLivenessChecker:
    return FakeLivenessChecker()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_registry(
    store: InMemoryStore,
    clock: FakeClock,
    liveness: FakeLivenessChecker,
) -> Callable[..., ProcessRegistry]:
    """Build registries for simulated processes sharing one store and clock."""

    def factory(
        hostname: str = HOSTNAME,
        pid: int = 100,
        registry_store: InMemoryStore | None = None,
        max_attempts: int | None = None,
    ) -> ProcessRegistry:
        identity = ProcessIdentity(hostname=hostname, pid=pid)
        return ProcessRegistry(
            registry_store if registry_store is not None else store,
            identity=lambda: identity,
            clock=clock,
            liveness=liveness,
            max_attempts=max_attempts,
        )

    return factory


@pytest.fixture
def registry(make_registry: Callable[..., ProcessRegistry]) -> ProcessRegistry:
    """Registry for pid 100 on web1.example.com."""
    return make_registry()
