"""Fakes for the registry's injected collaborators."""

from __future__ import annotations

from collections.abc import Mapping

from cronus.core.liveness import LivenessChecker
from cronus.core.model import RegistryDocument
from cronus.store.memory import InMemoryStore

NOW = 1_700_000_000
HOSTNAME = "web1.example.com"
ENCODED_HOSTNAME = "web1_DOT_example_DOT_com"
OTHER_HOSTNAME = "web2.example.com"
ENCODED_OTHER_HOSTNAME = "web2_DOT_example_DOT_com"


class FakeClock:
    """Settable clock returning whole epoch seconds."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeLivenessChecker(LivenessChecker):
    """Reports every pid as running except those marked dead."""

    def __init__(self) -> None:
        self.dead: set[str] = set()
        self.checked: list[str] = []

    def is_running(self, pid: int | str) -> bool:
        self.checked.append(str(pid))
        return str(pid) not in self.dead


class RacingStore(InMemoryStore):
    """In-memory store where another writer sneaks in after each of the first reads.

    The interfering write bumps the document version, so the conditional
    replace that follows loses.
    """

    def __init__(self, races: int) -> None:
        super().__init__()
        self.races = races
        self.fetches = 0
        self.replaces = 0

    def fetch_or_create(self, registry_id: str) -> RegistryDocument:
        snapshot = super().fetch_or_create(registry_id)
        self.fetches += 1
        if self.fetches <= self.races:
            # Renew of a slot that does not count against any limit
            super().set_slot(registry_id, "racer", str(self.fetches), 0)
        return snapshot

    def replace_if_unchanged(
        self,
        snapshot: RegistryDocument,
        hosts: Mapping[str, Mapping[str, int]],
    ) -> int:
        self.replaces += 1
        return super().replace_if_unchanged(snapshot, hosts)
