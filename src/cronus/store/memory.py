"""In-process registry store.

Useful for tests and for coordinating threads of a single process. Every
write bumps an integer version, which is what the conditional replace
compares against.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping

from cronus.core.model import HostSlots, RegistryDocument, copy_hosts
from cronus.store.base import RegistryStore


class InMemoryStore(RegistryStore):
    """Thread-safe dictionary-backed registry store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, dict[str, HostSlots]] = {}
        self._versions: dict[str, int] = {}

    def _snapshot(self, registry_id: str) -> RegistryDocument:
        return RegistryDocument(
            id=registry_id,
            hosts=copy_hosts(self._documents[registry_id]),
            version=self._versions[registry_id],
        )

    def find(self, registry_id: str) -> RegistryDocument | None:
        with self._lock:
            if registry_id not in self._documents:
                return None
            return self._snapshot(registry_id)

    def fetch_or_create(self, registry_id: str) -> RegistryDocument:
        with self._lock:
            if registry_id not in self._documents:
                self._documents[registry_id] = {}
                self._versions[registry_id] = 0
            return self._snapshot(registry_id)

    def replace_if_unchanged(
        self,
        snapshot: RegistryDocument,
        hosts: Mapping[str, Mapping[str, int]],
    ) -> int:
        with self._lock:
            if self._versions.get(snapshot.id) != snapshot.version:
                return 0
            self._documents[snapshot.id] = copy_hosts(hosts)
            self._versions[snapshot.id] += 1
            return 1

    def set_slot(self, registry_id: str, hostname: str, pid: str, expiry: int) -> None:
        with self._lock:
            hosts = self._documents.get(registry_id)
            if hosts is None:
                return
            hosts.setdefault(hostname, {})[pid] = expiry
            self._versions[registry_id] += 1

    def unset_slot(self, registry_id: str, hostname: str, pid: str) -> None:
        with self._lock:
            hosts = self._documents.get(registry_id)
            if hosts is None:
                return
            hosts.get(hostname, {}).pop(pid, None)
            self._versions[registry_id] += 1

    def clear(self) -> None:
        """Drop every document."""
        with self._lock:
            self._documents.clear()
            self._versions.clear()
