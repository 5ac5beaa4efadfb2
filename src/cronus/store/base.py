"""Base registry store interface.

Defines the primitives the process registry needs from a document store.
Any backend offering a conditional whole-document replace and atomic
single-field updates can implement it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from cronus.core.model import RegistryDocument


class RegistryStore(ABC):
    """Abstract base class for registry store backends.

    Transport errors raised by the underlying client are never caught here;
    the registry cannot make progress without its store.
    """

    @abstractmethod
    def find(self, registry_id: str) -> RegistryDocument | None:
        """Read a registry document without creating it.

        Returns:
            The document, or None if no slot was ever requested for the id
        """
        ...

    @abstractmethod
    def fetch_or_create(self, registry_id: str) -> RegistryDocument:
        """Read a registry document, atomically creating it with empty hosts if absent.

        Returns:
            Snapshot carrying the store version used by replace_if_unchanged
        """
        ...

    @abstractmethod
    def replace_if_unchanged(
        self,
        snapshot: RegistryDocument,
        hosts: Mapping[str, Mapping[str, int]],
    ) -> int:
        """Replace the stored hosts if the document still matches the snapshot.

        Args:
            snapshot: Document previously returned by fetch_or_create
            hosts: Replacement hosts mapping

        Returns:
            Number of documents replaced: 1 on success, 0 if a concurrent
            writer changed the document since the snapshot was taken
        """
        ...

    @abstractmethod
    def set_slot(self, registry_id: str, hostname: str, pid: str, expiry: int) -> None:
        """Atomically set ``hosts.<hostname>.<pid>`` to expiry.

        Does nothing if the document does not exist.
        """
        ...

    @abstractmethod
    def unset_slot(self, registry_id: str, hostname: str, pid: str) -> None:
        """Atomically remove ``hosts.<hostname>.<pid>``.

        Removing an absent slot, or from an absent document, is a no-op. An
        emptied hostname is left in place.
        """
        ...

    def close(self) -> None:
        """Release client resources held by the store."""
        return None
