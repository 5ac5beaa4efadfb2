"""Registry document model.

One document is kept per logical job id:

    {
        "id": "nightly-report",
        "hosts": {
            "web1_DOT_example_DOT_com": {
                "4242": 1767225600,
                ...
            },
            ...
        },
    }

Each ``(hostname, pid)`` entry is a claimed slot; its value is the absolute
epoch second after which the slot is considered abandoned. Expiries are kept
within the 32-bit signed range so stores without 64-bit integer fidelity
read them back unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cronus.errors import StoreError

INT32_MAX = 2147483647
EXPIRY_MIN = 0
SECONDS_PER_MINUTE = 60

# Characters with meaning in store field paths, and their replacements
HOSTNAME_ESCAPES = (
    (".", "_DOT_"),
    ("$", "_DOLLAR_"),
)

HostSlots = dict[str, int]


def encode_hostname(hostname: str) -> str:
    """Escape characters that are significant in store field paths.

    The encoded form is what gets stored and compared; it is never decoded.
    """
    for char, replacement in HOSTNAME_ESCAPES:
        hostname = hostname.replace(char, replacement)
    return hostname


def encode_pid(pid: int | str) -> str:
    """Return the store key for a process id."""
    return str(pid)


def compute_expiry(now: int, minutes_before_expire: int) -> int:
    """Absolute expiry for a lease of ``minutes_before_expire`` starting at ``now``.

    Clamped to ``[0, INT32_MAX]``: huge leases pin to the maximum, hugely
    negative ones become an already-expired slot.
    """
    expires = now + minutes_before_expire * SECONDS_PER_MINUTE
    if expires > INT32_MAX:
        return INT32_MAX
    if expires < EXPIRY_MIN:
        return EXPIRY_MIN
    return expires


def copy_hosts(hosts: Mapping[str, Mapping[str, int]]) -> dict[str, HostSlots]:
    """Deep-copy a hosts mapping so the working copy never aliases a snapshot."""
    return {hostname: dict(pids) for hostname, pids in hosts.items()}


@dataclass
class RegistryDocument:
    """Snapshot of one registry document as read from a store.

    ``version`` is an opaque token owned by the store adapter; the registry
    only hands it back to the adapter's conditional replace.
    """

    id: str
    hosts: dict[str, HostSlots] = field(default_factory=dict)
    version: Any = field(default=None, compare=False)

    def slot_count(self, hostname: str | None = None) -> int:
        """Number of slots, globally or under a single hostname."""
        if hostname is not None:
            return len(self.hosts.get(hostname, {}))
        return sum(len(pids) for pids in self.hosts.values())

    def expiry_of(self, hostname: str, pid: int | str) -> int | None:
        """Stored expiry for a slot, or None if the slot is absent."""
        return self.hosts.get(hostname, {}).get(encode_pid(pid))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored document shape (without the version)."""
        return {"id": self.id, "hosts": copy_hosts(self.hosts)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], version: Any = None) -> RegistryDocument:
        """Build a snapshot from a stored document.

        Raises:
            StoreError: If the document does not have the registry shape
        """
        try:
            doc_id = data["id"]
        except KeyError:
            raise StoreError("registry document has no id") from None

        raw_hosts = data.get("hosts") or {}
        if not isinstance(raw_hosts, Mapping):
            raise StoreError(f"registry document {doc_id!r} has malformed hosts")

        return cls(id=doc_id, hosts=parse_hosts(doc_id, raw_hosts), version=version)


def parse_hosts(doc_id: str, raw_hosts: Mapping[str, Any]) -> dict[str, HostSlots]:
    """Normalize a stored hosts mapping to ``{hostname: {pid: expiry}}``."""
    hosts: dict[str, HostSlots] = {}
    for hostname, pids in raw_hosts.items():
        # Lua JSON encoders may emit an emptied table as an array
        if pids == []:
            pids = {}
        if not isinstance(pids, Mapping):
            raise StoreError(f"registry document {doc_id!r} has malformed host {hostname!r}")
        slots: HostSlots = {}
        for pid, expiry in pids.items():
            try:
                slots[encode_pid(pid)] = int(expiry)
            except (TypeError, ValueError):
                raise StoreError(
                    f"registry document {doc_id!r} has non-integer expiry for "
                    f"{hostname!r}/{pid!r}"
                ) from None
        hosts[hostname] = slots
    return hosts
