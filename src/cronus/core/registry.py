"""Distributed process registry.

Limits how many instances of a job run at once, globally and per host,
using a shared document store as the only coordination medium. Typical use
is a cron-launched script that should skip its work when enough copies are
already running:

    registry = ProcessRegistry(get_store())

    if not registry.acquire("nightly-report", minutes_before_expire=60):
        return  # try again on the next tick
    try:
        run_report()
    finally:
        registry.release("nightly-report")

    # Or scoped
    with registry.slot("nightly-report", minutes_before_expire=60) as slot:
        if slot.acquired:
            run_report()

Acquiring is an optimistic read-clean-check-write loop:
1. Fetch the registry document, creating it if absent
2. Drop stale slots (dead local pid, expired lease, our own previous slot)
3. Reject if the global or per-host limit is already reached
4. Add our slot and commit only if nobody wrote since step 1
5. On a lost race, start over, up to ``max_attempts`` times

A rejection never writes, so the cleaning done by a rejected call is redone
by the next caller.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from cronus.config import settings
from cronus.core.identity import Clock, IdentityProvider, ProcessIdentity, system_clock
from cronus.core.liveness import LivenessChecker, get_liveness_checker
from cronus.core.model import HostSlots, RegistryDocument, compute_expiry
from cronus.errors import InvalidArgumentError
from cronus.observability.logging import LogContext
from cronus.observability.metrics import get_metrics

if TYPE_CHECKING:
    from cronus.store.base import RegistryStore

logger = logging.getLogger(__name__)

# Effectively "never expires"; clamps to the 32-bit maximum
DEFAULT_MINUTES_BEFORE_EXPIRE = sys.maxsize
DEFAULT_MAX_GLOBAL_SLOTS = 1
DEFAULT_MAX_HOST_SLOTS = 1


class StaleReason(str, Enum):
    """Why a slot was dropped while cleaning."""

    DEAD = "dead"  # Our host, pid no longer running
    EXPIRED = "expired"  # Lease ran out
    SUPERSEDED = "superseded"  # Our own previous slot


def _require_str(parameter: str, value: object) -> None:
    if not isinstance(value, str):
        raise InvalidArgumentError(parameter, "a string", value)


def _require_int(parameter: str, value: object) -> None:
    # bool is an int subclass but never a meaningful count
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(parameter, "an int", value)


def clean_hosts(
    document: RegistryDocument,
    own_hostname: str,
    own_pid: str,
    now: int,
    is_running: Callable[[str], bool],
) -> tuple[dict[str, HostSlots], dict[StaleReason, int]]:
    """Return a working copy of the document's hosts without stale slots.

    Hostnames left without slots are dropped. Liveness is only asked about
    pids under ``own_hostname``.

    Returns:
        Tuple of (cleaned hosts, reclaimed slot counts by reason)
    """
    cleaned: dict[str, HostSlots] = {}
    reclaimed: dict[StaleReason, int] = {}

    for hostname, pids in document.hosts.items():
        is_own_host = hostname == own_hostname
        kept: HostSlots = {}
        for pid, expiry in pids.items():
            reason: StaleReason | None = None
            if is_own_host and not is_running(pid):
                reason = StaleReason.DEAD
            elif expiry <= now:
                reason = StaleReason.EXPIRED
            elif is_own_host and pid == own_pid:
                reason = StaleReason.SUPERSEDED

            if reason is None:
                kept[pid] = expiry
            else:
                reclaimed[reason] = reclaimed.get(reason, 0) + 1

        if kept:
            cleaned[hostname] = kept

    return cleaned, reclaimed


class ProcessRegistry:
    """Admission control for jobs running on many hosts.

    All coordination goes through the store's conditional replace; no
    in-process locks are taken, so any number of registries (in any number
    of processes) may share one store.

    Args:
        store: Backend holding the registry documents
        identity: Returns this process's hostname and pid (read per call)
        clock: Returns the current epoch second
        liveness: Decides whether a local pid is still running
        max_attempts: Commit attempts per acquire before giving up
    """

    def __init__(
        self,
        store: RegistryStore,
        identity: IdentityProvider | None = None,
        clock: Clock | None = None,
        liveness: LivenessChecker | None = None,
        max_attempts: int | None = None,
    ):
        self.store = store
        self._identity = identity or ProcessIdentity.current
        self._clock = clock or system_clock
        self._liveness = liveness or get_liveness_checker()
        self.max_attempts = settings.max_attempts if max_attempts is None else max_attempts
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def acquire(
        self,
        registry_id: str,
        minutes_before_expire: int = DEFAULT_MINUTES_BEFORE_EXPIRE,
        max_global_slots: int = DEFAULT_MAX_GLOBAL_SLOTS,
        max_host_slots: int = DEFAULT_MAX_HOST_SLOTS,
    ) -> bool:
        """Claim a slot for this process if the limits allow it.

        Args:
            registry_id: Logical job id
            minutes_before_expire: Lease length; the slot is reclaimable after it
            max_global_slots: Max slots for the id across all hosts
            max_host_slots: Max slots for the id on this host

        Returns:
            True if the slot was added. False if a limit was reached or the
            document was too contended to commit; callers treat both as
            "try again later".

        Raises:
            InvalidArgumentError: If an argument has the wrong type
        """
        _require_str("registry_id", registry_id)
        _require_int("minutes_before_expire", minutes_before_expire)
        _require_int("max_global_slots", max_global_slots)
        _require_int("max_host_slots", max_host_slots)

        me = self._identity()
        hostname = me.encoded_hostname
        pid = me.pid_key
        metrics = get_metrics()

        with LogContext(registry_id=registry_id, hostname=hostname):
            for attempt in range(1, self.max_attempts + 1):
                existing = self.store.fetch_or_create(registry_id)
                now = self._clock()

                hosts, reclaimed = clean_hosts(
                    existing, hostname, pid, now, self._liveness.is_running
                )
                for reason, count in reclaimed.items():
                    logger.debug(f"Dropping {count} {reason.value} slot(s) from '{registry_id}'")

                total_slots = sum(len(pids) for pids in hosts.values())
                own_host_slots = len(hosts.get(hostname, {}))

                if total_slots >= max_global_slots or own_host_slots >= max_host_slots:
                    logger.info(
                        f"No slot for '{registry_id}': {total_slots}/{max_global_slots} global, "
                        f"{own_host_slots}/{max_host_slots} on this host"
                    )
                    metrics.record_acquire("rejected")
                    return False

                hosts.setdefault(hostname, {})[pid] = compute_expiry(now, minutes_before_expire)

                if self.store.replace_if_unchanged(existing, hosts) == 1:
                    for reason, count in reclaimed.items():
                        metrics.record_reclaimed(reason.value, count)
                    logger.info(f"Acquired slot for '{registry_id}' as pid {pid}")
                    metrics.record_acquire("acquired")
                    return True

                logger.debug(
                    f"Registry '{registry_id}' changed during attempt {attempt}, retrying"
                )
                metrics.record_conflict()

            logger.warning(
                f"Gave up on '{registry_id}' after {self.max_attempts} contended attempts"
            )
            metrics.record_acquire("contended")
            return False

    def release(self, registry_id: str) -> None:
        """Remove this process's slot.

        A single atomic unset: idempotent, and an emptied hostname is left
        in the document until the next acquire cleans it.

        Raises:
            InvalidArgumentError: If registry_id is not a string
        """
        _require_str("registry_id", registry_id)

        me = self._identity()
        self.store.unset_slot(registry_id, me.encoded_hostname, me.pid_key)
        logger.debug(f"Released slot for '{registry_id}' as pid {me.pid_key}")
        get_metrics().record_release()

    def renew(self, registry_id: str, minutes_before_expire: int) -> None:
        """Reset this process's lease to ``minutes_before_expire`` from now.

        A single atomic set with no limit checks; long-running holders call
        it before their lease lapses.

        Raises:
            InvalidArgumentError: If an argument has the wrong type
        """
        _require_str("registry_id", registry_id)
        _require_int("minutes_before_expire", minutes_before_expire)

        expiry = compute_expiry(self._clock(), minutes_before_expire)
        me = self._identity()
        self.store.set_slot(registry_id, me.encoded_hostname, me.pid_key, expiry)
        logger.debug(f"Renewed slot for '{registry_id}' until {expiry}")
        get_metrics().record_renewal()

    def get(self, registry_id: str) -> RegistryDocument | None:
        """Read the registry document as stored, without cleaning it."""
        _require_str("registry_id", registry_id)
        return self.store.find(registry_id)

    @contextmanager
    def slot(
        self,
        registry_id: str,
        minutes_before_expire: int = DEFAULT_MINUTES_BEFORE_EXPIRE,
        max_global_slots: int = DEFAULT_MAX_GLOBAL_SLOTS,
        max_host_slots: int = DEFAULT_MAX_HOST_SLOTS,
    ) -> Iterator[Slot]:
        """Try to acquire a slot for the duration of a block.

        The slot is released on exit only if it was acquired.

        Example:
            with registry.slot("cleanup", minutes_before_expire=30) as slot:
                if slot.acquired:
                    do_cleanup()
        """
        acquired = self.acquire(
            registry_id,
            minutes_before_expire=minutes_before_expire,
            max_global_slots=max_global_slots,
            max_host_slots=max_host_slots,
        )
        held = Slot(registry=self, registry_id=registry_id, acquired=acquired)
        try:
            yield held
        finally:
            if acquired:
                self.release(registry_id)


@dataclass
class Slot:
    """Outcome of ``ProcessRegistry.slot``."""

    registry: ProcessRegistry
    registry_id: str
    acquired: bool

    def renew(self, minutes_before_expire: int) -> None:
        """Extend the lease of a held slot; does nothing if not acquired."""
        if self.acquired:
            self.registry.renew(self.registry_id, minutes_before_expire)


P = ParamSpec("P")
R = TypeVar("R")


def registry_only(
    registry: ProcessRegistry,
    registry_id: str,
    minutes_before_expire: int = DEFAULT_MINUTES_BEFORE_EXPIRE,
    max_global_slots: int = DEFAULT_MAX_GLOBAL_SLOTS,
    max_host_slots: int = DEFAULT_MAX_HOST_SLOTS,
) -> Callable[[Callable[P, R]], Callable[P, R | None]]:
    """Decorator that runs a function only when a slot can be acquired.

    Example:
        @registry_only(registry, "daily-report", minutes_before_expire=120)
        def generate_daily_report():
            # Skipped (returns None) while another instance holds the slot
            ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R | None]:
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            with registry.slot(
                registry_id,
                minutes_before_expire=minutes_before_expire,
                max_global_slots=max_global_slots,
                max_host_slots=max_host_slots,
            ) as held:
                if held.acquired:
                    return func(*args, **kwargs)
                logger.debug(f"Skipping {func.__name__} - no slot for '{registry_id}'")
                return None

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator
