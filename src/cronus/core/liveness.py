"""Local process liveness checks.

The registry asks whether a pid is running only for slots claimed under its
own hostname, so every checker here inspects the local process table.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

import psutil

from cronus.config import settings
from cronus.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _parse_pid(pid: int | str) -> int | None:
    """Return pid as a positive int, or None if it cannot name a local process."""
    try:
        value = int(pid)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


class LivenessChecker(ABC):
    """Answers whether a local pid is currently running."""

    @abstractmethod
    def is_running(self, pid: int | str) -> bool:
        """Check if the process is alive on this host.

        Args:
            pid: Process id as stored in the registry (usually a string)

        Returns:
            True if running; False if not, or if pid is not a valid local pid
        """
        ...


class ProcfsLivenessChecker(LivenessChecker):
    """Linux checker: a pid is running while ``/proc/<pid>`` exists."""

    def __init__(self, proc_root: Path | str = "/proc"):
        self.proc_root = Path(proc_root)

    def is_running(self, pid: int | str) -> bool:
        value = _parse_pid(pid)
        if value is None:
            return False
        return (self.proc_root / str(value)).exists()


class SignalLivenessChecker(LivenessChecker):
    """POSIX checker using signal 0, which probes a pid without delivering anything."""

    def is_running(self, pid: int | str) -> bool:
        value = _parse_pid(pid)
        if value is None:
            return False
        try:
            os.kill(value, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but owned by another user
            return True
        return True


class PsutilLivenessChecker(LivenessChecker):
    """Portable checker backed by psutil (works on macOS and Windows)."""

    def is_running(self, pid: int | str) -> bool:
        value = _parse_pid(pid)
        if value is None:
            return False
        return bool(psutil.pid_exists(value))


_CHECKERS: dict[str, type[LivenessChecker]] = {
    "procfs": ProcfsLivenessChecker,
    "signal": SignalLivenessChecker,
    "psutil": PsutilLivenessChecker,
}


def get_liveness_checker(name: str | None = None) -> LivenessChecker:
    """Build the liveness checker selected by name or by settings."""
    checker_name = (name or settings.liveness_checker).lower()
    try:
        checker_cls = _CHECKERS[checker_name]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported liveness_checker {checker_name!r}. "
            f"Supported values: {', '.join(sorted(_CHECKERS))}."
        ) from None
    logger.debug(f"Using {checker_cls.__name__} for liveness checks")
    return checker_cls()
