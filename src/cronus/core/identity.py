"""Process identity and clock providers.

The registry never reads the hostname, pid or wall clock directly; it calls
the providers it was constructed with, so tests can pin all three.
"""

from __future__ import annotations

import os
import socket
import time
from collections.abc import Callable
from dataclasses import dataclass

from cronus.core.model import encode_hostname, encode_pid


@dataclass(frozen=True)
class ProcessIdentity:
    """Hostname and pid of the process claiming a slot."""

    hostname: str
    pid: int

    @property
    def encoded_hostname(self) -> str:
        """Hostname as stored in the registry document."""
        return encode_hostname(self.hostname)

    @property
    def pid_key(self) -> str:
        """Pid as stored in the registry document."""
        return encode_pid(self.pid)

    @classmethod
    def current(cls) -> ProcessIdentity:
        """Identity of the running process."""
        return cls(hostname=socket.gethostname(), pid=os.getpid())


IdentityProvider = Callable[[], ProcessIdentity]
Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in whole epoch seconds."""
    return int(time.time())
