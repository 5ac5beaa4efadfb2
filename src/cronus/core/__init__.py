"""Registry engine and the collaborators it is built from."""

from cronus.core.identity import ProcessIdentity, system_clock
from cronus.core.liveness import (
    LivenessChecker,
    ProcfsLivenessChecker,
    PsutilLivenessChecker,
    SignalLivenessChecker,
    get_liveness_checker,
)
from cronus.core.model import (
    INT32_MAX,
    RegistryDocument,
    compute_expiry,
    encode_hostname,
)
from cronus.core.registry import ProcessRegistry, Slot, StaleReason, registry_only

__all__ = [
    "INT32_MAX",
    "LivenessChecker",
    "ProcessIdentity",
    "ProcessRegistry",
    "ProcfsLivenessChecker",
    "PsutilLivenessChecker",
    "RegistryDocument",
    "SignalLivenessChecker",
    "Slot",
    "StaleReason",
    "compute_expiry",
    "encode_hostname",
    "get_liveness_checker",
    "registry_only",
    "system_clock",
]
