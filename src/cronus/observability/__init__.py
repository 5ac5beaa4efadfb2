"""Observability for the process registry.

Provides structured logging and Prometheus metrics:
- JSON or console logging with registry context
- Counters for acquire outcomes, conflicts and reclaimed slots
"""

from cronus.observability.logging import (
    LogContext,
    configure_logging,
    hostname_var,
    registry_id_var,
)
from cronus.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "registry_id_var",
    "hostname_var",
    # Metrics
    "MetricsRegistry",
    "metrics_registry",
    "get_metrics",
]
