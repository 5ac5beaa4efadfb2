"""Prometheus metrics for the process registry.

Counts acquire outcomes, commit conflicts and reclaimed slots. Cron-style
callers are short-lived, so these are mostly useful when the registry is
embedded in a long-running service that exposes ``generate_latest()``.

Usage:
    from cronus.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.record_acquire("acquired")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter
from prometheus_client import generate_latest as prometheus_generate_latest

from cronus.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    acquire_total: Any = None
    commit_conflicts_total: Any = None
    slots_reclaimed_total: Any = None
    releases_total: Any = None
    renewals_total: Any = None

    enabled: bool = False

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, registry: CollectorRegistry | None = None) -> None:
        """Create the Prometheus collectors, unless metrics are disabled."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.debug("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry if registry is not None else REGISTRY

        self.acquire_total = Counter(
            "cronus_acquire_total",
            "Slot acquire attempts by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self.commit_conflicts_total = Counter(
            "cronus_commit_conflicts_total",
            "Conditional replaces lost to a concurrent writer",
            registry=self._registry,
        )

        self.slots_reclaimed_total = Counter(
            "cronus_slots_reclaimed_total",
            "Stale slots dropped while cleaning a registry document",
            ["reason"],
            registry=self._registry,
        )

        self.releases_total = Counter(
            "cronus_releases_total",
            "Slot releases",
            registry=self._registry,
        )

        self.renewals_total = Counter(
            "cronus_renewals_total",
            "Slot lease renewals",
            registry=self._registry,
        )

        self.enabled = True
        self._initialized = True
        logger.debug("Prometheus metrics initialized")

    def record_acquire(self, outcome: str) -> None:
        if self.enabled:
            self.acquire_total.labels(outcome=outcome).inc()

    def record_conflict(self) -> None:
        if self.enabled:
            self.commit_conflicts_total.inc()

    def record_reclaimed(self, reason: str, count: int = 1) -> None:
        if self.enabled and count:
            self.slots_reclaimed_total.labels(reason=reason).inc(count)

    def record_release(self) -> None:
        if self.enabled:
            self.releases_total.inc()

    def record_renewal(self) -> None:
        if self.enabled:
            self.renewals_total.inc()

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not self.enabled or self._registry is None:
            return b"# Metrics disabled\n"
        return prometheus_generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
