"""Prometheus metrics for Warden.

Provides counters for the coordination primitives:
- Limiter decisions (allowed/denied per limiter)
- Limiter transitions (blocked, released, escalated)
- Leader transitions (elected, revoked, error per role)

Usage:
    from warden.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.limiter_decisions_total.labels(limiter="api", allowed="true").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, generate_latest

from warden.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    limiter_decisions_total: Any = None
    limiter_transitions_total: Any = None
    leader_transitions_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.limiter_decisions_total = Counter(
            "warden_limiter_decisions_total",
            "Admission decisions taken by escalating limiters",
            ["limiter", "allowed"],
        )

        self.limiter_transitions_total = Counter(
            "warden_limiter_transitions_total",
            "Block, release and escalation transitions of escalating limiters",
            ["limiter", "transition"],
        )

        self.leader_transitions_total = Counter(
            "warden_leader_transitions_total",
            "Leader election transitions",
            ["role", "transition"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics or self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_limiter_decision(limiter: str, allowed: bool) -> None:
    """Record an admission decision."""
    metrics = get_metrics()
    if metrics.limiter_decisions_total:
        metrics.limiter_decisions_total.labels(
            limiter=limiter,
            allowed="true" if allowed else "false",
        ).inc()


def record_limiter_transition(limiter: str, transition: str) -> None:
    """Record a limiter transition.

    Args:
        limiter: Limiter name
        transition: One of blocked, released, escalated
    """
    metrics = get_metrics()
    if metrics.limiter_transitions_total:
        metrics.limiter_transitions_total.labels(limiter=limiter, transition=transition).inc()


def record_leader_transition(role: str, transition: str) -> None:
    """Record a leader transition.

    Args:
        role: Role identifier
        transition: One of elected, revoked, error
    """
    metrics = get_metrics()
    if metrics.leader_transitions_total:
        metrics.leader_transitions_total.labels(role=role, transition=transition).inc()
