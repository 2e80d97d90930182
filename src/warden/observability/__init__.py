"""Observability module for Warden.

Provides metrics and structured logging:
- Prometheus counters for limiter and leader transitions
- JSON structured logging with replica and role context
"""

from warden.observability.logging import (
    LogContext,
    configure_logging,
    instance_id_var,
    request_id_var,
    role_var,
)
from warden.observability.metrics import (
    get_metrics,
    metrics_registry,
    record_leader_transition,
    record_limiter_decision,
    record_limiter_transition,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "instance_id_var",
    "request_id_var",
    "role_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "record_leader_transition",
    "record_limiter_decision",
    "record_limiter_transition",
]
