"""Warden: distributed rate limiting and role election over a shared store."""

from warden.context import CoordinationContext
from warden.distributed import (
    HighAvailability,
    LeaderState,
    LeaseLeader,
    RoleRegistry,
    SingleShotSelector,
)
from warden.errors import StoreError, StoreUnavailableError, UnknownRoleError, WardenError
from warden.limiter import EscalatingLimiter, LimiterConfig, UseResult

__version__ = "0.1.0"

__all__ = [
    "CoordinationContext",
    "EscalatingLimiter",
    "HighAvailability",
    "LeaderState",
    "LeaseLeader",
    "LimiterConfig",
    "RoleRegistry",
    "SingleShotSelector",
    "StoreError",
    "StoreUnavailableError",
    "UnknownRoleError",
    "UseResult",
    "WardenError",
]
