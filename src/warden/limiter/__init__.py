"""Escalating rate limiting for Warden.

Example:
    from warden.limiter import EscalatingLimiter, LimiterConfig

    limiter = EscalatingLimiter(store, "reconfigErrors", LimiterConfig(5, 60, 600))
    result = await limiter.use(device_id)
    if result.blocked_now:
        await suspend_reconfiguration(device_id)
"""

from warden.limiter.escalating import (
    CounterRecord,
    EscalatingLimiter,
    LimiterConfig,
    UseResult,
)
from warden.limiter.presets import (
    interface_key,
    public_addr_limiter,
    reconfig_errors_limiter,
)

__all__ = [
    "CounterRecord",
    "EscalatingLimiter",
    "LimiterConfig",
    "UseResult",
    "interface_key",
    "public_addr_limiter",
    "reconfig_errors_limiter",
]
