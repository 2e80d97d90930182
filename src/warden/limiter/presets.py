"""Pre-configured limiters used by device-facing code and the HTTP layer.

- publicAddrInfo: a device interface whose reported public address changes
  more than 5 times an hour is considered unstable. Callers set its
  tunnels pending on ``blocked_now`` and clear them on ``released_now``.
- reconfigErrors: more than 5 reconfiguration errors a minute from one
  device suspends automatic reconfiguration for it.
- http: anonymous endpoint hits, budgeted by the ``rate_limit_*`` settings.

Anything that reads or releases these counters out of band (the CLI, admin
tooling) must judge them with the same budget the writer used, so the
budgets live here and ``preset_configs`` hands them out by name.
"""

from __future__ import annotations

from warden.config import Settings, settings
from warden.limiter.escalating import EscalatingLimiter, LimiterConfig, TransitionCallback
from warden.store.base import AtomicStore

PUBLIC_ADDR_LIMITER = "publicAddrInfo"
RECONFIG_ERRORS_LIMITER = "reconfigErrors"
HTTP_LIMITER = "http"


def interface_key(device_id: str, interface_id: str) -> str:
    """Rate key identifying one interface of one device."""
    return f"{device_id}:{interface_id}"


def public_addr_config(config: Settings | None = None) -> LimiterConfig:
    config = config or settings
    return LimiterConfig(
        max_points=5,
        window=60 * 60,
        block_duration=config.public_addr_block_time,
    )


def reconfig_errors_config(config: Settings | None = None) -> LimiterConfig:
    config = config or settings
    return LimiterConfig(
        max_points=5,
        window=60,
        block_duration=config.reconfig_error_block_time,
    )


def http_config(config: Settings | None = None) -> LimiterConfig:
    config = config or settings
    return LimiterConfig(
        max_points=config.rate_limit_requests,
        window=config.rate_limit_window,
        block_duration=config.rate_limit_block,
    )


def preset_configs(config: Settings | None = None) -> dict[str, LimiterConfig]:
    """Budgets of the built-in limiters, by limiter name."""
    return {
        PUBLIC_ADDR_LIMITER: public_addr_config(config),
        RECONFIG_ERRORS_LIMITER: reconfig_errors_config(config),
        HTTP_LIMITER: http_config(config),
    }


def public_addr_limiter(
    store: AtomicStore,
    on_blocked: TransitionCallback | None = None,
    on_released: TransitionCallback | None = None,
) -> EscalatingLimiter:
    """Limiter for public address changes, keyed by ``interface_key``."""
    return EscalatingLimiter(
        store,
        PUBLIC_ADDR_LIMITER,
        public_addr_config(),
        on_blocked=on_blocked,
        on_released=on_released,
    )


def reconfig_errors_limiter(store: AtomicStore) -> EscalatingLimiter:
    """Limiter for reconfiguration errors, keyed by device id."""
    return EscalatingLimiter(store, RECONFIG_ERRORS_LIMITER, reconfig_errors_config())
