"""Escalating fixed-window rate limiter.

Each subject key is tracked by two fixed-window counters in the shared
store:

1. The primary counter (window W, budget N) decides admission. When it
   overflows, the key is blocked for the configured block duration.
2. The secondary counter (window 2W, budget N) only counts rejected calls.
   If a blocked subject keeps hammering for a whole secondary window, the
   primary block is re-armed at twice the block duration and the secondary
   counter restarts from zero. Escalation therefore happens at most once per
   secondary window's worth of abuse and never compounds per call.

The store has no expiry callbacks, so ``use`` also reports one-shot
transitions: ``blocked_now`` on the first rejected call of a block episode,
and ``released_now`` on the first consumption of a fresh window.

Example:
    limiter = EscalatingLimiter(store, "anonymous", LimiterConfig(5, 10, 10))

    result = await limiter.use(client_ip)
    if not result.allowed:
        raise TooManyRequests()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from warden.observability.metrics import record_limiter_decision, record_limiter_transition
from warden.store.base import AtomicStore, WindowCount
from warden.store.keys import StoreKeys

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class LimiterConfig:
    """Limiter budget, shared by the primary and secondary counters.

    Attributes:
        max_points: Events allowed per window.
        window: Primary window in seconds. The secondary window is twice this.
        block_duration: Lockout in seconds once the primary budget is exceeded.
    """

    max_points: int
    window: float
    block_duration: float

    def __post_init__(self) -> None:
        if self.max_points < 1:
            raise ValueError("max_points must be >= 1")
        if self.window <= 0:
            raise ValueError("window must be > 0")
        if self.block_duration <= 0:
            raise ValueError("block_duration must be > 0")

    @property
    def secondary_window(self) -> float:
        return self.window * 2


@dataclass(frozen=True)
class UseResult:
    """Outcome of a single ``use`` call."""

    allowed: bool = True
    blocked_now: bool = False
    released_now: bool = False


@dataclass(frozen=True)
class CounterRecord:
    """Snapshot of one counter of a subject.

    ``remaining_points`` goes negative once the budget is exceeded, which is
    how a blocked subject is recognized.
    """

    consumed_points: int
    remaining_points: int
    expires_in: float | None

    @property
    def is_blocked(self) -> bool:
        return self.remaining_points < 0


class EscalatingLimiter:
    """Distributed admission control with escalating lockouts.

    Safe to call concurrently for the same key from any number of replicas:
    all state lives in the store and every counter update is a single atomic
    store operation.

    Args:
        store: Shared atomic store.
        name: Limiter name, used as the key namespace and in logs/metrics.
        config: Budget and durations.
        on_blocked: Awaited with the key when a block episode starts.
        on_released: Awaited with the key on the first event of a fresh window.
    """

    def __init__(
        self,
        store: AtomicStore,
        name: str,
        config: LimiterConfig,
        on_blocked: TransitionCallback | None = None,
        on_released: TransitionCallback | None = None,
    ):
        self.store = store
        self.name = name
        self.config = config
        self.on_blocked = on_blocked
        self.on_released = on_released

    def _primary_key(self, key: str) -> str:
        return StoreKeys.limiter_primary(self.name, key)

    def _secondary_key(self, key: str) -> str:
        return StoreKeys.limiter_secondary(self.name, key)

    def _record(self, count: WindowCount) -> CounterRecord:
        return CounterRecord(
            consumed_points=count.value,
            remaining_points=self.config.max_points - count.value,
            expires_in=count.ttl,
        )

    async def use(self, key: str) -> UseResult:
        """Consume one point for key and decide admission.

        Raises:
            StoreError: The store failed. Whether to admit the event anyway
                is left to the caller.
        """
        primary_key = self._primary_key(key)
        primary = self._record(await self.store.incr_with_window(primary_key, self.config.window))

        if not primary.is_blocked:
            # Abuse stopped, drop any escalation memory
            await self.store.delete(self._secondary_key(key))
            released_now = primary.consumed_points == 1
            if released_now:
                logger.debug(
                    "Limiter consumed the first time for a key",
                    extra={"limiter": self.name, "key": key},
                )
            result = UseResult(allowed=True, released_now=released_now)
        else:
            blocked_now = primary.consumed_points == self.config.max_points + 1
            if blocked_now:
                await self.store.set_counter(
                    primary_key, primary.consumed_points, self.config.block_duration
                )
                logger.warning(
                    "Limiter blocked key",
                    extra={
                        "limiter": self.name,
                        "key": key,
                        "block_duration": self.config.block_duration,
                    },
                )
            await self._consume_secondary(key, primary.consumed_points)
            result = UseResult(allowed=False, blocked_now=blocked_now)

        record_limiter_decision(self.name, result.allowed)
        if result.blocked_now:
            record_limiter_transition(self.name, "blocked")
            await self._notify(self.on_blocked, key, "blocked")
        if result.released_now:
            record_limiter_transition(self.name, "released")
            await self._notify(self.on_released, key, "released")
        return result

    async def _consume_secondary(self, key: str, primary_consumed: int) -> None:
        """Count a rejected call and escalate if abuse spans the secondary window."""
        secondary_key = self._secondary_key(key)
        secondary = self._record(
            await self.store.incr_with_window(secondary_key, self.config.secondary_window)
        )
        if not secondary.is_blocked:
            return

        escalated_block = self.config.block_duration * 2
        await self.store.set_counter(self._primary_key(key), primary_consumed, escalated_block)
        await self.store.set_counter(secondary_key, 0, self.config.secondary_window)

        logger.warning(
            "Limiter re-blocked key due to continuous high rate",
            extra={"limiter": self.name, "key": key, "block_duration": escalated_block},
        )
        record_limiter_transition(self.name, "escalated")

    async def _notify(self, callback: TransitionCallback | None, key: str, event: str) -> None:
        if callback is None:
            return
        try:
            await callback(key)
        except Exception:
            logger.exception(
                "Limiter %s callback failed", event, extra={"limiter": self.name, "key": key}
            )

    async def get(self, key: str) -> CounterRecord | None:
        """Return the primary counter of key, or None if it has no record."""
        count = await self.store.get_counter(self._primary_key(key))
        return self._record(count) if count is not None else None

    async def get_secondary(self, key: str) -> CounterRecord | None:
        """Return the secondary (escalation) counter of key."""
        count = await self.store.get_counter(self._secondary_key(key))
        return self._record(count) if count is not None else None

    async def is_blocked(self, key: str) -> bool:
        """Check whether either counter of key is over budget."""
        primary = await self.get(key)
        if primary is not None and primary.is_blocked:
            return True
        return await self.is_secondary_blocked(key)

    async def is_secondary_blocked(self, key: str) -> bool:
        secondary = await self.get_secondary(key)
        return secondary is not None and secondary.is_blocked

    async def delete(self, key: str) -> bool:
        """Remove both counters of key. Returns True if anything was deleted."""
        deleted = await self.store.delete(self._primary_key(key), self._secondary_key(key))
        return deleted > 0

    async def release(self, key: str) -> bool:
        """Administratively unblock key.

        Returns:
            False if key was not blocked, True once both counters are gone.
        """
        if not await self.is_blocked(key):
            return False

        if not await self.delete(key):
            return False

        logger.info("Limiter released key", extra={"limiter": self.name, "key": key})
        return True
