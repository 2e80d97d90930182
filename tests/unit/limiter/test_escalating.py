"""Tests for the escalating limiter.

Uses the in-memory store on a manual clock: maxPoints=5, window=10s,
block=10s, so the secondary window is 20s and escalated blocks last 20s.
"""

from __future__ import annotations

import pytest

from warden.errors import StoreUnavailableError
from warden.limiter import EscalatingLimiter, LimiterConfig, UseResult
from warden.store.keys import StoreKeys
from warden.store.memory import InMemoryAtomicStore

KEY = "a"


@pytest.fixture
def limiter(store: InMemoryAtomicStore) -> EscalatingLimiter:
    config = LimiterConfig(max_points=5, window=10, block_duration=10)
    return EscalatingLimiter(store, "test", config)


async def use_times(limiter: EscalatingLimiter, times: int, clock=None, spacing: float = 0):
    results = []
    for _ in range(times):
        if clock is not None and spacing:
            clock.advance(spacing)
        results.append(await limiter.use(KEY))
    return results


class TestLimiterConfig:
    """Tests for configuration validation."""

    def test_secondary_window_is_double(self) -> None:
        assert LimiterConfig(5, 10, 10).secondary_window == 20

    @pytest.mark.parametrize(
        ("max_points", "window", "block"),
        [(0, 10, 10), (5, 0, 10), (5, 10, 0), (5, -1, 10)],
    )
    def test_invalid_config(self, max_points: int, window: float, block: float) -> None:
        with pytest.raises(ValueError):
            LimiterConfig(max_points, window, block)


class TestAdmission:
    """Basic allow/deny behavior."""

    async def test_not_blocked_within_budget(self, limiter: EscalatingLimiter, clock) -> None:
        """Five uses spaced 1s apart stay within budget."""
        results = await use_times(limiter, 5, clock, spacing=1)

        assert all(r.allowed for r in results)
        assert await limiter.is_blocked(KEY) is False

    async def test_blocked_after_budget(self, limiter: EscalatingLimiter, clock) -> None:
        """The sixth use in the same window blocks the key."""
        results = await use_times(limiter, 6, clock, spacing=1)

        assert results[-1].allowed is False
        assert await limiter.is_blocked(KEY) is True

    async def test_released_after_block_duration(
        self, limiter: EscalatingLimiter, store: InMemoryAtomicStore, clock
    ) -> None:
        """After the block expires the key is free and its record is gone."""
        await use_times(limiter, 6, clock, spacing=1)
        assert await limiter.is_blocked(KEY) is True

        clock.advance(11)

        assert await limiter.is_blocked(KEY) is False
        assert await limiter.get(KEY) is None
        assert await store.get(StoreKeys.limiter_primary("test", KEY)) is None

    async def test_keys_are_independent(self, limiter: EscalatingLimiter) -> None:
        await use_times(limiter, 6)

        result = await limiter.use("b")
        assert result.allowed is True
        assert await limiter.is_blocked("b") is False

    async def test_limiters_are_namespaced(self, store: InMemoryAtomicStore) -> None:
        """Two limiters on one store do not share counters."""
        config = LimiterConfig(1, 10, 10)
        first = EscalatingLimiter(store, "first", config)
        second = EscalatingLimiter(store, "second", config)

        await first.use(KEY)
        await first.use(KEY)

        assert await first.is_blocked(KEY) is True
        assert await second.is_blocked(KEY) is False

    async def test_get_reports_remaining_points(self, limiter: EscalatingLimiter) -> None:
        await use_times(limiter, 2)

        record = await limiter.get(KEY)
        assert record is not None
        assert record.consumed_points == 2
        assert record.remaining_points == 3
        assert record.expires_in == pytest.approx(10)
        assert record.is_blocked is False

    async def test_block_restarts_ttl(self, limiter: EscalatingLimiter, clock) -> None:
        """Blocking sets the primary TTL to the block duration."""
        await use_times(limiter, 5, clock, spacing=1)
        await limiter.use(KEY)

        record = await limiter.get(KEY)
        assert record is not None
        assert record.remaining_points == -1
        assert record.expires_in == pytest.approx(10)


class TestTransitions:
    """One-shot blocked/released signals."""

    async def test_first_use_reports_released(self, limiter: EscalatingLimiter) -> None:
        result = await limiter.use(KEY)

        assert result == UseResult(allowed=True, blocked_now=False, released_now=True)

    async def test_subsequent_uses_do_not_report_released(
        self, limiter: EscalatingLimiter
    ) -> None:
        results = await use_times(limiter, 5)

        assert [r.released_now for r in results] == [True, False, False, False, False]

    async def test_blocked_now_exactly_once_per_episode(self, limiter: EscalatingLimiter) -> None:
        results = await use_times(limiter, 9)

        assert [r.blocked_now for r in results] == [False] * 5 + [True, False, False, False]
        assert [r.allowed for r in results] == [True] * 5 + [False] * 4

    async def test_released_now_after_block_expires(
        self, limiter: EscalatingLimiter, clock
    ) -> None:
        await use_times(limiter, 6)
        clock.advance(11)

        result = await limiter.use(KEY)

        assert result.allowed is True
        assert result.released_now is True

    async def test_callbacks_are_awaited(self, store: InMemoryAtomicStore, clock) -> None:
        blocked: list[str] = []
        released: list[str] = []

        async def on_blocked(key: str) -> None:
            blocked.append(key)

        async def on_released(key: str) -> None:
            released.append(key)

        limiter = EscalatingLimiter(
            store,
            "cb",
            LimiterConfig(5, 10, 10),
            on_blocked=on_blocked,
            on_released=on_released,
        )

        await use_times(limiter, 8)
        assert blocked == [KEY]
        assert released == [KEY]

        clock.advance(11)
        await limiter.use(KEY)
        assert released == [KEY, KEY]

    async def test_failing_callback_does_not_change_decision(
        self, store: InMemoryAtomicStore
    ) -> None:
        async def on_blocked(key: str) -> None:
            raise RuntimeError("notification service down")

        limiter = EscalatingLimiter(store, "cb", LimiterConfig(1, 10, 10), on_blocked=on_blocked)
        await limiter.use(KEY)

        result = await limiter.use(KEY)
        assert result.allowed is False
        assert result.blocked_now is True


class TestEscalation:
    """Secondary counter behavior."""

    async def test_sustained_abuse_extends_block(self, limiter: EscalatingLimiter, clock) -> None:
        """A doubled block outlives the original block duration."""
        await use_times(limiter, 8)
        clock.advance(7)
        await use_times(limiter, 5)
        clock.advance(5)

        # 12s after the first block, which alone would have expired at 10s
        assert await limiter.get(KEY) is not None
        assert await limiter.is_blocked(KEY) is True

    async def test_escalated_block_lasts_double(self, limiter: EscalatingLimiter, clock) -> None:
        await use_times(limiter, 8)
        clock.advance(7)
        await use_times(limiter, 5)

        record = await limiter.get(KEY)
        assert record is not None
        assert record.expires_in == pytest.approx(20)

        clock.advance(20)
        assert await limiter.is_blocked(KEY) is False

    async def test_without_escalation_block_expires(
        self, limiter: EscalatingLimiter, clock
    ) -> None:
        """A single short burst does not escalate."""
        await use_times(limiter, 8)
        clock.advance(12)

        assert await limiter.is_blocked(KEY) is False

    async def test_secondary_resets_after_escalation(self, limiter: EscalatingLimiter) -> None:
        """Escalation restarts the secondary counter instead of compounding."""
        await use_times(limiter, 12)

        assert await limiter.is_blocked(KEY) is True
        assert await limiter.is_secondary_blocked(KEY) is False

        secondary = await limiter.get_secondary(KEY)
        assert secondary is not None
        # 7 rejected calls: the 6th escalated and reset, the 7th counted again
        assert secondary.consumed_points == 1
        assert secondary.expires_in == pytest.approx(20)

    async def test_escalation_once_per_secondary_window(
        self, limiter: EscalatingLimiter, clock
    ) -> None:
        """Further rejected calls after escalation do not re-arm the block."""
        await use_times(limiter, 11)
        clock.advance(3)
        await use_times(limiter, 3)

        record = await limiter.get(KEY)
        assert record is not None
        assert record.expires_in == pytest.approx(17)

    async def test_success_drops_secondary(
        self, limiter: EscalatingLimiter, store: InMemoryAtomicStore, clock
    ) -> None:
        await use_times(limiter, 7)
        assert await limiter.get_secondary(KEY) is not None

        clock.advance(11)
        await limiter.use(KEY)

        assert await limiter.get_secondary(KEY) is None
        assert await store.get(StoreKeys.limiter_secondary("test", KEY)) is None


class TestRelease:
    """Administrative release and delete."""

    async def test_release_blocked_key(self, limiter: EscalatingLimiter) -> None:
        await use_times(limiter, 12)

        assert await limiter.release(KEY) is True
        assert await limiter.is_blocked(KEY) is False
        assert await limiter.is_secondary_blocked(KEY) is False
        assert await limiter.get(KEY) is None
        assert await limiter.get_secondary(KEY) is None

    async def test_release_not_blocked_key(self, limiter: EscalatingLimiter) -> None:
        await use_times(limiter, 3)

        assert await limiter.release(KEY) is False

        record = await limiter.get(KEY)
        assert record is not None
        assert record.consumed_points == 3

    async def test_release_unknown_key(self, limiter: EscalatingLimiter) -> None:
        assert await limiter.release("never-seen") is False

    async def test_delete_is_unconditional(self, limiter: EscalatingLimiter) -> None:
        await use_times(limiter, 2)

        assert await limiter.delete(KEY) is True
        assert await limiter.get(KEY) is None
        assert await limiter.delete(KEY) is False


class TestStoreErrors:
    """Store failures propagate to the caller."""

    async def test_use_propagates_store_error(self, unavailable_store) -> None:
        limiter = EscalatingLimiter(unavailable_store, "test", LimiterConfig(5, 10, 10))

        with pytest.raises(StoreUnavailableError):
            await limiter.use(KEY)

    async def test_is_blocked_propagates_store_error(self, unavailable_store) -> None:
        limiter = EscalatingLimiter(unavailable_store, "test", LimiterConfig(5, 10, 10))

        with pytest.raises(StoreUnavailableError):
            await limiter.is_blocked(KEY)
