"""Tests for the single-shot selector."""

from __future__ import annotations

import asyncio

from warden.distributed import SingleShotSelector
from warden.store.memory import InMemoryAtomicStore


class TestSingleShotSelector:
    """Tests for SingleShotSelector."""

    async def test_elect_claims_role(self, store: InMemoryAtomicStore) -> None:
        selector = SingleShotSelector(store, "sessions", instance_id="a")
        elected: list[bool] = []
        selector.signals.connect("elected", lambda: elected.append(True))

        assert await selector.elect() is True
        assert await selector.is_active() is True
        assert await selector.current_owner() == "a"
        assert elected == [True]

    async def test_elect_when_already_owner_writes_nothing(
        self, store: InMemoryAtomicStore
    ) -> None:
        selector = SingleShotSelector(store, "sessions", instance_id="a")
        elected: list[bool] = []
        selector.signals.connect("elected", lambda: elected.append(True))

        await selector.elect()
        assert await selector.elect() is False
        assert elected == [True]

    async def test_last_claimant_wins(self, store: InMemoryAtomicStore) -> None:
        first = SingleShotSelector(store, "sessions", instance_id="a")
        second = SingleShotSelector(store, "sessions", instance_id="b")

        await first.elect()
        await second.elect()

        assert await first.is_active() is False
        assert await second.is_active() is True

        await first.elect()
        assert await first.is_active() is True
        assert await second.is_active() is False

    async def test_claim_never_expires(self, store: InMemoryAtomicStore, clock) -> None:
        selector = SingleShotSelector(store, "sessions", instance_id="a")
        await selector.elect()

        clock.advance(10 * 24 * 3600)

        assert await selector.is_active() is True

    async def test_roles_are_independent(self, store: InMemoryAtomicStore) -> None:
        sessions = SingleShotSelector(store, "sessions", instance_id="a")
        reports = SingleShotSelector(store, "reports", instance_id="b")

        await sessions.elect()
        await reports.elect()

        assert await sessions.is_active() is True
        assert await reports.is_active() is True
        assert sessions.key == "warden:selector:sessions"

    async def test_store_error_emits_error_signal(self, unavailable_store) -> None:
        selector = SingleShotSelector(unavailable_store, "sessions", instance_id="a")
        errors: list[Exception] = []
        selector.signals.connect("error", errors.append)

        assert await selector.elect() is False
        assert len(errors) == 1

    async def test_default_instance_id_is_random(self, store: InMemoryAtomicStore) -> None:
        first = SingleShotSelector(store, "sessions")
        second = SingleShotSelector(store, "sessions")

        assert first.instance_id != second.instance_id

    async def test_concurrent_claims_leave_one_owner(self, store: InMemoryAtomicStore) -> None:
        """Racing claimants may both write, but exactly one ends up active."""
        first = SingleShotSelector(store, "sessions", instance_id="a")
        second = SingleShotSelector(store, "sessions", instance_id="b")

        await asyncio.gather(first.elect(), second.elect())

        states = [await first.is_active(), await second.is_active()]
        assert sorted(states) == [False, True]
