"""Lease-based leader election.

Uses the atomic store's "set only if absent, with TTL" to ensure only one
instance holds a role at a time:
1. Candidates try to create the lease; exactly one succeeds
2. The leader checks ownership and extends the TTL every ttl/2
3. If the leader dies, the lease expires and another candidate claims it

Renewal is check-then-extend and therefore not linearizable: right at TTL
expiry two instances may both believe they lead for a short interval.
Callers needing strict mutual exclusion must fence their writes separately.

Example:
    leader = LeaseLeader(store, "cleanup-job")
    leader.signals.connect("elected", on_elected)
    await leader.elect()

    while running:
        if await leader.is_leader():
            await do_leader_work()
        await asyncio.sleep(1)

    await leader.stop()
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from uuid import uuid4

from warden.distributed.signals import Signals
from warden.errors import StoreError
from warden.observability.metrics import record_leader_transition
from warden.store.base import AtomicStore
from warden.store.keys import StoreKeys

logger = logging.getLogger(__name__)

DEFAULT_LEASE_TTL = 10.0  # Seconds
DEFAULT_WAIT = 1.0  # Seconds between election attempts


class LeaderState(str, Enum):
    """Election state of one LeaseLeader."""

    IDLE = "idle"
    ELECTING = "electing"
    LEADER = "leader"
    REVOKED = "revoked"


class LeaseLeader:
    """Store-backed leader election with automatic failover.

    Signals (see ``signals``):
    - ``elected``: this instance acquired the lease
    - ``revoked``: this instance lost or released the lease
    - ``error``: a store call failed; handler receives the exception

    Args:
        store: Shared atomic store.
        role: Role identifier. Hashed into the lease key.
        instance_id: Owner id written into the lease (random if None).
        ttl: Lease lifetime in seconds. Renewed every ttl/2.
        wait: Fixed delay between election attempts in seconds.
    """

    def __init__(
        self,
        store: AtomicStore,
        role: str = "default",
        instance_id: str | None = None,
        ttl: float = DEFAULT_LEASE_TTL,
        wait: float = DEFAULT_WAIT,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        if wait <= 0:
            raise ValueError("wait must be > 0")

        self.store = store
        self.role = role
        self.instance_id = instance_id or uuid4().hex
        self.ttl = ttl
        self.wait = wait
        self.signals = Signals(("elected", "revoked", "error"))

        self._key = StoreKeys.leader(role)
        self._state = LeaderState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def key(self) -> str:
        """The store key holding the lease."""
        return self._key

    @property
    def state(self) -> LeaderState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def elect(self) -> None:
        """Start contending for the role.

        Idempotent: does nothing while the election loop is already running.
        """
        if self.running:
            return

        self._stopping = asyncio.Event()
        self._state = LeaderState.ELECTING
        self._task = asyncio.create_task(self._run(), name=f"lease-leader:{self.role}")
        logger.info("Started leader election for '%s' as %s", self.role, self.instance_id)

    async def stop(self) -> None:
        """Stop contending and release the lease if held.

        Pending retries and renewals are cancelled. A store call already in
        flight is allowed to finish first.
        """
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None

        try:
            if await self.is_leader():
                # Not atomic: the lease may expire and be reclaimed between
                # the check and the delete.
                await self.store.delete(self._key)
                await self._revoke()
        except StoreError as e:
            await self._error(e)

        self._state = LeaderState.IDLE
        logger.info("Stopped leader election for '%s'", self.role)

    async def is_leader(self) -> bool:
        """Check whether the stored lease owner is this instance."""
        return await self.store.get(self._key) == self.instance_id

    async def current_leader(self) -> str | None:
        """Get the instance id of the current leader."""
        return await self.store.get(self._key)

    async def wait_for_leadership(self, timeout: float | None = None) -> bool:
        """Wait until this instance becomes the leader.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if leadership was acquired, False on timeout
        """
        if self._state is LeaderState.LEADER:
            return True

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        try:
            await asyncio.wait_for(future, timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            if future in self._waiters:
                self._waiters.remove(future)

    async def _run(self) -> None:
        """Election loop: one store step per iteration, then sleep."""
        while not self._stopping.is_set():
            try:
                if self._state is LeaderState.LEADER:
                    delay = await self._renew()
                else:
                    delay = await self._try_elect()
            except Exception:
                logger.exception("Error in election loop for '%s'", self.role)
                delay = self.wait

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    async def _try_elect(self) -> float:
        """Attempt to create the lease. Returns the delay until the next step."""
        self._state = LeaderState.ELECTING
        try:
            acquired = await self.store.set(
                self._key, self.instance_id, ttl=self.ttl, only_if_absent=True
            )
        except StoreError as e:
            await self._error(e)
            return self.wait

        if not acquired:
            return self.wait

        self._state = LeaderState.LEADER
        logger.info("Elected as leader for '%s'", self.role)
        record_leader_transition(self.role, "elected")
        for future in self._waiters:
            if not future.done():
                future.set_result(None)
        await self.signals.emit("elected")
        return self.ttl / 2

    async def _renew(self) -> float:
        """Extend the lease if still owned. Returns the delay until the next step."""
        try:
            still_owner = await self.is_leader()
        except StoreError as e:
            await self._error(e)
            still_owner = False

        if not still_owner:
            logger.warning("Lost leadership for '%s'", self.role)
            await self._revoke()
            self._state = LeaderState.ELECTING
            return self.wait

        try:
            await self.store.extend_ttl(self._key, self.ttl)
            logger.debug("Renewed leadership for '%s'", self.role)
        except StoreError as e:
            await self._error(e)
        return self.ttl / 2

    async def _revoke(self) -> None:
        self._state = LeaderState.REVOKED
        record_leader_transition(self.role, "revoked")
        await self.signals.emit("revoked")

    async def _error(self, error: StoreError) -> None:
        logger.error("Store error in leader election for '%s': %s", self.role, error)
        record_leader_transition(self.role, "error")
        await self.signals.emit("error", error)
