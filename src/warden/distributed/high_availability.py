"""Active/standby decision for the whole process.

Wraps a LeaseLeader on a well-known role. Modules register callbacks by
name to react when this replica becomes active or standby, and use
``run_if_active`` to gate singleton work.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from warden.distributed.leader import LeaseLeader
from warden.errors import StoreError
from warden.store.base import AtomicStore

logger = logging.getLogger(__name__)

HA_EVENTS = ("elected", "revoked", "error")


class HighAvailability:
    """Process-wide active/standby election.

    Args:
        store: Shared atomic store.
        instance_id: This replica's id.
        role_key: Lease role shared by all replicas.
        ttl: Lease TTL in seconds.
        wait: Delay between election attempts in seconds.
    """

    def __init__(
        self,
        store: AtomicStore,
        instance_id: str,
        role_key: str = "haleaderselect",
        ttl: float = 2.0,
        wait: float = 1.0,
    ):
        self.leader = LeaseLeader(store, role_key, instance_id=instance_id, ttl=ttl, wait=wait)
        self._callbacks: dict[str, dict[str, Callable[[], Any]]] = {
            event: {} for event in HA_EVENTS
        }
        self._pending: set[asyncio.Task[None]] = set()

        self.leader.signals.connect("elected", self._on_elected)
        self.leader.signals.connect("revoked", self._on_revoked)
        self.leader.signals.connect("error", self._on_error)

    async def start(self) -> None:
        """Try to elect this replica as active."""
        logger.info(
            "HighAvailability init",
            extra={"role": self.leader.role, "ttl": self.leader.ttl, "wait": self.leader.wait},
        )
        await self.leader.elect()

    async def stop(self) -> None:
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self.leader.stop()

    async def is_active(self) -> bool:
        return await self.leader.is_leader()

    def register_callback(self, event: str, name: str, callback: Callable[[], Any]) -> None:
        """Register a callback run when event fires.

        Args:
            event: One of elected, revoked, error
            name: Name of the registering module; re-registering replaces
            callback: Plain callable or coroutine function, called without arguments
        """
        if event in self._callbacks and name and callable(callback):
            self._callbacks[event][name] = callback

    def unregister_callback(self, event: str, name: str) -> None:
        """Remove a previously registered callback."""
        self._callbacks.get(event, {}).pop(name, None)

    async def _call_registered_callbacks(self, event: str) -> None:
        for name, callback in list(self._callbacks[event].items()):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "HighAvailability callback failed", extra={"event": event, "callback": name}
                )

    async def _on_elected(self) -> None:
        logger.info("HighAvailability elected", extra={"role": self.leader.role})
        await self._call_registered_callbacks("elected")

    async def _on_revoked(self) -> None:
        logger.info("HighAvailability revoked", extra={"role": self.leader.role})
        await self._call_registered_callbacks("revoked")

    async def _on_error(self, error: StoreError) -> None:
        logger.error(
            "HighAvailability error", extra={"role": self.leader.role, "error": str(error)}
        )
        await self._call_registered_callbacks("error")

    def run_if_active(self, func: Callable[[], Any]) -> None:
        """Run func in the background if this replica is active.

        Fire-and-forget: errors are logged, never raised to the caller.
        """
        task = asyncio.get_running_loop().create_task(self._run_if_active(func))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_if_active(self, func: Callable[[], Any]) -> None:
        try:
            if not await self.leader.is_leader():
                return
        except StoreError as e:
            logger.error("HighAvailability isLeader error", extra={"error": str(e)})
            return
        try:
            result = func()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("HighAvailability task failed")

    async def drain(self) -> None:
        """Wait for pending run_if_active tasks to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
