"""Named single-shot selectors for role-scoped work.

Connection-accept code claims a role when it sees an event
(``selector_set_active``); periodic code asks whether this replica should
do the role's work (``run_if_active``).

Example:
    roles = RoleRegistry(store, instance_id=settings.instance_id)
    roles.initialize_selector("device-sessions")

    # on websocket connect
    await roles.selector_set_active("device-sessions")

    # in a periodic task
    roles.run_if_active("device-sessions", update_session_bookkeeping)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from warden.distributed.selector import SingleShotSelector
from warden.errors import StoreError, UnknownRoleError
from warden.store.base import AtomicStore

logger = logging.getLogger(__name__)


class RoleRegistry:
    """Holds one SingleShotSelector per role name.

    Args:
        store: Shared atomic store.
        instance_id: Owner id used for every selector of this replica.
        owns_store: Close the store on shut_down().
    """

    def __init__(self, store: AtomicStore, instance_id: str, owns_store: bool = False):
        self.store = store
        self.instance_id = instance_id
        self._owns_store = owns_store
        self._selectors: dict[str, SingleShotSelector] = {}
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def roles(self) -> list[str]:
        return list(self._selectors)

    def selector(self, role: str) -> SingleShotSelector:
        try:
            return self._selectors[role]
        except KeyError:
            raise UnknownRoleError(role) from None

    def initialize_selector(self, role: str) -> SingleShotSelector:
        """Create and register the selector for role."""
        selector = SingleShotSelector(self.store, role, instance_id=self.instance_id)

        def on_elected() -> None:
            logger.info("Role selector elected", extra={"role": role})

        def on_error(error: StoreError) -> None:
            logger.error("Role selector error", extra={"role": role, "error": str(error)})

        selector.signals.connect("elected", on_elected)
        selector.signals.connect("error", on_error)

        self._selectors[role] = selector
        return selector

    async def selector_set_active(self, role: str) -> bool:
        """Claim role for this replica. See SingleShotSelector.elect."""
        return await self.selector(role).elect()

    async def is_active(self, role: str) -> bool:
        """Whether this replica holds role. Store errors count as not active."""
        try:
            return await self.selector(role).is_active()
        except StoreError as e:
            logger.error(
                "Role selector is_active error", extra={"role": role, "error": str(e)}
            )
            return False

    def run_if_active(self, role: str, func: Callable[[], Any]) -> None:
        """Run func in the background if this replica holds role.

        Fire-and-forget: the caller gets no result and no error. ``func`` may
        be a plain callable or a coroutine function.

        Raises:
            UnknownRoleError: role was never initialized.
        """
        self.selector(role)
        task = asyncio.get_running_loop().create_task(self._run_if_active(role, func))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_if_active(self, role: str, func: Callable[[], Any]) -> None:
        if not await self.is_active(role):
            return
        try:
            result = func()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Role-scoped task failed", extra={"role": role})

    async def drain(self) -> None:
        """Wait for pending run_if_active tasks to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def shut_down(self) -> None:
        """Cancel pending work and release the store connection."""
        for task in list(self._pending):
            task.cancel()
        await self.drain()
        self._selectors.clear()
        if self._owns_store:
            await self.store.close()
        logger.info("Role registry shut down")
