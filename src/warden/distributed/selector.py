"""Single-shot selector: "most recent claimant wins".

A lighter alternative to lease election for roles where only "which
replica most recently became responsible" matters. The claim never
expires and is simply overwritten by the next claimant.

``elect`` is check-then-write, not compare-and-swap. Two replicas that both
observe "not owner" will both write and the last write wins. Consumers must
tolerate a transiently wrong answer.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from warden.distributed.signals import Signals
from warden.errors import StoreError
from warden.store.base import AtomicStore
from warden.store.keys import StoreKeys

logger = logging.getLogger(__name__)


class SingleShotSelector:
    """Advisory, non-expiring role claim.

    Signals: ``elected`` (this call wrote the claim) and ``error`` (handler
    receives the store exception).
    """

    def __init__(self, store: AtomicStore, role: str = "default", instance_id: str | None = None):
        self.store = store
        self.role = role
        self.instance_id = instance_id or uuid4().hex
        self.signals = Signals(("elected", "error"))
        self._key = StoreKeys.selector(role)

    @property
    def key(self) -> str:
        return self._key

    async def elect(self) -> bool:
        """Claim the role for this instance.

        Returns:
            True if this call wrote the claim, False if this instance already
            held it or the store failed (reported on the ``error`` signal).
        """
        try:
            if await self.is_active():
                return False
            await self.store.set(self._key, self.instance_id)
        except StoreError as e:
            logger.error("Store error electing selector '%s': %s", self.role, e)
            await self.signals.emit("error", e)
            return False

        await self.signals.emit("elected")
        return True

    async def is_active(self) -> bool:
        """Check whether the recorded owner is this instance."""
        return await self.store.get(self._key) == self.instance_id

    async def current_owner(self) -> str | None:
        return await self.store.get(self._key)
