"""Coordination context: the explicitly constructed owner of shared state.

One context per process holds the store connection, the role registry,
the active/standby election and the named limiters. It is created at
startup and passed to the code that needs it; nothing is kept in
module-level globals.

Example:
    async with CoordinationContext.from_settings() as warden:
        warden.roles.initialize_selector("device-sessions")
        limiter = warden.limiter("anonymous")
        ...
"""

from __future__ import annotations

import logging
from types import TracebackType

from warden.config import Settings, settings
from warden.distributed.high_availability import HighAvailability
from warden.distributed.leader import LeaseLeader
from warden.distributed.registry import RoleRegistry
from warden.limiter.escalating import EscalatingLimiter, LimiterConfig
from warden.limiter.presets import preset_configs
from warden.observability.logging import instance_id_var
from warden.store import create_store
from warden.store.base import AtomicStore

logger = logging.getLogger(__name__)


class CoordinationContext:
    """Shared coordination state of one replica.

    Args:
        store: Shared atomic store. Closed by close().
        instance_id: This replica's id.
        config: Settings used for HA and limiter defaults.
    """

    def __init__(self, store: AtomicStore, instance_id: str, config: Settings | None = None):
        self.config = config or settings
        self.store = store
        self.instance_id = instance_id
        self.roles = RoleRegistry(store, instance_id)
        self.high_availability = HighAvailability(
            store,
            instance_id,
            role_key=self.config.ha_role_key,
            ttl=self.config.ha_ttl,
            wait=self.config.ha_wait,
        )
        self._limiters: dict[str, EscalatingLimiter] = {}
        self._presets = preset_configs(self.config)
        self._started = False

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> CoordinationContext:
        """Build a context with the configured store backend."""
        config = config or settings
        store = create_store(config.store_backend, config.redis_url)
        return cls(store, config.instance_id, config)

    def limiter(self, name: str, config: LimiterConfig | None = None) -> EscalatingLimiter:
        """Get or create the named limiter.

        The first call for a name fixes its configuration; later calls return
        the same instance.
        """
        limiter = self._limiters.get(name)
        if limiter is None:
            limiter = EscalatingLimiter(self.store, name, config or self.limiter_config(name))
            self._limiters[name] = limiter
        return limiter

    def limiter_config(self, name: str) -> LimiterConfig:
        """Budget of the named limiter.

        Built-in limiters (http, publicAddrInfo, reconfigErrors) get their own
        budgets; any other name gets the ``limiter_*`` defaults.
        """
        preset = self._presets.get(name)
        if preset is not None:
            return preset
        return LimiterConfig(
            max_points=self.config.limiter_points,
            window=self.config.limiter_window,
            block_duration=self.config.limiter_block,
        )

    def leader(self, role: str) -> LeaseLeader:
        """Create a LeaseLeader for role using the configured ttl and wait."""
        return LeaseLeader(
            self.store,
            role,
            instance_id=self.instance_id,
            ttl=self.config.leader_ttl,
            wait=self.config.leader_wait,
        )

    async def start(self) -> None:
        """Start the active/standby election."""
        if self._started:
            return
        instance_id_var.set(self.instance_id)
        await self.high_availability.start()
        self._started = True

    async def close(self) -> None:
        """Stop elections, cancel role work and close the store."""
        if self._started:
            await self.high_availability.stop()
            self._started = False
        await self.roles.shut_down()
        await self.store.close()
        logger.info("Coordination context closed")

    async def __aenter__(self) -> CoordinationContext:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
