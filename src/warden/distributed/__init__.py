"""Distributed coordination primitives for Warden.

Provides infrastructure for horizontal scaling:
- Lease-based leader election with automatic failover
- Single-shot "last claimant wins" selectors for role-scoped work
- A process-wide active/standby decision

Example:
    from warden.distributed import LeaseLeader, RoleRegistry

    leader = LeaseLeader(store, "cleanup-worker")
    await leader.elect()

    roles = RoleRegistry(store, instance_id="web-1")
    roles.initialize_selector("device-sessions")
    roles.run_if_active("device-sessions", bookkeeping)
"""

from warden.distributed.high_availability import HighAvailability
from warden.distributed.leader import LeaderState, LeaseLeader
from warden.distributed.registry import RoleRegistry
from warden.distributed.selector import SingleShotSelector
from warden.distributed.signals import Signals

__all__ = [
    "HighAvailability",
    "LeaderState",
    "LeaseLeader",
    "RoleRegistry",
    "Signals",
    "SingleShotSelector",
]
