"""Exception hierarchy for Warden.

All store failures surface as StoreError so that coordination code can
handle them without depending on the concrete backend's exception types.
"""

from __future__ import annotations


class WardenError(Exception):
    """Base class for all Warden errors."""


class StoreError(WardenError):
    """The atomic store rejected or failed an operation."""

    def __init__(self, operation: str, key: str | None = None, message: str | None = None):
        self.operation = operation
        self.key = key
        detail = message or "store operation failed"
        if key is not None:
            super().__init__(f"{operation}({key}): {detail}")
        else:
            super().__init__(f"{operation}: {detail}")


class StoreUnavailableError(StoreError):
    """The store could not be reached (connection refused, timeout)."""


class UnknownRoleError(WardenError, KeyError):
    """A role name was used before initialize_selector registered it."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Selector for role '{role}' is not initialized")

    def __str__(self) -> str:
        return str(self.args[0])
