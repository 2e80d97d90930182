"""Store key schema for Warden.

Key format: {prefix}:{kind}:{...}

Where:
- prefix: settings.key_prefix, "warden" by default (namespace for a shared Redis)
- kind: "rl" (primary limiter counter), "rl2" (secondary limiter counter),
  "leader" (lease), "selector" (single-shot claim)
"""

from __future__ import annotations

import hashlib
from typing import Literal

from warden.config import settings

KeyKind = Literal["rl", "rl2", "leader", "selector"]


class StoreKeys:
    """Store key generator following a consistent naming convention."""

    PREFIX = settings.key_prefix

    @classmethod
    def limiter_primary(cls, limiter: str, subject: str) -> str:
        """Key for the short-window counter of a limiter subject."""
        return f"{cls.PREFIX}:rl:{limiter}:{subject}"

    @classmethod
    def limiter_secondary(cls, limiter: str, subject: str) -> str:
        """Key for the double-window escalation counter of a limiter subject."""
        return f"{cls.PREFIX}:rl2:{limiter}:{subject}"

    @classmethod
    def leader(cls, role: str) -> str:
        """Key for a leader lease.

        The role is hashed so arbitrary role identifiers cannot collide
        with other key kinds or with each other's separators.
        """
        digest = hashlib.sha1(role.encode(), usedforsecurity=False).hexdigest()
        return f"{cls.PREFIX}:leader:{digest}"

    @classmethod
    def selector(cls, role: str) -> str:
        """Key for a single-shot selector claim."""
        return f"{cls.PREFIX}:selector:{role}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a store key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":", 2)
        if len(parts) < 3 or parts[0] != cls.PREFIX:
            return None

        kind, rest = parts[1], parts[2]
        if kind in ("rl", "rl2"):
            limiter, _, subject = rest.partition(":")
            if not subject:
                return None
            return {"prefix": parts[0], "kind": kind, "limiter": limiter, "subject": subject}
        if kind in ("leader", "selector"):
            return {"prefix": parts[0], "kind": kind, "role": rest}
        return None
