"""Listener lists for coordination signals.

Election components notify interested code through named signals
(``elected``, ``revoked``, ``error``). Handlers may be plain callables or
coroutine functions. A failing handler is logged and never interrupts the
component that fired the signal.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Signals:
    """A fixed set of named signals with ordered handler lists."""

    def __init__(self, names: Iterable[str]):
        self._handlers: dict[str, list[Handler]] = {name: [] for name in names}

    def connect(self, name: str, handler: Handler) -> None:
        """Register handler for the named signal.

        Raises:
            ValueError: Unknown signal name.
        """
        if name not in self._handlers:
            raise ValueError(f"Unknown signal '{name}'. Expected one of {sorted(self._handlers)}")
        self._handlers[name].append(handler)

    def disconnect(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, name: str, *args: Any) -> None:
        """Call every handler of the named signal in registration order."""
        for handler in list(self._handlers.get(name, [])):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for signal '%s' failed", name)
