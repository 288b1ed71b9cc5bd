"""
Side-channel events consumed by the editor/UI collaborators.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

OPEN_FILE = "open_file"
FILESYSTEM_CHANGED = "filesystem_changed"
ERROR = "error"
BANNER = "banner"


class EventBus:
    """Minimal synchronous publish/subscribe hub."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        """Register *handler* for *event*; returns an unsubscribe callable."""
        self._handlers[event].append(handler)

        def _off() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return _off

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception:
                # listener failures never reach the emitter
                logger.exception("[Events] Handler for %r failed", event)
