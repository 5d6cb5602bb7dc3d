"""EventBus — decoupled Observer for capture progress, state changes and errors."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

logger = logging.getLogger(__name__)

# Type alias for event handler callbacks.
EventHandler = Any  # Callable[..., None]

# ── Event names ────────────────────────────────────────────────────────────
PROGRESS = "progress"  # tool, current, total, message
LOG = "log"  # tool, message
STATE = "state"  # tool, state, previous
COMPLETED = "completed"  # tool, message
ERROR = "error"  # tool, error, message

KNOWN_EVENTS: frozenset[str] = frozenset({PROGRESS, LOG, STATE, COMPLETED, ERROR})


class EventBus:
    """Publish/subscribe hub between capture logic and whoever displays it.

    Sessions and tools emit the events listed in ``KNOWN_EVENTS``; the CLI
    (or a host editor's progress bar) subscribes.  Handlers never see each
    other's failures: an exception raised by one handler is logged and the
    remaining handlers still run.
    """

    def __init__(self) -> None:
        """Initialise an empty event bus."""
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register *handler* for *event*.

        Args:
            event: Event name, normally one of ``KNOWN_EVENTS``.
            handler: Callable invoked with the event's keyword arguments.
        """
        if event not in KNOWN_EVENTS:
            logger.debug("Subscribing to non-standard event %r", event)
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Remove a previously registered handler.

        Args:
            event: The event name.
            handler: The handler to remove.
        """
        try:
            self._handlers[event].remove(handler)
        except ValueError:
            logger.warning("Handler %r was not subscribed to event %r", handler, event)

    def emit(self, event: str, **kwargs: Any) -> None:
        """Call every handler subscribed to *event* with ``**kwargs``.

        Args:
            event: The event name to fire.
            **kwargs: Payload passed to each handler.
        """
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(**kwargs)
            except Exception:
                logger.exception("Error in handler %r for event %r", handler, event)
