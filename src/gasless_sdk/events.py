"""
events.py – Audit log of AuthorizedCall events.

The log is append-only.  Subscribers are invoked synchronously, in
subscription order, after the record is appended.  A handler that raises
is logged and skipped; the event is already recorded and the remaining
handlers still run::

    log = EventLog()
    log.subscribe(lambda ev: print(ev.args))
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .types import AuthorizedCall

logger = logging.getLogger(__name__)

EventHandler = Callable[[AuthorizedCall], None]


class EventLog:
    """Ordered record of every dispatched authorization."""

    def __init__(self) -> None:
        self._events:   list[AuthorizedCall] = []
        self._handlers: list[EventHandler]   = []

    def emit(self, event: AuthorizedCall) -> None:
        self._events.append(event)
        logger.info(
            "AuthorizedCall(sender=%s, receivers=%s, amount=%d)",
            event.sender, event.receivers, event.amount,
        )
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("AuthorizedCall handler %r failed", handler)

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove ``handler``; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def events(self) -> Sequence[AuthorizedCall]:
        return tuple(self._events)

    def filter(self, sender: Optional[str] = None) -> list[AuthorizedCall]:
        if sender is None:
            return list(self._events)
        return [ev for ev in self._events if ev.sender.lower() == sender.lower()]

    def __len__(self) -> int:
        return len(self._events)
