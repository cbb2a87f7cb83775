"""Minimal typed event emitter with explicit subscription handles.

Every ``subscribe()`` returns a :class:`Subscription`; calling
``unsubscribe()`` on it (or ``clear()`` on the emitter) is how consumers
detach when their screen goes away.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger("littlewatch.events")

Handler = Callable[[Any], Any]


class Subscription:
    """Handle returned by :meth:`EventEmitter.subscribe`."""

    def __init__(self, emitter: "EventEmitter", event: str, handler: Handler) -> None:
        self._emitter = emitter
        self.event = event
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._emitter._remove(self)
            self._active = False

    def __repr__(self) -> str:
        return f"Subscription(event={self.event!r}, active={self._active})"


class EventEmitter:
    """Dispatch events to subscribed handlers in subscription order.

    Handlers may be plain callables or coroutine functions.  A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        subscription = Subscription(self, event, handler)
        self._handlers[event].append(subscription)
        return subscription

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def clear(self) -> None:
        for subscriptions in list(self._handlers.values()):
            for subscription in list(subscriptions):
                subscription.unsubscribe()
        self._handlers.clear()

    async def emit(self, event: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every handler of ``event``.

        Returns:
            Number of handlers that completed without raising.
        """
        delivered = 0
        for subscription in list(self._handlers.get(event, ())):
            if not subscription.active:
                continue
            try:
                result = subscription.handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %r failed", event)
                continue
            delivered += 1
        return delivered

    def _remove(self, subscription: Subscription) -> None:
        handlers = self._handlers.get(subscription.event)
        if handlers and subscription in handlers:
            handlers.remove(subscription)
