"""Asynchronous event emitter for post-commit side effects.

Handlers are isolated: a failing handler is logged and the remaining
handlers still run. Emission never raises, so callers can publish after
a commit without risking the committed work.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Awaitable, Callable

from hrpay_engine.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

AsyncEventHandler = Callable[[DomainEvent], Awaitable[None]]


@dataclass(frozen=True)
class Subscription:
    """A handler plus the filter deciding which events reach it.

    Empty filters match everything.
    """

    handler: AsyncEventHandler
    event_names: frozenset[str] = frozenset()
    categories: frozenset[EventCategory] = frozenset()

    def matches(self, event: DomainEvent) -> bool:
        if self.event_names and event.event_type not in self.event_names:
            return False
        return not self.categories or event.category in self.categories


def _as_iterable(value):
    return value if isinstance(value, (list, tuple, set, frozenset)) else (value,)


class AsyncEventEmitter:
    """Publishes events to subscribed async handlers in subscription order.

    Usage:
        emitter = AsyncEventEmitter()
        emitter.on(LoanDeductionApplied, notify_employee)
        errors = await emitter.emit(event)
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def on(
        self,
        event_type: type[DomainEvent] | list[type[DomainEvent]],
        handler: AsyncEventHandler,
    ) -> None:
        """Subscribe to one event class or a list of them."""
        names = frozenset(cls.__name__ for cls in _as_iterable(event_type))
        self._subscriptions.append(Subscription(handler, event_names=names))

    def on_category(
        self,
        category: EventCategory | list[EventCategory],
        handler: AsyncEventHandler,
    ) -> None:
        self._subscriptions.append(
            Subscription(handler, categories=frozenset(_as_iterable(category)))
        )

    def on_all(self, handler: AsyncEventHandler) -> None:
        self._subscriptions.append(Subscription(handler))

    def off(self, handler: AsyncEventHandler) -> None:
        """Drop every subscription of `handler`."""
        self._subscriptions = [s for s in self._subscriptions if s.handler is not handler]

    async def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver `event` to matching handlers.

        Returns the exceptions raised by handlers; each one has already
        been logged.
        """
        errors: list[Exception] = []
        for subscription in [s for s in self._subscriptions if s.matches(event)]:
            try:
                await subscription.handler(event)
            except Exception as exc:
                logger.exception(
                    "Handler %s failed for event %s",
                    getattr(subscription.handler, "__qualname__", subscription.handler),
                    event.event_type,
                )
                errors.append(exc)
        return errors

    async def emit_all(self, events: Iterable[DomainEvent]) -> list[Exception]:
        errors: list[Exception] = []
        for event in events:
            errors += await self.emit(event)
        return errors
