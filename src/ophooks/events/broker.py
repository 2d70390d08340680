"""
In-process operation event broker.

Owns the subscription table (operation kind -> subscribers) and the
publish algorithm: every subscriber registered for the event's kind is run
concurrently, all of them are awaited, and their outcomes are folded into a
single ``AggregateOperationEventResponse``.

A subscriber that reports ``success=False`` or raises never stops the others
from running or being recorded.  ``publish`` itself never raises.

Example::

    broker = Broker()

    async def audit(event: OperationEvent) -> OperationEventResponse:
        ...
        return OperationEventResponse(success=True)

    broker.subscribe([OperationKind.PRE_CREATE, OperationKind.POST_CREATE], audit)
    result = await broker.publish(OperationEvent(operation=OperationKind.PRE_CREATE))
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable

from ophooks.core.errors import SubscriberError
from ophooks.core.logging import get_logger
from ophooks.events import (
    AggregateOperationEventResponse,
    OperationEvent,
    OperationEventResponse,
    OperationKind,
    Subscriber,
)

__all__ = ["Broker"]

logger = get_logger(__name__)


async def _invoke(subscriber: Subscriber, event: OperationEvent) -> OperationEventResponse:
    """Run one subscriber, awaiting it if it returned an awaitable."""
    try:
        result = subscriber(event)
        if inspect.isawaitable(result):
            result = await result
    except asyncio.CancelledError as e:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        # A subscriber cancelling itself is a rejection like any other
        raise SubscriberError(str(e) or "subscriber was cancelled", cause=e) from e
    if not isinstance(result, OperationEventResponse):
        raise TypeError(
            f"subscriber returned {type(result).__name__}, expected OperationEventResponse"
        )
    return result


class Broker:
    """Publish/subscribe hub for operation lifecycle events.

    Subscribers are compared by identity: registering the same callable twice
    for a kind keeps one entry.  Keep a reference to the exact object you
    subscribed (a bound method evaluated twice is two different objects) if
    you intend to unsubscribe it later.
    """

    def __init__(
        self,
        type_to_subscribers: dict[OperationKind, list[Subscriber]] | None = None,
    ) -> None:
        self._type_to_subscribers: dict[OperationKind, list[Subscriber]] = (
            type_to_subscribers if type_to_subscribers is not None else {}
        )

    async def publish(self, event: OperationEvent) -> AggregateOperationEventResponse:
        """Fan ``event`` out to every subscriber of ``event.operation``.

        Outcomes are recorded in settlement order:

        - response with ``success=True``: appended to ``responses``
        - response with ``success=False``: appended to ``responses``, its
          errors appended to ``errors``, aggregate success becomes False
        - raised / failed coroutine: one ``SubscriberError`` appended to
          ``errors``, aggregate success becomes False, nothing in ``responses``
        """
        result = AggregateOperationEventResponse()

        # Snapshot so a subscriber that unsubscribes mid-publish is still awaited
        subscribers = list(self._type_to_subscribers.get(event.operation, ()))
        if not subscribers:
            return result

        tasks = [asyncio.ensure_future(_invoke(subscriber, event)) for subscriber in subscribers]

        try:
            for settled in asyncio.as_completed(tasks):
                try:
                    response = await settled
                except Exception as e:
                    error = e if isinstance(e, SubscriberError) else SubscriberError.from_exception(e)
                    result.success = False
                    result.errors.append(error)
                    logger.warning(
                        "subscriber_failed",
                        operation=event.operation.value,
                        error=str(e),
                        error_type=type(error.cause or error).__name__,
                    )
                    continue

                result.responses.append(response)
                result.success = result.success and response.success
                if response.errors:
                    result.errors.extend(response.errors)
        finally:
            # Only reached with pending tasks when publish itself is cancelled
            for task in tasks:
                if not task.done():
                    task.cancel()

        return result

    def subscribe(self, operations: Iterable[OperationKind], subscriber: Subscriber) -> None:
        """Register ``subscriber`` for each kind in ``operations`` (idempotent)."""
        for operation in operations:
            subscribers = self._type_to_subscribers.setdefault(operation, [])
            if not any(existing is subscriber for existing in subscribers):
                subscribers.append(subscriber)

    def unsubscribe(self, operations: Iterable[OperationKind], subscriber: Subscriber) -> None:
        """Remove ``subscriber`` from each kind in ``operations``; absent handles are ignored."""
        for operation in operations:
            subscribers = self._type_to_subscribers.get(operation)
            if not subscribers:
                continue
            for index, existing in enumerate(subscribers):
                if existing is subscriber:
                    del subscribers[index]
                    break

    def subscribers_for(self, operation: OperationKind) -> tuple[Subscriber, ...]:
        """Read-only view of the subscribers registered for ``operation``."""
        return tuple(self._type_to_subscribers.get(operation, ()))

    @property
    def subscription_count(self) -> int:
        """Total (kind, subscriber) registrations."""
        return sum(len(subscribers) for subscribers in self._type_to_subscribers.values())
