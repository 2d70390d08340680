"""Console subscriber: logs every operation event.

A minimal example of the subscriber contract.  It yields to the event loop
before logging so it behaves like a real asynchronous hook, and reports any
failure through the response instead of raising.
"""

from __future__ import annotations

import asyncio

from ophooks.core.logging import get_logger
from ophooks.events import (
    ALL_OPERATIONS,
    OperationBroker,
    OperationEvent,
    OperationEventResponse,
)

__all__ = ["console_handler", "register_console_subscriber"]

logger = get_logger(__name__)


async def console_handler(event: OperationEvent) -> OperationEventResponse:
    response = OperationEventResponse()
    try:
        await asyncio.sleep(0)
        request = event.request
        logger.info(
            "operation_event",
            operation=str(event.operation),
            timestamp=event.timestamp.isoformat(),
            tenant_id=request.tenant_id if request else None,
            resource_type=request.resource_type if request else None,
        )
    except Exception as e:
        response.success = False
        response.errors.append(e)
    return response


def register_console_subscriber(broker: OperationBroker) -> None:
    """Subscribe :func:`console_handler` to every operation kind."""
    broker.subscribe(ALL_OPERATIONS, console_handler)
