"""Operation lifecycle events.

The host publishes one ``OperationEvent`` per phase (pre/post) of every
resource operation.  Subscribers receive the event and return an
``OperationEventResponse``; the broker combines those into an
``AggregateOperationEventResponse`` that the host uses to decide whether the
operation proceeds.

Usage::

    from ophooks.events import OperationEvent, OperationKind, RequestContext

    event = OperationEvent(
        operation=OperationKind.PRE_CREATE,
        request=RequestContext(tenant_id="t1", resource_type="Patient"),
    )
    result = await broker.publish(event)

Modules
-------
broker      Broker -- subscription table, concurrent fan-out, aggregation
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ophooks.core.timestamps import utcnow

__all__ = [
    "ALL_OPERATIONS",
    "AggregateOperationEventResponse",
    "KEY_SEPARATOR",
    "OperationBroker",
    "OperationEvent",
    "OperationEventResponse",
    "OperationKind",
    "RequestContext",
    "Subscriber",
]

KEY_SEPARATOR = "|"


# ── Operation vocabulary ─────────────────────────────────────────────────


class OperationKind(str, Enum):
    """One phase of one resource interaction.

    Closed set of 26 values: a ``pre-`` and ``post-`` phase for each of the
    13 interactions.
    """

    PRE_CREATE = "pre-create"
    POST_CREATE = "post-create"
    PRE_READ = "pre-read"
    POST_READ = "post-read"
    PRE_VREAD = "pre-vread"
    POST_VREAD = "post-vread"
    PRE_UPDATE = "pre-update"
    POST_UPDATE = "post-update"
    PRE_DELETE = "pre-delete"
    POST_DELETE = "post-delete"
    PRE_PATCH = "pre-patch"
    POST_PATCH = "post-patch"
    PRE_HISTORY_TYPE = "pre-history-type"
    POST_HISTORY_TYPE = "post-history-type"
    PRE_HISTORY_INSTANCE = "pre-history-instance"
    POST_HISTORY_INSTANCE = "post-history-instance"
    PRE_SEARCH_TYPE = "pre-search-type"
    POST_SEARCH_TYPE = "post-search-type"
    PRE_TRANSACTION = "pre-transaction"
    POST_TRANSACTION = "post-transaction"
    PRE_BATCH = "pre-batch"
    POST_BATCH = "post-batch"
    PRE_SEARCH_SYSTEM = "pre-search-system"
    POST_SEARCH_SYSTEM = "post-search-system"
    PRE_HISTORY_SYSTEM = "pre-history-system"
    POST_HISTORY_SYSTEM = "post-history-system"

    @property
    def phase(self) -> str:
        """``"pre"`` or ``"post"``."""
        return self.value.split("-", 1)[0]

    @property
    def action(self) -> str:
        """Interaction name without the phase, e.g. ``"history-type"``."""
        return self.value.split("-", 1)[1]

    def __str__(self) -> str:
        return self.value


ALL_OPERATIONS: tuple[OperationKind, ...] = tuple(OperationKind)


# ── Event model ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RequestContext:
    """Request details attached to an event.

    ``tenant_id`` and ``resource_type`` are independently optional, giving
    four shapes.  ``None`` means absent; an empty string is a present value.

    Attributes:
        tenant_id: Tenant the request was made against (multi-tenant servers)
        resource_type: FHIR resource type, e.g. ``Patient``
        resource: Request body, if any
        base_url: Server base URL the request was addressed to
    """

    tenant_id: str | None = None
    resource_type: str | None = None
    resource: dict[str, Any] | None = None
    base_url: str | None = None

    def dimension_keys(self, operation: str) -> list[str]:
        """Composite metric keys this request adds beyond the bare operation.

        ====================  =====================================
        tenant / type         keys
        ====================  =====================================
        neither               (none)
        tenant only           ``op|tenant``
        type only             ``op||type``
        both                  ``op|tenant``, ``op|tenant|type``
        ====================  =====================================
        """
        sep = KEY_SEPARATOR
        has_tenant = self.tenant_id is not None
        has_type = self.resource_type is not None

        if has_tenant and has_type:
            return [
                f"{operation}{sep}{self.tenant_id}",
                f"{operation}{sep}{self.tenant_id}{sep}{self.resource_type}",
            ]
        if has_tenant:
            return [f"{operation}{sep}{self.tenant_id}"]
        if has_type:
            return [f"{operation}{sep}{sep}{self.resource_type}"]
        return []


@dataclass(frozen=True)
class OperationEvent:
    """Immutable record of one operation phase.

    Attributes:
        operation: Which phase of which interaction
        timestamp: When the event was constructed (UTC)
        user_identity: Opaque requester identity, passed through untouched
        request: Request context, if the host has one
        response: Response payload for ``post-`` phases
    """

    operation: OperationKind
    timestamp: datetime = field(default_factory=utcnow)
    user_identity: tuple[Any, ...] = ()
    request: RequestContext | None = None
    response: Any | None = None


@dataclass
class OperationEventResponse:
    """Outcome reported by a single subscriber."""

    success: bool = True
    errors: list[Exception] = field(default_factory=list)


@dataclass
class AggregateOperationEventResponse:
    """Combined outcome of one ``publish`` call.

    ``responses`` holds fulfilled subscriber results; subscribers that raised
    contribute only an entry in ``errors``.
    """

    success: bool = True
    responses: list[OperationEventResponse] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


# ── Subscriber / broker contracts ────────────────────────────────────────

Subscriber = Callable[
    [OperationEvent],
    Awaitable[OperationEventResponse] | OperationEventResponse,
]


@runtime_checkable
class OperationBroker(Protocol):
    """Host-facing publish/subscribe contract."""

    def subscribe(self, operations: Iterable[OperationKind], subscriber: Subscriber) -> None:
        """Register ``subscriber`` for each kind; registering twice is a no-op."""
        ...

    def unsubscribe(self, operations: Iterable[OperationKind], subscriber: Subscriber) -> None:
        """Remove ``subscriber`` from each kind; absent handles are ignored."""
        ...

    async def publish(self, event: OperationEvent) -> AggregateOperationEventResponse:
        """Fan ``event`` out to its subscribers and aggregate the outcomes."""
        ...
