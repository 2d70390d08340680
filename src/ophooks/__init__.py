"""
ophooks - Operation lifecycle hooks for a FHIR-style resource server.

The host runtime publishes a pre- and post-phase ``OperationEvent`` around
every resource operation.  The ``Broker`` fans each event out to registered
subscribers and aggregates their outcomes; ``MetricSubscriber`` is one such
subscriber, counting calls and periodically flushing them to CloudWatch.

Usage::

    from ophooks import Broker, MetricSubscriber, register_console_subscriber

    broker = Broker()
    register_console_subscriber(broker)
    metrics = MetricSubscriber(broker)

    result = await broker.publish(event)
    if not result.success:
        ...
"""

__version__ = "0.1.0"

from ophooks.events import (
    ALL_OPERATIONS,
    AggregateOperationEventResponse,
    OperationBroker,
    OperationEvent,
    OperationEventResponse,
    OperationKind,
    RequestContext,
    Subscriber,
)
from ophooks.events.broker import Broker
from ophooks.hooks.console import register_console_subscriber
from ophooks.hooks.metrics import MetricSubscriber

__all__ = [
    "ALL_OPERATIONS",
    "AggregateOperationEventResponse",
    "Broker",
    "MetricSubscriber",
    "OperationBroker",
    "OperationEvent",
    "OperationEventResponse",
    "OperationKind",
    "RequestContext",
    "Subscriber",
    "register_console_subscriber",
]
