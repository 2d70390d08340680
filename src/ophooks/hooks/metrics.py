"""
Per-operation call counts, flushed to a metrics sink on an interval.

``MetricSubscriber`` subscribes to all 26 operation kinds and counts every
event under up to three composite keys::

    pre-create                    every event
    pre-create|<tenant>           event carried a tenant
    pre-create|<tenant>|<type>    event carried a tenant and a resource type
    pre-create||<type>            event carried a resource type but no tenant

Every ``push_interval_ms`` the accumulated map is flushed as ``CallCount``
data points in the ``FWoA`` namespace, one ``Operation`` dimension plus
``TenantId`` / ``ResourceType`` where the key has them.

Accuracy over completeness
--------------------------
A flush holds a send mutex for its whole duration.  A flush that finds the
mutex held skips sending, so counts are never reported twice or split across
overlapping sends.  Every flush, sent or skipped, ends by clearing the map:
counts accumulated while a send was in flight are dropped rather than
carried into the next interval.  Delivery is best-effort; send failures are
logged and never reach the caller of a resource operation.

Configuration (read once at construction)::

    OP_METRIC_SUBSCRIBER_ENABLED=true        default off; inert when off
    OP_METRIC_SUBSCRIBER_PUSH_INTERVAL_MS    default 60000
    OP_METRIC_SUBSCRIBER_SEND_COUNT          concurrent requests per batch, default 25
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Sequence
from datetime import datetime
from typing import TypeVar

from ophooks.core.logging import get_logger
from ophooks.core.settings import MetricSubscriberSettings, load_metric_settings
from ophooks.core.ticker import PeriodicTicker
from ophooks.core.timestamps import utcnow
from ophooks.events import (
    ALL_OPERATIONS,
    KEY_SEPARATOR,
    OperationBroker,
    OperationEvent,
    OperationEventResponse,
    OperationKind,
)
from ophooks.observability.sink import (
    MAX_METRICS_PER_REQUEST,
    CloudWatchMetricsSink,
    Dimension,
    MetricDatum,
    MetricsSink,
)

__all__ = [
    "METRIC_NAME",
    "METRIC_NAMESPACE",
    "MetricSubscriber",
    "build_dimensions",
    "chunked",
]

logger = get_logger(__name__)

METRIC_NAMESPACE = "FWoA"
METRIC_NAME = "CallCount"
METRIC_UNIT = "Count"

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size``."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def build_dimensions(key: str) -> tuple[Dimension, ...]:
    """Turn a composite key into its dimension set.

    Segment 0 is always ``Operation``; segments 1 and 2 become ``TenantId``
    and ``ResourceType`` when present and non-empty.
    """
    segments = key.split(KEY_SEPARATOR)
    dimensions = [Dimension("Operation", segments[0])]
    if len(segments) >= 2 and segments[1]:
        dimensions.append(Dimension("TenantId", segments[1]))
    if len(segments) == 3 and segments[2]:
        dimensions.append(Dimension("ResourceType", segments[2]))
    return tuple(dimensions)


class MetricSubscriber:
    """Counts operation events and periodically flushes them to a sink.

    Args:
        broker: Broker to subscribe to when enabled
        client: Metrics sink; defaults to a lazily-created CloudWatch sink
        send_mutex: Initial send-mutex state (tests only)
        metrics_map: Initial metrics map, mutated in place (tests only)
        settings: Explicit settings; read from the environment when omitted
    """

    def __init__(
        self,
        broker: OperationBroker,
        client: MetricsSink | None = None,
        send_mutex: bool = False,
        metrics_map: dict[str, int] | None = None,
        settings: MetricSubscriberSettings | None = None,
    ):
        self._client = client if client is not None else CloudWatchMetricsSink()
        self._send_mutex = send_mutex
        self._metrics_map = metrics_map if metrics_map is not None else {}
        self._settings = settings if settings is not None else load_metric_settings()

        # Guards the map and the send mutex; the ticker thread flushes while
        # the host loop increments.
        self._lock = threading.Lock()
        self._ticker: PeriodicTicker | None = None

        # Bound once so the broker sees a stable identity
        self._subscriber = self.handler

        if self._settings.enabled:
            broker.subscribe(ALL_OPERATIONS, self._subscriber)

            self._ticker = PeriodicTicker(name="metric-flush")
            self._ticker.start(self.flush, self._settings.push_interval_seconds)
            logger.info(
                "metric_subscriber_enabled",
                push_interval_ms=self._settings.push_interval_ms,
                send_count=self._settings.send_count,
            )

    @property
    def enabled(self) -> bool:
        """Whether this subscriber registered itself and started the flush timer."""
        return self._settings.enabled

    async def handler(self, event: OperationEvent) -> OperationEventResponse:
        """Subscriber callback: count ``event`` under each of its keys.

        Never raises; failures are returned as ``success=False``.
        """
        response = OperationEventResponse()
        try:
            operation = OperationKind(event.operation).value
            keys = [operation]
            if event.request is not None:
                keys.extend(event.request.dimension_keys(operation))

            with self._lock:
                for key in keys:
                    self._metrics_map[key] = self._metrics_map.get(key, 0) + 1
        except Exception as e:
            response.success = False
            response.errors.append(e)
            logger.warning("metric_increment_failed", error=str(e))
        return response

    async def flush(self) -> None:
        """Send the accumulated counts, then clear them.

        Run by the ticker; exposed for tests.  Never raises.
        """
        with self._lock:
            size = len(self._metrics_map)
            acquired = not self._send_mutex and size > 0
            if acquired:
                self._send_mutex = True
                entries = list(self._metrics_map.items())

        if acquired:
            try:
                await self._send(entries)
            except Exception as e:
                logger.error("metric_flush_failed", error=str(e), error_type=type(e).__name__)
            finally:
                with self._lock:
                    self._send_mutex = False
        else:
            logger.debug("metric_flush_skipped", size=size, locked=self._send_mutex)

        # Cleared whether or not this run sent anything
        with self._lock:
            self._metrics_map.clear()

    send_metrics = flush

    async def _send(self, entries: list[tuple[str, int]]) -> None:
        timestamp = utcnow()
        metric_chunks = chunked(entries, MAX_METRICS_PER_REQUEST)
        request_chunks = chunked(metric_chunks, self._settings.send_count)

        failures = 0
        for request_chunk in request_chunks:
            batches = [
                [self._to_datum(key, count, timestamp) for key, count in metric_chunk]
                for metric_chunk in request_chunk
            ]
            results = await asyncio.gather(
                *(
                    asyncio.to_thread(self._client.put_metric_data, METRIC_NAMESPACE, batch)
                    for batch in batches
                ),
                return_exceptions=True,
            )

            for outcome in results:
                if isinstance(outcome, BaseException):
                    failures += 1
                    logger.error("metric_send_failed", reason=str(outcome), error_type=type(outcome).__name__)

        logger.debug(
            "metric_flush_completed",
            metrics=len(entries),
            requests=len(metric_chunks),
            failures=failures,
        )

    @staticmethod
    def _to_datum(key: str, count: int, timestamp: datetime) -> MetricDatum:
        return MetricDatum(
            metric_name=METRIC_NAME,
            value=count,
            timestamp=timestamp,
            unit=METRIC_UNIT,
            dimensions=build_dimensions(key),
        )

    def destroy(self) -> None:
        """Stop the flush timer.  Idempotent; safe on a disabled subscriber."""
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
