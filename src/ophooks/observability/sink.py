"""Metrics sink boundary.

The aggregator hands the sink batches of named, dimensioned, timestamped
numeric data points.  CloudWatch accepts at most 20 data points per
``PutMetricData`` request, so that is the limit every sink enforces.

Sinks are synchronous and raise ``MetricsSinkError`` on failure; callers
decide whether failures matter (the aggregator treats them as best-effort).

Example:
    >>> sink = CloudWatchMetricsSink(region_name="us-east-1")
    >>> sink.put_metric_data("FWoA", [
    ...     MetricDatum(
    ...         metric_name="CallCount",
    ...         value=3,
    ...         timestamp=datetime.now(UTC),
    ...         dimensions=(Dimension("Operation", "pre-create"),),
    ...     ),
    ... ])
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ophooks.core.errors import MetricsSinkError
from ophooks.core.logging import get_logger

__all__ = [
    "CloudWatchMetricsSink",
    "Dimension",
    "MAX_METRICS_PER_REQUEST",
    "MetricDatum",
    "MetricsSink",
    "RecordingMetricsSink",
]

logger = get_logger(__name__)

MAX_METRICS_PER_REQUEST = 20


@dataclass(frozen=True)
class Dimension:
    """One name/value pair qualifying a data point."""

    name: str
    value: str

    def to_cloudwatch(self) -> dict[str, str]:
        return {"Name": self.name, "Value": self.value}


@dataclass(frozen=True)
class MetricDatum:
    """A single data point."""

    metric_name: str
    value: float
    timestamp: datetime
    unit: str = "Count"
    dimensions: tuple[Dimension, ...] = field(default_factory=tuple)

    def to_cloudwatch(self) -> dict[str, Any]:
        """Shape expected by ``PutMetricData``'s ``MetricData`` list."""
        return {
            "MetricName": self.metric_name,
            "Timestamp": self.timestamp,
            "Unit": self.unit,
            "Value": self.value,
            "Dimensions": [d.to_cloudwatch() for d in self.dimensions],
        }


@runtime_checkable
class MetricsSink(Protocol):
    """Anything that can accept a batch of at most 20 data points."""

    def put_metric_data(self, namespace: str, data: list[MetricDatum]) -> Any:
        """Submit one batch; raise ``MetricsSinkError`` on failure."""
        ...


def _check_batch(data: list[MetricDatum]) -> None:
    if len(data) > MAX_METRICS_PER_REQUEST:
        raise MetricsSinkError(
            f"{len(data)} data points exceeds the {MAX_METRICS_PER_REQUEST} per request limit",
            retryable=False,
        )


class CloudWatchMetricsSink:
    """Sends data points to AWS CloudWatch via boto3.

    The boto3 client is created lazily on first send unless one is injected,
    so constructing an inert aggregator never touches AWS configuration.
    """

    def __init__(self, client: Any | None = None, region_name: str | None = None):
        self._client = client
        self._region_name = region_name
        self._client_lock = threading.Lock()

    @property
    def client(self) -> Any:
        with self._client_lock:
            if self._client is None:
                kwargs = {"region_name": self._region_name} if self._region_name else {}
                self._client = boto3.client("cloudwatch", **kwargs)
                logger.debug("cloudwatch_client_created", region=self._region_name)
            return self._client

    def put_metric_data(self, namespace: str, data: list[MetricDatum]) -> Any:
        _check_batch(data)
        try:
            return self.client.put_metric_data(
                Namespace=namespace,
                MetricData=[datum.to_cloudwatch() for datum in data],
            )
        except (ClientError, BotoCoreError) as e:
            raise MetricsSinkError(f"PutMetricData failed: {e}", cause=e) from e


class RecordingMetricsSink:
    """In-memory sink that keeps every request it receives.

    Useful for local development and tests.  Set ``fail_with`` to make every
    subsequent call raise that exception.
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, list[MetricDatum]]] = []
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    def put_metric_data(self, namespace: str, data: list[MetricDatum]) -> None:
        _check_batch(data)
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            self.requests.append((namespace, list(data)))

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    @property
    def data_points(self) -> list[MetricDatum]:
        """All data points received, flattened across requests."""
        with self._lock:
            return [datum for _, batch in self.requests for datum in batch]
