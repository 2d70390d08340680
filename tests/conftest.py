"""
Shared pytest fixtures for ophooks tests.

This module provides:
- Environment isolation for ``OP_METRIC_SUBSCRIBER_*`` / ``OP_HOOKS_*`` flags
- A fresh ``Broker`` and an in-memory metrics sink per test
- An event factory with sensible defaults
"""

import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

# Ensure ophooks package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ophooks.events import OperationEvent, OperationKind, RequestContext
from ophooks.events.broker import Broker
from ophooks.observability.sink import RecordingMetricsSink


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if "unit" not in markers:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Strip ophooks configuration from the environment for every test."""
    for name in list(os.environ):
        if name.startswith(("OP_METRIC_SUBSCRIBER_", "OP_HOOKS_")):
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def broker() -> Broker:
    return Broker()


@pytest.fixture
def recording_sink() -> RecordingMetricsSink:
    return RecordingMetricsSink()


@pytest.fixture
def make_event() -> Callable[..., OperationEvent]:
    """Factory for ``OperationEvent`` with a fixed timestamp.

    Usage:
        event = make_event(OperationKind.PRE_READ, tenant_id="t1")
    """

    def _make(
        operation: OperationKind = OperationKind.PRE_CREATE,
        tenant_id: str | None = None,
        resource_type: str | None = None,
        with_request: bool | None = None,
        **kwargs: Any,
    ) -> OperationEvent:
        request = None
        if with_request or tenant_id is not None or resource_type is not None:
            request = RequestContext(tenant_id=tenant_id, resource_type=resource_type, resource={})
        return OperationEvent(
            operation=operation,
            timestamp=datetime(2025, 1, 1, tzinfo=UTC),
            request=request,
            **kwargs,
        )

    return _make
