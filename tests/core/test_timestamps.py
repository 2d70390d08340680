"""Tests for ophooks.core.timestamps."""

from datetime import UTC, timedelta

from ophooks.core.timestamps import utcnow
from ophooks.events import OperationEvent, OperationKind


def test_utcnow_is_aware_utc():
    now = utcnow()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_event_default_timestamp_uses_utc():
    before = utcnow()
    event = OperationEvent(operation=OperationKind.PRE_READ)
    assert event.timestamp.tzinfo == UTC
    assert event.timestamp >= before
