"""Tests for ophooks.core.ticker."""

import threading
import time

from ophooks.core.ticker import PeriodicTicker


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        time.sleep(0.01)
    return predicate()


class TestPeriodicTicker:
    def test_ticks_repeatedly(self):
        calls = []

        async def tick():
            calls.append(threading.current_thread().name)

        ticker = PeriodicTicker(name="test-ticker")
        ticker.start(tick, interval_seconds=0.02)
        try:
            assert wait_for(lambda: len(calls) >= 3)
            assert ticker.is_running
            assert ticker.tick_count >= 3
            assert calls[0] == "test-ticker"
        finally:
            ticker.stop()

    def test_stop_prevents_further_ticks(self):
        calls = []

        async def tick():
            calls.append(1)

        ticker = PeriodicTicker()
        ticker.start(tick, interval_seconds=0.02)
        assert wait_for(lambda: len(calls) >= 1)
        ticker.stop()
        count = len(calls)
        time.sleep(0.1)

        assert len(calls) == count
        assert ticker.is_running is False

    def test_failing_tick_does_not_stop_loop(self):
        calls = []

        async def tick():
            calls.append(1)
            raise RuntimeError("flush blew up")

        ticker = PeriodicTicker()
        ticker.start(tick, interval_seconds=0.02)
        try:
            assert wait_for(lambda: len(calls) >= 2)
        finally:
            ticker.stop()

    def test_stop_idempotent(self):
        ticker = PeriodicTicker()
        ticker.stop()
        ticker.stop()

    def test_first_tick_waits_one_interval(self):
        calls = []

        async def tick():
            calls.append(1)

        ticker = PeriodicTicker()
        ticker.start(tick, interval_seconds=10)
        try:
            time.sleep(0.05)
            assert calls == []
        finally:
            ticker.stop()

    def test_double_start_ignored(self):
        async def tick():
            pass

        ticker = PeriodicTicker()
        ticker.start(tick, interval_seconds=10)
        thread = ticker._thread
        ticker.start(tick, interval_seconds=10)
        try:
            assert ticker._thread is thread
        finally:
            ticker.stop()
