"""Daemon-thread interval runner.

``PeriodicTicker`` invokes an async callback on a fixed wall-clock interval
from a daemon thread, the same shape as a ``setInterval`` handle: start it
once, stop it to cancel future ticks.  A tick already running when
``stop()`` is called is allowed to finish; no further ticks are scheduled.

::

    start(callback, interval)
        └── daemon thread
              while not stop_event.wait(interval):
                  asyncio.run(callback())

The callback runs in its own event loop on the ticker thread, so it must not
touch loop-bound objects owned by the host's loop.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable

from ophooks.core.logging import get_logger

logger = get_logger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class PeriodicTicker:
    """Repeating timer backed by a daemon thread.

    Example:
        >>> ticker = PeriodicTicker(name="metric-flush")
        >>> ticker.start(flush, interval_seconds=60.0)
        >>> # ... later ...
        >>> ticker.stop()
    """

    def __init__(self, name: str = "ophooks-ticker") -> None:
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._tick_count = 0
        self._lock = threading.Lock()

    def start(self, tick_callback: TickCallback, interval_seconds: float) -> None:
        """Start ticking every ``interval_seconds``; the first tick is one interval out."""
        if self._thread is not None:
            logger.warning("ticker_already_started", ticker=self._name)
            return

        self._stop_event.clear()

        def _loop() -> None:
            logger.debug("ticker_started", ticker=self._name, interval_seconds=interval_seconds)
            while not self._stop_event.wait(interval_seconds):
                with self._lock:
                    self._tick_count += 1
                try:
                    asyncio.run(tick_callback())
                except Exception as e:
                    logger.exception("ticker_tick_failed", ticker=self._name, error=str(e))
            logger.debug("ticker_stopped", ticker=self._name)

        self._thread = threading.Thread(target=_loop, daemon=True, name=self._name)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel future ticks.  Safe to call repeatedly or before ``start``."""
        if self._thread is None:
            return

        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("ticker_did_not_stop_cleanly", ticker=self._name)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        with self._lock:
            return self._tick_count
