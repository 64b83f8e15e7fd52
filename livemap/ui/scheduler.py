"""Interval timers for the polling loop.

The controller only needs "call this every N seconds until cancelled", so
the timer is a small capability. ThreadingIntervalScheduler runs each timer
on a daemon thread; tests swap in a manual scheduler and fire ticks by hand.

Each tick hands the callback to a fresh worker thread, so a slow fetch does
not delay the next tick and fetches can overlap.
"""

import itertools
import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

_timer_ids = itertools.count(1)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def is_active(self) -> bool: ...


class IntervalScheduler(Protocol):
    def start(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class RepeatingTimer(threading.Thread):
    """Fires a callback every interval_s seconds until cancel()."""

    def __init__(self, interval_s: float, callback: Callable[[], None]) -> None:
        super().__init__(name=f"livemap-poll-{next(_timer_ids)}", daemon=True)
        self.interval_s = interval_s
        self.callback = callback
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.wait(self.interval_s):
            threading.Thread(target=self._tick, name=f"{self.name}-tick", daemon=True).start()

    def _tick(self) -> None:
        if self._cancelled.is_set():
            return
        try:
            self.callback()
        except Exception as e:
            logger.error(f"[POLL] Tick on {self.name} failed: {e}")

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_active(self) -> bool:
        return not self._cancelled.is_set()


class ThreadingIntervalScheduler:
    """Starts one RepeatingTimer per start() call."""

    def start(self, interval_s: float, callback: Callable[[], None]) -> RepeatingTimer:
        if interval_s <= 0:
            raise ValueError(f"Interval must be positive, got {interval_s}")
        timer = RepeatingTimer(interval_s=interval_s, callback=callback)
        timer.start()
        logger.info(f"[POLL] Started {timer.name} every {interval_s:.1f}s")
        return timer
