"""
Single-threaded timer queue.

Callbacks never run on their own: the host calls run_due() from its event loop
(the Streamlit editor page polls it from a fragment). Time is read from an
injectable millisecond clock.
"""
import heapq
import itertools
import time
from typing import Callable, List, Optional, Tuple

from boardide.logging import logger


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class TimerHandle:
    def __init__(self, due_at: int, callback: Callable[[], None], label: str = ""):
        self.due_at = due_at
        self.callback = callback
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self):
        return f"TimerHandle({self.label or 'timer'} due={self.due_at} active={self.active})"


class DeadlineScheduler:
    def __init__(self, clock: Callable[[], int] = monotonic_ms):
        self.clock = clock
        self._queue: List[Tuple[int, int, TimerHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: int, callback: Callable[[], None], label: str = "") -> TimerHandle:
        handle = TimerHandle(self.clock() + max(0, delay_ms), callback, label)
        heapq.heappush(self._queue, (handle.due_at, next(self._counter), handle))
        return handle

    def next_deadline(self) -> Optional[int]:
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if h.active)

    def run_due(self) -> int:
        """Fire every active timer whose deadline has passed; returns how many ran."""
        fired = 0
        now = self.clock()
        while self._queue and self._queue[0][0] <= now:
            _, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            handle.fired = True
            try:
                handle.callback()
            except Exception:
                # One failing task must not stall the queue
                logger.exception(f"Timer callback failed: {handle!r}")
            fired += 1
        return fired

    def _drop_cancelled(self) -> None:
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)
