"""Cooperative timer for the detection cadence.

Nothing here runs on its own thread: the host loop calls
``Scheduler.run_pending()`` and due callbacks fire on the caller's thread.
"""

from __future__ import annotations
import time
from typing import Callable, List, Optional

from ..logger import get_logger

logger = get_logger(__name__)


class TimerHandle:
    """A recurring callback registration. Cancelling takes effect at once."""

    def __init__(self, interval: float, callback: Callable[[], None], next_due: float) -> None:
        self.interval = interval
        self.callback = callback
        self.next_due = next_due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class Scheduler:
    """Fires recurring callbacks when the host loop asks for pending work."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._handles: List[TimerHandle] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` every ``interval`` seconds, first after one interval."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(interval, callback, self._clock() + interval)
        self._handles.append(handle)
        return handle

    def run_pending(self) -> int:
        """Fire every callback whose time has come.

        A late handle fires once and is rescheduled from now, so a stalled
        loop never produces a burst of catch-up ticks.

        Returns:
            Number of callbacks fired
        """
        now = self._clock()
        fired = 0
        for handle in list(self._handles):
            # A callback may cancel another handle within this pass
            if handle.cancelled or handle.next_due > now:
                continue
            handle.next_due = now + handle.interval
            fired += 1
            try:
                handle.callback()
            except Exception as e:
                logger.error(f"Error in scheduled callback: {e}", exc_info=True)
        self._handles = [h for h in self._handles if not h.cancelled]
        return fired

    def pending(self) -> int:
        """Number of live (not cancelled) handles."""
        return sum(1 for h in self._handles if not h.cancelled)
