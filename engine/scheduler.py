"""
Recalculation scheduler — decides *when* a projection should be recomputed.

State machine:

    IDLE     nothing has been calculated yet
    ARMED    a baseline checksum exists and matches what was last calculated
    PENDING  inputs drifted from the baseline; a debounce timer is running

The first ready update calculates immediately. After that, every change
(re)starts the debounce timer, so a slider drag produces one request once it
settles. Moving back to the baseline while PENDING cancels the timer. When the
timer fires, the baseline becomes the checksum seen *at fire time*, not the
one that armed the timer.

The scheduler knows nothing about Streamlit or HTTP: hosts pass in a
``recalculate`` callable and, optionally, a ``timer_factory``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    PENDING = "pending"


class DeferredTimer:
    """
    Timer handle with no clock behind it.

    It never fires by itself; the pending recalculation runs when the host
    calls ``flush()``. Used when there is no running event loop, e.g. a
    synchronous script or a Streamlit rerun.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


def default_timer(delay: float, callback: Callable[[], None]):
    """The running loop's ``call_later``, or a ``DeferredTimer`` outside a loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return DeferredTimer(delay, callback)
    return loop.call_later(delay, callback)


class RecalculationScheduler:
    """
    Parameters
    ----------
    recalculate : callable
        Zero-argument callable that performs the actual recomputation.
    debounce_seconds : float
        Quiet period after the last change before recalculating.
    timer_factory : callable, optional
        ``timer_factory(delay, callback)`` returning a handle with ``cancel()``.
        Defaults to ``default_timer``: asyncio ``call_later`` inside a running
        loop, otherwise a ``DeferredTimer`` settled by ``flush()``.
    """

    def __init__(
        self,
        recalculate: Callable[[], Any],
        *,
        debounce_seconds: float = 0.3,
        timer_factory: Optional[TimerFactory] = None,
    ):
        if debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {debounce_seconds}")
        self._recalculate = recalculate
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory or default_timer

        self._state = SchedulerState.IDLE
        self._baseline = 0
        self._latest = 0
        self._timer = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def baseline(self) -> int:
        return self._baseline

    @property
    def has_pending(self) -> bool:
        return self._state is SchedulerState.PENDING

    def update(self, checksum: int, ready: bool) -> None:
        """Feed the latest composite checksum and readiness flag."""
        if not ready:
            return

        self._latest = checksum

        if self._state is SchedulerState.IDLE:
            self._state = SchedulerState.ARMED
            self._baseline = checksum
            logger.debug("Initial calculation, baseline=%d", checksum)
            self._recalculate()
            return

        if checksum == self._baseline:
            if self._state is SchedulerState.PENDING:
                logger.debug("Checksum returned to baseline, cancelling debounce")
                self._cancel_timer()
                self._state = SchedulerState.ARMED
            return

        self._cancel_timer()
        self._timer = self._timer_factory(self.debounce_seconds, self._fire)
        self._state = SchedulerState.PENDING
        logger.debug(
            "Checksum %d != baseline %d, debounce %.3fs",
            checksum, self._baseline, self.debounce_seconds,
        )

    def flush(self) -> bool:
        """Fire a pending timer now. Returns True if a recalculation ran."""
        if self._state is not SchedulerState.PENDING:
            return False
        self._cancel_timer()
        self._fire()
        return True

    def reset(self) -> None:
        """Back to IDLE with baseline 0; in-flight requests are not cancelled."""
        self._cancel_timer()
        self._state = SchedulerState.IDLE
        self._baseline = 0
        self._latest = 0

    def _fire(self) -> None:
        self._timer = None
        if self._state is not SchedulerState.PENDING:
            return
        self._baseline = self._latest
        self._state = SchedulerState.ARMED
        logger.debug("Debounce elapsed, recalculating (baseline=%d)", self._baseline)
        self._recalculate()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
