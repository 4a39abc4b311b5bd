"""Idle-time scheduling for background queue refills.

The engine never runs work on its own thread. Background refills ask an
``IdleScheduler`` for a slice of idle time and must finish (or reschedule)
before the slice's deadline runs out.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import OrderedDict
from typing import Callable, Protocol, runtime_checkable

from keysprint.config import IDLE_SLICE_BUDGET_MS, IDLE_TIMER_DELAY_S

logger = logging.getLogger(__name__)


class IdleDeadline:
    """Time left in the current idle slice, in milliseconds."""

    def __init__(self, budget_ms: float, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._ends_at = clock() + budget_ms / 1000.0

    def time_remaining(self) -> float:
        return max(0.0, (self._ends_at - self._clock()) * 1000.0)


IdleCallback = Callable[[IdleDeadline], None]


@runtime_checkable
class IdleScheduler(Protocol):
    def request_idle(self, callback: IdleCallback) -> int: ...
    def cancel(self, handle: int) -> None: ...


class CooperativeScheduler:
    """Runs idle callbacks when the host loop hands over spare frame time.

    The host calls ``run_idle(budget_ms)`` once per frame with whatever is
    left of its frame budget.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._ids = itertools.count(1)
        self._pending: OrderedDict[int, IdleCallback] = OrderedDict()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_idle(self, callback: IdleCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def run_idle(self, budget_ms: float) -> int:
        """Run queued callbacks in FIFO order until the budget is spent.

        Callbacks requested while this slice runs wait for the next call.
        Returns the number of callbacks run.
        """
        if budget_ms <= 0 or not self._pending:
            return 0
        deadline = IdleDeadline(budget_ms, self._clock)
        ran = 0
        for handle in list(self._pending):
            if deadline.time_remaining() <= 0:
                break
            callback = self._pending.pop(handle, None)
            if callback is None:
                continue
            try:
                callback(deadline)
            except Exception:
                logger.exception("Idle callback %d failed", handle)
            ran += 1
        return ran


class TimerScheduler:
    """Idle scheduling for hosts without an idle primitive.

    Each request becomes a short ``call_later`` timer on the asyncio loop
    and receives a fixed slice budget.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        delay_s: float = IDLE_TIMER_DELAY_S,
        slice_budget_ms: float = IDLE_SLICE_BUDGET_MS,
    ) -> None:
        self._loop = loop
        self._delay_s = delay_s
        self._slice_budget_ms = slice_budget_ms
        self._ids = itertools.count(1)
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> int:
        return len(self._timers)

    def request_idle(self, callback: IdleCallback) -> int:
        loop = self._loop or asyncio.get_running_loop()
        handle = next(self._ids)
        self._timers[handle] = loop.call_later(self._delay_s, self._fire, handle, callback)
        return handle

    def cancel(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def _fire(self, handle: int, callback: IdleCallback) -> None:
        if self._timers.pop(handle, None) is None:
            return
        try:
            callback(IdleDeadline(self._slice_budget_ms))
        except Exception:
            logger.exception("Timer idle callback %d failed", handle)
