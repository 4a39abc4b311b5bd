"""Lookahead queue of ready-to-serve patterns with idle-time refills."""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum, auto
from functools import partial
from typing import Sequence

from keysprint import theory
from keysprint.config import GENERATION_STATS_WINDOW, QUEUE_CAPACITY, REFILL_THRESHOLD
from keysprint.generator import PatternGenerator
from keysprint.models import DifficultyLevel, Pattern, QueueStatistics
from keysprint.scheduler import IdleDeadline, IdleScheduler

logger = logging.getLogger(__name__)


class QueueState(Enum):
    UNINITIALIZED = auto()
    FILLED = auto()
    DRAINING = auto()
    REFILLING = auto()
    DISPOSED = auto()


class PatternQueue:
    """FIFO of pre-generated patterns for one difficulty at a time.

    Pops never block on generation unless the queue has run dry, in which
    case a single pattern is generated on the spot. Refills run in idle
    slices handed out by the scheduler. Every scheduled slice is tied to a
    version number so work queued before a difficulty change or dispose
    does nothing when it finally runs.
    """

    def __init__(
        self,
        generator: PatternGenerator,
        scheduler: IdleScheduler,
        capacity: int = QUEUE_CAPACITY,
        refill_threshold: int = REFILL_THRESHOLD,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.generator = generator
        self.scheduler = scheduler
        self.capacity = capacity
        self.refill_threshold = min(refill_threshold, capacity)
        self._queue: deque[Pattern] = deque()
        self._difficulty: DifficultyLevel | None = None
        self._note_pool: tuple[int, ...] | None = None
        self._version = 0
        self._refill_handle: int | None = None
        self._disposed = False

        self._total_generated = 0
        self._total_consumed = 0
        self._generation_times: deque[float] = deque(maxlen=GENERATION_STATS_WINDOW)
        self._last_refill_time: float | None = None

    @property
    def difficulty(self) -> DifficultyLevel | None:
        return self._difficulty

    @property
    def size(self) -> int:
        return len(self._queue)

    @property
    def state(self) -> QueueState:
        if self._disposed:
            return QueueState.DISPOSED
        if self._difficulty is None:
            return QueueState.UNINITIALIZED
        if self._refill_handle is not None:
            return QueueState.REFILLING
        if len(self._queue) >= self.capacity:
            return QueueState.FILLED
        return QueueState.DRAINING

    @property
    def is_refilling(self) -> bool:
        return self._refill_handle is not None

    def peek(self) -> Pattern | None:
        return self._queue[0] if self._queue else None

    def initialize(self, difficulty: DifficultyLevel, note_pool: Sequence[int] | None = None) -> None:
        """Fill the queue to capacity for ``difficulty`` before returning."""
        self._disposed = False
        self._reset(difficulty, note_pool)
        logger.info("Pattern queue ready: %d %s patterns", len(self._queue), difficulty.name)

    def change_difficulty(self, difficulty: DifficultyLevel, note_pool: Sequence[int] | None = None) -> None:
        """Drop every queued pattern and refill for the new difficulty."""
        if self._disposed:
            return
        logger.info("Queue difficulty %s -> %s",
                    self._difficulty.name if self._difficulty else None, difficulty.name)
        self._reset(difficulty, note_pool)

    def set_note_pool(self, note_pool: Sequence[int] | None) -> None:
        """Use a new pool for patterns generated from now on."""
        self._note_pool = tuple(note_pool) if note_pool else None

    def dispose(self) -> None:
        self._cancel_refill()
        self._version += 1
        self._disposed = True
        self._queue.clear()

    def _reset(self, difficulty: DifficultyLevel, note_pool: Sequence[int] | None) -> None:
        self._cancel_refill()
        self._version += 1
        self._difficulty = difficulty
        self._note_pool = tuple(note_pool) if note_pool else None
        self._queue.clear()
        self.fill_queue()

    def get_next(self) -> Pattern | None:
        """Pop the oldest pattern, generating one on the spot if empty.

        Returns None only before ``initialize`` or after ``dispose``.
        """
        if self._disposed or self._difficulty is None:
            logger.warning("get_next called on a %s queue", self.state.name.lower())
            return None

        if self._queue:
            pattern = self._queue.popleft()
        else:
            logger.warning("Pattern queue empty, generating %s pattern synchronously (degraded)",
                           self._difficulty.name)
            pattern = self._generate_one()
        self._total_consumed += 1

        if len(self._queue) < self.refill_threshold and self._refill_handle is None:
            self._schedule_refill()
        return pattern

    def fill_queue(self) -> int:
        """Synchronously top the queue up to capacity. Returns patterns added."""
        added = 0
        while len(self._queue) < self.capacity:
            self._queue.append(self._generate_one())
            added += 1
        if added:
            self._last_refill_time = time.time()
        return added

    def _pool(self) -> tuple[int, ...]:
        assert self._difficulty is not None
        return self._note_pool or theory.pool_for(self._difficulty)

    def _generate_one(self) -> Pattern:
        assert self._difficulty is not None
        start = time.perf_counter()
        try:
            pattern = self.generator.generate(self._difficulty, self._pool())
        except Exception:
            logger.exception("Generator raised for %s, queueing fallback pattern", self._difficulty.name)
            pattern = self.generator.fallback_pattern()
        self._generation_times.append((time.perf_counter() - start) * 1000.0)
        self._total_generated += 1
        return pattern

    def _schedule_refill(self) -> None:
        try:
            self._refill_handle = self.scheduler.request_idle(partial(self._refill_slice, self._version))
        except Exception:
            # Emergency generation in get_next still serves patterns
            logger.exception("Could not schedule a queue refill")
            self._refill_handle = None

    def _cancel_refill(self) -> None:
        if self._refill_handle is not None:
            self.scheduler.cancel(self._refill_handle)
            self._refill_handle = None

    def _refill_slice(self, version: int, deadline: IdleDeadline) -> None:
        if self._disposed or version != self._version:
            return
        self._refill_handle = None

        added = 0
        while len(self._queue) < self.capacity and deadline.time_remaining() > 0:
            self._queue.append(self._generate_one())
            added += 1
            # Stop if a callback during generation retired this slice
            if self._disposed or version != self._version:
                return
        if added:
            self._last_refill_time = time.time()
            logger.debug("Refill slice added %d patterns (size %d)", added, len(self._queue))

        if len(self._queue) < self.capacity:
            self._schedule_refill()

    def statistics(self) -> QueueStatistics:
        times = self._generation_times
        return QueueStatistics(
            current_size=len(self._queue),
            capacity=self.capacity,
            difficulty=self._difficulty,
            total_generated=self._total_generated,
            total_consumed=self._total_consumed,
            average_generation_time_ms=sum(times) / len(times) if times else 0.0,
            last_refill_time=self._last_refill_time,
        )
