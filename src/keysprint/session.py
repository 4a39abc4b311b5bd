"""Practice session: the owner of generator, queue, validator and analytics."""

from __future__ import annotations

import logging
import random
import uuid
from collections import deque
from typing import Callable, Protocol

from keysprint import theory
from keysprint.ai.difficulty import next_difficulty, select_pool_tier
from keysprint.analytics import SessionAnalytics
from keysprint.config import COMPLETION_HISTORY, EngineSettings
from keysprint.generator import PatternGenerator
from keysprint.midi_input import LiveNoteEvent
from keysprint.models import (
    DifficultyLevel,
    Pattern,
    PatternAttempt,
    PerformanceMetrics,
    QueueStatistics,
    SessionRecord,
    SessionSummary,
    ValidationResult,
)
from keysprint.notation import prewarm_template_cache
from keysprint.pattern_queue import PatternQueue
from keysprint.scheduler import CooperativeScheduler, IdleScheduler
from keysprint.theory import PoolTier
from keysprint.validator import PatternValidator, wall_clock_ms

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def save_or_update_session(self, record: SessionRecord) -> None: ...


class PracticeSession:
    """One practice session, wired by explicit dependency injection.

    Every collaborator can be passed in; anything left out is built from
    ``settings``. ``clock`` returns milliseconds and is shared with the
    validator and analytics so tests can drive time by hand.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        scheduler: IdleScheduler | None = None,
        store: SessionStore | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
        generator: PatternGenerator | None = None,
    ) -> None:
        self.settings = (settings or EngineSettings()).validated()
        self.clock = clock or wall_clock_ms
        self.scheduler = scheduler or CooperativeScheduler()
        self.store = store
        self.generator = generator or PatternGenerator(
            rng=rng,
            similarity_threshold=self.settings.similarity_threshold,
            note_weights=self.settings.note_weights,
            interval_weights=self.settings.interval_weight_table(),
            strict=self.settings.strict,
        )
        self.queue = PatternQueue(
            self.generator,
            self.scheduler,
            capacity=self.settings.queue_capacity,
            refill_threshold=self.settings.refill_threshold,
        )
        self.validator = PatternValidator(clock=self.clock)
        self.analytics = SessionAnalytics(
            clock=self.clock,
            plateau_cv_threshold=self.settings.plateau_cv_threshold,
            plateau_accuracy_band=self.settings.plateau_accuracy_band,
            plateau_fifty_band=self.settings.plateau_fifty_band,
        )
        self.session_id = str(uuid.uuid4())
        self.pool_tier = PoolTier.BEGINNER
        self._difficulty = self._parse_difficulty(self.settings.starting_difficulty)
        self._current: Pattern | None = None
        self._attempt_recorded = False
        self._completion_times: deque[float] = deque(maxlen=COMPLETION_HISTORY)
        self._started = False

    @property
    def difficulty(self) -> DifficultyLevel:
        return self._difficulty

    @property
    def current_pattern(self) -> Pattern | None:
        return self._current

    @property
    def started(self) -> bool:
        return self._started

    @property
    def average_completion_time_ms(self) -> float:
        """Rolling mean over the last few completed patterns."""
        times = self._completion_times
        return sum(times) / len(times) if times else 0.0

    def start_session(self, initial_difficulty: DifficultyLevel | str | None = None) -> Pattern | None:
        """Fill the queue and serve the first pattern."""
        if initial_difficulty is not None:
            self._difficulty = self._parse_difficulty(initial_difficulty)
        prewarm_template_cache()
        self.session_id = str(uuid.uuid4())
        self.pool_tier = PoolTier.BEGINNER
        self.validator.reset_statistics()
        self.analytics.reset_session()
        self._completion_times.clear()
        self.generator.clear_history()
        self.queue.initialize(self._difficulty, self._pool())
        self._started = True
        logger.info("Session %s started at %s", self.session_id, self._difficulty.name)
        return self.get_next_pattern()

    def get_next_pattern(self) -> Pattern | None:
        """Advance to the next queued pattern and arm the validator for it."""
        if not self._started:
            logger.warning("get_next_pattern called before start_session")
            return None
        self._update_pool_tier()
        pattern = self.queue.get_next()
        self._current = pattern
        self._attempt_recorded = False
        if pattern is None:
            self.validator.clear()
        else:
            self.validator.reset_for_new_pattern(pattern, self.clock())
        return pattern

    def retry_pattern(self) -> None:
        """Start the current pattern over, e.g. after a wrong note."""
        if self._current is not None:
            self.validator.reset_for_new_pattern(self._current, self.clock())
            self._attempt_recorded = False

    def skip_pattern(self) -> Pattern | None:
        """Give up on the current pattern (counted as a miss) and move on."""
        if self._current is not None and not self._attempt_recorded:
            started = self.validator.pattern_start_time
            now = self.clock()
            self._record_attempt(False, now - started if started is not None else 0.0)
        return self.get_next_pattern()

    def validate_note(self, midi_note: object, timestamp: object) -> ValidationResult:
        """Judge a note-on against the current pattern (timestamp in ms)."""
        result = self.validator.validate_note(midi_note, timestamp)
        if self._current is None or self._attempt_recorded:
            return result

        if result.pattern_complete:
            self._record_attempt(True, result.response_time_ms)
            self._completion_times.append(result.response_time_ms)
            self._maybe_adapt()
            self.get_next_pattern()
        elif self.validator.is_poisoned:
            self._record_attempt(False, result.response_time_ms)
            if self.settings.advance_on_failure:
                self.get_next_pattern()
        return result

    def handle_note_event(self, event: LiveNoteEvent) -> ValidationResult | None:
        """Feed a live note event. Note-offs and velocity are ignored."""
        if not event.is_note_on:
            return None
        return self.validate_note(event.pitch, event.timestamp_ms)

    def set_difficulty(self, level: DifficultyLevel | str) -> None:
        """Switch difficulty; queued patterns are discarded."""
        level = self._parse_difficulty(level)
        if level is self._difficulty:
            return
        self._difficulty = level
        if self._started:
            self.queue.change_difficulty(level, self._pool())
            self.get_next_pattern()

    def metrics(self) -> PerformanceMetrics:
        return self.validator.metrics()

    def queue_statistics(self) -> QueueStatistics:
        return self.queue.statistics()

    def get_session_summary(self) -> SessionSummary:
        return self.analytics.get_session_summary()

    def reset_session(self) -> None:
        """Clear all statistics and restart at the current difficulty."""
        logger.info("Session %s reset", self.session_id)
        self.start_session()

    def end_session(self) -> SessionRecord:
        """Persist the session; storage errors are logged, not raised."""
        record = self.analytics.build_session_record(self.session_id)
        if self.store is not None:
            try:
                self.store.save_or_update_session(record)
            except Exception:
                logger.exception("Failed to persist session %s", self.session_id)
        return record

    def dispose(self) -> None:
        self.queue.dispose()
        self.validator.clear()
        self._current = None
        self._started = False

    def _record_attempt(self, correct: bool, attempt_time_ms: float) -> None:
        assert self._current is not None
        self._attempt_recorded = True
        self.analytics.track(PatternAttempt(
            pattern_id=self._current.id,
            difficulty=self._current.difficulty,
            correct=correct,
            midi_notes=list(self._current.expected_midi),
            attempt_time_ms=attempt_time_ms,
        ))

    def _maybe_adapt(self) -> None:
        target = next_difficulty(self._difficulty, self.validator.metrics(), self.settings.adaptive_difficulty)
        if target is not self._difficulty:
            logger.info("Adaptive difficulty: %s -> %s", self._difficulty.name, target.name)
            self._difficulty = target
            self.queue.change_difficulty(target, self._pool())

    def _update_pool_tier(self) -> None:
        if not self.settings.progressive_pool:
            return
        metrics = self.validator.metrics()
        duration = self.clock() - self.analytics.session_start
        tier = select_pool_tier(metrics.accuracy, duration, self.pool_tier)
        if tier is not self.pool_tier:
            logger.info("Note pool widened: %s -> %s", self.pool_tier.value, tier.value)
            self.pool_tier = tier
            self.queue.set_note_pool(self._pool())

    def _pool(self) -> tuple[int, ...]:
        return theory.pool_for(self._difficulty, self.pool_tier)

    def _parse_difficulty(self, value: DifficultyLevel | str) -> DifficultyLevel:
        try:
            return DifficultyLevel.parse(value)
        except ValueError:
            if self.settings.strict:
                raise
            logger.error("Unknown difficulty %r, using %s", value, DifficultyLevel.SINGLE_NOTE.name)
            return DifficultyLevel.SINGLE_NOTE
