"""Note validation: compare played notes to the active pattern."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable

from keysprint.config import VALIDATION_BUDGET_MS
from keysprint.models import Pattern, PerformanceMetrics, ValidationResult

logger = logging.getLogger(__name__)


def wall_clock_ms() -> float:
    return time.time() * 1000.0


def is_valid_midi(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if not math.isfinite(value) or value != int(value):
        return False
    return 0 <= value <= 127


def is_valid_timestamp(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass
class ValidationState:
    """Per-pattern progress. Replaced wholesale on every new pattern."""

    pattern: Pattern
    pattern_start_time: float  # ms
    played_correct: set[int] = field(default_factory=set)
    played_order: list[int] = field(default_factory=list)
    wrong_note: bool = False
    attempts: int = 0


class PatternValidator:
    """Stateful checker for one active pattern at a time.

    A single wrong note poisons the current pattern: every later note of
    the same pattern is reported incorrect and the pattern can no longer
    complete. Accuracy and streak bookkeeping spans the whole session.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or wall_clock_ms
        self._state: ValidationState | None = None
        self._total_notes = 0
        self._correct_notes = 0
        self._response_time_sum = 0.0
        self._timed_notes = 0
        self._streak = 0
        self._max_streak = 0

    @property
    def pattern(self) -> Pattern | None:
        return self._state.pattern if self._state else None

    @property
    def is_poisoned(self) -> bool:
        return bool(self._state and self._state.wrong_note)

    @property
    def pattern_start_time(self) -> float | None:
        return self._state.pattern_start_time if self._state else None

    def reset_for_new_pattern(self, pattern: Pattern, start_time: float | None = None) -> None:
        self._state = ValidationState(
            pattern=pattern,
            pattern_start_time=self._clock() if start_time is None else start_time,
        )

    def clear(self) -> None:
        """Forget the active pattern; later notes validate as incorrect."""
        self._state = None

    def remaining_notes(self) -> list[int]:
        if self._state is None:
            return []
        return [m for m in self._state.pattern.expected_midi if m not in self._state.played_correct]

    def has_played(self, midi_note: int) -> bool:
        return bool(self._state and midi_note in self._state.played_correct)

    def validate_note(self, midi_note: object, timestamp: object) -> ValidationResult:
        """Judge one note-on against the active pattern.

        Never raises: malformed input or no active pattern yields an
        incorrect, incomplete result and leaves all state untouched.
        """
        start = time.perf_counter()
        state = self._state
        if state is None:
            logger.debug("Note %r with no active pattern", midi_note)
            return ValidationResult(correct=False, pattern_complete=False, response_time_ms=0.0)

        expected = list(state.pattern.expected_midi)
        if not is_valid_midi(midi_note) or not is_valid_timestamp(timestamp):
            logger.debug("Rejected malformed note input: note=%r timestamp=%r", midi_note, timestamp)
            return ValidationResult(
                correct=False,
                pattern_complete=False,
                response_time_ms=0.0,
                expected_notes=expected,
                played_notes=list(state.played_order),
            )

        note = int(midi_note)  # type: ignore[arg-type]
        response_time = float(timestamp) - state.pattern_start_time  # type: ignore[arg-type]
        state.attempts += 1
        state.played_order.append(note)

        first_wrong = False
        if state.wrong_note:
            correct = False
        elif note in state.pattern.expected_set and note not in state.played_correct:
            correct = True
            state.played_correct.add(note)
        elif note in state.played_correct:
            # Repeating an already-held note does not count, but does not poison
            correct = False
        else:
            correct = False
            first_wrong = True
            state.wrong_note = True

        self._record(correct, response_time, first_wrong)

        complete = (
            not state.wrong_note
            and state.played_correct == set(state.pattern.expected_set)
        )

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms > VALIDATION_BUDGET_MS:
            logger.warning("Slow note validation: %.3f ms", elapsed_ms)

        return ValidationResult(
            correct=correct,
            pattern_complete=complete,
            response_time_ms=response_time,
            expected_notes=expected,
            played_notes=list(state.played_order),
        )

    def _record(self, correct: bool, response_time: float, first_wrong: bool) -> None:
        self._total_notes += 1
        # Chord notes queued before the pattern advanced arrive with time <= 0
        if response_time > 0:
            self._response_time_sum += response_time
            self._timed_notes += 1
        if correct:
            self._correct_notes += 1
            self._streak += 1
            self._max_streak = max(self._max_streak, self._streak)
        elif first_wrong:
            self._streak = 0

    def metrics(self) -> PerformanceMetrics:
        total = self._total_notes
        return PerformanceMetrics(
            total_notes=total,
            correct_notes=self._correct_notes,
            accuracy=self._correct_notes / total if total else 0.0,
            average_response_time_ms=(
                self._response_time_sum / self._timed_notes if self._timed_notes else 0.0
            ),
            streak=self._streak,
            max_streak=self._max_streak,
        )

    def reset_statistics(self) -> None:
        self._total_notes = 0
        self._correct_notes = 0
        self._response_time_sum = 0.0
        self._timed_notes = 0
        self._streak = 0
        self._max_streak = 0
