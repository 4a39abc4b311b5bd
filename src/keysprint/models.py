"""Core data models shared across the engine."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar


class UnknownDifficultyError(ValueError):
    """Raised when a difficulty value names no known level."""


class PatternConstructionError(ValueError):
    """Raised when a pattern or note would break the data-model invariants."""


class DifficultyLevel(Enum):
    SINGLE_NOTE = "single_note"
    INTERVAL = "interval"
    TRIAD = "triad"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    @property
    def note_count(self) -> int:
        return self.rank + 1

    @property
    def label(self) -> str:
        return _LABELS[self]

    def next_level(self) -> DifficultyLevel | None:
        """The next tier up, or None at the top."""
        idx = self.rank + 1
        return _ORDER[idx] if idx < len(_ORDER) else None

    @classmethod
    def parse(cls, value: DifficultyLevel | str) -> DifficultyLevel:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _ALIASES:
                return _ALIASES[key]
        raise UnknownDifficultyError(f"Unknown difficulty: {value!r}")


_ORDER = (DifficultyLevel.SINGLE_NOTE, DifficultyLevel.INTERVAL, DifficultyLevel.TRIAD)

_LABELS = {
    DifficultyLevel.SINGLE_NOTE: "single notes",
    DifficultyLevel.INTERVAL: "intervals",
    DifficultyLevel.TRIAD: "triads",
}

# Names, values and the older easy/medium/hard vocabulary
_ALIASES: dict[str, DifficultyLevel] = {
    **{level.name.lower(): level for level in DifficultyLevel},
    **{level.value: level for level in DifficultyLevel},
    "single_notes": DifficultyLevel.SINGLE_NOTE,
    "intervals": DifficultyLevel.INTERVAL,
    "basic_triads": DifficultyLevel.TRIAD,
    "triads": DifficultyLevel.TRIAD,
    "easy": DifficultyLevel.SINGLE_NOTE,
    "medium": DifficultyLevel.INTERVAL,
    "hard": DifficultyLevel.TRIAD,
}


@dataclass(frozen=True)
class PatternNote:
    midi: int  # MIDI note number 0-127
    duration_beats: float = 1.0  # quarter note
    start_offset_beats: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.midi, bool) or not isinstance(self.midi, int) or not 0 <= self.midi <= 127:
            raise PatternConstructionError(f"MIDI note out of range: {self.midi!r}")
        if not self.duration_beats > 0:
            raise PatternConstructionError(f"Duration must be positive: {self.duration_beats!r}")
        if not self.start_offset_beats >= 0:
            raise PatternConstructionError(f"Start offset must be >= 0: {self.start_offset_beats!r}")


@dataclass(frozen=True)
class Pattern:
    """A short challenge the player must reproduce.

    Use one of the per-difficulty subclasses, or ``Pattern.build`` to pick
    the right one. The note count is checked on construction so a pattern
    of the wrong shape can never reach the queue.
    """

    notes: tuple[PatternNote, ...]
    notation_payload: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    is_fallback: bool = False

    difficulty: ClassVar[DifficultyLevel]

    def __post_init__(self) -> None:
        if type(self) is Pattern:
            raise PatternConstructionError("Pattern is abstract, use Pattern.build")
        object.__setattr__(self, "notes", tuple(self.notes))
        expected = self.difficulty.note_count
        if len(self.notes) != expected:
            raise PatternConstructionError(
                f"{self.difficulty.name} pattern needs {expected} notes, got {len(self.notes)}"
            )

    @property
    def expected_midi(self) -> tuple[int, ...]:
        return tuple(n.midi for n in self.notes)

    @property
    def expected_set(self) -> frozenset[int]:
        return frozenset(n.midi for n in self.notes)

    @staticmethod
    def build(
        difficulty: DifficultyLevel,
        notes: list[PatternNote] | tuple[PatternNote, ...],
        notation_payload: str = "",
        is_fallback: bool = False,
    ) -> Pattern:
        try:
            cls = PATTERN_TYPES[difficulty]
        except KeyError:
            raise UnknownDifficultyError(f"Unknown difficulty: {difficulty!r}") from None
        return cls(notes=tuple(notes), notation_payload=notation_payload, is_fallback=is_fallback)


@dataclass(frozen=True)
class SingleNotePattern(Pattern):
    difficulty: ClassVar[DifficultyLevel] = DifficultyLevel.SINGLE_NOTE


@dataclass(frozen=True)
class IntervalPattern(Pattern):
    difficulty: ClassVar[DifficultyLevel] = DifficultyLevel.INTERVAL


@dataclass(frozen=True)
class TriadPattern(Pattern):
    difficulty: ClassVar[DifficultyLevel] = DifficultyLevel.TRIAD


PATTERN_TYPES: dict[DifficultyLevel, type[Pattern]] = {
    DifficultyLevel.SINGLE_NOTE: SingleNotePattern,
    DifficultyLevel.INTERVAL: IntervalPattern,
    DifficultyLevel.TRIAD: TriadPattern,
}


@dataclass
class ValidationResult:
    correct: bool
    pattern_complete: bool
    response_time_ms: float
    expected_notes: list[int] = field(default_factory=list)
    played_notes: list[int] = field(default_factory=list)


@dataclass
class PerformanceMetrics:
    """Running note-level performance, fed to the difficulty controller."""

    total_notes: int = 0
    correct_notes: int = 0
    accuracy: float = 0.0
    average_response_time_ms: float = 0.0
    streak: int = 0
    max_streak: int = 0


@dataclass
class PatternAttempt:
    """One finished (or failed) pass at a pattern, as recorded by analytics."""

    pattern_id: str
    difficulty: DifficultyLevel
    correct: bool
    midi_notes: list[int]
    attempt_time_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class NoteMetric:
    midi: int
    attempts: int = 0
    correct: int = 0
    accuracy: float = 0.0
    average_time_ms: float = 0.0
    fastest_time_ms: float | None = None


@dataclass
class PatternMetric:
    pattern_id: str
    difficulty: DifficultyLevel
    attempts: int = 0
    correct: int = 0
    accuracy: float = 0.0
    average_time_ms: float = 0.0
    best_time_ms: float | None = None
    worst_time_ms: float = 0.0
    last_attempt: float = 0.0


@dataclass
class DifficultyMetric:
    difficulty: DifficultyLevel
    attempts: int = 0
    correct: int = 0
    accuracy: float = 0.0
    average_time_ms: float = 0.0


@dataclass
class PatternProgress:
    pattern_id: str
    attempts: int
    accuracy_improvement: float
    time_improvement: float
    improving: bool
    plateau: bool


@dataclass
class SessionSummary:
    session_duration_ms: float
    total_patterns: int
    unique_patterns: int
    overall_accuracy: float
    average_response_time_ms: float
    difficulty_breakdown: dict[DifficultyLevel, DifficultyMetric] = field(default_factory=dict)
    strengths: list[DifficultyLevel] = field(default_factory=list)
    weaknesses: list[DifficultyLevel] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class QueueStatistics:
    current_size: int
    capacity: int
    difficulty: DifficultyLevel | None
    total_generated: int
    total_consumed: int
    average_generation_time_ms: float
    last_refill_time: float | None


@dataclass
class SessionRecord:
    """Flat persistence record for one practice session."""

    session_id: str
    started_at: float
    duration_ms: float
    total_patterns: int
    correct_patterns: int
    accuracy: float
    average_response_time_ms: float
    note_metrics: dict[int, NoteMetric] = field(default_factory=dict)
    attempts: list[PatternAttempt] = field(default_factory=list)
    fastest_time_ms: float | None = None
    slowest_time_ms: float | None = None
