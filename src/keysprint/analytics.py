"""Session analytics: per-pattern, per-note and per-difficulty aggregates.

Tracking is O(1) per attempt. Session-level figures come from running sums
so a summary never rescans the attempt history.
"""

from __future__ import annotations

import logging
import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from keysprint.ai.recommendations import (
    generate_recommendations,
    identify_strengths,
    identify_weaknesses,
)
from keysprint.config import (
    ANALYTICS_EXPORT_VERSION,
    IMPROVEMENT_THRESHOLD,
    PLATEAU_ACCURACY_BAND,
    PLATEAU_CV_THRESHOLD,
    PLATEAU_FIFTY_BAND,
    PLATEAU_WINDOW,
    SLOW_PATTERN_MS,
    SUMMARY_BUDGET_MS,
    TRACKING_BUDGET_MS,
)
from keysprint.models import (
    DifficultyLevel,
    DifficultyMetric,
    NoteMetric,
    PatternAttempt,
    PatternMetric,
    PatternProgress,
    SessionRecord,
    SessionSummary,
)

logger = logging.getLogger(__name__)


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


@dataclass
class _PatternData:
    metric: PatternMetric
    total_time: float = 0.0
    attempts: list[PatternAttempt] = field(default_factory=list)


@dataclass
class _DifficultyData:
    metric: DifficultyMetric
    total_time: float = 0.0


class SessionAnalytics:
    """Aggregates pattern attempts for one practice session."""

    def __init__(
        self,
        clock: Callable[[], float] | None = None,
        plateau_cv_threshold: float = PLATEAU_CV_THRESHOLD,
        plateau_accuracy_band: float = PLATEAU_ACCURACY_BAND,
        plateau_fifty_band: float = PLATEAU_FIFTY_BAND,
    ) -> None:
        self._clock = clock or _wall_clock_ms
        self.plateau_cv_threshold = plateau_cv_threshold
        self.plateau_accuracy_band = plateau_accuracy_band
        self.plateau_fifty_band = plateau_fifty_band
        self.reset_session()

    def reset_session(self) -> None:
        self.session_start = self._clock()
        self._patterns: dict[str, _PatternData] = {}
        self._notes: dict[int, NoteMetric] = {}
        self._difficulties: dict[DifficultyLevel, _DifficultyData] = {
            level: _DifficultyData(DifficultyMetric(level)) for level in DifficultyLevel
        }
        self._total_attempts = 0
        self._total_correct = 0
        self._total_time = 0.0

    def track(self, attempt: PatternAttempt) -> None:
        """Fold one attempt into every aggregate."""
        start = time.perf_counter()
        t = attempt.attempt_time_ms

        data = self._patterns.get(attempt.pattern_id)
        if data is None:
            data = _PatternData(PatternMetric(attempt.pattern_id, attempt.difficulty))
            self._patterns[attempt.pattern_id] = data
        pm = data.metric
        pm.attempts += 1
        pm.correct += int(attempt.correct)
        pm.accuracy = pm.correct / pm.attempts
        data.total_time += t
        pm.average_time_ms = round(data.total_time / pm.attempts, 2)
        pm.best_time_ms = t if pm.best_time_ms is None else min(pm.best_time_ms, t)
        pm.worst_time_ms = max(pm.worst_time_ms, t)
        pm.last_attempt = attempt.timestamp
        data.attempts.append(attempt)

        for midi in attempt.midi_notes:
            note = self._notes.get(midi)
            if note is None:
                note = self._notes[midi] = NoteMetric(midi)
            note.attempts += 1
            note.correct += int(attempt.correct)
            note.accuracy = note.correct / note.attempts
            note.average_time_ms += (t - note.average_time_ms) / note.attempts
            if attempt.correct and (note.fastest_time_ms is None or t < note.fastest_time_ms):
                note.fastest_time_ms = t

        dd = self._difficulties[attempt.difficulty]
        dm = dd.metric
        dm.attempts += 1
        dm.correct += int(attempt.correct)
        dm.accuracy = dm.correct / dm.attempts
        dd.total_time += t
        dm.average_time_ms = dd.total_time / dm.attempts

        self._total_attempts += 1
        self._total_correct += int(attempt.correct)
        self._total_time += t

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms > TRACKING_BUDGET_MS:
            logger.warning("Slow analytics tracking: %.3f ms", elapsed_ms)

    def get_session_summary(self) -> SessionSummary:
        start = time.perf_counter()
        breakdown = self.difficulty_breakdown()
        overall = _ratio(self._total_correct, self._total_attempts)
        strengths = identify_strengths(breakdown)
        weaknesses = identify_weaknesses(breakdown)
        summary = SessionSummary(
            session_duration_ms=self._clock() - self.session_start,
            total_patterns=self._total_attempts,
            unique_patterns=len(self._patterns),
            overall_accuracy=overall,
            average_response_time_ms=_ratio(self._total_time, self._total_attempts),
            difficulty_breakdown=breakdown,
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=generate_recommendations(strengths, weaknesses, overall, breakdown),
        )
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms > SUMMARY_BUDGET_MS:
            logger.warning("Slow session summary: %.2f ms", elapsed_ms)
        return summary

    def difficulty_breakdown(self) -> dict[DifficultyLevel, DifficultyMetric]:
        return {level: DifficultyMetric(**vars(d.metric)) for level, d in self._difficulties.items()}

    def difficulty_metrics(self, level: DifficultyLevel) -> DifficultyMetric:
        return DifficultyMetric(**vars(self._difficulties[level].metric))

    def pattern_metrics(self, pattern_id: str) -> PatternMetric | None:
        data = self._patterns.get(pattern_id)
        return PatternMetric(**vars(data.metric)) if data else None

    def note_metrics(self) -> dict[int, NoteMetric]:
        return {midi: NoteMetric(**vars(m)) for midi, m in self._notes.items()}

    def get_pattern_progress(self, pattern_id: str) -> PatternProgress | None:
        """Compare the older and newer halves of a pattern's attempts."""
        data = self._patterns.get(pattern_id)
        if data is None or not data.attempts:
            return None
        attempts = data.attempts
        n = len(attempts)
        half = max(1, n // 2)
        older, newer = attempts[:half], attempts[half:]

        def accuracy(items: list[PatternAttempt]) -> float:
            return _ratio(sum(1 for a in items if a.correct), len(items))

        def mean_time(items: list[PatternAttempt]) -> float:
            return _ratio(sum(a.attempt_time_ms for a in items), len(items))

        if newer:
            accuracy_delta = accuracy(newer) - accuracy(older)
            old_time, new_time = mean_time(older), mean_time(newer)
            time_improvement = _ratio(old_time - new_time, old_time)
        else:
            accuracy_delta = 0.0
            time_improvement = 0.0

        improving = accuracy_delta > IMPROVEMENT_THRESHOLD or time_improvement > IMPROVEMENT_THRESHOLD
        return PatternProgress(
            pattern_id=pattern_id,
            attempts=n,
            accuracy_improvement=accuracy_delta,
            time_improvement=time_improvement,
            improving=improving,
            plateau=self._is_plateau(attempts, accuracy_delta, data.metric.accuracy),
        )

    def _is_plateau(self, attempts: list[PatternAttempt], accuracy_delta: float, overall: float) -> bool:
        if len(attempts) < PLATEAU_WINDOW:
            return False
        recent = [a.attempt_time_ms for a in attempts[-PLATEAU_WINDOW:]]
        mean = statistics.fmean(recent)
        if mean <= 0:
            return False
        cv = statistics.stdev(recent) / mean
        if cv >= self.plateau_cv_threshold:
            return False
        # Flat times with flat accuracy, or stuck near coin-flip accuracy
        return (
            abs(accuracy_delta) < self.plateau_accuracy_band
            or abs(overall - 0.5) <= self.plateau_fifty_band
        )

    def get_problem_patterns(self, threshold: float = 0.5) -> list[PatternMetric]:
        found = [
            PatternMetric(**vars(d.metric)) for d in self._patterns.values()
            if d.metric.attempts >= 2 and d.metric.accuracy < threshold
        ]
        return sorted(found, key=lambda m: m.accuracy)

    def get_slow_patterns(self, threshold_ms: float = SLOW_PATTERN_MS) -> list[PatternMetric]:
        found = [
            PatternMetric(**vars(d.metric)) for d in self._patterns.values()
            if d.metric.average_time_ms > threshold_ms
        ]
        return sorted(found, key=lambda m: m.average_time_ms, reverse=True)

    def get_problematic_notes(self, threshold: float = 0.5) -> list[NoteMetric]:
        found = [
            NoteMetric(**vars(m)) for m in self._notes.values()
            if m.attempts >= 3 and m.accuracy < threshold
        ]
        return sorted(found, key=lambda m: m.accuracy)

    def clear_pattern_data(self, pattern_id: str | None = None) -> None:
        """Drop per-pattern history, for one pattern or all of them.

        Session totals and note/difficulty aggregates are left as they are.
        """
        if pattern_id is None:
            self._patterns.clear()
        else:
            self._patterns.pop(pattern_id, None)

    def export_data(self) -> dict[str, Any]:
        """JSON-safe snapshot; ``import_data`` on a fresh instance restores it."""
        return {
            "version": ANALYTICS_EXPORT_VERSION,
            "session_start": self.session_start,
            "exported_at": self._clock(),
            "totals": {
                "attempts": self._total_attempts,
                "correct": self._total_correct,
                "time_ms": self._total_time,
            },
            "patterns": {
                pid: {
                    "metric": _metric_to_dict(d.metric),
                    "total_time": d.total_time,
                    "attempts": [_attempt_to_dict(a) for a in d.attempts],
                }
                for pid, d in self._patterns.items()
            },
            "notes": {str(midi): vars(m).copy() for midi, m in self._notes.items()},
            "difficulties": {
                level.value: {"metric": _metric_to_dict(d.metric), "total_time": d.total_time}
                for level, d in self._difficulties.items()
            },
        }

    def import_data(self, data: dict[str, Any]) -> None:
        """Replace all state with an ``export_data`` snapshot.

        Raises ValueError (or KeyError) on a malformed snapshot, leaving the
        current state untouched.
        """
        version = data.get("version")
        if version != ANALYTICS_EXPORT_VERSION:
            logger.warning("Importing analytics version %s, expected %s", version, ANALYTICS_EXPORT_VERSION)

        patterns = {
            pid: _PatternData(
                metric=_metric_from_dict(PatternMetric, raw["metric"]),
                total_time=float(raw["total_time"]),
                attempts=[_attempt_from_dict(a) for a in raw["attempts"]],
            )
            for pid, raw in data["patterns"].items()
        }
        notes = {int(midi): NoteMetric(**raw) for midi, raw in data["notes"].items()}
        difficulties = {
            level: _DifficultyData(DifficultyMetric(level)) for level in DifficultyLevel
        }
        for value, raw in data["difficulties"].items():
            level = DifficultyLevel.parse(value)
            difficulties[level] = _DifficultyData(
                metric=_metric_from_dict(DifficultyMetric, raw["metric"]),
                total_time=float(raw["total_time"]),
            )
        totals = data["totals"]

        self.session_start = float(data["session_start"])
        self._patterns = patterns
        self._notes = notes
        self._difficulties = difficulties
        self._total_attempts = int(totals["attempts"])
        self._total_correct = int(totals["correct"])
        self._total_time = float(totals["time_ms"])

    def build_session_record(self, session_id: str) -> SessionRecord:
        attempts = [a for d in self._patterns.values() for a in d.attempts]
        times = [a.attempt_time_ms for a in attempts]
        return SessionRecord(
            session_id=session_id,
            started_at=self.session_start,
            duration_ms=self._clock() - self.session_start,
            total_patterns=self._total_attempts,
            correct_patterns=self._total_correct,
            accuracy=_ratio(self._total_correct, self._total_attempts),
            average_response_time_ms=_ratio(self._total_time, self._total_attempts),
            note_metrics=self.note_metrics(),
            attempts=sorted(attempts, key=lambda a: a.timestamp),
            fastest_time_ms=min(times) if times else None,
            slowest_time_ms=max(times) if times else None,
        )


def _metric_to_dict(metric: PatternMetric | DifficultyMetric) -> dict[str, Any]:
    raw = vars(metric).copy()
    raw["difficulty"] = metric.difficulty.value
    return raw


def _metric_from_dict(cls: type, raw: dict[str, Any]) -> Any:
    fields = dict(raw)
    fields["difficulty"] = DifficultyLevel.parse(fields["difficulty"])
    return cls(**fields)


def _attempt_to_dict(attempt: PatternAttempt) -> dict[str, Any]:
    raw = vars(attempt).copy()
    raw["difficulty"] = attempt.difficulty.value
    raw["midi_notes"] = list(attempt.midi_notes)
    return raw


def _attempt_from_dict(raw: dict[str, Any]) -> PatternAttempt:
    fields = dict(raw)
    fields["difficulty"] = DifficultyLevel.parse(fields["difficulty"])
    return PatternAttempt(**fields)
