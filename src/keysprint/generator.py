"""Pattern generation with pedagogical weighting and anti-repetition."""

from __future__ import annotations

import logging
import random
import time
from collections import deque
from typing import Sequence, TypeVar

from keysprint import theory
from keysprint.config import (
    GENERATION_BUDGET_MS,
    HISTORY_SIZE,
    MAX_GENERATION_ATTEMPTS,
    MIDDLE_C,
    SIMILARITY_THRESHOLD,
)
from keysprint.models import (
    DifficultyLevel,
    Pattern,
    PatternNote,
    SingleNotePattern,
    UnknownDifficultyError,
)
from keysprint.notation import inject_note_data

logger = logging.getLogger(__name__)

T = TypeVar("T")

POSITIONAL_WEIGHT = 0.7
OVERLAP_WEIGHT = 0.3


def weighted_choice(items: Sequence[tuple[T, float]], rng: random.Random) -> T:
    """Pick one item with probability proportional to its weight.

    Items with a weight of zero or less are never chosen. Raises ValueError
    when nothing with a positive weight is left.
    """
    candidates = [(item, weight) for item, weight in items if weight > 0]
    if not candidates:
        raise ValueError("weighted_choice needs at least one positive weight")
    if len(candidates) == 1:
        return candidates[0][0]

    total = sum(weight for _, weight in candidates)
    remaining = rng.random() * total
    for item, weight in candidates:
        remaining -= weight
        if remaining <= 0:
            return item
    # Float rounding can leave a sliver past the last item
    return candidates[-1][0]


def pattern_similarity(a: Pattern, b: Pattern) -> float:
    """Similarity in [0, 1]: 0.7 positional match + 0.3 set overlap."""
    if a.difficulty is not b.difficulty:
        return 0.0
    notes_a, notes_b = a.expected_midi, b.expected_midi
    if not notes_a or not notes_b:
        return 0.0

    longest = max(len(notes_a), len(notes_b))
    positional = sum(1 for x, y in zip(notes_a, notes_b) if x == y) / longest

    set_a, set_b = set(notes_a), set(notes_b)
    overlap = len(set_a & set_b) / len(set_a | set_b)
    return POSITIONAL_WEIGHT * positional + OVERLAP_WEIGHT * overlap


def fallback_pattern() -> Pattern:
    """A single middle C quarter note, served when generation fails."""
    notes = (PatternNote(midi=MIDDLE_C),)
    return SingleNotePattern(
        notes=notes,
        notation_payload=inject_note_data(DifficultyLevel.SINGLE_NOTE, notes),
        is_fallback=True,
    )


class PatternGenerator:
    """Builds single-note, interval and triad challenges.

    ``rng`` is injectable so tests can seed it. With ``strict`` set an
    unknown difficulty raises instead of degrading to the fallback pattern.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
        history_size: int = HISTORY_SIZE,
        note_weights: dict[str, float] | None = None,
        interval_weights: dict[int, float] | None = None,
        triad_weights: dict[str, float] | None = None,
        strict: bool = False,
    ) -> None:
        self.rng = rng or random.Random()
        self.similarity_threshold = similarity_threshold
        self.max_attempts = max(1, max_attempts)
        self.note_weights = dict(note_weights or {})
        self.interval_weights = {**theory.INTERVAL_WEIGHTS, **(interval_weights or {})}
        self.triad_weights = dict(triad_weights or theory.TRIAD_WEIGHTS)
        self.strict = strict
        self._history: deque[Pattern] = deque(maxlen=history_size)

    @property
    def history(self) -> list[Pattern]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def fallback_pattern(self) -> Pattern:
        return fallback_pattern()

    def generate(
        self,
        difficulty: DifficultyLevel,
        note_pool: Sequence[int] | None = None,
    ) -> Pattern:
        """Produce a pattern for ``difficulty``; never raises unless strict."""
        if not isinstance(difficulty, DifficultyLevel):
            if self.strict:
                raise UnknownDifficultyError(f"Unknown difficulty: {difficulty!r}")
            logger.error("Unknown difficulty %r, serving fallback pattern", difficulty)
            return self.fallback_pattern()

        start = time.perf_counter()
        try:
            pool = tuple(note_pool) if note_pool else theory.pool_for(difficulty)
            pattern = self._generate_distinct(difficulty, pool)
        except Exception:
            logger.exception("Pattern generation failed for %s, serving fallback", difficulty.name)
            return self.fallback_pattern()

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms > GENERATION_BUDGET_MS:
            logger.warning("Slow pattern generation: %.2f ms for %s", elapsed_ms, difficulty.name)
        self._history.append(pattern)
        return pattern

    def generate_batch(
        self,
        difficulty: DifficultyLevel,
        count: int,
        note_pool: Sequence[int] | None = None,
    ) -> list[Pattern]:
        return [self.generate(difficulty, note_pool) for _ in range(count)]

    def _generate_distinct(self, difficulty: DifficultyLevel, pool: tuple[int, ...]) -> Pattern:
        previous = self._history[-1] if self._history else None
        candidate = self._build(difficulty, pool)
        attempts = 1
        while (
            previous is not None
            and attempts < self.max_attempts
            and pattern_similarity(candidate, previous) >= self.similarity_threshold
        ):
            candidate = self._build(difficulty, pool)
            attempts += 1
        if attempts > 1:
            logger.debug("Accepted %s pattern after %d attempts", difficulty.name, attempts)
        return candidate

    def _build(self, difficulty: DifficultyLevel, pool: tuple[int, ...]) -> Pattern:
        base = self._pick_base(pool)
        if difficulty is DifficultyLevel.SINGLE_NOTE:
            midis = [base]
        elif difficulty is DifficultyLevel.INTERVAL:
            semitones = weighted_choice(list(self.interval_weights.items()), self.rng)
            midis = [base, self._derive(base, semitones, pool)]
        else:
            quality = weighted_choice(list(self.triad_weights.items()), self.rng)
            third = theory.TRIAD_THIRDS[quality]
            # Shift the root down if the fifth would leave the MIDI range
            root = base if base + theory.PERFECT_FIFTH <= 127 else base - 12
            midis = [
                root,
                self._derive(root, third, pool),
                self._derive(root, theory.PERFECT_FIFTH, pool),
            ]

        notes = tuple(PatternNote(midi=m) for m in midis)
        return Pattern.build(difficulty, notes, inject_note_data(difficulty, notes))

    def _pick_base(self, pool: tuple[int, ...]) -> int:
        weighted = [(m, theory.note_weight(m, self.note_weights)) for m in pool]
        return weighted_choice(weighted, self.rng)

    def _derive(self, base: int, semitones: int, pool: tuple[int, ...]) -> int:
        target = base + semitones
        if not 0 <= target <= 127:
            target = base - semitones
        if theory.is_chromatic(pool):
            return target
        snapped = theory.nearest_in_pool(target, pool)
        if snapped == base and len(pool) > 1:
            # Past the edge of the pool; build the interval the other way
            snapped = theory.nearest_in_pool(base - semitones, pool)
        return snapped
