"""Note pools, spellings and the pedagogical weight tables."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from keysprint.models import DifficultyLevel


class PoolTier(Enum):
    BEGINNER = "beginner"  # white keys
    INTERMEDIATE = "intermediate"  # plus the common black keys
    ADVANCED = "advanced"  # full chromatic


@dataclass(frozen=True)
class Spelling:
    step: str  # note letter A-G
    alter: int  # -1 flat, 0 natural, 1 sharp
    octave: int

    @property
    def name(self) -> str:
        accidental = {-1: "b", 0: "", 1: "#"}[self.alter]
        return f"{self.step}{accidental}{self.octave}"

    @property
    def pitch_class(self) -> str:
        return self.name.rstrip("-0123456789")


# Black keys take the spelling a beginner sees first in C major context
_PITCH_CLASS_SPELLING: tuple[tuple[str, int], ...] = (
    ("C", 0), ("C", 1), ("D", 0), ("E", -1), ("E", 0), ("F", 0),
    ("F", 1), ("G", 0), ("G", 1), ("A", 0), ("B", -1), ("B", 0),
)

_WHITE_OFFSETS = (0, 2, 4, 5, 7, 9, 11)


def spell(midi: int) -> Spelling:
    """Letter, accidental and scientific octave for a MIDI note (60 = C4)."""
    step, alter = _PITCH_CLASS_SPELLING[midi % 12]
    return Spelling(step=step, alter=alter, octave=midi // 12 - 1)


def note_name(midi: int) -> str:
    return spell(midi).name


def is_white_key(midi: int) -> bool:
    return midi % 12 in _WHITE_OFFSETS


def _white_keys(low: int, high: int) -> tuple[int, ...]:
    return tuple(m for m in range(low, high + 1) if is_white_key(m))


# C4 .. B5
WHITE_KEYS = _white_keys(60, 83)
COMMON_BLACK_KEYS = tuple(sorted(WHITE_KEYS + (63, 66, 70, 75, 78, 82)))  # Eb, F#, Bb
CHROMATIC = tuple(range(60, 84))

# Intervals and triads reach further: C3 .. C6
EXTENDED_WHITE_KEYS = _white_keys(48, 84)
EXTENDED_COMMON_BLACK_KEYS = tuple(sorted(
    EXTENDED_WHITE_KEYS + tuple(m for m in range(48, 85) if m % 12 in (3, 6, 10))
))
EXTENDED_CHROMATIC = tuple(range(48, 85))

_POOLS: dict[tuple[PoolTier, bool], tuple[int, ...]] = {
    (PoolTier.BEGINNER, False): WHITE_KEYS,
    (PoolTier.INTERMEDIATE, False): COMMON_BLACK_KEYS,
    (PoolTier.ADVANCED, False): CHROMATIC,
    (PoolTier.BEGINNER, True): EXTENDED_WHITE_KEYS,
    (PoolTier.INTERMEDIATE, True): EXTENDED_COMMON_BLACK_KEYS,
    (PoolTier.ADVANCED, True): EXTENDED_CHROMATIC,
}


def pool_for(difficulty: DifficultyLevel, tier: PoolTier = PoolTier.BEGINNER) -> tuple[int, ...]:
    """Candidate MIDI notes for a difficulty at a progression tier."""
    extended = difficulty is not DifficultyLevel.SINGLE_NOTE
    return _POOLS[(tier, extended)]


def is_chromatic(pool: tuple[int, ...] | list[int]) -> bool:
    """True when the pool covers every semitone between its extremes."""
    if not pool:
        return False
    notes = set(pool)
    return len(notes) == max(notes) - min(notes) + 1


# Tonic first, leading tone last
NOTE_WEIGHTS: dict[str, float] = {
    "C": 30,
    "G": 25,
    "E": 20,
    "F": 15,
    "D": 10,
    "A": 8,
    "B": 5,
}
DEFAULT_NOTE_WEIGHT = 10.0

SCALE_DEGREES: dict[str, str] = {
    "C": "tonic",
    "D": "supertonic",
    "E": "mediant",
    "F": "subdominant",
    "G": "dominant",
    "A": "submediant",
    "B": "leading-tone",
}

# Semitones -> weight; perfect fifth most common
INTERVAL_WEIGHTS: dict[int, float] = {
    7: 30,
    4: 25,
    3: 20,
    5: 15,
    12: 10,
}

INTERVAL_NAMES: dict[int, str] = {
    3: "minor3rd",
    4: "major3rd",
    5: "perfect4th",
    7: "perfect5th",
    12: "octave",
}

MAJOR_THIRD = 4
MINOR_THIRD = 3
PERFECT_FIFTH = 7

TRIAD_WEIGHTS: dict[str, float] = {
    "major": 50,
    "minor": 50,
}
TRIAD_THIRDS = {"major": MAJOR_THIRD, "minor": MINOR_THIRD}


def note_weight(midi: int, overrides: dict[str, float] | None = None) -> float:
    pitch_class = spell(midi).pitch_class
    if overrides and pitch_class in overrides:
        return float(overrides[pitch_class])
    return float(NOTE_WEIGHTS.get(pitch_class, DEFAULT_NOTE_WEIGHT))


def scale_degree(midi: int) -> str:
    return SCALE_DEGREES.get(spell(midi).pitch_class, "chromatic")


def identify_interval(a: int, b: int) -> str:
    distance = abs(b - a)
    return INTERVAL_NAMES.get(distance, f"interval_{distance}")


def nearest_in_pool(midi: int, pool: tuple[int, ...] | list[int]) -> int:
    """Closest pool member, the lower one on a tie."""
    return min(pool, key=lambda m: (abs(m - midi), m))
