"""Global constants and engine settings."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS = 60
WINDOW_TITLE = "KeySprint"

# Rendered keyboard range: C3 .. C7, room for an octave above the widest pool
MIDI_NOTE_MIN = 48
MIDI_NOTE_MAX = 96

MIDDLE_C = 60

# Pattern queue
QUEUE_CAPACITY = 10
REFILL_THRESHOLD = 5
GENERATION_STATS_WINDOW = 100  # generation times kept for the rolling mean
IDLE_SLICE_BUDGET_MS = 8.0  # slice length when no native idle time exists
IDLE_TIMER_DELAY_S = 0.016

# Pattern generator
SIMILARITY_THRESHOLD = 0.7
MAX_GENERATION_ATTEMPTS = 10
HISTORY_SIZE = 5

# Timing contracts (milliseconds), breaches are logged
GENERATION_BUDGET_MS = 5.0
VALIDATION_BUDGET_MS = 1.0
TRACKING_BUDGET_MS = 1.0
SUMMARY_BUDGET_MS = 10.0

# Analytics
PLATEAU_WINDOW = 5
PLATEAU_CV_THRESHOLD = 0.1
PLATEAU_ACCURACY_BAND = 0.15
PLATEAU_FIFTY_BAND = 0.1
IMPROVEMENT_THRESHOLD = 0.1
STRENGTH_MIN_ATTEMPTS = 5
STRENGTH_ACCURACY = 0.7
WEAKNESS_ACCURACY = 0.5
SLOW_PATTERN_MS = 2000.0
ANALYTICS_EXPORT_VERSION = "1.0.0"

# Adaptive difficulty
ADAPT_MIN_NOTES = 10
ADAPT_ACCURACY = 0.85
ADAPT_RESPONSE_MS = 120.0
ADAPT_STREAK = 10

COMPLETION_HISTORY = 5  # completion times in the rolling average

DEFAULT_SETTINGS_PATH = Path.home() / ".keysprint" / "settings.json"


class SettingsError(ValueError):
    """Raised when engine settings hold values the engine cannot run with."""


@dataclass
class EngineSettings:
    starting_difficulty: str = "SINGLE_NOTE"
    adaptive_difficulty: bool = True
    queue_capacity: int = QUEUE_CAPACITY
    refill_threshold: int = REFILL_THRESHOLD
    similarity_threshold: float = SIMILARITY_THRESHOLD
    note_weights: dict[str, float] = field(default_factory=dict)  # pitch class -> weight override
    interval_weights: dict[str, float] = field(default_factory=dict)  # semitones -> weight override
    plateau_cv_threshold: float = PLATEAU_CV_THRESHOLD
    plateau_accuracy_band: float = PLATEAU_ACCURACY_BAND
    plateau_fifty_band: float = PLATEAU_FIFTY_BAND
    progressive_pool: bool = True
    advance_on_failure: bool = False
    strict: bool = False

    def validated(self) -> EngineSettings:
        """Return self, raising SettingsError on values the engine rejects."""
        if self.queue_capacity < 1:
            raise SettingsError(f"queue_capacity must be >= 1, got {self.queue_capacity}")
        if not 0 <= self.refill_threshold <= self.queue_capacity:
            raise SettingsError(
                f"refill_threshold must be within 0..{self.queue_capacity}, got {self.refill_threshold}"
            )
        if not 0.0 < self.similarity_threshold <= 1.0:
            raise SettingsError(
                f"similarity_threshold must be within (0, 1], got {self.similarity_threshold}"
            )
        for name, weight in {**self.note_weights, **self.interval_weights}.items():
            if weight < 0:
                raise SettingsError(f"weight for {name!r} must not be negative")
        for key in self.interval_weights:
            try:
                int(key)
            except (TypeError, ValueError):
                raise SettingsError(f"interval weight key {key!r} is not a semitone count") from None
        return self

    def interval_weight_table(self) -> dict[int, float]:
        return {int(k): float(v) for k, v in self.interval_weights.items()}


def load_settings(path: Path = DEFAULT_SETTINGS_PATH) -> EngineSettings:
    """Load engine settings from disk, returning defaults if absent or invalid."""
    if not path.exists():
        return EngineSettings()
    try:
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            raise SettingsError(f"expected a JSON object, got {type(data).__name__}")
        engine = data.get("engine", {})
        settings = EngineSettings(**{
            k: v for k, v in engine.items()
            if k in EngineSettings.__dataclass_fields__
        })
        return settings.validated()
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Ignoring invalid settings in %s: %s", path, exc)
        return EngineSettings()


def save_settings(settings: EngineSettings, path: Path = DEFAULT_SETTINGS_PATH) -> None:
    """Persist engine settings, keeping any other sections of the file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data: dict = {}
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except ValueError:
            logger.warning("Overwriting unreadable settings file %s", path)
    data["engine"] = asdict(settings)
    path.write_text(json.dumps(data, indent=2))
