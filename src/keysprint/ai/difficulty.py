"""Adaptive difficulty: when to move the player up a tier."""

from __future__ import annotations

from keysprint.config import ADAPT_ACCURACY, ADAPT_MIN_NOTES, ADAPT_RESPONSE_MS, ADAPT_STREAK
from keysprint.models import DifficultyLevel, PerformanceMetrics
from keysprint.theory import PoolTier

# (tier, minimum accuracy, minimum session time in ms), easiest first
_POOL_TIERS: tuple[tuple[PoolTier, float, float], ...] = (
    (PoolTier.BEGINNER, 0.0, 0.0),
    (PoolTier.INTERMEDIATE, 0.8, 60_000.0),
    (PoolTier.ADVANCED, 0.85, 180_000.0),
)
_TIER_ORDER = [tier for tier, _, _ in _POOL_TIERS]


def _ready_to_advance(metrics: PerformanceMetrics) -> bool:
    return (
        metrics.accuracy >= ADAPT_ACCURACY
        and metrics.average_response_time_ms <= ADAPT_RESPONSE_MS
        and metrics.streak >= ADAPT_STREAK
    )


def next_difficulty(
    current: DifficultyLevel,
    metrics: PerformanceMetrics,
    adaptive_enabled: bool,
) -> DifficultyLevel:
    """Return the difficulty to use next; at most one tier above ``current``.

    Never moves down and never past the hardest tier.
    """
    if not adaptive_enabled or metrics.total_notes < ADAPT_MIN_NOTES:
        return current
    if not _ready_to_advance(metrics):
        return current
    return current.next_level() or current


def select_pool_tier(
    accuracy: float,
    session_duration_ms: float,
    current: PoolTier = PoolTier.BEGINNER,
) -> PoolTier:
    """Widest note pool the player has earned, never narrower than ``current``."""
    earned = PoolTier.BEGINNER
    for tier, min_accuracy, min_duration in _POOL_TIERS:
        if accuracy >= min_accuracy and session_duration_ms >= min_duration:
            earned = tier
    if _TIER_ORDER.index(earned) < _TIER_ORDER.index(current):
        return current
    return earned
