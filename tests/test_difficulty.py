"""Tests for adaptive difficulty and note-pool progression."""

import pytest

from keysprint.ai.difficulty import next_difficulty, select_pool_tier
from keysprint.models import DifficultyLevel, PerformanceMetrics
from keysprint.theory import PoolTier


def _metrics(total=20, accuracy=0.9, response=100.0, streak=12):
    return PerformanceMetrics(
        total_notes=total,
        correct_notes=int(total * accuracy),
        accuracy=accuracy,
        average_response_time_ms=response,
        streak=streak,
        max_streak=streak,
    )


def test_strong_play_moves_up_one_tier():
    assert next_difficulty(DifficultyLevel.SINGLE_NOTE, _metrics(), True) is DifficultyLevel.INTERVAL
    assert next_difficulty(DifficultyLevel.INTERVAL, _metrics(), True) is DifficultyLevel.TRIAD


def test_top_tier_stays_put():
    assert next_difficulty(DifficultyLevel.TRIAD, _metrics(), True) is DifficultyLevel.TRIAD


def test_disabled_or_too_few_notes_keeps_current():
    assert next_difficulty(DifficultyLevel.SINGLE_NOTE, _metrics(), False) is DifficultyLevel.SINGLE_NOTE
    assert next_difficulty(DifficultyLevel.SINGLE_NOTE, _metrics(total=9), True) is DifficultyLevel.SINGLE_NOTE


@pytest.mark.parametrize("kwargs", [
    {"accuracy": 0.84},
    {"response": 121.0},
    {"streak": 9},
])
def test_every_threshold_must_hold(kwargs):
    assert next_difficulty(DifficultyLevel.INTERVAL, _metrics(**kwargs), True) is DifficultyLevel.INTERVAL


def test_never_moves_down():
    terrible = _metrics(accuracy=0.0, response=5000.0, streak=0)
    for level in DifficultyLevel:
        assert next_difficulty(level, terrible, True) is level


def test_pool_tier_unlocks_with_accuracy_and_time():
    assert select_pool_tier(0.95, 30_000.0) is PoolTier.BEGINNER
    assert select_pool_tier(0.8, 60_000.0) is PoolTier.INTERMEDIATE
    assert select_pool_tier(0.84, 200_000.0) is PoolTier.INTERMEDIATE
    assert select_pool_tier(0.9, 180_000.0) is PoolTier.ADVANCED


def test_pool_tier_never_narrows():
    assert select_pool_tier(0.1, 1000.0, PoolTier.ADVANCED) is PoolTier.ADVANCED
