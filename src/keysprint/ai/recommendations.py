"""Strength/weakness classification and practice recommendations."""

from __future__ import annotations

from keysprint.config import STRENGTH_ACCURACY, STRENGTH_MIN_ATTEMPTS, WEAKNESS_ACCURACY
from keysprint.models import DifficultyLevel, DifficultyMetric

ESCALATION_ACCURACY = 0.9
ESCALATION_MIN_ATTEMPTS = 10
LOW_ACCURACY = 0.5

_WEAKNESS_ADVICE: dict[DifficultyLevel, tuple[str, ...]] = {
    DifficultyLevel.TRIAD: (
        "Practice triads at a slower tempo to improve accuracy",
        "Focus on individual chord tones before attempting full triads",
    ),
    DifficultyLevel.INTERVAL: (
        "Practice intervals with visual cues enabled",
        "Start with smaller intervals (3rds and 4ths) before larger ones",
    ),
    DifficultyLevel.SINGLE_NOTE: (
        "Slow down and focus on accuracy over speed",
        "Practice with a metronome to improve timing",
    ),
}

_TIPS: dict[DifficultyLevel, tuple[str, ...]] = {
    DifficultyLevel.SINGLE_NOTE: (
        "Keep your hand in a relaxed five-finger position around middle C",
        "Say the note name out loud as you play it",
        "Find C, F and G first and navigate from those landmarks",
    ),
    DifficultyLevel.INTERVAL: (
        "Read the lower note first, then count the lines and spaces up",
        "Thirds sit on adjacent lines or adjacent spaces",
        "Fifths span one hand position, with thumb and little finger",
    ),
    DifficultyLevel.TRIAD: (
        "Triads in root position stack neatly on all lines or all spaces",
        "Use fingers 1, 3 and 5 for root position triads",
        "Name the root first, then decide major or minor from the middle note",
    ),
}


def _qualifies(metric: DifficultyMetric) -> bool:
    return metric.attempts >= STRENGTH_MIN_ATTEMPTS


def identify_strengths(metrics: dict[DifficultyLevel, DifficultyMetric]) -> list[DifficultyLevel]:
    return [
        level for level in DifficultyLevel
        if level in metrics and _qualifies(metrics[level])
        and metrics[level].accuracy >= STRENGTH_ACCURACY
    ]


def identify_weaknesses(metrics: dict[DifficultyLevel, DifficultyMetric]) -> list[DifficultyLevel]:
    return [
        level for level in DifficultyLevel
        if level in metrics and _qualifies(metrics[level])
        and metrics[level].accuracy < WEAKNESS_ACCURACY
    ]


def generate_recommendations(
    strengths: list[DifficultyLevel],
    weaknesses: list[DifficultyLevel],
    overall_accuracy: float,
    metrics: dict[DifficultyLevel, DifficultyMetric],
) -> list[str]:
    """Ordered advice: weaknesses hardest first, then accuracy, praise, escalation."""
    recommendations: list[str] = []

    for level in (DifficultyLevel.TRIAD, DifficultyLevel.INTERVAL, DifficultyLevel.SINGLE_NOTE):
        if level in weaknesses:
            recommendations.extend(_WEAKNESS_ADVICE[level])

    if overall_accuracy < LOW_ACCURACY:
        recommendations.append("Reduce tempo to improve accuracy")
        recommendations.append("Consider practicing with easier patterns first")

    if strengths and not weaknesses:
        names = ", ".join(level.label for level in strengths)
        recommendations.append(f"Great job on {names}! Consider increasing difficulty")

    for level in DifficultyLevel:
        metric = metrics.get(level)
        next_level = level.next_level()
        if (
            metric is not None
            and next_level is not None
            and metric.accuracy > ESCALATION_ACCURACY
            and metric.attempts > ESCALATION_MIN_ATTEMPTS
        ):
            recommendations.append(
                f"Excellent {level.label} accuracy! Try moving to {next_level.label}"
            )

    return recommendations


def difficulty_tips(level: DifficultyLevel) -> list[str]:
    return list(_TIPS[level])
