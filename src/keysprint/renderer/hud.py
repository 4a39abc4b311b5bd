"""Heads-up display: challenge, accuracy, streak and queue health."""

from __future__ import annotations

import pygame

from keysprint.models import Pattern, PerformanceMetrics, QueueStatistics
from keysprint.renderer.colors import CHALLENGE_TEXT, HUD_DIM, HUD_TEXT
from keysprint.theory import note_name


def challenge_text(pattern: Pattern | None) -> str:
    if pattern is None:
        return "-"
    return "  ".join(note_name(m) for m in pattern.expected_midi)


def hud_lines(
    metrics: PerformanceMetrics,
    queue: QueueStatistics,
    tier: str,
) -> list[str]:
    level = queue.difficulty.label if queue.difficulty else "-"
    return [
        f"Level: {level} ({tier})",
        f"Accuracy: {metrics.accuracy * 100:.0f}%",
        f"Streak: {metrics.streak}  Best: {metrics.max_streak}",
        f"Avg response: {metrics.average_response_time_ms:.0f} ms",
        f"Queue: {queue.current_size}/{queue.capacity}",
    ]


def render_hud(
    surface: pygame.Surface,
    pattern: Pattern | None,
    metrics: PerformanceMetrics,
    queue: QueueStatistics,
    tier: str,
    status: str = "",
) -> None:
    font = pygame.font.SysFont("monospace", 20)
    big = pygame.font.SysFont("monospace", 64, bold=True)

    y = 10
    for line in hud_lines(metrics, queue, tier):
        text = font.render(line, True, HUD_TEXT)
        surface.blit(text, (10, y))
        y += 28

    challenge = big.render(challenge_text(pattern), True, CHALLENGE_TEXT)
    surface.blit(challenge, challenge.get_rect(center=(surface.get_width() // 2, 300)))

    if status:
        text = font.render(status, True, HUD_DIM)
        surface.blit(text, text.get_rect(center=(surface.get_width() // 2, 380)))

    hint = font.render("F1/F2/F3 level  Backspace retry  Space skip  Esc quit", True, HUD_DIM)
    surface.blit(hint, (10, surface.get_height() - 190))
