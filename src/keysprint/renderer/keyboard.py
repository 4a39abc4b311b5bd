"""Render the practice keyboard at the bottom of the screen."""

from __future__ import annotations

import pygame

from keysprint.config import MIDI_NOTE_MAX, MIDI_NOTE_MIN, WINDOW_HEIGHT, WINDOW_WIDTH
from keysprint.renderer.colors import BLACK_KEY, CORRECT_KEY, TARGET_KEY, WHITE_KEY, WRONG_KEY
from keysprint.theory import is_white_key

KEYBOARD_HEIGHT = 160
KEYBOARD_Y = WINDOW_HEIGHT - KEYBOARD_HEIGHT


def is_black_key(pitch: int) -> bool:
    return not is_white_key(pitch)


def _white_key_count() -> int:
    return sum(1 for p in range(MIDI_NOTE_MIN, MIDI_NOTE_MAX + 1) if is_white_key(p))


def key_color(pitch: int, targets: set[int], correct: set[int], wrong: set[int]) -> tuple[int, int, int]:
    if pitch in wrong:
        return WRONG_KEY
    if pitch in correct:
        return CORRECT_KEY
    if pitch in targets:
        return TARGET_KEY
    return BLACK_KEY if is_black_key(pitch) else WHITE_KEY


def render_keyboard(
    surface: pygame.Surface,
    targets: set[int],
    correct: set[int],
    wrong: set[int],
) -> None:
    """Draw the keyboard with hinted targets and played notes colored."""
    white_w = WINDOW_WIDTH / _white_key_count()
    wx = 0.0
    for p in range(MIDI_NOTE_MIN, MIDI_NOTE_MAX + 1):
        if is_white_key(p):
            rect = pygame.Rect(int(wx), KEYBOARD_Y, int(white_w) - 1, KEYBOARD_HEIGHT)
            pygame.draw.rect(surface, key_color(p, targets, correct, wrong), rect)
            wx += white_w

    # Black keys on top
    wx = 0.0
    for p in range(MIDI_NOTE_MIN, MIDI_NOTE_MAX + 1):
        if is_white_key(p):
            wx += white_w
        else:
            bw = white_w * 0.6
            bx = wx - bw / 2 - white_w * 0.15
            rect = pygame.Rect(int(bx), KEYBOARD_Y, int(bw), int(KEYBOARD_HEIGHT * 0.6))
            pygame.draw.rect(surface, key_color(p, targets, correct, wrong), rect)
