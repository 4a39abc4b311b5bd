"""Tests for the practice window's control keys."""

import pygame

from keysprint.app import App
from keysprint.models import DifficultyLevel


class RecordingSession:
    def __init__(self):
        self.calls = []

    def retry_pattern(self):
        self.calls.append("retry")

    def skip_pattern(self):
        self.calls.append("skip")

    def set_difficulty(self, level):
        self.calls.append(level)


def _app():
    app = App.__new__(App)
    app.session = RecordingSession()
    app._correct, app._wrong, app._status = set(), set(), ""
    return app


def test_backspace_retries_and_space_skips():
    app = _app()
    assert app._handle_key(pygame.K_BACKSPACE)
    assert app._handle_key(pygame.K_SPACE)
    assert app.session.calls == ["retry", "skip"]


def test_letter_keys_are_left_for_playing_notes():
    app = _app()
    assert app._handle_key(pygame.K_r)
    assert app.session.calls == []


def test_function_keys_pick_difficulty_and_escape_quits():
    app = _app()
    assert app._handle_key(pygame.K_F3)
    assert app.session.calls == [DifficultyLevel.TRIAD]
    assert not app._handle_key(pygame.K_ESCAPE)
