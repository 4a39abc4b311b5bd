"""Top-level application: initializes pygame and runs the practice loop."""

from __future__ import annotations

import logging
import time

import pygame

from keysprint.config import FPS, WINDOW_HEIGHT, WINDOW_TITLE, WINDOW_WIDTH, EngineSettings
from keysprint.midi_input import InputSource, KeyboardInput, LiveNoteEvent
from keysprint.models import DifficultyLevel, ValidationResult
from keysprint.renderer.colors import BG
from keysprint.renderer.hud import render_hud
from keysprint.renderer.keyboard import render_keyboard
from keysprint.scheduler import CooperativeScheduler
from keysprint.session import PracticeSession

logger = logging.getLogger(__name__)

_DIFFICULTY_KEYS = {
    pygame.K_F1: DifficultyLevel.SINGLE_NOTE,
    pygame.K_F2: DifficultyLevel.INTERVAL,
    pygame.K_F3: DifficultyLevel.TRIAD,
}

FRAME_BUDGET_MS = 1000.0 / FPS


class App:
    def __init__(self, settings: EngineSettings | None = None, db_path=None) -> None:
        pygame.init()
        self.screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
        pygame.display.set_caption(WINDOW_TITLE)
        self.clock = pygame.time.Clock()

        # Optional subsystems gracefully degrade
        self._midi_input = self._try_midi()
        self._store = self._try_progress(db_path)
        self._keyboard_input = KeyboardInput()
        self._sources: list[InputSource] = [self._keyboard_input]
        if self._midi_input is not None:
            self._sources.append(self._midi_input)

        self.scheduler = CooperativeScheduler()
        self.session = PracticeSession(settings=settings, scheduler=self.scheduler, store=self._store)

        self._correct: set[int] = set()
        self._wrong: set[int] = set()
        self._status = ""

    def run(self) -> None:
        self.session.start_session()
        running = True
        while running:
            self.clock.tick(FPS)
            frame_start = time.perf_counter()
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                else:
                    if event.type == pygame.KEYDOWN and not self._handle_key(event.key):
                        running = False
                    self._keyboard_input.feed_event(event)

            for source in self._sources:
                note = source.poll()
                while note is not None:
                    self._on_note(note)
                    note = source.poll()

            self._draw()
            pygame.display.flip()

            spent_ms = (time.perf_counter() - frame_start) * 1000.0
            self.scheduler.run_idle(FRAME_BUDGET_MS - spent_ms)

        self._cleanup()
        pygame.quit()

    def _handle_key(self, key: int) -> bool:
        """Returns False when the app should quit."""
        if key == pygame.K_ESCAPE:
            return False
        if key in _DIFFICULTY_KEYS:
            self.session.set_difficulty(_DIFFICULTY_KEYS[key])
            self._clear_feedback(f"Switched to {_DIFFICULTY_KEYS[key].label}")
        elif key == pygame.K_BACKSPACE:
            self.session.retry_pattern()
            self._clear_feedback("Try again")
        elif key == pygame.K_SPACE:
            self.session.skip_pattern()
            self._clear_feedback("Skipped")
        return True

    def _on_note(self, note: LiveNoteEvent) -> None:
        before = self.session.current_pattern
        result = self.session.handle_note_event(note)
        if result is None:
            return
        self._show_result(note.pitch, result)
        if self.session.current_pattern is not before:
            self._clear_feedback(self._status)

    def _show_result(self, pitch: int, result: ValidationResult) -> None:
        if result.pattern_complete:
            self._status = f"Done in {result.response_time_ms:.0f} ms"
        elif result.correct:
            self._correct.add(pitch)
        else:
            self._wrong.add(pitch)
            self._status = "Wrong note: Backspace to retry, Space to skip"

    def _clear_feedback(self, status: str) -> None:
        self._correct.clear()
        self._wrong.clear()
        self._status = status

    def _draw(self) -> None:
        self.screen.fill(BG)
        pattern = self.session.current_pattern
        targets = set(pattern.expected_midi) if pattern else set()
        render_keyboard(self.screen, targets, self._correct, self._wrong)
        render_hud(
            self.screen,
            pattern,
            self.session.metrics(),
            self.session.queue_statistics(),
            self.session.pool_tier.value,
            self._status,
        )

    def _cleanup(self) -> None:
        self.session.end_session()
        self.session.dispose()
        for source in self._sources:
            source.close()
        if self._store is not None:
            self._store.close()

    @staticmethod
    def _try_midi():
        try:
            from keysprint.midi_input import MidiInput
            mi = MidiInput()
            mi.open()
            return mi
        except Exception as exc:
            logger.info("No MIDI input, using the computer keyboard: %s", exc)
            return None

    @staticmethod
    def _try_progress(db_path=None):
        try:
            from keysprint.progress import DEFAULT_DB_PATH, ProgressStore
            return ProgressStore(db_path or DEFAULT_DB_PATH)
        except Exception as exc:
            logger.warning("Progress storage unavailable: %s", exc)
            return None
