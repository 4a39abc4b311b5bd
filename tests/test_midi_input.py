"""Tests for note input conversion."""

import mido
import pygame

from keysprint.midi_input import KeyboardInput, event_from_message, pitch_for_key


def test_note_on_message_becomes_note_on_event():
    event = event_from_message(mido.Message("note_on", note=64, velocity=90), timestamp=1.5)
    assert event.pitch == 64
    assert event.velocity == 90
    assert event.is_note_on
    assert event.timestamp_ms == 1500.0


def test_zero_velocity_note_on_is_note_off():
    event = event_from_message(mido.Message("note_on", note=64, velocity=0), timestamp=1.0)
    assert not event.is_note_on
    assert not event_from_message(mido.Message("note_off", note=64), timestamp=1.0).is_note_on


def test_other_messages_are_ignored():
    assert event_from_message(mido.Message("control_change", control=64, value=127)) is None


def test_computer_keyboard_press_and_release():
    keyboard = KeyboardInput(velocity=70)
    keyboard.feed_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_z))
    keyboard.feed_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_z))
    keyboard.feed_event(pygame.event.Event(pygame.KEYUP, key=pygame.K_z))

    press = keyboard.poll()
    assert press.pitch == 60 and press.is_note_on and press.velocity == 70
    release = keyboard.poll()
    assert release.pitch == 60 and not release.is_note_on
    assert keyboard.poll() is None


def test_control_keys_are_not_notes():
    assert pitch_for_key(pygame.K_q) == 72
    assert pitch_for_key(pygame.K_SPACE) is None
    assert pitch_for_key(pygame.K_BACKSPACE) is None
    assert pitch_for_key(pygame.K_F1) is None
