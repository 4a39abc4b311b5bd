"""Real-time note input from MIDI keyboards and the computer keyboard."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import mido
import pygame

try:
    import rtmidi
    _HAS_RTMIDI = True
except ImportError:
    _HAS_RTMIDI = False


@dataclass
class LiveNoteEvent:
    pitch: int
    velocity: int
    timestamp: float  # seconds, time.time() clock
    is_note_on: bool

    @property
    def timestamp_ms(self) -> float:
        return self.timestamp * 1000.0


class MidiDeviceError(Exception):
    """Raised when no MIDI device is found or connection fails."""


@runtime_checkable
class InputSource(Protocol):
    """Common interface for MIDI and keyboard input sources."""
    def poll(self) -> LiveNoteEvent | None: ...
    def close(self) -> None: ...


def event_from_message(msg: mido.Message, timestamp: float | None = None) -> LiveNoteEvent | None:
    """Convert a note on/off message; anything else gives None.

    A note-on with velocity 0 is a note-off, as most keyboards send it.
    """
    when = time.time() if timestamp is None else timestamp
    if msg.type == "note_on" and msg.velocity > 0:
        return LiveNoteEvent(pitch=msg.note, velocity=msg.velocity, timestamp=when, is_note_on=True)
    if msg.type in ("note_off", "note_on"):
        return LiveNoteEvent(pitch=msg.note, velocity=0, timestamp=when, is_note_on=False)
    return None


# Computer keyboard -> MIDI pitch mapping
_LOWER_ROW = {
    pygame.K_z: 60, pygame.K_x: 62, pygame.K_c: 64, pygame.K_v: 65,
    pygame.K_b: 67, pygame.K_n: 69, pygame.K_m: 71, pygame.K_COMMA: 72,
    pygame.K_PERIOD: 74, pygame.K_SLASH: 76,
}
_MIDDLE_ROW = {
    pygame.K_s: 61, pygame.K_d: 63, pygame.K_g: 66, pygame.K_h: 68,
    pygame.K_j: 70, pygame.K_l: 73, pygame.K_SEMICOLON: 75,
}
_UPPER_ROW = {
    pygame.K_q: 72, pygame.K_w: 74, pygame.K_e: 76, pygame.K_r: 77,
    pygame.K_t: 79, pygame.K_y: 81, pygame.K_u: 83, pygame.K_i: 84,
}
_KEY_TO_PITCH: dict[int, int] = {**_UPPER_ROW, **_MIDDLE_ROW, **_LOWER_ROW}


def pitch_for_key(key: int) -> int | None:
    return _KEY_TO_PITCH.get(key)


class KeyboardInput:
    """Fallback input using the computer keyboard as a small piano."""

    def __init__(self, velocity: int = 80) -> None:
        self._velocity = velocity
        self._events: list[LiveNoteEvent] = []
        self._held: set[int] = set()

    def feed_event(self, event: pygame.event.Event) -> None:
        """Call from the game loop for each pygame event."""
        if event.type == pygame.KEYDOWN and event.key in _KEY_TO_PITCH:
            pitch = _KEY_TO_PITCH[event.key]
            if pitch not in self._held:
                self._held.add(pitch)
                self._events.append(LiveNoteEvent(
                    pitch=pitch, velocity=self._velocity,
                    timestamp=time.time(), is_note_on=True,
                ))
        elif event.type == pygame.KEYUP and event.key in _KEY_TO_PITCH:
            pitch = _KEY_TO_PITCH[event.key]
            self._held.discard(pitch)
            self._events.append(LiveNoteEvent(
                pitch=pitch, velocity=0,
                timestamp=time.time(), is_note_on=False,
            ))

    def poll(self) -> LiveNoteEvent | None:
        if self._events:
            return self._events.pop(0)
        return None

    def close(self) -> None:
        self._events.clear()
        self._held.clear()


class MidiInput:
    """A python-rtmidi input port; raw bytes are decoded by mido."""

    def __init__(self, port_index: int | None = None) -> None:
        if not _HAS_RTMIDI:
            raise MidiDeviceError("python-rtmidi is not installed")
        self.midi_in = rtmidi.MidiIn()
        self._port_index = port_index
        self._open = False

    @staticmethod
    def list_ports() -> list[str]:
        if not _HAS_RTMIDI:
            return []
        return rtmidi.MidiIn().get_ports()

    def open(self) -> None:
        ports = self.midi_in.get_ports()
        if not ports:
            raise MidiDeviceError("No MIDI input devices found")
        idx = self._port_index if self._port_index is not None else 0
        if not 0 <= idx < len(ports):
            raise MidiDeviceError(f"MIDI port {idx} not available ({len(ports)} found)")
        self.midi_in.open_port(idx)
        self._open = True

    def poll(self) -> LiveNoteEvent | None:
        """Non-blocking poll for the next note message. Returns None if none is waiting."""
        if not self._open:
            return None
        while True:
            msg = self.midi_in.get_message()
            if msg is None:
                return None
            data, _delta = msg
            try:
                parsed = mido.parse(data)
            except (ValueError, TypeError):
                continue
            if parsed is None:
                continue
            event = event_from_message(parsed)
            if event is not None:
                return event

    def close(self) -> None:
        if self._open:
            self.midi_in.close_port()
            self._open = False
