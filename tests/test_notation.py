"""Tests for MusicXML payload templates."""

import pytest
from music21 import chord as m21chord, converter

from keysprint.models import DifficultyLevel, PatternNote
from keysprint.notation import (
    clear_template_cache,
    inject_note_data,
    load_template,
    prewarm_template_cache,
)


def _parse(payload):
    return converter.parse(payload, format="musicxml")


def test_single_note_payload_reads_back_as_middle_c():
    payload = inject_note_data(DifficultyLevel.SINGLE_NOTE, [PatternNote(60)])
    score = _parse(payload)
    notes = list(score.flatten().notes)
    assert len(notes) == 1
    assert notes[0].pitch.midi == 60
    assert notes[0].duration.type == "quarter"
    assert "<alter>" not in payload


def test_interval_payload_is_one_two_note_chord():
    payload = inject_note_data(DifficultyLevel.INTERVAL, [PatternNote(62), PatternNote(69)])
    chords = list(_parse(payload).flatten().getElementsByClass(m21chord.Chord))
    assert len(chords) == 1
    assert sorted(p.midi for p in chords[0].pitches) == [62, 69]


def test_triad_payload_stacks_chord_notes():
    notes = [PatternNote(60), PatternNote(63), PatternNote(67)]
    payload = inject_note_data(DifficultyLevel.TRIAD, notes)
    score = _parse(payload)
    chords = list(score.flatten().getElementsByClass(m21chord.Chord))
    assert len(chords) == 1
    assert sorted(p.midi for p in chords[0].pitches) == [60, 63, 67]
    assert payload.count("<chord/>") == 2
    assert "<alter>-1</alter>" in payload


def test_half_note_duration_survives():
    payload = inject_note_data(DifficultyLevel.SINGLE_NOTE, [PatternNote(72, duration_beats=2.0)])
    note = list(_parse(payload).flatten().notes)[0]
    assert note.duration.quarterLength == 2.0
    assert note.pitch.midi == 72


def test_payload_needs_enough_notes():
    with pytest.raises(ValueError):
        inject_note_data(DifficultyLevel.INTERVAL, [PatternNote(60)])


def test_templates_are_cached():
    clear_template_cache()
    prewarm_template_cache()
    assert load_template(DifficultyLevel.TRIAD) is load_template(DifficultyLevel.TRIAD)
