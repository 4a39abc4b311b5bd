"""MusicXML payloads for challenge patterns.

Each pattern carries a one-measure MusicXML 3.1 document built from a
cached template. The renderer treats it as opaque text; the engine only
fills in the note data.
"""

from __future__ import annotations

import time
from string import Template

from keysprint.models import DifficultyLevel, PatternNote
from keysprint.theory import spell

DIVISIONS = 1  # divisions per quarter note

_HEADER = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN" "http://www.musicxml.org/dtds/partwise.dtd">
<score-partwise version="3.1">
  <identification>
    <encoding>
      <software>KeySprint</software>
      <encoding-date>$encoding_date</encoding-date>
    </encoding>
  </identification>
  <part-list>
    <score-part id="P1">
      <part-name>Piano</part-name>
    </score-part>
  </part-list>
  <part id="P1">
    <measure number="1">
      <attributes>
        <divisions>1</divisions>
        <key>
          <fifths>0</fifths>
        </key>
        <time>
          <beats>4</beats>
          <beat-type>4</beat-type>
        </time>
        <clef>
          <sign>G</sign>
          <line>2</line>
        </clef>
      </attributes>
"""

_FOOTER = """    </measure>
  </part>
</score-partwise>
"""


def _note_block(index: int, chord: bool) -> str:
    prefix = f"note{index}_"
    chord_tag = "        <chord/>\n" if chord else ""
    return (
        "      <note>\n"
        f"{chord_tag}"
        "        <pitch>\n"
        f"          <step>${prefix}step</step>\n"
        f"          ${prefix}alter\n"
        f"          <octave>${prefix}octave</octave>\n"
        "        </pitch>\n"
        f"        <duration>${prefix}duration</duration>\n"
        f"        <type>${prefix}type</type>\n"
        "      </note>\n"
    )


def _build_template(note_count: int) -> str:
    notes = "".join(_note_block(i, chord=i > 1) for i in range(1, note_count + 1))
    return _HEADER + notes + _FOOTER


_TEMPLATE_CACHE: dict[DifficultyLevel, Template] = {}

# Beats -> MusicXML note type
_NOTE_TYPES: dict[float, str] = {
    4.0: "whole",
    3.0: "half",  # dotted; the dot is not rendered
    2.0: "half",
    1.0: "quarter",
    0.5: "eighth",
    0.25: "16th",
}


def load_template(difficulty: DifficultyLevel) -> Template:
    """Return the cached template for a difficulty, building it on first use."""
    template = _TEMPLATE_CACHE.get(difficulty)
    if template is None:
        template = Template(_build_template(difficulty.note_count))
        _TEMPLATE_CACHE[difficulty] = template
    return template


def prewarm_template_cache() -> None:
    for difficulty in DifficultyLevel:
        load_template(difficulty)


def clear_template_cache() -> None:
    _TEMPLATE_CACHE.clear()


def note_type(duration_beats: float) -> str:
    return _NOTE_TYPES.get(float(duration_beats), "quarter")


def inject_note_data(difficulty: DifficultyLevel, notes: list[PatternNote] | tuple[PatternNote, ...]) -> str:
    """Fill the difficulty's template with the given notes.

    Raises ValueError when fewer notes are given than the template needs.
    """
    needed = difficulty.note_count
    if len(notes) < needed:
        raise ValueError(f"{difficulty.name} payload needs {needed} notes, got {len(notes)}")

    values = {"encoding_date": time.strftime("%Y-%m-%d")}
    for i, note in enumerate(notes[:needed], start=1):
        spelling = spell(note.midi)
        prefix = f"note{i}_"
        values[prefix + "step"] = spelling.step
        values[prefix + "alter"] = f"<alter>{spelling.alter}</alter>" if spelling.alter else ""
        values[prefix + "octave"] = str(spelling.octave)
        values[prefix + "duration"] = str(max(1, round(note.duration_beats * DIVISIONS)))
        values[prefix + "type"] = note_type(note.duration_beats)
    return load_template(difficulty).substitute(values)
