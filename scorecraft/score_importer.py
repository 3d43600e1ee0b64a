"""ScoreImporter: builds an editable score from a MIDI or MusicXML file."""

from __future__ import annotations

import logging
from fractions import Fraction
from pathlib import Path
from typing import Any, Final

from scorecraft.score_models import (
    Accidental,
    Chord,
    Clef,
    Duration,
    Measure,
    MusicNote,
    Note,
    NoteName,
    Pitch,
    Rest,
    Score,
    Staff,
    TimeSignature,
    new_id,
)

logger = logging.getLogger("scorecraft.importer")

MIDDLE_C_MIDI = 60
BASE_HEIGHT = 800
STAFF_HEIGHT_STEP = 120

# sharps count -> major key name
_KEYS_BY_SHARPS: Final[dict[int, str]] = {
    0: "C", 1: "G", 2: "D", 3: "A", 4: "E", 5: "B", 6: "F#",
    -1: "F", -2: "Bb", -3: "Eb", -4: "Ab", -5: "Db", -6: "Gb", -7: "Cb",
}

_ACCIDENTALS: Final[dict[str, Accidental]] = {
    "sharp": Accidental.SHARP,
    "flat": Accidental.FLAT,
    "natural": Accidental.NATURAL,
}


class ScoreImporter:
    """
    Convert a file music21 can read (MIDI, MusicXML, ...) into a Score.

    One staff is created per part that contains notes. Durations are snapped
    to the nearest supported value; dotted halves, quarters, eighths and
    sixteenths are recognised.
    """

    _DURATION_MAP: Final[list[tuple[float, Duration, bool]]] = [
        (4.0, Duration.WHOLE, False),
        (3.0, Duration.HALF, True),
        (2.0, Duration.HALF, False),
        (1.5, Duration.QUARTER, True),
        (1.0, Duration.QUARTER, False),
        (0.75, Duration.EIGHTH, True),
        (0.5, Duration.EIGHTH, False),
        (0.375, Duration.SIXTEENTH, True),
        (0.25, Duration.SIXTEENTH, False),
    ]

    def __init__(self, title: str | None = None) -> None:
        self.title = title

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse(self, path: str) -> Any:
        from music21 import converter

        try:
            return converter.parse(path)
        except Exception as exc:
            raise ValueError(f"music21 could not read '{path}': {exc}") from exc

    def _note_parts(self, score: Any) -> list[Any]:
        """Parts that contain at least one note or chord."""
        return [part for part in score.parts if len(part.flatten().notes) > 0]

    def _first(self, stream: Any, class_name: str) -> Any | None:
        for element in stream.recurse().getElementsByClass(class_name):
            return element
        return None

    def _key_signature(self, score: Any) -> str:
        key = self._first(score, "KeySignature")
        if key is None:
            return "C"
        sharps = max(-7, min(6, int(key.sharps)))
        if sharps != key.sharps:
            logger.info("Key with %d sharps is not supported; using %d", key.sharps, sharps)
        return _KEYS_BY_SHARPS[sharps]

    def _time_signature(self, score: Any) -> TimeSignature:
        ts = self._first(score, "TimeSignature")
        ratio = getattr(ts, "ratioString", None)
        if isinstance(ratio, str) and ratio:
            try:
                return TimeSignature.parse(ratio)
            except ValueError:
                logger.info("Ignoring unsupported time signature %s", ratio)
        return TimeSignature()

    def _tempo(self, score: Any) -> int:
        mark = self._first(score, "MetronomeMark")
        number = getattr(mark, "number", None)
        return int(round(number)) if number else 120

    def _clef(self, part: Any) -> Clef:
        clef = self._first(part, "Clef")
        sign = getattr(clef, "sign", None)
        if sign == "G":
            return Clef.TREBLE
        if sign == "F":
            return Clef.BASS
        if sign == "C":
            return Clef.TENOR if getattr(clef, "line", 3) == 4 else Clef.ALTO

        midis = [p.midi for element in part.flatten().notes for p in element.pitches]
        average = sum(midis) / len(midis) if midis else MIDDLE_C_MIDI
        return Clef.TREBLE if average >= MIDDLE_C_MIDI else Clef.BASS

    def _duration(self, quarter_length: float) -> tuple[Duration, bool]:
        if quarter_length <= 0:
            return Duration.QUARTER, False
        _, duration, dotted = min(
            self._DURATION_MAP,
            key=lambda entry: abs(entry[0] - quarter_length),
        )
        return duration, dotted

    def _pitch(self, pitch: Any) -> Pitch:
        octave = pitch.octave if isinstance(pitch.octave, int) else 4
        accidental = getattr(pitch, "accidental", None)
        name = getattr(accidental, "name", None)
        return Pitch(NoteName(pitch.step), octave, _ACCIDENTALS.get(name) if name else None)

    def _element_to_note(self, element: Any) -> MusicNote:
        duration, dotted = self._duration(float(Fraction(element.duration.quarterLength)))
        if element.isRest:
            return Rest(duration=duration, dotted=dotted, id=new_id())

        tie = getattr(element, "tie", None)
        tied = tie is not None and tie.type in ("start", "continue")
        if element.isChord:
            pitches = [self._pitch(p) for p in element.pitches]
            return Chord(
                pitch=pitches[0],
                pitches=pitches[1:],
                duration=duration,
                dotted=dotted,
                tied=tied,
                id=new_id(),
            )
        return Note(pitch=self._pitch(element.pitch), duration=duration, dotted=dotted, tied=tied, id=new_id())

    def _measure(self, measure: Any) -> Measure:
        # Only the first voice of a multi-voice measure is kept.
        voices = list(measure.voices)
        source = voices[0] if voices else measure
        return Measure(notes=[self._element_to_note(e) for e in source.notesAndRests], id=new_id())

    def _part_to_staff(self, part: Any, index: int) -> Staff:
        measures = list(part.getElementsByClass("Measure"))
        if not measures:
            measures = list(part.makeMeasures(inPlace=False).getElementsByClass("Measure"))

        return Staff(
            name=str(getattr(part, "partName", None) or f"Staff {index + 1}"),
            clef=self._clef(part),
            measures=[self._measure(m) for m in measures],
            id=new_id(),
        )

    def _metadata(self, score: Any, field_name: str) -> str:
        metadata = getattr(score, "metadata", None)
        value = getattr(metadata, field_name, None) if metadata is not None else None
        return str(value) if value else ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, path: str | Path) -> Score:
        """
        Read *path* with music21 and convert it to a Score.

        Raises:
            ValueError: If the file cannot be parsed or contains no notes.
        """
        source = self._parse(str(path))
        parts = self._note_parts(source)
        if not parts:
            raise ValueError(f"'{path}' contains no notes.")

        staves = [self._part_to_staff(part, i) for i, part in enumerate(parts)]
        measure_count = max(len(staff.measures) for staff in staves)
        for staff in staves:
            while len(staff.measures) < measure_count:
                staff.measures.append(Measure(notes=[], id=new_id()))

        title = self.title if self.title is not None else self._metadata(source, "title")
        logger.debug("Imported %d staves x %d measures from %s", len(staves), measure_count, path)
        return Score(
            title=title or Path(path).stem.replace("_", " "),
            composer=self._metadata(source, "composer"),
            key_signature=self._key_signature(source),
            time_signature=self._time_signature(source),
            tempo=self._tempo(source),
            staves=staves,
            height=BASE_HEIGHT + STAFF_HEIGHT_STEP * (len(staves) - 1),
        )
