"""Data models for scores, staves, measures, notes and pitches."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Final, Union


class NoteName(str, Enum):
    """The seven diatonic letter names, ordered from C upwards."""

    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    A = "A"
    B = "B"

    @property
    def diatonic_index(self) -> int:
        """Diatonic index within the octave (C=0 .. B=6)."""
        return NOTE_NAMES.index(self)


class Accidental(str, Enum):
    SHARP = "sharp"
    FLAT = "flat"
    NATURAL = "natural"


class Clef(str, Enum):
    TREBLE = "treble"
    BASS = "bass"
    ALTO = "alto"
    TENOR = "tenor"


class Duration(str, Enum):
    """Note and rest durations."""

    WHOLE = "whole"          # 4 beats
    HALF = "half"            # 2 beats
    QUARTER = "quarter"      # 1 beat
    EIGHTH = "eighth"        # 0.5 beats
    SIXTEENTH = "sixteenth"  # 0.25 beats

    @property
    def beats(self) -> float:
        """Return the duration in quarter-note beats."""
        return DURATION_BEATS[self]

    @property
    def filled(self) -> bool:
        """True when the notehead is drawn solid."""
        return self not in (Duration.WHOLE, Duration.HALF)

    @property
    def has_stem(self) -> bool:
        return self is not Duration.WHOLE

    @property
    def flags(self) -> int:
        """Number of flags on the stem."""
        return {Duration.EIGHTH: 1, Duration.SIXTEENTH: 2}.get(self, 0)


# Note names ordered from the bottom of the octave (for pitch mapping)
NOTE_NAMES: Final[list[NoteName]] = list(NoteName)

DURATION_BEATS: Final[dict[Duration, float]] = {
    Duration.WHOLE: 4.0,
    Duration.HALF: 2.0,
    Duration.QUARTER: 1.0,
    Duration.EIGHTH: 0.5,
    Duration.SIXTEENTH: 0.25,
}

# Key signature accidental count (positive = sharps, negative = flats)
KEY_SIGNATURE_ACCIDENTALS: Final[dict[str, int]] = {
    "C": 0,
    "G": 1, "D": 2, "A": 3, "E": 4, "B": 5, "F#": 6,
    "F": -1, "Bb": -2, "Eb": -3, "Ab": -4, "Db": -5, "Gb": -6, "Cb": -7,
    # Relative minors
    "Am": 0,
    "Em": 1, "Bm": 2, "F#m": 3, "C#m": 4, "G#m": 5, "D#m": 6,
    "Dm": -1, "Gm": -2, "Cm": -3, "Fm": -4, "Bbm": -5, "Ebm": -6, "Abm": -7,
}

# Order in which accidentals are added to a key signature
SHARP_ORDER: Final[list[NoteName]] = [
    NoteName.F, NoteName.C, NoteName.G, NoteName.D, NoteName.A, NoteName.E, NoteName.B,
]
FLAT_ORDER: Final[list[NoteName]] = list(reversed(SHARP_ORDER))

_ACCIDENTAL_SPELLING: Final[dict[Accidental, str]] = {
    Accidental.SHARP: "#",
    Accidental.FLAT: "b",
    Accidental.NATURAL: "n",
}
_PITCH_RE = re.compile(r"^([A-Ga-g])(#|b|n)?(-?\d+)$")


def signed_accidental_count(key_signature: str) -> int:
    """
    Return the signed accidental count of a key signature name.

    Raises:
        ValueError: If the key signature is not recognised.
    """
    try:
        return KEY_SIGNATURE_ACCIDENTALS[key_signature]
    except KeyError:
        supported = ", ".join(KEY_SIGNATURE_ACCIDENTALS)
        raise ValueError(
            f"Unknown key signature '{key_signature}'. Use one of: {supported}."
        ) from None


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Pitch:
    """A written pitch: letter name, octave and optional accidental.

    The accidental changes how the pitch sounds and is drawn, not where it
    sits on the staff.
    """

    note: NoteName
    octave: int
    accidental: Accidental | None = None

    def __post_init__(self) -> None:
        # Accept plain strings so patches and JSON payloads can be passed through.
        object.__setattr__(self, "note", NoteName(self.note))
        if self.accidental is not None:
            object.__setattr__(self, "accidental", Accidental(self.accidental))

    @classmethod
    def parse(cls, text: str) -> Pitch:
        """
        Parse a compact spelling such as ``C4``, ``F#5``, ``Bb3`` or ``En4``.

        Raises:
            ValueError: If the text is not a valid pitch spelling.
        """
        match = _PITCH_RE.match(text.strip())
        if not match:
            raise ValueError(f"Invalid pitch '{text}'. Expected e.g. C4, F#5, Bb3.")
        letter, accidental_text, octave_text = match.groups()
        accidental = None
        for candidate, spelling in _ACCIDENTAL_SPELLING.items():
            if spelling == accidental_text:
                accidental = candidate
        return cls(NoteName(letter.upper()), int(octave_text), accidental)

    def __str__(self) -> str:
        suffix = _ACCIDENTAL_SPELLING[self.accidental] if self.accidental else ""
        return f"{self.note.value}{suffix}{self.octave}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"note": self.note.value, "octave": self.octave}
        if self.accidental is not None:
            data["accidental"] = self.accidental.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pitch:
        return cls(
            note=NoteName(data["note"]),
            octave=int(data["octave"]),
            accidental=Accidental(data["accidental"]) if data.get("accidental") else None,
        )


# Rests carry this pitch in their serialized form; it is never drawn.
REST_PLACEHOLDER_PITCH: Final[Pitch] = Pitch(NoteName.C, 4)


@dataclass
class Note:
    """A single pitched note."""

    pitch: Pitch
    duration: Duration = Duration.QUARTER
    dotted: bool = False
    tied: bool = False
    id: str = field(default_factory=new_id)

    kind = "note"

    def __post_init__(self) -> None:
        self.duration = Duration(self.duration)

    @property
    def beats(self) -> float:
        return self.duration.beats * (1.5 if self.dotted else 1.0)

    @property
    def heads(self) -> list[Pitch]:
        return [self.pitch]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "duration": self.duration.value,
            "dotted": self.dotted,
            "pitch": self.pitch.to_dict(),
            "tied": self.tied,
        }


@dataclass
class Rest:
    """A silence occupying one slot in its measure."""

    duration: Duration = Duration.QUARTER
    dotted: bool = False
    id: str = field(default_factory=new_id)

    kind = "rest"

    def __post_init__(self) -> None:
        self.duration = Duration(self.duration)

    @property
    def beats(self) -> float:
        return self.duration.beats * (1.5 if self.dotted else 1.0)

    @property
    def heads(self) -> list[Pitch]:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "duration": self.duration.value,
            "dotted": self.dotted,
            "pitch": REST_PLACEHOLDER_PITCH.to_dict(),
        }


@dataclass
class Chord:
    """Several noteheads sharing one duration and one stem.

    Attributes:
        pitch:   The primary pitch; it decides the stem direction.
        pitches: Additional pitches stacked on the same stem.
    """

    pitch: Pitch
    pitches: list[Pitch] = field(default_factory=list)
    duration: Duration = Duration.QUARTER
    dotted: bool = False
    tied: bool = False
    id: str = field(default_factory=new_id)

    kind = "chord"

    def __post_init__(self) -> None:
        self.duration = Duration(self.duration)

    @property
    def beats(self) -> float:
        return self.duration.beats * (1.5 if self.dotted else 1.0)

    @property
    def heads(self) -> list[Pitch]:
        return [self.pitch, *self.pitches]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "duration": self.duration.value,
            "dotted": self.dotted,
            "pitch": self.pitch.to_dict(),
            "pitches": [p.to_dict() for p in self.pitches],
            "tied": self.tied,
        }


MusicNote = Union[Note, Rest, Chord]


def _coerce_pitch(value: Any) -> Pitch:
    if isinstance(value, Pitch):
        return value
    if isinstance(value, str):
        return Pitch.parse(value)
    return Pitch.from_dict(value)


def music_note_from_dict(data: dict[str, Any]) -> MusicNote:
    """
    Build a Note, Rest or Chord from its plain-dict form.

    ``pitch`` and ``pitches`` entries may be Pitch objects, dicts or compact
    spellings. The ``id`` is kept when present and generated otherwise.

    Raises:
        ValueError: If the type, duration or a pitch is invalid.
    """
    try:
        kind = data.get("type", "note")
        duration = Duration(data.get("duration", Duration.QUARTER.value))
        dotted = bool(data.get("dotted", False))
        note_id = str(data["id"]) if data.get("id") else new_id()

        if kind == "rest":
            return Rest(duration=duration, dotted=dotted, id=note_id)
        pitch = _coerce_pitch(data["pitch"])
        tied = bool(data.get("tied", False))
        if kind == "chord":
            pitches = [_coerce_pitch(p) for p in data.get("pitches") or []]
            return Chord(pitch=pitch, pitches=pitches, duration=duration, dotted=dotted, tied=tied, id=note_id)
        if kind == "note":
            return Note(pitch=pitch, duration=duration, dotted=dotted, tied=tied, id=note_id)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid note data: {exc}") from exc
    raise ValueError(f"Unknown note type '{kind}'. Use one of: note, rest, chord.")


@dataclass
class Measure:
    """An ordered run of notes, rests and chords."""

    notes: list[MusicNote] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def total_beats(self) -> float:
        """Sum of the note durations in beats (not checked against the meter)."""
        return sum(note.beats for note in self.notes)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "notes": [n.to_dict() for n in self.notes]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Measure:
        return cls(
            notes=[music_note_from_dict(n) for n in data.get("notes", [])],
            id=str(data.get("id") or new_id()),
        )


@dataclass
class Staff:
    """One five-line staff with its clef and measures."""

    name: str = "Treble"
    clef: Clef = Clef.TREBLE
    measures: list[Measure] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        self.clef = Clef(self.clef)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "clef": self.clef.value,
            "measures": [m.to_dict() for m in self.measures],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Staff:
        return cls(
            name=str(data.get("name", "")),
            clef=Clef(data.get("clef", Clef.TREBLE.value)),
            measures=[Measure.from_dict(m) for m in data.get("measures", [])],
            id=str(data.get("id") or new_id()),
        )


@dataclass(frozen=True)
class TimeSignature:
    beats: int = 4
    beat_type: int = 4

    @classmethod
    def parse(cls, text: str) -> TimeSignature:
        """
        Parse ``"3/4"``-style text.

        Raises:
            ValueError: If the text is not two positive integers.
        """
        match = re.match(r"^(\d+)/(\d+)$", text.strip())
        if not match or int(match.group(1)) < 1 or int(match.group(2)) < 1:
            raise ValueError(f"Invalid time signature '{text}'. Expected e.g. 4/4 or 6/8.")
        return cls(int(match.group(1)), int(match.group(2)))

    def __str__(self) -> str:
        return f"{self.beats}/{self.beat_type}"


@dataclass
class Score:
    """The root of a piece of notation; it owns every staff, measure and note.

    Attributes:
        title:          Title drawn centered above the first staff.
        composer:       Composer drawn right-aligned under the title.
        key_signature:  Key name such as 'G' or 'Bb' (see KEY_SIGNATURE_ACCIDENTALS).
        time_signature: Meter shown at the start of every staff.
        tempo:          Tempo in beats per minute.
        staves:         Staves from top to bottom; never empty.
        width, height:  Size of the drawing surface in score units.
    """

    title: str = "Untitled Score"
    composer: str = ""
    key_signature: str = "C"
    time_signature: TimeSignature = field(default_factory=TimeSignature)
    tempo: int = 120
    staves: list[Staff] = field(default_factory=list)
    width: float = 1200
    height: float = 800

    @property
    def key_accidentals(self) -> int:
        """Signed accidental count of the key signature."""
        return signed_accidental_count(self.key_signature)

    def find_staff(self, staff_id: str) -> Staff | None:
        for staff in self.staves:
            if staff.id == staff_id:
                return staff
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the score to a plain JSON-safe dict."""
        return {
            "title": self.title,
            "composer": self.composer,
            "keySignature": self.key_signature,
            "timeSignature": {
                "beats": self.time_signature.beats,
                "beatType": self.time_signature.beat_type,
            },
            "tempo": self.tempo,
            "staves": [s.to_dict() for s in self.staves],
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Score:
        """
        Deserialize a score from a plain dict.

        Raises:
            ValueError: If the data does not describe a valid score.
        """
        try:
            key_signature = str(data.get("keySignature", "C"))
            signed_accidental_count(key_signature)
            ts = data.get("timeSignature") or {}
            time_signature = TimeSignature(int(ts.get("beats", 4)), int(ts.get("beatType", 4)))
            staves = [Staff.from_dict(s) for s in data.get("staves", [])]
            score = cls(
                title=str(data.get("title", "")),
                composer=str(data.get("composer", "")),
                key_signature=key_signature,
                time_signature=time_signature,
                tempo=int(data.get("tempo", 120)),
                staves=staves,
                width=float(data.get("width", 1200)),
                height=float(data.get("height", 800)),
            )
        except (AttributeError, KeyError, TypeError) as exc:
            raise ValueError(f"Invalid score data: {exc}") from exc
        if not score.staves:
            raise ValueError("A score needs at least one staff.")
        return score


@dataclass(frozen=True)
class Selection:
    """What the user has selected; kept apart from the score itself."""

    staff_id: str | None = None
    measure_idx: int | None = None
    note_idx: int | None = None

    def is_staff(self, staff_id: str) -> bool:
        return self.staff_id is not None and self.staff_id == staff_id

    def is_measure(self, staff_id: str, measure_idx: int) -> bool:
        return self.is_staff(staff_id) and self.measure_idx == measure_idx

    def is_note(self, staff_id: str, measure_idx: int, note_idx: int) -> bool:
        return self.is_measure(staff_id, measure_idx) and self.note_idx == note_idx


NO_SELECTION: Final[Selection] = Selection()


# ── Defaults ─────────────────────────────────────────────────────────────────

DEFAULT_MEASURE_COUNT = 4


def default_measure(id_factory: Callable[[], str] = new_id) -> Measure:
    return Measure(notes=[], id=id_factory())


def default_staff(
    name: str = "Treble",
    clef: Clef = Clef.TREBLE,
    measure_count: int = DEFAULT_MEASURE_COUNT,
    id_factory: Callable[[], str] = new_id,
) -> Staff:
    return Staff(
        name=name,
        clef=clef,
        measures=[default_measure(id_factory) for _ in range(measure_count)],
        id=id_factory(),
    )


def default_score(id_factory: Callable[[], str] = new_id) -> Score:
    """Return a new score with one empty treble staff of four measures."""
    return Score(staves=[default_staff(id_factory=id_factory)])
