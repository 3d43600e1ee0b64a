"""LayoutEngine: computes staff geometry and note positions for a score."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final

from scorecraft.score_models import (
    Accidental,
    Clef,
    MusicNote,
    Pitch,
    Score,
    Staff,
    signed_accidental_count,
)
from scorecraft.staff_positions import pitch_to_staff_position

STAFF_LINES = 5
# Staff positions of the outer staff lines (half-space units)
TOP_LINE_POSITION = 4
BOTTOM_LINE_POSITION = -4


@dataclass(frozen=True)
class LayoutMetrics:
    """
    Geometry constants shared by layout, rendering and hit-testing.

    All values are in score units (the same units as ``Score.width``).
    Override individual values with ``dataclasses.replace``.
    """

    line_spacing: float = 10
    staff_top_margin: float = 80
    staff_gap: float = 80
    left_margin: float = 60
    right_margin: float = 30
    clef_offset: float = 5
    clef_width: float = 40
    key_signature_offset: float = 5
    key_signature_step: float = 12    # per accidental
    key_signature_padding: float = 8  # only when the key has accidentals
    time_signature_width: float = 30
    time_signature_padding: float = 10
    measure_min_width: float = 120
    note_inset: float = 15            # first note slot from the measure start
    note_reserve: float = 20          # width kept free of note slots
    note_head_rx: float = 5
    note_head_ry: float = 3.5
    note_head_rotation: float = -10
    stem_length: float = 30
    flag_step: float = 6
    ledger_overhang: float = 3
    hit_zone_spaces: float = 3
    title_baseline: float = 30
    composer_baseline: float = 50

    @property
    def staff_height(self) -> float:
        """Distance from the top line to the bottom line (four gaps)."""
        return self.line_spacing * (STAFF_LINES - 1)

    @property
    def half_space(self) -> float:
        return self.line_spacing / 2


DEFAULT_METRICS: Final[LayoutMetrics] = LayoutMetrics()


def _placements(spelled: str) -> list[Pitch]:
    return [Pitch.parse(token) for token in spelled.split()]


# Where each key-signature accidental sits, in the order it is added.
KEY_SIGNATURE_PITCHES: Final[dict[Clef, dict[Accidental, list[Pitch]]]] = {
    Clef.TREBLE: {
        Accidental.SHARP: _placements("F5 C5 G5 D5 A4 E5 B4"),
        Accidental.FLAT: _placements("B4 E5 A4 D5 G4 C5 F4"),
    },
    Clef.BASS: {
        Accidental.SHARP: _placements("F3 C3 G3 D3 A2 E3 B2"),
        Accidental.FLAT: _placements("B2 E3 A2 D3 G2 C3 F2"),
    },
    Clef.ALTO: {
        Accidental.SHARP: _placements("F4 C4 G4 D4 A3 E4 B3"),
        Accidental.FLAT: _placements("B3 E4 A3 D4 G3 C4 F3"),
    },
    Clef.TENOR: {
        Accidental.SHARP: _placements("F3 C4 G3 D4 A3 E4 B3"),
        Accidental.FLAT: _placements("B3 E4 A3 D4 G3 C4 F3"),
    },
}


def key_signature_pitches(key_signature: str, clef: Clef) -> tuple[Accidental | None, list[Pitch]]:
    """
    Return the accidental type and the staff pitches of a key signature.

    The letters follow the sharp order F C G D A E B or the flat order
    B E A D G C F; the list length is the absolute accidental count.
    """
    count = signed_accidental_count(key_signature)
    if count == 0:
        return None, []
    accidental = Accidental.SHARP if count > 0 else Accidental.FLAT
    return accidental, KEY_SIGNATURE_PITCHES[Clef(clef)][accidental][: abs(count)]


def ledger_line_positions(position: int) -> list[int]:
    """
    Staff positions of the ledger lines needed by a head at *position*.

    One line for every line position between the staff and the head,
    including the head's own position when it sits on a line.
    """
    if position > TOP_LINE_POSITION:
        return list(range(TOP_LINE_POSITION + 2, position + 1, 2))
    if position < BOTTOM_LINE_POSITION:
        return list(range(BOTTOM_LINE_POSITION - 2, position - 1, -2))
    return []


# ── Layout results ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HeadLayout:
    """One notehead: its pitch, staff position, Y and ledger line Ys."""

    pitch: Pitch
    position: int
    y: float
    ledger_ys: tuple[float, ...]


@dataclass(frozen=True)
class NoteLayout:
    """
    Placement of one note, rest or chord.

    Attributes:
        index:   Position of the note within its measure.
        note:    The laid-out note.
        x:       Horizontal center of the notehead (or rest glyph).
        heads:   Noteheads, primary pitch first; empty for rests.
        stem_up: True when the primary head is below the middle line.
    """

    index: int
    note: MusicNote
    x: float
    heads: tuple[HeadLayout, ...]
    stem_up: bool

    @property
    def is_rest(self) -> bool:
        return not self.heads

    @property
    def y(self) -> float | None:
        """Y of the primary notehead, or None for a rest."""
        return self.heads[0].y if self.heads else None


@dataclass(frozen=True)
class MeasureLayout:
    index: int
    measure_id: str
    x: float
    width: float
    notes: tuple[NoteLayout, ...]

    @property
    def end_x(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class KeySignatureGlyph:
    """Anchor of one key-signature accidental."""

    pitch: Pitch
    accidental: Accidental
    position: int
    x: float
    y: float


@dataclass(frozen=True)
class StaffLayout:
    staff_id: str
    name: str
    clef: Clef
    top_y: float
    clef_x: float
    key_signature: tuple[KeySignatureGlyph, ...]
    time_signature_x: float
    content_start_x: float
    measure_width: float
    measures: tuple[MeasureLayout, ...]
    end_x: float
    metrics: LayoutMetrics

    @property
    def middle_y(self) -> float:
        return self.top_y + self.metrics.staff_height / 2

    @property
    def bottom_y(self) -> float:
        return self.top_y + self.metrics.staff_height

    @property
    def line_ys(self) -> list[float]:
        return [self.top_y + i * self.metrics.line_spacing for i in range(STAFF_LINES)]

    @property
    def bar_line_xs(self) -> list[float]:
        """X of the single bar lines between consecutive measures."""
        return [m.end_x for m in self.measures[:-1]]


@dataclass(frozen=True)
class ScoreLayout:
    width: float
    height: float
    staves: tuple[StaffLayout, ...]

    def staff(self, staff_id: str) -> StaffLayout | None:
        for staff_layout in self.staves:
            if staff_layout.staff_id == staff_id:
                return staff_layout
        return None


# ── Engine ───────────────────────────────────────────────────────────────────

class LayoutEngine:
    """
    Lays out every staff of a score from a single set of ``LayoutMetrics``.

    Staves are stacked from ``staff_top_margin`` down, separated by
    ``staff_gap``. Each staff reads left to right: clef, key signature,
    time signature, then the measures, which share the remaining width
    evenly (never narrower than ``measure_min_width``). Notes share their
    measure's width evenly, rests included.

    The geometry helpers are public so the hit-tester can reuse them; the
    forward and inverse mappings must never drift apart.
    """

    def __init__(self, metrics: LayoutMetrics = DEFAULT_METRICS) -> None:
        self.metrics = metrics

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------

    def staff_top_y(self, staff_index: int) -> float:
        m = self.metrics
        return m.staff_top_margin + staff_index * (m.staff_height + m.staff_gap)

    def staff_position_to_y(self, position: int, staff_top_y: float) -> float:
        """Y of a staff position; each position step is half a line spacing."""
        middle_y = staff_top_y + self.metrics.staff_height / 2
        return middle_y - position * self.metrics.half_space

    def y_to_staff_position(self, y: float, staff_top_y: float) -> int:
        """Nearest staff position to *y* (ties round upwards on the staff)."""
        middle_y = staff_top_y + self.metrics.staff_height / 2
        return math.floor((middle_y - y) / self.metrics.half_space + 0.5)

    def clef_x(self) -> float:
        return self.metrics.left_margin + self.metrics.clef_offset

    def key_signature_x(self) -> float:
        return self.clef_x() + self.metrics.clef_width + self.metrics.key_signature_offset

    def key_signature_width(self, accidental_count: int) -> float:
        count = abs(accidental_count)
        if count == 0:
            return 0.0
        return count * self.metrics.key_signature_step + self.metrics.key_signature_padding

    def time_signature_x(self, accidental_count: int) -> float:
        """Center X of the time-signature digits."""
        return (
            self.clef_x()
            + self.metrics.clef_width
            + self.key_signature_width(accidental_count)
            + self.metrics.time_signature_width / 2
        )

    def content_start_x(self, accidental_count: int) -> float:
        """X where the first measure begins."""
        return (
            self.clef_x()
            + self.metrics.clef_width
            + self.key_signature_width(accidental_count)
            + self.metrics.time_signature_width
            + self.metrics.time_signature_padding
        )

    def staff_end_x(self, score_width: float) -> float:
        return score_width - self.metrics.right_margin

    def measure_width(self, score_width: float, content_start_x: float, measure_count: int) -> float:
        available = self.staff_end_x(score_width) - content_start_x
        return max(self.metrics.measure_min_width, available / max(1, measure_count))

    def note_x(self, measure_x: float, measure_width: float, note_index: int, note_count: int) -> float:
        spacing = (measure_width - self.metrics.note_reserve) / max(1, note_count)
        return measure_x + self.metrics.note_inset + note_index * spacing

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _layout_head(self, pitch: Pitch, clef: Clef, staff_top_y: float) -> HeadLayout:
        position = pitch_to_staff_position(pitch, clef)
        return HeadLayout(
            pitch=pitch,
            position=position,
            y=self.staff_position_to_y(position, staff_top_y),
            ledger_ys=tuple(
                self.staff_position_to_y(p, staff_top_y) for p in ledger_line_positions(position)
            ),
        )

    def _layout_key_signature(
        self, key_signature: str, clef: Clef, staff_top_y: float
    ) -> tuple[KeySignatureGlyph, ...]:
        accidental, pitches = key_signature_pitches(key_signature, clef)
        if accidental is None:
            return ()
        x0 = self.key_signature_x()
        glyphs = []
        for i, pitch in enumerate(pitches):
            position = pitch_to_staff_position(pitch, clef)
            glyphs.append(
                KeySignatureGlyph(
                    pitch=pitch,
                    accidental=accidental,
                    position=position,
                    x=x0 + i * self.metrics.key_signature_step,
                    y=self.staff_position_to_y(position, staff_top_y),
                )
            )
        return tuple(glyphs)

    def _layout_staff(self, score: Score, staff: Staff, staff_index: int) -> StaffLayout:
        accidental_count = signed_accidental_count(score.key_signature)
        top_y = self.staff_top_y(staff_index)
        start_x = self.content_start_x(accidental_count)
        width = self.measure_width(score.width, start_x, len(staff.measures))

        measures = []
        for mi, measure in enumerate(staff.measures):
            measure_x = start_x + mi * width
            notes = []
            for ni, note in enumerate(measure.notes):
                heads = tuple(self._layout_head(p, staff.clef, top_y) for p in note.heads)
                notes.append(
                    NoteLayout(
                        index=ni,
                        note=note,
                        x=self.note_x(measure_x, width, ni, len(measure.notes)),
                        heads=heads,
                        stem_up=bool(heads) and heads[0].position < 0,
                    )
                )
            measures.append(
                MeasureLayout(index=mi, measure_id=measure.id, x=measure_x, width=width, notes=tuple(notes))
            )

        return StaffLayout(
            staff_id=staff.id,
            name=staff.name,
            clef=staff.clef,
            top_y=top_y,
            clef_x=self.clef_x(),
            key_signature=self._layout_key_signature(score.key_signature, staff.clef, top_y),
            time_signature_x=self.time_signature_x(accidental_count),
            content_start_x=start_x,
            measure_width=width,
            measures=tuple(measures),
            end_x=max(self.staff_end_x(score.width), measures[-1].end_x if measures else 0.0),
            metrics=self.metrics,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def layout(self, score: Score) -> ScoreLayout:
        """Compute the full geometry of *score*. Pure; the score is not modified."""
        staves = tuple(self._layout_staff(score, staff, i) for i, staff in enumerate(score.staves))
        # measures held at the minimum width may run past the score width
        width = max([score.width] + [s.end_x + self.metrics.right_margin for s in staves])
        return ScoreLayout(width=width, height=score.height, staves=staves)
