"""GlyphRenderer: turns a laid-out score into vector drawing primitives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from scorecraft.glyphs import Circle, Ellipse, Line, Path, Primitive, Rect, Text, format_number
from scorecraft.layout_engine import (
    DEFAULT_METRICS,
    HeadLayout,
    LayoutEngine,
    LayoutMetrics,
    MeasureLayout,
    NoteLayout,
    StaffLayout,
)
from scorecraft.score_models import (
    NO_SELECTION,
    Accidental,
    Clef,
    Duration,
    NoteName,
    Pitch,
    Score,
    Selection,
)
from scorecraft.staff_positions import pitch_to_staff_position

# ── Glyph outlines (simplified, in their own coordinate space) ─────────────

TREBLE_CLEF_PATH: Final[str] = (
    "M 8 40 C 8 28 16 20 16 10 C 16 4 12 0 8 0 C 4 0 0 4 0 10 C 0 16 4 18 8 18 "
    "C 12 18 16 16 16 10 C 16 20 8 28 8 40 C 8 48 12 54 16 54 C 18 54 20 52 20 48 "
    "C 20 44 16 42 14 42"
)
BASS_CLEF_PATH: Final[str] = (
    "M 0 10 C 0 4 4 0 10 0 C 14 0 18 4 18 8 C 18 14 12 18 8 18 L 0 28 "
    "M 22 6 L 24 6 M 22 14 L 24 14"
)
TREBLE_CLEF_SCALE = 0.7
TREBLE_CLEF_RISE = 27   # path origin above the middle line
BASS_CLEF_SCALE = 0.8
BASS_CLEF_RISE = 14

ACCIDENTAL_SYMBOLS: Final[dict[Accidental, str]] = {
    Accidental.SHARP: "♯",
    Accidental.FLAT: "♭",
    Accidental.NATURAL: "♮",
}


@dataclass(frozen=True)
class RenderPalette:
    """Colors used by the renderer. Glyphs use ``currentColor`` for ink."""

    ink: str = "#e0d8c8"
    background: str = "#1a1a1a"
    staff_line: str = "#444"
    staff_line_selected: str = "#555"
    bar_line: str = "#666"
    composer: str = "#999"
    staff_name: str = "#666"
    selection: str = "#ff2d78"
    highlight_opacity: float = 0.05


DEFAULT_PALETTE: Final[RenderPalette] = RenderPalette()


class GlyphRenderer:
    """
    Render a score as an ordered list of drawing primitives.

    Drawing order per staff: staff lines, staff name, clef, key signature,
    time signature, then per measure the selection highlight, bar line and
    notes, and finally the closing double bar. Selection only changes colors
    and adds a highlight rectangle; it never moves anything.

    Rendering is pure: the same score and selection always give an equal
    primitive list.
    """

    def __init__(
        self,
        metrics: LayoutMetrics = DEFAULT_METRICS,
        palette: RenderPalette = DEFAULT_PALETTE,
    ) -> None:
        self.metrics = metrics
        self.palette = palette
        self.engine = LayoutEngine(metrics)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _header(self, score: Score) -> list[Primitive]:
        out: list[Primitive] = []
        if score.title:
            out.append(
                Text(
                    "title",
                    score.width / 2,
                    self.metrics.title_baseline,
                    score.title,
                    font_size=20,
                    bold=True,
                    color=self.palette.ink,
                )
            )
        if score.composer:
            out.append(
                Text(
                    "composer",
                    score.width - self.metrics.right_margin,
                    self.metrics.composer_baseline,
                    score.composer,
                    font_size=12,
                    anchor="end",
                    color=self.palette.composer,
                )
            )
        return out

    def _clef(self, staff: StaffLayout) -> list[Primitive]:
        x = staff.clef_x
        mid = staff.middle_y
        if staff.clef is Clef.TREBLE:
            return [
                Path(
                    "clef",
                    TREBLE_CLEF_PATH,
                    x=x,
                    y=mid - TREBLE_CLEF_RISE,
                    scale=TREBLE_CLEF_SCALE,
                    stroke_width=1.8,
                    ref=staff.clef.value,
                )
            ]
        if staff.clef is Clef.BASS:
            top = mid - BASS_CLEF_RISE
            return [
                Path(
                    "clef",
                    BASS_CLEF_PATH,
                    x=x,
                    y=top,
                    scale=BASS_CLEF_SCALE,
                    stroke_width=1.8,
                    ref=staff.clef.value,
                ),
                Circle("clef", x + 22 * BASS_CLEF_SCALE, top + 6 * BASS_CLEF_SCALE, 2 * BASS_CLEF_SCALE),
                Circle("clef", x + 22 * BASS_CLEF_SCALE, top + 14 * BASS_CLEF_SCALE, 2 * BASS_CLEF_SCALE),
            ]

        # C clefs point at the middle-C line: the middle line for alto,
        # the fourth line for tenor.
        c_y = self.engine.staff_position_to_y(
            pitch_to_staff_position(Pitch(NoteName.C, 4), staff.clef), staff.top_y
        )
        reach = self.metrics.staff_height * 0.35
        return [
            Line("clef", x, staff.top_y, x, staff.bottom_y, 3, ref=staff.clef.value),
            Line("clef", x + 4, staff.top_y, x + 4, staff.bottom_y, 1.5),
            Line("clef", x + 8, c_y - reach, x + 20, c_y, 1.5),
            Line("clef", x + 8, c_y + reach, x + 20, c_y, 1.5),
        ]

    def _key_signature(self, staff: StaffLayout) -> list[Primitive]:
        return [
            Text(
                "key-signature",
                glyph.x,
                glyph.y + 4,
                ACCIDENTAL_SYMBOLS[glyph.accidental],
                font_size=14,
                ref=str(Pitch(glyph.pitch.note, glyph.pitch.octave, glyph.accidental)),
            )
            for glyph in staff.key_signature
        ]

    def _time_signature(self, score: Score, staff: StaffLayout) -> list[Primitive]:
        spacing = self.metrics.line_spacing
        ts = score.time_signature
        return [
            Text("time-signature", staff.time_signature_x, staff.top_y + spacing * 0.8,
                 str(ts.beats), font_size=18, bold=True),
            Text("time-signature", staff.time_signature_x, staff.top_y + spacing * 2.8,
                 str(ts.beat_type), font_size=18, bold=True),
        ]

    def _ledger_lines(self, x: float, head: HeadLayout) -> list[Primitive]:
        half = self.metrics.note_head_rx + self.metrics.ledger_overhang
        return [Line("ledger-line", x - half, ly, x + half, ly, 1.0) for ly in head.ledger_ys]

    def _stem_x(self, x: float, up: bool) -> float:
        rx = self.metrics.note_head_rx
        return x + rx - 1 if up else x - rx + 1

    def _stem_and_flags(self, note: NoteLayout, color: str) -> list[Primitive]:
        duration = note.note.duration
        if not duration.has_stem:
            return []
        m = self.metrics
        up = note.stem_up
        ys = [head.y for head in note.heads]
        # The stem runs through every head of a chord and extends past the outermost one.
        start_y = max(ys) if up else min(ys)
        end_y = min(ys) - m.stem_length if up else max(ys) + m.stem_length
        sx = self._stem_x(note.x, up)
        out: list[Primitive] = [Line("stem", sx, start_y, sx, end_y, 1.2, color=color, ref=note.note.id)]

        direction = -1 if up else 1
        for i in range(duration.flags):
            fy = end_y - direction * i * m.flag_step
            d = "M {} {} C {} {} {} {} {} {}".format(
                *(
                    format_number(v)
                    for v in (
                        sx, fy,
                        sx + 8, fy - direction * 12,
                        sx + 12, fy - direction * 6,
                        sx + 6, fy - direction * 18,
                    )
                )
            )
            out.append(Path("flag", d, stroke_width=1.2, color=color, ref=note.note.id))
        return out

    def _note(self, note: NoteLayout, color: str) -> list[Primitive]:
        m = self.metrics
        filled = note.note.duration.filled
        out: list[Primitive] = []
        for head in note.heads:
            out.extend(self._ledger_lines(note.x, head))
            if head.pitch.accidental is not None:
                out.append(
                    Text(
                        "accidental",
                        note.x - m.note_head_rx - 6,
                        head.y + 4,
                        ACCIDENTAL_SYMBOLS[head.pitch.accidental],
                        font_size=13,
                        color=color,
                        ref=str(head.pitch),
                    )
                )
            out.append(
                Ellipse(
                    "notehead",
                    note.x,
                    head.y,
                    m.note_head_rx,
                    m.note_head_ry,
                    filled=filled,
                    rotation=m.note_head_rotation,
                    color=color,
                    ref=note.note.id,
                )
            )
        out.extend(self._stem_and_flags(note, color))
        if note.note.dotted:
            for head in note.heads:
                out.append(Circle("dot", note.x + m.note_head_rx + 4, head.y, 1.5, color=color, ref=note.note.id))
        return out

    def _rest(self, note: NoteLayout, staff: StaffLayout, color: str) -> list[Primitive]:
        x = note.x
        mid = staff.middle_y
        spacing = self.metrics.line_spacing
        u = spacing / 10
        ref = note.note.id
        duration = note.note.duration

        out: list[Primitive]
        if duration is Duration.WHOLE:
            # hangs from the fourth line
            out = [Rect("rest", x - 6 * u, mid - spacing, 12 * u, spacing / 2, color=color, ref=ref)]
        elif duration is Duration.HALF:
            # sits on the middle line
            out = [Rect("rest", x - 6 * u, mid, 12 * u, spacing / 2, color=color, ref=ref)]
        elif duration is Duration.QUARTER:
            d = "M {} {} L {} {} L {} {} L {} {}".format(
                *(
                    format_number(v)
                    for v in (
                        x, mid - 10 * u,
                        x + 5 * u, mid - 3 * u,
                        x - 3 * u, mid + 4 * u,
                        x + 4 * u, mid + 10 * u,
                    )
                )
            )
            out = [Path("rest", d, stroke_width=2, color=color, ref=ref)]
        else:
            hooks = [mid - 4 * u] if duration is Duration.EIGHTH else [mid - 7 * u, mid - 1 * u]
            out = [Circle("rest", x + 2 * u, hy, 2 * u, color=color, ref=ref) for hy in hooks]
            out.append(Line("rest", x + 2 * u, hooks[0], x, mid + 8 * u, 1.5, color=color, ref=ref))

        if note.note.dotted:
            out.append(Circle("dot", x + 10 * u, mid - spacing / 2, 1.5, color=color, ref=ref))
        return out

    def _measure(
        self, staff: StaffLayout, measure: MeasureLayout, selection: Selection, is_last: bool
    ) -> list[Primitive]:
        out: list[Primitive] = []
        if selection.is_measure(staff.staff_id, measure.index):
            out.append(
                Rect(
                    "highlight",
                    measure.x,
                    staff.top_y - 3,
                    measure.width,
                    self.metrics.staff_height + 6,
                    color=self.palette.selection,
                    opacity=self.palette.highlight_opacity,
                    ref=measure.measure_id,
                )
            )
        if not is_last:
            out.append(
                Line("bar-line", measure.end_x, staff.top_y, measure.end_x, staff.bottom_y, 1.0,
                     color=self.palette.bar_line)
            )
        for note in measure.notes:
            selected = selection.is_note(staff.staff_id, measure.index, note.index)
            color = self.palette.selection if selected else "currentColor"
            if note.is_rest:
                out.extend(self._rest(note, staff, color))
            else:
                out.extend(self._note(note, color))
        return out

    def _staff(self, score: Score, staff: StaffLayout, selection: Selection) -> list[Primitive]:
        m = self.metrics
        line_color = self.palette.staff_line_selected if selection.is_staff(staff.staff_id) else self.palette.staff_line
        out: list[Primitive] = [
            Line("staff-line", m.left_margin, y, staff.end_x, y, 0.8, color=line_color, ref=staff.staff_id)
            for y in staff.line_ys
        ]
        if staff.name:
            out.append(
                Text(
                    "staff-name",
                    m.left_margin - 5,
                    staff.middle_y + 4,
                    staff.name,
                    font_size=10,
                    anchor="end",
                    font_family="sans-serif",
                    color=self.palette.staff_name,
                    ref=staff.staff_id,
                )
            )
        out.extend(self._clef(staff))
        out.extend(self._key_signature(staff))
        out.extend(self._time_signature(score, staff))

        last = len(staff.measures) - 1
        for measure in staff.measures:
            out.extend(self._measure(staff, measure, selection, measure.index == last))

        end = staff.end_x
        out.append(Line("double-bar", end - 3, staff.top_y, end - 3, staff.bottom_y, 1.0, color=self.palette.bar_line))
        out.append(Line("double-bar", end, staff.top_y, end, staff.bottom_y, 2.5, color=self.palette.bar_line))
        return out

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, score: Score, selection: Selection = NO_SELECTION) -> list[Primitive]:
        """Return the drawing primitives for *score* with *selection* highlighted."""
        layout = self.engine.layout(score)
        primitives = self._header(score)
        for staff in layout.staves:
            primitives.extend(self._staff(score, staff, selection))
        return primitives


def render(score: Score, selection: Selection = NO_SELECTION) -> list[Primitive]:
    """Render *score* with the default metrics and palette."""
    return GlyphRenderer().render(score, selection)
