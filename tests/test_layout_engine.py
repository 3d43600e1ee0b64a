"""Unit tests for LayoutEngine geometry."""

import dataclasses
import itertools

import pytest

from scorecraft.layout_engine import (
    DEFAULT_METRICS,
    LayoutEngine,
    key_signature_pitches,
    ledger_line_positions,
)
from scorecraft.score_models import (
    Accidental,
    Chord,
    Clef,
    Measure,
    Note,
    Pitch,
    Rest,
    Score,
    Staff,
    default_staff,
)


def _ids():
    counter = itertools.count()
    return lambda: f"id{next(counter)}"


def _score(*notes, clef: Clef = Clef.TREBLE, key: str = "C", measures: int = 4) -> Score:
    staff = default_staff("Staff", clef, measures, _ids())
    staff.measures[0].notes.extend(notes)
    return Score(key_signature=key, staves=[staff])


def _only_note(score: Score):
    return LayoutEngine().layout(score).staves[0].measures[0].notes[0]


# ---------------------------------------------------------------------------
# Key signatures and ledger lines
# ---------------------------------------------------------------------------

def test_key_signature_order_for_sharps() -> None:
    accidental, pitches = key_signature_pitches("E", Clef.TREBLE)
    assert accidental is Accidental.SHARP
    assert [p.note.value for p in pitches] == ["F", "C", "G", "D"]


def test_key_signature_order_for_flats() -> None:
    accidental, pitches = key_signature_pitches("Db", Clef.BASS)
    assert accidental is Accidental.FLAT
    assert [p.note.value for p in pitches] == ["B", "E", "A", "D", "G"]


@pytest.mark.parametrize(
    "key, count",
    [("C", 0), ("G", 1), ("D", 2), ("B", 5), ("F#", 6), ("Abm", 7), ("F", 1), ("Bb", 2), ("Cb", 7), ("Am", 0), ("Em", 1)],
)
def test_key_signature_counts(key: str, count: int) -> None:
    _, pitches = key_signature_pitches(key, Clef.TREBLE)
    assert len(pitches) == count


def test_c_major_has_no_key_signature_accidental() -> None:
    assert key_signature_pitches("C", Clef.ALTO) == (None, [])


def test_ledger_positions_inside_staff_are_empty() -> None:
    for position in range(-5, 6):
        assert ledger_line_positions(position) == []


def test_ledger_positions_above_and_below() -> None:
    assert ledger_line_positions(6) == [6]
    assert ledger_line_positions(7) == [6]
    assert ledger_line_positions(8) == [6, 8]
    assert ledger_line_positions(-6) == [-6]
    assert ledger_line_positions(-9) == [-6, -8]


# ---------------------------------------------------------------------------
# Staff and measure geometry
# ---------------------------------------------------------------------------

def test_staves_are_stacked_with_gap() -> None:
    engine = LayoutEngine()
    assert engine.staff_top_y(0) == 80
    assert engine.staff_top_y(1) == 200
    assert engine.staff_top_y(2) == 320


def test_staff_position_and_y_are_inverse() -> None:
    engine = LayoutEngine()
    for position in range(-12, 13):
        y = engine.staff_position_to_y(position, 200)
        assert engine.y_to_staff_position(y, 200) == position


def test_y_snaps_to_nearest_position() -> None:
    engine = LayoutEngine()
    # middle line of the first staff is y=100; each position is 5 units
    assert engine.y_to_staff_position(101.9, 80) == 0
    assert engine.y_to_staff_position(103.1, 80) == -1
    assert engine.y_to_staff_position(97.6, 80) == 0
    assert engine.y_to_staff_position(97.4, 80) == 1


def test_measures_partition_content_width() -> None:
    score = _score()
    staff = LayoutEngine().layout(score).staves[0]
    assert staff.content_start_x == 145
    assert staff.measure_width == pytest.approx(256.25)
    for left, right in zip(staff.measures, staff.measures[1:]):
        assert left.end_x == pytest.approx(right.x)
    assert staff.measures[-1].end_x == pytest.approx(staff.end_x)
    assert len(staff.bar_line_xs) == 3


def test_key_signature_pushes_content_right() -> None:
    plain = LayoutEngine().layout(_score(key="C")).staves[0]
    g_major = LayoutEngine().layout(_score(key="G")).staves[0]
    assert g_major.content_start_x - plain.content_start_x == 20
    assert g_major.time_signature_x - plain.time_signature_x == 20


def test_measure_width_never_below_minimum() -> None:
    score = _score(measures=4)
    score.width = 400
    staff = LayoutEngine().layout(score).staves[0]
    assert staff.measure_width == DEFAULT_METRICS.measure_min_width


def test_staff_end_follows_measures_held_at_minimum_width() -> None:
    score = _score(measures=12)
    layout = LayoutEngine().layout(score)
    staff = layout.staves[0]
    assert staff.measure_width == DEFAULT_METRICS.measure_min_width
    assert staff.measures[-1].end_x == 145 + 12 * 120
    assert staff.end_x == staff.measures[-1].end_x
    assert layout.width == staff.end_x + DEFAULT_METRICS.right_margin


def test_layout_width_is_score_width_when_measures_fit() -> None:
    layout = LayoutEngine().layout(_score())
    assert layout.width == 1200
    assert layout.staves[0].end_x == 1170


def test_g_major_sharp_sits_on_top_line() -> None:
    staff = LayoutEngine().layout(_score(key="G")).staves[0]
    (glyph,) = staff.key_signature
    assert glyph.pitch == Pitch.parse("F5")
    assert glyph.accidental is Accidental.SHARP
    assert glyph.position == 4
    assert glyph.y == staff.top_y
    assert glyph.x == 110


def test_key_signature_glyphs_step_right() -> None:
    staff = LayoutEngine().layout(_score(key="D")).staves[0]
    xs = [g.x for g in staff.key_signature]
    assert xs == [110, 122]
    assert staff.key_signature[1].pitch == Pitch.parse("C5")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

def test_middle_c_on_treble_has_one_ledger_line_and_stem_up() -> None:
    note = _only_note(_score(Note(Pitch.parse("C4"), id="n")))
    (head,) = note.heads
    assert head.position == -6
    assert head.y == 130
    assert head.ledger_ys == (130,)
    assert note.stem_up is True


def test_middle_line_note_has_stem_down() -> None:
    note = _only_note(_score(Note(Pitch.parse("B4"), id="n")))
    assert note.heads[0].position == 0
    assert note.stem_up is False


def test_middle_c_on_bass_clef_sits_above_staff() -> None:
    note = _only_note(_score(Note(Pitch.parse("C4"), id="n"), clef=Clef.BASS))
    assert note.heads[0].position == 6
    assert note.heads[0].ledger_ys == (70,)
    assert note.stem_up is False


def test_notes_share_measure_width() -> None:
    score = _score(Note(Pitch.parse("E4"), id="a"), Rest(id="b"))
    measure = LayoutEngine().layout(score).staves[0].measures[0]
    assert [n.x for n in measure.notes] == pytest.approx([160, 278.125])
    assert measure.notes[1].is_rest
    assert measure.notes[1].y is None
    for n in measure.notes:
        assert measure.x < n.x < measure.end_x


def test_chord_lays_out_every_head() -> None:
    chord = Chord(Pitch.parse("C4"), [Pitch.parse("E4"), Pitch.parse("G4")], id="c")
    note = _only_note(_score(chord))
    assert [h.position for h in note.heads] == [-6, -4, -2]
    assert note.stem_up is True


def test_metrics_override_changes_spacing() -> None:
    metrics = dataclasses.replace(DEFAULT_METRICS, line_spacing=20)
    engine = LayoutEngine(metrics)
    assert metrics.staff_height == 80
    assert engine.staff_top_y(1) == 80 + 80 + 80


def test_layout_does_not_modify_score() -> None:
    score = _score(Note(Pitch.parse("C4"), id="n"))
    before = score.to_dict()
    LayoutEngine().layout(score)
    assert score.to_dict() == before


def test_mismatched_measure_counts_lay_out_per_staff() -> None:
    score = _score(measures=4)
    score.staves.append(Staff("Short", Clef.BASS, [Measure([], "m")], "s2"))
    layout = LayoutEngine().layout(score)
    assert len(layout.staves[0].measures) == 4
    assert len(layout.staves[1].measures) == 1
    assert layout.staff("s2") is layout.staves[1]
