"""Unit tests for GlyphRenderer output."""

import itertools

import pytest

from scorecraft.glyph_renderer import DEFAULT_PALETTE, GlyphRenderer, render
from scorecraft.glyphs import ROLES, Circle, Ellipse, Line, Path, Rect, Text, primitives_with_role
from scorecraft.score_models import (
    Chord,
    Clef,
    Duration,
    Note,
    Pitch,
    Rest,
    Score,
    Selection,
    TimeSignature,
    default_staff,
)


def _ids(prefix: str = "id"):
    counter = itertools.count()
    return lambda: f"{prefix}{next(counter)}"


def _score(*notes, key: str = "C", clef: Clef = Clef.TREBLE, **meta) -> Score:
    staff = default_staff("Piano", clef, 4, _ids())
    staff.measures[0].notes.extend(notes)
    return Score(key_signature=key, staves=[staff], **meta)


def _roles(score: Score, role: str, selection: Selection = Selection()):
    return primitives_with_role(render(score, selection), role)


# ---------------------------------------------------------------------------
# Staff furniture
# ---------------------------------------------------------------------------

def test_every_primitive_has_known_role() -> None:
    score = _score(Note(Pitch.parse("C#4"), Duration.EIGHTH, dotted=True, id="n"), Rest(id="r"), key="Bb")
    for primitive in render(score):
        assert primitive.role in ROLES


def test_five_staff_lines_per_staff() -> None:
    lines = _roles(_score(), "staff-line")
    assert len(lines) == 5
    assert [line.y1 for line in lines] == [80, 90, 100, 110, 120]
    assert all(line.x1 == 60 and line.x2 == 1170 for line in lines)


def test_title_and_composer_header() -> None:
    score = _score(title="Sonata", composer="Someone")
    (title,) = _roles(score, "title")
    (composer,) = _roles(score, "composer")
    assert isinstance(title, Text) and title.text == "Sonata"
    assert (title.x, title.y) == (600, 30)
    assert composer.anchor == "end"
    assert composer.y == 50


def test_empty_title_draws_no_header() -> None:
    assert _roles(_score(title="", composer=""), "title") == []


def test_bar_lines_between_measures_and_double_bar_at_end() -> None:
    score = _score()
    bars = _roles(score, "bar-line")
    doubles = _roles(score, "double-bar")
    assert len(bars) == 3
    assert [line.x1 for line in doubles] == [1167, 1170]


def test_double_bar_follows_last_measure_when_measures_overflow() -> None:
    staff = default_staff("Piano", Clef.TREBLE, 12, _ids())
    score = Score(staves=[staff], width=1200)
    last_end = 145 + 12 * 120
    doubles = _roles(score, "double-bar")
    assert [line.x1 for line in doubles] == [last_end - 3, last_end]
    assert all(line.x2 == last_end for line in _roles(score, "staff-line"))
    assert max(line.x1 for line in _roles(score, "bar-line")) < last_end


def test_time_signature_digits() -> None:
    score = _score()
    score.time_signature = TimeSignature(6, 8)
    digits = [t.text for t in _roles(score, "time-signature")]
    assert digits == ["6", "8"]


@pytest.mark.parametrize("clef", list(Clef))
def test_every_clef_draws_a_glyph(clef: Clef) -> None:
    clef_parts = _roles(_score(clef=clef), "clef")
    assert clef_parts
    assert clef_parts[0].ref == clef.value


def test_treble_and_bass_clefs_are_paths() -> None:
    assert isinstance(_roles(_score(clef=Clef.TREBLE), "clef")[0], Path)
    bass = _roles(_score(clef=Clef.BASS), "clef")
    assert isinstance(bass[0], Path)
    assert sum(isinstance(p, Circle) for p in bass) == 2


# ---------------------------------------------------------------------------
# Key signatures
# ---------------------------------------------------------------------------

def test_g_major_renders_one_sharp_on_f5() -> None:
    (sharp,) = _roles(_score(key="G"), "key-signature")
    assert sharp.text == "♯"
    assert sharp.ref == "F#5"
    assert sharp.y == 80 + 4


def test_flat_keys_render_flats_in_order() -> None:
    flats = _roles(_score(key="Eb"), "key-signature")
    assert [f.text for f in flats] == ["♭"] * 3
    assert [f.ref for f in flats] == ["Bb4", "Eb5", "Ab4"]


@pytest.mark.parametrize("key, count", [("C", 0), ("A", 3), ("F#", 6), ("Gb", 6), ("Cb", 7), ("Dm", 1)])
def test_key_signature_glyph_count(key: str, count: int) -> None:
    assert len(_roles(_score(key=key), "key-signature")) == count


def test_bass_clef_key_signature_is_lower() -> None:
    (treble_sharp,) = _roles(_score(key="G"), "key-signature")
    (bass_sharp,) = _roles(_score(key="G", clef=Clef.BASS), "key-signature")
    assert bass_sharp.ref == "F#3"
    assert bass_sharp.y == treble_sharp.y + 10


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "duration, filled, stems, flags",
    [
        (Duration.WHOLE, False, 0, 0),
        (Duration.HALF, False, 1, 0),
        (Duration.QUARTER, True, 1, 0),
        (Duration.EIGHTH, True, 1, 1),
        (Duration.SIXTEENTH, True, 1, 2),
    ],
)
def test_duration_maps_to_glyphs(duration: Duration, filled: bool, stems: int, flags: int) -> None:
    score = _score(Note(Pitch.parse("G4"), duration, id="n"))
    (head,) = _roles(score, "notehead")
    assert isinstance(head, Ellipse)
    assert head.filled is filled
    assert head.rotation == -10
    assert len(_roles(score, "stem")) == stems
    assert len(_roles(score, "flag")) == flags


def test_middle_c_draws_one_ledger_line_and_stem_up() -> None:
    score = _score(Note(Pitch.parse("C4"), id="n"))
    (ledger,) = _roles(score, "ledger-line")
    (head,) = _roles(score, "notehead")
    (stem,) = _roles(score, "stem")
    assert ledger.y1 == ledger.y2 == head.cy == 130
    assert ledger.x1 < head.cx < ledger.x2
    assert stem.x1 > head.cx
    assert stem.y2 == head.cy - 30


def test_high_note_stem_points_down() -> None:
    score = _score(Note(Pitch.parse("D5"), id="n"))
    (head,) = _roles(score, "notehead")
    (stem,) = _roles(score, "stem")
    assert stem.x1 < head.cx
    assert stem.y2 == head.cy + 30


def test_accidental_is_drawn_left_of_head() -> None:
    score = _score(Note(Pitch.parse("F#5"), id="n"), key="G")
    (accidental,) = _roles(score, "accidental")
    (head,) = _roles(score, "notehead")
    assert accidental.text == "♯"
    assert accidental.x == head.cx - 11


def test_dotted_note_has_dot_right_of_head() -> None:
    score = _score(Note(Pitch.parse("A4"), dotted=True, id="n"))
    (dot,) = _roles(score, "dot")
    (head,) = _roles(score, "notehead")
    assert dot.cx == head.cx + 9
    assert dot.cy == head.cy


def test_chord_draws_one_stem_through_all_heads() -> None:
    chord = Chord(Pitch.parse("C4"), [Pitch.parse("E4"), Pitch.parse("G4")], id="c")
    score = _score(chord)
    heads = _roles(score, "notehead")
    (stem,) = _roles(score, "stem")
    assert len(heads) == 3
    assert stem.y1 == max(h.cy for h in heads)
    assert stem.y2 == min(h.cy for h in heads) - 30


@pytest.mark.parametrize(
    "duration, shape",
    [
        (Duration.WHOLE, Rect),
        (Duration.HALF, Rect),
        (Duration.QUARTER, Path),
        (Duration.EIGHTH, Circle),
        (Duration.SIXTEENTH, Circle),
    ],
)
def test_rest_glyph_by_duration(duration: Duration, shape: type) -> None:
    rests = _roles(_score(Rest(duration, id="r")), "rest")
    assert isinstance(rests[0], shape)
    assert all(r.ref == "r" for r in rests)
    assert _roles(_score(Rest(duration, id="r")), "notehead") == []


def test_whole_rest_hangs_and_half_rest_sits() -> None:
    (whole,) = _roles(_score(Rest(Duration.WHOLE, id="r")), "rest")
    (half,) = _roles(_score(Rest(Duration.HALF, id="r")), "rest")
    assert whole.y + whole.height == 100 - 5
    assert half.y == 100


def test_sixteenth_rest_has_two_hooks() -> None:
    rests = _roles(_score(Rest(Duration.SIXTEENTH, id="r")), "rest")
    assert sum(isinstance(r, Circle) for r in rests) == 2
    assert sum(isinstance(r, Line) for r in rests) == 1


# ---------------------------------------------------------------------------
# Selection and determinism
# ---------------------------------------------------------------------------

def test_selected_measure_gets_highlight() -> None:
    score = _score()
    staff = score.staves[0]
    (highlight,) = _roles(score, "highlight", Selection(staff.id, 1, None))
    assert highlight.ref == staff.measures[1].id
    assert highlight.color == DEFAULT_PALETTE.selection
    assert highlight.opacity == DEFAULT_PALETTE.highlight_opacity


def test_selected_note_is_recolored_without_moving() -> None:
    score = _score(Note(Pitch.parse("E4"), id="a"), Note(Pitch.parse("G4"), id="b"))
    staff = score.staves[0]
    plain = _roles(score, "notehead")
    selected = _roles(score, "notehead", Selection(staff.id, 0, 1))
    assert [h.color for h in selected] == ["currentColor", DEFAULT_PALETTE.selection]
    assert [(h.cx, h.cy) for h in selected] == [(h.cx, h.cy) for h in plain]


def test_rendering_is_deterministic() -> None:
    score = _score(Note(Pitch.parse("C4"), id="n"), Rest(Duration.EIGHTH, id="r"), key="D")
    renderer = GlyphRenderer()
    assert renderer.render(score) == renderer.render(score)


def test_second_staff_is_drawn_below_first() -> None:
    score = _score()
    score.staves.append(default_staff("Bass", Clef.BASS, 4, _ids("bass")))
    lines = _roles(score, "staff-line")
    assert [line.y1 for line in lines[5:]] == [200, 210, 220, 230, 240]


def test_selected_staff_lines_are_tinted() -> None:
    score = _score()
    lines = _roles(score, "staff-line", Selection(score.staves[0].id, None, None))
    assert {line.color for line in lines} == {DEFAULT_PALETTE.staff_line_selected}
    assert {line.color for line in _roles(score, "staff-line")} == {DEFAULT_PALETTE.staff_line}
