"""Mapping between written pitches and staff positions for each clef.

A staff position is a signed count of half line-spacings from the clef's
middle line: 0 is the middle line, +1 the space above it, -2 the line below
it. Consecutive diatonic steps alternate between a line and a space, so the
position is simply the diatonic distance from the middle-line pitch.
"""

from __future__ import annotations

from typing import Final

from scorecraft.score_models import NOTE_NAMES, Clef, NoteName, Pitch

DIATONIC_STEPS_PER_OCTAVE = 7

# Pitch sitting on the middle (third) line of each clef
CLEF_MIDDLE_PITCHES: Final[dict[Clef, Pitch]] = {
    Clef.TREBLE: Pitch(NoteName.B, 4),
    Clef.BASS: Pitch(NoteName.D, 3),
    Clef.ALTO: Pitch(NoteName.C, 4),
    Clef.TENOR: Pitch(NoteName.A, 3),
}


def diatonic(note: NoteName, octave: int) -> int:
    """Absolute diatonic step number: ``octave * 7 + index(note)``."""
    return octave * DIATONIC_STEPS_PER_OCTAVE + note.diatonic_index


def clef_middle_pitch(clef: Clef) -> Pitch:
    return CLEF_MIDDLE_PITCHES[Clef(clef)]


def _middle_diatonic(clef: Clef) -> int:
    middle = clef_middle_pitch(clef)
    return diatonic(middle.note, middle.octave)


def pitch_to_staff_position(pitch: Pitch, clef: Clef) -> int:
    """Return the half-space offset of *pitch* from the middle line of *clef*."""
    return diatonic(pitch.note, pitch.octave) - _middle_diatonic(clef)


def staff_position_to_pitch(position: int, clef: Clef) -> Pitch:
    """
    Return the natural pitch written at *position* on a *clef* staff.

    Exact inverse of :func:`pitch_to_staff_position` for every integer
    position; the result never carries an accidental.
    """
    step = _middle_diatonic(clef) + position
    # floor division and modulo keep negative steps in the right octave
    octave, index = divmod(step, DIATONIC_STEPS_PER_OCTAVE)
    return Pitch(NOTE_NAMES[index], octave)
