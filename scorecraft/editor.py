"""ScoreEditor: command interface for editing a score with undo/redo.

Every mutating command snapshots the score before changing it, so each one
can be undone. Selection and tool state live next to the score, never in it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from scorecraft.glyph_renderer import GlyphRenderer
from scorecraft.glyphs import Primitive
from scorecraft.hit_test import HitResult, HitTester
from scorecraft.history import MAX_UNDO, UndoHistory
from scorecraft.layout_engine import DEFAULT_METRICS, LayoutMetrics
from scorecraft.score_models import (
    DEFAULT_MEASURE_COUNT,
    NO_SELECTION,
    Clef,
    Duration,
    Measure,
    MusicNote,
    Note,
    Pitch,
    Rest,
    Score,
    Selection,
    Staff,
    TimeSignature,
    default_measure,
    default_score,
    default_staff,
    music_note_from_dict,
    new_id,
    signed_accidental_count,
)

logger = logging.getLogger("scorecraft.editor")


class ScoreEditError(ValueError):
    """A command referred to something that does not exist or is invalid."""


class MusicTool(str, Enum):
    """What a click on the score does."""

    SELECT = "select"
    NOTE = "note"
    REST = "rest"
    ERASER = "eraser"


class ScoreEditor:
    """Owns the live score, its undo history, the selection and the tool state.

    Attributes:
        score:     The score being edited. Replaced (not mutated) by undo/redo.
        selection: Selected staff, measure and note; independent of the score.
        tool:      Tool applied by :meth:`click`.
        duration:  Duration given to new notes and rests.
        dotted:    Whether new notes and rests are dotted.
    """

    STAFF_HEIGHT_STEP = 120  # score height added per staff
    MIN_HEIGHT = 400

    def __init__(
        self,
        score: Score | None = None,
        *,
        history_capacity: int = MAX_UNDO,
        metrics: LayoutMetrics = DEFAULT_METRICS,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._new_id = id_factory
        self.score = score if score is not None else default_score(id_factory)
        self.selection: Selection = NO_SELECTION
        self.tool = MusicTool.NOTE
        self.duration = Duration.QUARTER
        self.dotted = False
        self.history = UndoHistory(history_capacity)
        self.hit_tester = HitTester(metrics)
        self.renderer = GlyphRenderer(metrics)

    # ── Properties ───────────────────────────────────────────────

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # ── Lookups ──────────────────────────────────────────────────

    def _staff(self, staff_id: str) -> Staff:
        staff = self.score.find_staff(staff_id)
        if staff is None:
            raise ScoreEditError(f"No staff with id '{staff_id}'.")
        return staff

    def _measure(self, staff_id: str, measure_idx: int) -> Measure:
        staff = self._staff(staff_id)
        if not 0 <= measure_idx < len(staff.measures):
            raise ScoreEditError(
                f"Measure {measure_idx} is out of range for staff '{staff.name}' "
                f"({len(staff.measures)} measures)."
            )
        return staff.measures[measure_idx]

    def _note_index(self, measure: Measure, note_idx: int) -> int:
        if not 0 <= note_idx < len(measure.notes):
            raise ScoreEditError(f"Note {note_idx} is out of range ({len(measure.notes)} notes).")
        return note_idx

    def _checkpoint(self, command: str) -> None:
        self.history.record(self.score)
        logger.debug("%s (undo depth %d)", command, len(self.history))

    # ── Tool state ───────────────────────────────────────────────

    def set_tool(self, tool: MusicTool | str) -> None:
        self.tool = MusicTool(tool)

    def set_duration(self, duration: Duration | str) -> None:
        self.duration = Duration(duration)

    def set_dotted(self, dotted: bool) -> None:
        self.dotted = bool(dotted)

    # ── Notes ────────────────────────────────────────────────────

    def add_note(self, staff_id: str, measure_idx: int, pitch: Pitch | str) -> Note:
        """Append a note with the current duration; selects its measure."""
        measure = self._measure(staff_id, measure_idx)
        pitch = Pitch.parse(pitch) if isinstance(pitch, str) else pitch
        self._checkpoint(f"add_note {pitch} -> {staff_id}[{measure_idx}]")
        note = Note(pitch=pitch, duration=self.duration, dotted=self.dotted, id=self._new_id())
        measure.notes.append(note)
        self.selection = Selection(staff_id, measure_idx, None)
        return note

    def add_rest(self, staff_id: str, measure_idx: int) -> Rest:
        """Append a rest with the current duration."""
        measure = self._measure(staff_id, measure_idx)
        self._checkpoint(f"add_rest -> {staff_id}[{measure_idx}]")
        rest = Rest(duration=self.duration, dotted=self.dotted, id=self._new_id())
        measure.notes.append(rest)
        return rest

    def remove_note(self, staff_id: str, measure_idx: int, note_idx: int) -> MusicNote:
        measure = self._measure(staff_id, measure_idx)
        self._note_index(measure, note_idx)
        self._checkpoint(f"remove_note {staff_id}[{measure_idx}][{note_idx}]")
        removed = measure.notes.pop(note_idx)
        self.selection = Selection(self.selection.staff_id, self.selection.measure_idx, None)
        return removed

    def update_note(
        self, staff_id: str, measure_idx: int, note_idx: int, patch: dict[str, Any]
    ) -> MusicNote:
        """
        Replace fields of a note, e.g. ``{"dotted": True}`` or ``{"type": "rest"}``.

        The note keeps its id. Changing ``type`` converts between note, rest
        and chord.
        """
        measure = self._measure(staff_id, measure_idx)
        current = measure.notes[self._note_index(measure, note_idx)]
        try:
            updated = music_note_from_dict({**current.to_dict(), **patch, "id": current.id})
        except ValueError as exc:
            raise ScoreEditError(f"Invalid note update: {exc}") from exc
        self._checkpoint(f"update_note {staff_id}[{measure_idx}][{note_idx}] {sorted(patch)}")
        measure.notes[note_idx] = updated
        return updated

    def select_note(
        self, staff_id: str | None, measure_idx: int | None, note_idx: int | None
    ) -> None:
        self.selection = Selection(staff_id, measure_idx, note_idx)

    # ── Measures & staves ────────────────────────────────────────

    def add_measure(self, staff_id: str | None = None) -> None:
        """Append an empty measure to one staff, or to every staff when None."""
        targets = [self._staff(staff_id)] if staff_id is not None else list(self.score.staves)
        self._checkpoint(f"add_measure -> {staff_id or 'all staves'}")
        for staff in targets:
            staff.measures.append(default_measure(self._new_id))

    def add_staff(self, name: str = "Bass", clef: Clef | str = Clef.BASS) -> Staff:
        """Append a staff with as many measures as the first staff."""
        clef = Clef(clef)
        first = self.score.staves[0] if self.score.staves else None
        measure_count = len(first.measures) if first and first.measures else DEFAULT_MEASURE_COUNT
        self._checkpoint(f"add_staff {name!r} ({clef.value})")
        staff = default_staff(name, clef, measure_count, self._new_id)
        self.score.staves.append(staff)
        self.score.height += self.STAFF_HEIGHT_STEP
        return staff

    def remove_staff(self, staff_id: str) -> bool:
        """Remove a staff. Removing the only staff is refused and returns False."""
        if len(self.score.staves) <= 1:
            logger.info("Refusing to remove the last staff")
            return False
        staff = self._staff(staff_id)
        self._checkpoint(f"remove_staff {staff_id}")
        self.score.staves.remove(staff)
        self.score.height = max(self.MIN_HEIGHT, self.score.height - self.STAFF_HEIGHT_STEP)
        if self.selection.staff_id == staff_id:
            self.selection = NO_SELECTION
        return True

    def update_staff_clef(self, staff_id: str, clef: Clef | str) -> None:
        staff = self._staff(staff_id)
        clef = Clef(clef)
        self._checkpoint(f"update_staff_clef {staff_id} -> {clef.value}")
        staff.clef = clef

    def update_staff_name(self, staff_id: str, name: str) -> None:
        staff = self._staff(staff_id)
        self._checkpoint(f"update_staff_name {staff_id} -> {name!r}")
        staff.name = name

    # ── Score meta ───────────────────────────────────────────────

    def update_meta(self, title: str | None = None, composer: str | None = None) -> None:
        self._checkpoint("update_meta")
        if title is not None:
            self.score.title = title
        if composer is not None:
            self.score.composer = composer

    def set_key_signature(self, key_signature: str) -> None:
        try:
            signed_accidental_count(key_signature)
        except ValueError as exc:
            raise ScoreEditError(str(exc)) from exc
        self._checkpoint(f"set_key_signature {key_signature}")
        self.score.key_signature = key_signature

    def set_time_signature(self, time_signature: TimeSignature | str) -> None:
        try:
            if isinstance(time_signature, str):
                time_signature = TimeSignature.parse(time_signature)
        except ValueError as exc:
            raise ScoreEditError(str(exc)) from exc
        if time_signature.beats < 1 or time_signature.beat_type < 1:
            raise ScoreEditError(f"Invalid time signature {time_signature}.")
        self._checkpoint(f"set_time_signature {time_signature}")
        self.score.time_signature = time_signature

    def set_tempo(self, tempo: int) -> None:
        if tempo < 1:
            raise ScoreEditError(f"Tempo must be positive, got {tempo}.")
        self._checkpoint(f"set_tempo {tempo}")
        self.score.tempo = int(tempo)

    # ── History ──────────────────────────────────────────────────

    def undo(self) -> bool:
        """Restore the score as it was before the last command."""
        previous = self.history.undo(self.score)
        if previous is None:
            return False
        self.score = previous
        logger.debug("undo")
        return True

    def redo(self) -> bool:
        """Re-apply the last undone command."""
        following = self.history.redo(self.score)
        if following is None:
            return False
        self.score = following
        logger.debug("redo")
        return True

    # ── Pointer input ────────────────────────────────────────────

    def click(self, x: float, y: float) -> HitResult | None:
        """
        Apply the current tool at a point on the rendered score.

        note   → add a note at the pitch under the point
        rest   → add a rest to the measure under the point
        eraser → remove the last note of that measure
        select → select the last note of that measure (or the measure itself)

        A click outside every staff (or on a staff with no measures) clears
        the selection and returns None.
        """
        hit = self.hit_tester.hit_test(self.score, x, y)
        if hit is None:
            self.selection = NO_SELECTION
            return None

        measure = self._measure(hit.staff_id, hit.measure_idx)
        if self.tool is MusicTool.NOTE:
            self.add_note(hit.staff_id, hit.measure_idx, hit.pitch)
        elif self.tool is MusicTool.REST:
            self.add_rest(hit.staff_id, hit.measure_idx)
        elif self.tool is MusicTool.ERASER:
            if measure.notes:
                self.remove_note(hit.staff_id, hit.measure_idx, len(measure.notes) - 1)
        else:
            last = len(measure.notes) - 1 if measure.notes else None
            self.select_note(hit.staff_id, hit.measure_idx, last)
        return hit

    # ── Rendering ────────────────────────────────────────────────

    def render(self) -> list[Primitive]:
        """Render the live score with the current selection highlighted."""
        return self.renderer.render(self.score, self.selection)

    # ── Command Dispatch ─────────────────────────────────────────

    def execute(self, command: str, *args: Any, **kwargs: Any) -> bool:
        """Dispatch a command by name. Returns True if the command was known."""
        actions: dict[str, Callable[..., Any]] = {
            "add_note": self.add_note,
            "add_rest": self.add_rest,
            "remove_note": self.remove_note,
            "update_note": self.update_note,
            "select_note": self.select_note,
            "add_measure": self.add_measure,
            "add_staff": self.add_staff,
            "remove_staff": self.remove_staff,
            "update_staff_clef": self.update_staff_clef,
            "update_staff_name": self.update_staff_name,
            "update_meta": self.update_meta,
            "set_key_signature": self.set_key_signature,
            "set_time_signature": self.set_time_signature,
            "set_tempo": self.set_tempo,
            "set_tool": self.set_tool,
            "set_duration": self.set_duration,
            "set_dotted": self.set_dotted,
            "click": self.click,
            "undo": self.undo,
            "redo": self.redo,
        }
        action = actions.get(command)
        if action is None:
            logger.info("Unknown command %r", command)
            return False
        action(*args, **kwargs)
        return True
