"""scorecraft CLI entry point."""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from scorecraft import __version__
from scorecraft.editor import MusicTool, ScoreEditor
from scorecraft.glyph_renderer import GlyphRenderer
from scorecraft.hit_test import HitTester
from scorecraft.layout_engine import LayoutEngine
from scorecraft.score_models import (
    Clef,
    Duration,
    KEY_SIGNATURE_ACCIDENTALS,
    Score,
    Selection,
    Staff,
    TimeSignature,
    default_measure,
)
from scorecraft.vector_renderers import build_renderer

logger = logging.getLogger("scorecraft.cli")

LOG_FORMAT = "%(asctime)s  %(name)-24s  %(levelname)-7s  %(message)s"


def _load_score(path: str) -> Score:
    """Read a score JSON file written by ``scorecraft new`` or ``scorecraft import``."""
    with open(path, encoding="utf-8") as fh:
        score = Score.from_dict(json.load(fh))
    logger.debug("Loaded %s (%d staves)", path, len(score.staves))
    return score


def _save_score(score: Score, path: str) -> None:
    Path(path).write_text(json.dumps(score.to_dict(), indent=2) + "\n", encoding="utf-8")


def _fail(message: str, exc: Exception) -> NoReturn:
    click.echo(f"  ERROR: {message}: {exc}", err=True)
    sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scorecraft")
@click.option("--verbose", "-v", is_flag=True, help="Log editor and importer activity to stderr.")
def main(verbose: bool) -> None:
    """scorecraft: lay out, render and edit music notation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


# ── new subcommand ─────────────────────────────────────────────────────────────

@main.command()
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.option("--title", default="Untitled Score", show_default=True, help="Score title.")
@click.option("--composer", default="", help="Composer shown under the title.")
@click.option(
    "--key",
    type=click.Choice(list(KEY_SIGNATURE_ACCIDENTALS)),
    default="C",
    show_default=True,
    help="Key signature.",
)
@click.option("--time", "time_signature", default="4/4", show_default=True, help="Time signature.")
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=120,
    show_default=True,
    help="Tempo in BPM.",
)
@click.option(
    "--measures",
    type=click.IntRange(1, 64),
    default=4,
    show_default=True,
    help="Number of empty measures.",
)
@click.option(
    "--clef",
    type=click.Choice([c.value for c in Clef]),
    default=Clef.TREBLE.value,
    show_default=True,
    help="Clef of the first staff.",
)
def new(
    output: str,
    title: str,
    composer: str,
    key: str,
    time_signature: str,
    tempo: int,
    measures: int,
    clef: str,
) -> None:
    """
    Write an empty score as JSON.

    \b
    Examples:
      scorecraft new song.json --title "My Song" --key G --time 3/4
      scorecraft new bass.json --clef bass --measures 8
    """
    try:
        meter = TimeSignature.parse(time_signature)
    except ValueError as exc:
        _fail("Invalid --time", exc)

    score = Score(
        title=title,
        composer=composer,
        key_signature=key,
        time_signature=meter,
        tempo=tempo,
        staves=[
            Staff(
                name=Clef(clef).value.capitalize(),
                clef=Clef(clef),
                measures=[default_measure() for _ in range(measures)],
            )
        ],
    )
    try:
        _save_score(score, output)
    except OSError as exc:
        _fail("Could not write score file", exc)
    click.echo(f"Wrote '{output}'  ({key}, {meter}, {measures} measures)")


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["svg", "json"], case_sensitive=False),
    default="svg",
    show_default=True,
    help="Vector output format.",
)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file. Defaults to the score path with the format's extension.",
)
@click.option("--select-staff", type=int, default=None, metavar="N", help="Highlight staff N (0-based).")
@click.option("--select-measure", type=int, default=None, metavar="N", help="Highlight measure N.")
@click.option("--select-note", type=int, default=None, metavar="N", help="Highlight note N.")
def render(
    score_file: str,
    output_format: str,
    output: str | None,
    select_staff: int | None,
    select_measure: int | None,
    select_note: int | None,
) -> None:
    """
    Render a score JSON file as SVG or as a JSON list of drawing primitives.

    \b
    Examples:
      scorecraft render song.json
      scorecraft render song.json --format json -o song.primitives.json
      scorecraft render song.json --select-staff 0 --select-measure 2
    """
    try:
        score = _load_score(score_file)
        renderer = build_renderer(output_format)
    except (OSError, ValueError) as exc:
        _fail("Could not load score", exc)

    selection = Selection()
    if select_staff is None and (select_measure is not None or select_note is not None):
        click.echo("  ERROR: --select-measure and --select-note need --select-staff", err=True)
        sys.exit(1)
    if select_staff is not None:
        if not 0 <= select_staff < len(score.staves):
            click.echo(f"  ERROR: --select-staff must be below {len(score.staves)}", err=True)
            sys.exit(1)
        selection = Selection(score.staves[select_staff].id, select_measure, select_note)

    resolved_output = output or str(Path(score_file).with_suffix(renderer.default_extension))
    primitives = GlyphRenderer().render(score, selection)
    layout = LayoutEngine().layout(score)
    content = renderer.render(primitives=primitives, width=layout.width, height=layout.height)
    try:
        Path(resolved_output).write_text(content, encoding="utf-8")
    except OSError as exc:
        _fail("Could not write output file", exc)
    click.echo(f"Wrote {len(primitives)} primitives → '{resolved_output}'")


# ── hit subcommand ─────────────────────────────────────────────────────────────

@main.command()
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.argument("x", type=float)
@click.argument("y", type=float)
def hit(score_file: str, x: float, y: float) -> None:
    """Print the staff, measure and pitch under point (X, Y)."""
    try:
        score = _load_score(score_file)
    except (OSError, ValueError) as exc:
        _fail("Could not load score", exc)

    result = HitTester().hit_test(score, x, y)
    if result is None:
        click.echo("no match")
        return
    staff = score.find_staff(result.staff_id)
    name = staff.name if staff is not None else result.staff_id
    click.echo(
        f"staff={name} ({result.clef.value})  measure={result.measure_idx}  pitch={result.pitch}"
    )


# ── click subcommand ───────────────────────────────────────────────────────────

@main.command(name="click")
@click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.option(
    "--tool",
    type=click.Choice([t.value for t in MusicTool]),
    default=MusicTool.NOTE.value,
    show_default=True,
    help="What the click does.",
)
@click.option(
    "--duration",
    type=click.Choice([d.value for d in Duration]),
    default=Duration.QUARTER.value,
    show_default=True,
    help="Duration of added notes and rests.",
)
@click.option("--dotted", is_flag=True, help="Add dotted notes and rests.")
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Where to write the edited score. Defaults to overwriting SCORE_FILE.",
)
def click_command(
    score_file: str,
    x: float,
    y: float,
    tool: str,
    duration: str,
    dotted: bool,
    output: str | None,
) -> None:
    """
    Apply a tool click at (X, Y) and save the edited score.

    \b
    Examples:
      scorecraft click song.json 200 120
      scorecraft click song.json 200 120 --duration half --dotted
      scorecraft click song.json 200 120 --tool eraser -o edited.json
    """
    try:
        editor = ScoreEditor(_load_score(score_file))
    except (OSError, ValueError) as exc:
        _fail("Could not load score", exc)

    editor.set_tool(tool)
    editor.set_duration(duration)
    editor.set_dotted(dotted)
    try:
        result = editor.click(x, y)
    except ValueError as exc:
        _fail("Could not apply click", exc)
    if result is None:
        click.echo("no match; score unchanged")
        return

    resolved_output = output or score_file
    try:
        _save_score(editor.score, resolved_output)
    except OSError as exc:
        _fail("Could not write score file", exc)
    click.echo(
        f"{tool}: measure {result.measure_idx}, pitch {result.pitch} → '{resolved_output}'"
    )


# ── import subcommand ──────────────────────────────────────────────────────────

@main.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination score JSON. Defaults to SOURCE with a .json extension.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Score title. Defaults to the file's metadata or filename stem.",
)
def import_command(source: str, output: str | None, title: str | None) -> None:
    """
    Convert a MIDI or MusicXML file into an editable score JSON file.

    \b
    Examples:
      scorecraft import my_song.mid
      scorecraft import my_song.musicxml -o song.json --title "My Song"
    """
    from scorecraft.score_importer import ScoreImporter

    resolved_output = output or str(Path(source).with_suffix(".json"))
    click.echo(f"scorecraft v{__version__}")
    click.echo(f"  Source : {source}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    click.echo("[1/2] Parsing with music21...")
    try:
        score = ScoreImporter(title=title).load(source)
    except ValueError as exc:
        _fail("Could not import score", exc)
    click.echo(f"      {len(score.staves)} staves, {len(score.staves[0].measures)} measures")

    click.echo("[2/2] Writing score JSON...")
    try:
        _save_score(score, resolved_output)
    except OSError as exc:
        _fail("Could not write score file", exc)

    click.echo()
    click.echo(f"Done!  Render it with: scorecraft render '{resolved_output}'")
