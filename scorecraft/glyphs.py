"""Vector drawing primitives produced by the glyph renderer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# Every primitive is tagged with the role it plays in the notation so
# consumers (and tests) can pick out e.g. all noteheads or all ledger lines.
ROLES = frozenset(
    {
        "title",
        "composer",
        "staff-name",
        "staff-line",
        "clef",
        "key-signature",
        "time-signature",
        "bar-line",
        "double-bar",
        "highlight",
        "ledger-line",
        "accidental",
        "notehead",
        "stem",
        "flag",
        "dot",
        "rest",
    }
)


@dataclass(frozen=True)
class Line:
    role: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke_width: float = 1.0
    color: str = "currentColor"
    ref: str | None = None


@dataclass(frozen=True)
class Rect:
    role: str
    x: float
    y: float
    width: float
    height: float
    color: str = "currentColor"
    opacity: float = 1.0
    ref: str | None = None


@dataclass(frozen=True)
class Ellipse:
    role: str
    cx: float
    cy: float
    rx: float
    ry: float
    filled: bool = True
    rotation: float = 0.0
    stroke_width: float = 1.2
    color: str = "currentColor"
    ref: str | None = None


@dataclass(frozen=True)
class Circle:
    role: str
    cx: float
    cy: float
    r: float
    color: str = "currentColor"
    ref: str | None = None


@dataclass(frozen=True)
class Path:
    """
    An SVG-style path.

    ``d`` holds absolute path commands; ``scale`` is applied around
    (``x``, ``y``) after translating the path origin there.
    """

    role: str
    d: str
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    stroke_width: float = 1.2
    filled: bool = False
    color: str = "currentColor"
    ref: str | None = None


@dataclass(frozen=True)
class Text:
    role: str
    x: float
    y: float
    text: str
    font_size: float = 14
    anchor: str = "middle"
    font_family: str = "serif"
    bold: bool = False
    color: str = "currentColor"
    ref: str | None = None


Primitive = Union[Line, Rect, Ellipse, Circle, Path, Text]


def format_number(value: float) -> str:
    """Format a coordinate with at most two decimals and no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def primitives_with_role(primitives: list[Primitive], role: str) -> list[Primitive]:
    """Return the primitives tagged with *role*, in drawing order."""
    return [p for p in primitives if p.role == role]
