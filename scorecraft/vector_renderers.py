"""Serializers that turn drawing primitives into vector documents."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict

from scorecraft.glyph_renderer import DEFAULT_PALETTE, RenderPalette
from scorecraft.glyphs import Circle, Ellipse, Line, Path, Primitive, Rect, Text, format_number

_n = format_number


def _escape_xml(text: str) -> str:
    """Escape the characters that are unsafe in XML text and attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


class VectorRenderer(ABC):
    """Abstract serializer for a primitive list."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(self, *, primitives: list[Primitive], width: float, height: float) -> str:
        """Serialize *primitives* on a ``width`` × ``height`` surface."""


class SvgRenderer(VectorRenderer):
    """Render primitives into a standalone SVG document."""

    def __init__(self, palette: RenderPalette = DEFAULT_PALETTE) -> None:
        self.palette = palette

    @property
    def default_extension(self) -> str:
        return ".svg"

    def _attrs(self, primitive: Primitive) -> str:
        attrs = f' data-role="{primitive.role}"'
        if primitive.ref is not None:
            attrs += f' data-ref="{_escape_xml(primitive.ref)}"'
        return attrs

    def element(self, primitive: Primitive) -> str:
        """Return the SVG element for a single primitive."""
        meta = self._attrs(primitive)
        if isinstance(primitive, Line):
            return (
                f'<line x1="{_n(primitive.x1)}" y1="{_n(primitive.y1)}" '
                f'x2="{_n(primitive.x2)}" y2="{_n(primitive.y2)}" '
                f'stroke="{primitive.color}" stroke-width="{_n(primitive.stroke_width)}"{meta}/>'
            )
        if isinstance(primitive, Rect):
            opacity = "" if primitive.opacity == 1 else f' fill-opacity="{_n(primitive.opacity)}"'
            return (
                f'<rect x="{_n(primitive.x)}" y="{_n(primitive.y)}" '
                f'width="{_n(primitive.width)}" height="{_n(primitive.height)}" '
                f'fill="{primitive.color}"{opacity}{meta}/>'
            )
        if isinstance(primitive, Ellipse):
            fill = primitive.color if primitive.filled else "none"
            transform = ""
            if primitive.rotation:
                transform = (
                    f' transform="rotate({_n(primitive.rotation)},{_n(primitive.cx)},{_n(primitive.cy)})"'
                )
            return (
                f'<ellipse cx="{_n(primitive.cx)}" cy="{_n(primitive.cy)}" '
                f'rx="{_n(primitive.rx)}" ry="{_n(primitive.ry)}" fill="{fill}" '
                f'stroke="{primitive.color}" stroke-width="{_n(primitive.stroke_width)}"{transform}{meta}/>'
            )
        if isinstance(primitive, Circle):
            return (
                f'<circle cx="{_n(primitive.cx)}" cy="{_n(primitive.cy)}" r="{_n(primitive.r)}" '
                f'fill="{primitive.color}"{meta}/>'
            )
        if isinstance(primitive, Path):
            transform = ""
            if primitive.x or primitive.y or primitive.scale != 1:
                transform = f' transform="translate({_n(primitive.x)},{_n(primitive.y)})'
                if primitive.scale != 1:
                    transform += f" scale({_n(primitive.scale)})"
                transform += '"'
            fill = primitive.color if primitive.filled else "none"
            return (
                f'<path d="{primitive.d}" fill="{fill}" stroke="{primitive.color}" '
                f'stroke-width="{_n(primitive.stroke_width)}" stroke-linecap="round"{transform}{meta}/>'
            )
        if isinstance(primitive, Text):
            weight = ' font-weight="bold"' if primitive.bold else ""
            return (
                f'<text x="{_n(primitive.x)}" y="{_n(primitive.y)}" '
                f'font-size="{_n(primitive.font_size)}" fill="{primitive.color}" '
                f'text-anchor="{primitive.anchor}" font-family="{primitive.font_family}"{weight}{meta}>'
                f"{_escape_xml(primitive.text)}</text>"
            )
        raise TypeError(f"Unsupported primitive: {type(primitive).__name__}")

    def render(self, *, primitives: list[Primitive], width: float, height: float) -> str:
        w, h = _n(width), _n(height)
        body = "\n".join(f"  {self.element(p)}" for p in primitives)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {w} {h}" '
            f'width="{w}" height="{h}" '
            f'style="color:{self.palette.ink};background:{self.palette.background}">\n'
            f"{body}\n"
            "</svg>\n"
        )


class JsonRenderer(VectorRenderer):
    """Render primitives into a JSON document with one object per primitive."""

    def __init__(self, indent: int | None = None) -> None:
        self.indent = indent

    @property
    def default_extension(self) -> str:
        return ".json"

    def render(self, *, primitives: list[Primitive], width: float, height: float) -> str:
        payload = {
            "width": width,
            "height": height,
            "primitives": [{"shape": type(p).__name__.lower(), **asdict(p)} for p in primitives],
        }
        separators = (",", ":") if self.indent is None else None
        return json.dumps(payload, indent=self.indent, separators=separators, ensure_ascii=False)


def build_renderer(output_format: str) -> VectorRenderer:
    """
    Return the renderer for an output format name.

    Raises:
        ValueError: If the format is not ``svg`` or ``json``.
    """
    normalized = output_format.strip().lower()
    if normalized == "svg":
        return SvgRenderer()
    if normalized == "json":
        return JsonRenderer(indent=2)
    raise ValueError(f"Unsupported output format '{output_format}'. Use one of: json, svg.")
