"""SVG element parsing: XML, path data and basic shapes.

The document is parsed with :mod:`xml.etree.ElementTree`; path data goes
through ``svg.path.parse_path`` and is re-expressed as the package's own
immutable :mod:`~svg_toolpath.geometry.segments`.  Basic shapes are
normalised to the same segment vocabulary so the rest of the pipeline
only ever sees paths.

All coordinates returned here are SVG user units, y down.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET

from svg.path import Arc as SvgArc
from svg.path import Close as SvgClose
from svg.path import CubicBezier as SvgCubic
from svg.path import Line as SvgLine
from svg.path import Move as SvgMove
from svg.path import QuadraticBezier as SvgQuadratic
from svg.path import parse_path

from svg_toolpath.document.units import (
    hint_for_attribute,
    length_to_user_units,
    parse_length,
)
from svg_toolpath.errors import ParseError
from svg_toolpath.geometry.segments import (
    Close,
    CubicCurve,
    EllipticalArc,
    Line,
    Move,
    PathSegment,
    Point,
    QuadraticCurve,
)

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

SHAPE_TAGS = frozenset({"path", "rect", "circle", "ellipse", "line", "polyline", "polygon"})
CONTAINER_TAGS = frozenset({"svg", "g", "a", "switch"})
SKIPPED_TAGS = frozenset({
    "defs", "clipPath", "mask", "marker", "pattern", "symbol",
    "metadata", "title", "desc", "style", "script",
})

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_POINTS_SEPARATOR_RE = re.compile(r"[\s,]+")


# ---------------------------------------------------------------------------
# Document and element helpers
# ---------------------------------------------------------------------------


def parse_document(text: str) -> ET.Element:
    """Parse SVG text and return the root ``<svg>`` element.

    Raises
    ------
    ParseError
        If the text is not well-formed XML or the root is not ``svg``.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ParseError(f"Malformed SVG document: {exc}") from exc
    if local_name(root) != "svg":
        raise ParseError(f"Root element must be <svg>, got <{local_name(root)}>")
    return root


def local_name(element: ET.Element) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    tag = element.tag
    if not isinstance(tag, str):
        # Comments and processing instructions
        return ""
    return tag.rsplit("}", 1)[-1]


def is_hidden(element: ET.Element) -> bool:
    """``display="none"`` either as attribute or inline style."""
    if element.get("display", "").strip() == "none":
        return True
    style = element.get("style")
    if not style:
        return False
    for declaration in style.split(";"):
        key, _, value = declaration.partition(":")
        if key.strip() == "display" and value.strip() == "none":
            return True
    return False


def node_name(element: ET.Element, extra_attribute_name: str | None = None) -> str:
    """Human-readable element name for G-code comments.

    ``path#outline``, and with *extra_attribute_name* set and present on
    an element that has an id, ``path#outline ( value )``.
    """
    name = local_name(element)
    element_id = element.get("id")
    if element_id is None:
        return name
    name = f"{name}#{element_id}"
    if extra_attribute_name:
        value = _attribute(element, extra_attribute_name)
        if value is not None:
            name = f"{name} ( {value} )"
    return name


def _attribute(element: ET.Element, name: str) -> str | None:
    """Look up *name* with or without a namespace prefix."""
    value = element.get(name)
    if value is not None:
        return value
    for key, candidate in element.attrib.items():
        if key.rsplit("}", 1)[-1] == name.rsplit(":", 1)[-1]:
            return candidate
    return None


def length_attribute(
    element: ET.Element,
    name: str,
    dpi: float,
    viewport: tuple[float, float] | None,
    default: float = 0.0,
) -> float:
    """Resolve a length attribute to user units."""
    raw = element.get(name)
    if raw is None or not raw.strip():
        return default
    return length_to_user_units(parse_length(raw), dpi, hint_for_attribute(name), viewport)


# ---------------------------------------------------------------------------
# Path data
# ---------------------------------------------------------------------------


def _pt(value: complex) -> Point:
    return (float(value.real), float(value.imag))


def path_segments(data: str | None) -> tuple[PathSegment, ...]:
    """Parse ``d`` path data into segments.

    Relative, implicit and smooth commands are resolved by ``svg.path``;
    the returned segments all carry absolute user-space points.

    Raises
    ------
    ParseError
        On malformed path data.
    """
    if data is None or not data.strip():
        return ()
    try:
        parsed = parse_path(data)
    except (ValueError, IndexError, ZeroDivisionError) as exc:
        raise ParseError(f"Invalid path data {data[:40]!r}: {exc}") from exc

    segments: list[PathSegment] = []
    for seg in parsed:
        if isinstance(seg, SvgMove):
            segments.append(Move(_pt(seg.end)))
        elif isinstance(seg, SvgClose):
            segments.append(Close(_pt(seg.start), _pt(seg.end)))
        elif isinstance(seg, SvgLine):
            segments.append(Line(_pt(seg.start), _pt(seg.end)))
        elif isinstance(seg, SvgCubic):
            segments.append(CubicCurve(
                _pt(seg.start), _pt(seg.control1), _pt(seg.control2), _pt(seg.end),
            ))
        elif isinstance(seg, SvgQuadratic):
            segments.append(QuadraticCurve(_pt(seg.start), _pt(seg.control), _pt(seg.end)))
        elif isinstance(seg, SvgArc):
            segments.append(EllipticalArc(
                start=_pt(seg.start),
                radii=(abs(float(seg.radius.real)), abs(float(seg.radius.imag))),
                rotation=float(seg.rotation),
                large_arc=bool(seg.arc),
                sweep=bool(seg.sweep),
                end=_pt(seg.end),
            ))
        else:
            raise ParseError(f"Unsupported path segment {type(seg).__name__}")
    return tuple(segments)


# ---------------------------------------------------------------------------
# Basic shapes
# ---------------------------------------------------------------------------


def _parse_points(raw: str | None) -> list[Point]:
    if raw is None or not raw.strip():
        return []
    numbers: list[float] = []
    for token in _POINTS_SEPARATOR_RE.split(raw.strip()):
        if not token:
            continue
        packed = _NUMBER_RE.findall(token)
        if not packed or "".join(packed) != token:
            raise ParseError(f"Invalid number {token!r} in points list")
        numbers.extend(float(p) for p in packed)
    if len(numbers) % 2:
        logger.warning("Odd number of coordinates in points list; dropping the last")
        numbers.pop()
    return [(numbers[k], numbers[k + 1]) for k in range(0, len(numbers), 2)]


def _polyline(points: list[Point], closed: bool) -> tuple[PathSegment, ...]:
    if len(points) < 2:
        return ()
    segments: list[PathSegment] = [Move(points[0])]
    segments.extend(Line(a, b) for a, b in zip(points, points[1:]))
    if closed:
        segments.append(Close(points[-1], points[0]))
    return tuple(segments)


def _ellipse(cx: float, cy: float, rx: float, ry: float) -> tuple[PathSegment, ...]:
    """Four quarter arcs starting at the rightmost point, sweep positive."""
    corners = [(cx + rx, cy), (cx, cy + ry), (cx - rx, cy), (cx, cy - ry)]
    segments: list[PathSegment] = [Move(corners[0])]
    for k in range(4):
        segments.append(EllipticalArc(
            start=corners[k],
            radii=(rx, ry),
            rotation=0.0,
            large_arc=False,
            sweep=True,
            end=corners[(k + 1) % 4],
        ))
    segments.append(Close(corners[0], corners[0]))
    return tuple(segments)


def _rect(
    x: float, y: float, w: float, h: float, rx: float | None, ry: float | None,
) -> tuple[PathSegment, ...]:
    # https://www.w3.org/TR/SVG2/shapes.html#RectElement
    if rx is None and ry is None:
        rx = ry = 0.0
    elif rx is None:
        rx = ry
    elif ry is None:
        ry = rx
    rx = min(rx, w / 2.0)
    ry = min(ry, h / 2.0)

    if rx <= 0.0 or ry <= 0.0:
        return _polyline([(x, y), (x + w, y), (x + w, y + h), (x, y + h)], closed=True)

    def corner(start: Point, end: Point) -> EllipticalArc:
        return EllipticalArc(start, (rx, ry), 0.0, False, True, end)

    p = [
        (x + rx, y), (x + w - rx, y),
        (x + w, y + ry), (x + w, y + h - ry),
        (x + w - rx, y + h), (x + rx, y + h),
        (x, y + h - ry), (x, y + ry),
    ]
    return (
        Move(p[0]),
        Line(p[0], p[1]),
        corner(p[1], p[2]),
        Line(p[2], p[3]),
        corner(p[3], p[4]),
        Line(p[4], p[5]),
        corner(p[5], p[6]),
        Line(p[6], p[7]),
        corner(p[7], p[0]),
        Close(p[0], p[0]),
    )


def shape_segments(
    element: ET.Element,
    dpi: float,
    viewport: tuple[float, float] | None,
) -> tuple[PathSegment, ...]:
    """Normalise a drawable element to path segments.

    Returns an empty tuple for shapes SVG says not to render (zero
    width, radius, or fewer than two points).

    Raises
    ------
    ParseError
        On malformed attributes or negative sizes.
    """
    tag = local_name(element)

    def length(name: str, default: float = 0.0) -> float:
        return length_attribute(element, name, dpi, viewport, default)

    if tag == "path":
        return path_segments(element.get("d"))

    if tag == "line":
        start = (length("x1"), length("y1"))
        end = (length("x2"), length("y2"))
        return (Move(start), Line(start, end))

    if tag in ("polyline", "polygon"):
        return _polyline(_parse_points(element.get("points")), closed=tag == "polygon")

    if tag == "circle":
        r = length("r")
        if r < 0:
            raise ParseError(f"circle r must be >= 0, got {r}")
        if r == 0:
            return ()
        return _ellipse(length("cx"), length("cy"), r, r)

    if tag == "ellipse":
        rx, ry = length("rx"), length("ry")
        if rx < 0 or ry < 0:
            raise ParseError(f"ellipse radii must be >= 0, got ({rx}, {ry})")
        if rx == 0 or ry == 0:
            return ()
        return _ellipse(length("cx"), length("cy"), rx, ry)

    if tag == "rect":
        w, h = length("width"), length("height")
        if w < 0 or h < 0:
            raise ParseError(f"rect size must be >= 0, got ({w}, {h})")
        if w == 0 or h == 0:
            return ()
        rx = length("rx") if element.get("rx") not in (None, "", "auto") else None
        ry = length("ry") if element.get("ry") not in (None, "", "auto") else None
        if (rx is not None and rx < 0) or (ry is not None and ry < 0):
            raise ParseError(f"rect corner radii must be >= 0, got ({rx}, {ry})")
        return _rect(length("x"), length("y"), w, h, rx, ry)

    raise ParseError(f"<{tag}> is not a drawable element")


def parse_view_box(raw: str | None) -> tuple[float, float, float, float] | None:
    """Parse ``viewBox="min-x min-y width height"``.

    Raises
    ------
    ParseError
        If there are not exactly four finite numbers or the size is not
        positive.
    """
    if raw is None or not raw.strip():
        return None
    tokens = [t for t in _POINTS_SEPARATOR_RE.split(raw.strip()) if t]
    try:
        values = [float(t) for t in tokens]
    except ValueError as exc:
        raise ParseError(f"Invalid viewBox {raw!r}") from exc
    if len(values) != 4 or not all(math.isfinite(v) for v in values):
        raise ParseError(f"viewBox needs four finite numbers, got {raw!r}")
    if values[2] <= 0 or values[3] <= 0:
        raise ParseError(f"viewBox width and height must be > 0, got {raw!r}")
    return values[0], values[1], values[2], values[3]
