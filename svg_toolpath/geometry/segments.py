"""Path segments -- the geometric vocabulary between document and flattener.

Every segment is an immutable, slotted dataclass carrying absolute
points.  ``transformed()`` returns the exact affine image of a segment:
points map directly for moves, lines and Béziers, and elliptical arcs are
re-derived in endpoint form (radii and rotation from the SVD of the
transformed axes, sweep flipped by mirroring transforms).

Segments are created in SVG user space by the document layer and
transformed into output millimetres before flattening.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from svg_toolpath.geometry.transform import Transform

Point = tuple[float, float]


def _map(transform: Transform, p: Point) -> Point:
    return transform.apply(p[0], p[1])


@dataclass(frozen=True, slots=True)
class Move:
    """Start a new subpath at ``to`` without drawing."""

    to: Point

    @property
    def end(self) -> Point:
        return self.to

    def transformed(self, transform: Transform) -> Move:
        return Move(_map(transform, self.to))


@dataclass(frozen=True, slots=True)
class Line:
    """Straight segment from ``start`` to ``end``."""

    start: Point
    end: Point

    def transformed(self, transform: Transform) -> Line:
        return Line(_map(transform, self.start), _map(transform, self.end))


@dataclass(frozen=True, slots=True)
class CubicCurve:
    """Cubic Bézier with two control points."""

    start: Point
    control1: Point
    control2: Point
    end: Point

    def transformed(self, transform: Transform) -> CubicCurve:
        return CubicCurve(
            _map(transform, self.start),
            _map(transform, self.control1),
            _map(transform, self.control2),
            _map(transform, self.end),
        )


@dataclass(frozen=True, slots=True)
class QuadraticCurve:
    """Quadratic Bézier with one control point."""

    start: Point
    control: Point
    end: Point

    def transformed(self, transform: Transform) -> QuadraticCurve:
        return QuadraticCurve(
            _map(transform, self.start),
            _map(transform, self.control),
            _map(transform, self.end),
        )

    def to_cubic(self) -> CubicCurve:
        """Exact degree elevation."""
        (x0, y0), (cx, cy), (x1, y1) = self.start, self.control, self.end
        return CubicCurve(
            self.start,
            (x0 + 2.0 / 3.0 * (cx - x0), y0 + 2.0 / 3.0 * (cy - y0)),
            (x1 + 2.0 / 3.0 * (cx - x1), y1 + 2.0 / 3.0 * (cy - y1)),
            self.end,
        )


@dataclass(frozen=True, slots=True)
class EllipticalArc:
    """SVG endpoint-parameterised elliptical arc.

    Parameters
    ----------
    start, end : Point
        Arc endpoints.
    radii : tuple[float, float]
        ``(rx, ry)`` before out-of-range correction.
    rotation : float
        X-axis rotation in degrees.
    large_arc, sweep : bool
        SVG arc flags.  ``sweep=True`` means increasing angle.
    """

    start: Point
    radii: tuple[float, float]
    rotation: float
    large_arc: bool
    sweep: bool
    end: Point

    def transformed(self, transform: Transform) -> EllipticalArc:
        rx, ry = abs(self.radii[0]), abs(self.radii[1])
        phi = math.radians(self.rotation)
        cos_p, sin_p = math.cos(phi), math.sin(phi)
        # Columns are the ellipse semi-axes; their image under the linear
        # part spans the transformed ellipse.
        axes = np.array([[rx * cos_p, -ry * sin_p], [rx * sin_p, ry * cos_p]])
        image = transform.linear @ axes
        u, s, _vt = np.linalg.svd(image)
        new_rotation = math.degrees(math.atan2(u[1, 0], u[0, 0]))
        mirrored = transform.determinant < 0
        return EllipticalArc(
            start=_map(transform, self.start),
            radii=(float(s[0]), float(s[1])),
            rotation=new_rotation,
            large_arc=self.large_arc,
            sweep=(not self.sweep) if mirrored else self.sweep,
            end=_map(transform, self.end),
        )


@dataclass(frozen=True, slots=True)
class Close:
    """Close the current subpath with a line back to ``to``."""

    start: Point
    to: Point

    @property
    def end(self) -> Point:
        return self.to

    def transformed(self, transform: Transform) -> Close:
        return Close(_map(transform, self.start), _map(transform, self.to))


PathSegment = Union[Move, Line, CubicCurve, QuadraticCurve, EllipticalArc, Close]

CURVED_SEGMENTS = (CubicCurve, QuadraticCurve, EllipticalArc)


def transform_segments(
    segments: tuple[PathSegment, ...], transform: Transform,
) -> tuple[PathSegment, ...]:
    """Map every segment through *transform*."""
    if transform.is_identity():
        return segments
    return tuple(seg.transformed(transform) for seg in segments)


def segment_points(segment: PathSegment) -> tuple[Point, ...]:
    """All defining points of *segment* (endpoints and controls)."""
    if isinstance(segment, Move):
        return (segment.to,)
    if isinstance(segment, (Line, EllipticalArc)):
        return (segment.start, segment.end)
    if isinstance(segment, CubicCurve):
        return (segment.start, segment.control1, segment.control2, segment.end)
    if isinstance(segment, QuadraticCurve):
        return (segment.start, segment.control, segment.end)
    return (segment.start, segment.to)
