"""Curve flattening: path segments to tolerance-bounded polylines.

Provides:
    - Adaptive de Casteljau flattening of cubic and quadratic Béziers
    - Angular-step flattening of SVG elliptical arcs
    - Per-segment dispatch used by the primitive builder

All coordinates are output millimetres; segments are transformed before
they get here, so the tolerance is measured in the machine frame.

Every returned sequence starts with the segment's start point and ends
with its end point, both copied exactly.  The result is a deterministic
function of (segment, tolerance).
"""

from __future__ import annotations

import math

from svg_toolpath.errors import ConfigError, GeometryError
from svg_toolpath.geometry.segments import (
    Close,
    CubicCurve,
    EllipticalArc,
    Line,
    Move,
    PathSegment,
    Point,
    QuadraticCurve,
    segment_points,
)

MAX_DEPTH = 24
"""Recursion cap for Bézier subdivision (2**24 leaves at most)."""

MAX_ARC_STEP = math.pi / 2
"""Largest angular step for arcs, however coarse the tolerance."""


def validate_tolerance(tolerance: float) -> float:
    """Return *tolerance* as float or raise ``ConfigError`` unless > 0."""
    try:
        value = float(tolerance)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"tolerance must be a number, got {tolerance!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"tolerance must be > 0, got {tolerance!r}")
    return value


def _point_segment_distance(p: Point, a: Point, b: Point) -> float:
    """Distance from *p* to the closed segment *a*-*b*."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    px, py = p[0] - a[0], p[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(px, py)
    t = (px * dx + py * dy) / length_sq
    if t <= 0.0:
        return math.hypot(px, py)
    if t >= 1.0:
        return math.hypot(p[0] - b[0], p[1] - b[1])
    return abs(px * dy - py * dx) / math.sqrt(length_sq)


def _mid(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5)


def flatten_cubic(
    p1: Point,
    p2: Point,
    p3: Point,
    p4: Point,
    tolerance: float,
    max_depth: int = MAX_DEPTH,
) -> list[Point]:
    """Flatten a cubic Bézier via adaptive subdivision.

    Parameters
    ----------
    p1, p2, p3, p4 : Point
        Control points in mm.
    tolerance : float
        Maximum allowed deviation in mm.
    max_depth : int
        Maximum recursion depth.

    Returns
    -------
    list[Point]
        Polyline vertices, ``len >= 2``, first ``p1`` and last ``p4``.

    Notes
    -----
    Flatness criterion: both inner control points lie within *tolerance*
    of the chord segment.  The curve stays inside the convex hull of its
    control points, so a flat leaf deviates from its chord by at most
    *tolerance*.  A smaller tolerance splits every leaf a larger one
    splits, so point counts never decrease as tolerance shrinks.
    """
    out: list[Point] = [p1]

    def subdivide(q1: Point, q2: Point, q3: Point, q4: Point, depth: int) -> None:
        flat = (
            _point_segment_distance(q2, q1, q4) <= tolerance
            and _point_segment_distance(q3, q1, q4) <= tolerance
        )
        if flat or depth >= max_depth:
            out.append(q4)
            return

        # De Casteljau subdivision at t=0.5
        q12 = _mid(q1, q2)
        q23 = _mid(q2, q3)
        q34 = _mid(q3, q4)
        q123 = _mid(q12, q23)
        q234 = _mid(q23, q34)
        q1234 = _mid(q123, q234)

        subdivide(q1, q12, q123, q1234, depth + 1)
        subdivide(q1234, q234, q34, q4, depth + 1)

    subdivide(p1, p2, p3, p4, 0)
    return out


def arc_center_parameters(
    arc: EllipticalArc,
) -> tuple[Point, float, float, float, float, float] | None:
    """Convert an endpoint arc to centre form.

    Returns ``(center, rx, ry, phi, theta1, delta_theta)`` with radii
    scaled up when too small to span the endpoints, or ``None`` when the
    arc degenerates to a straight line (a zero radius).

    See https://www.w3.org/TR/SVG/implnote.html#ArcConversionEndpointToCenter
    """
    rx, ry = abs(arc.radii[0]), abs(arc.radii[1])
    if rx == 0.0 or ry == 0.0:
        return None

    (x0, y0), (x1, y1) = arc.start, arc.end
    phi = math.radians(arc.rotation)
    cos_p, sin_p = math.cos(phi), math.sin(phi)

    hx, hy = (x0 - x1) / 2.0, (y0 - y1) / 2.0
    x1p = cos_p * hx + sin_p * hy
    y1p = -sin_p * hx + cos_p * hy

    lam = (x1p * x1p) / (rx * rx) + (y1p * y1p) / (ry * ry)
    if lam > 1.0:
        root = math.sqrt(lam)
        rx *= root
        ry *= root

    num = rx * rx * ry * ry - rx * rx * y1p * y1p - ry * ry * x1p * x1p
    den = rx * rx * y1p * y1p + ry * ry * x1p * x1p
    coef = math.sqrt(max(0.0, num / den)) if den > 0.0 else 0.0
    if arc.large_arc == arc.sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx

    cx = cos_p * cxp - sin_p * cyp + (x0 + x1) / 2.0
    cy = sin_p * cxp + cos_p * cyp + (y0 + y1) / 2.0

    ux, uy = (x1p - cxp) / rx, (y1p - cyp) / ry
    vx, vy = (-x1p - cxp) / rx, (-y1p - cyp) / ry
    theta1 = math.atan2(uy, ux)
    delta = math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)
    if arc.sweep and delta < 0:
        delta += 2.0 * math.pi
    elif not arc.sweep and delta > 0:
        delta -= 2.0 * math.pi
    return (cx, cy), rx, ry, phi, theta1, delta


def arc_step(radius: float, tolerance: float) -> float:
    """Angular step whose chord sagitta on *radius* stays within *tolerance*."""
    if tolerance >= radius:
        return MAX_ARC_STEP
    return min(MAX_ARC_STEP, 2.0 * math.acos(1.0 - tolerance / radius))


def flatten_arc(arc: EllipticalArc, tolerance: float) -> list[Point]:
    """Flatten an elliptical arc by bounded angular steps.

    Coincident endpoints draw nothing; a zero radius draws a line.
    """
    if arc.start == arc.end:
        return [arc.start]
    params = arc_center_parameters(arc)
    if params is None:
        return [arc.start, arc.end]
    (cx, cy), rx, ry, phi, theta1, delta = params

    # The error vector of a circle chord maps through the ellipse's
    # linear part, so the larger radius bounds it.
    step = arc_step(max(rx, ry), tolerance)
    n = max(1, math.ceil(abs(delta) / step))
    cos_p, sin_p = math.cos(phi), math.sin(phi)

    points: list[Point] = [arc.start]
    for k in range(1, n):
        theta = theta1 + delta * k / n
        ex, ey = rx * math.cos(theta), ry * math.sin(theta)
        points.append((cx + cos_p * ex - sin_p * ey, cy + sin_p * ex + cos_p * ey))
    points.append(arc.end)
    return points


def flatten_segment(segment: PathSegment, tolerance: float) -> tuple[Point, ...]:
    """Flatten one segment into a point tuple.

    ``Move`` yields just its target.  ``Line`` and ``Close`` yield exactly
    their two endpoints at any tolerance.

    Raises
    ------
    ConfigError
        If *tolerance* is not > 0.
    GeometryError
        If any defining point is not finite.
    """
    tolerance = validate_tolerance(tolerance)
    for x, y in segment_points(segment):
        if not (math.isfinite(x) and math.isfinite(y)):
            raise GeometryError(
                f"{type(segment).__name__} has a non-finite point ({x}, {y})"
            )

    if isinstance(segment, Move):
        return (segment.to,)
    if isinstance(segment, Line):
        return (segment.start, segment.end)
    if isinstance(segment, Close):
        return (segment.start, segment.to)
    if isinstance(segment, CubicCurve):
        return tuple(flatten_cubic(
            segment.start, segment.control1, segment.control2, segment.end, tolerance,
        ))
    if isinstance(segment, QuadraticCurve):
        cubic = segment.to_cubic()
        return tuple(flatten_cubic(
            cubic.start, cubic.control1, cubic.control2, cubic.end, tolerance,
        ))
    if isinstance(segment, EllipticalArc):
        return tuple(flatten_arc(segment, tolerance))
    raise GeometryError(f"Unsupported segment type: {type(segment).__name__}")
