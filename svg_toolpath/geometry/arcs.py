"""Circular-arc detection over flattened point runs.

Scans a polyline and replaces maximal runs of nearly co-circular points
with :class:`DetectedArc` pieces.  Points not consumed by an arc stay in
:class:`LineRun` pieces.  Consecutive pieces share their boundary point,
so concatenating ``piece.points[1:]`` after the first point rebuilds the
input exactly.

Algorithm (greedy, leftmost-longest)::

    i = 0
    while a window of min_points fits after i:
        grow window [i, j] one point at a time while it is a valid arc
        if any window was valid: commit the longest, continue from its end
        else: i += 1

A window is a valid arc when an algebraic least-squares circle fit
(Kåsa, solved with ``numpy.linalg.lstsq``) keeps every point and every
chord sagitta within the arc tolerance, the radius is at least the
minimum radius, every angular step turns the same way as the first two
edges and stays below pi, the run is not straight, and the total sweep
lies in ``[0.01, 2*pi]`` radians.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from svg_toolpath.errors import ConfigError, GeometryError
from svg_toolpath.geometry.segments import Point

logger = logging.getLogger(__name__)

MIN_RADIUS_FACTOR = 0.05
"""Minimum arc radius as a fraction of the main tolerance when unset."""

MIN_SWEEP = 0.01
"""Smallest total sweep (radians) worth emitting as an arc."""

_SWEEP_SLACK = 1e-9


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ArcDetectionConfig:
    """Arc detection settings.

    Parameters
    ----------
    enabled : bool
        When ``False`` the detector returns the input as one line run.
    min_points : int
        Smallest number of points an arc may consume (>= 3).
    tolerance : float | None
        Arc tolerance in mm.  ``None`` falls back to the main tolerance.
    min_radius : float | None
        Smallest accepted radius in mm.  ``None`` falls back to
        ``MIN_RADIUS_FACTOR`` times the main tolerance.
    """

    enabled: bool = False
    min_points: int = 5
    tolerance: float | None = None
    min_radius: float | None = None

    def __post_init__(self) -> None:
        if isinstance(self.min_points, bool) or not isinstance(self.min_points, int):
            raise ConfigError(
                f"arc_detection.min_points must be an integer, got {self.min_points!r}"
            )
        if self.min_points < 3:
            raise ConfigError(
                f"arc_detection.min_points must be >= 3, got {self.min_points}"
            )
        for name in ("tolerance", "min_radius"):
            value = getattr(self, name)
            if value is not None and not (math.isfinite(value) and value > 0):
                raise ConfigError(f"arc_detection.{name} must be > 0, got {value!r}")

    def effective_tolerance(self, main_tolerance: float) -> float:
        return self.tolerance if self.tolerance is not None else main_tolerance

    def effective_min_radius(self, main_tolerance: float) -> float:
        if self.min_radius is not None:
            return self.min_radius
        return main_tolerance * MIN_RADIUS_FACTOR


# ---------------------------------------------------------------------------
# Result pieces
# ---------------------------------------------------------------------------


class Direction(Enum):
    """Arc winding in the output frame (+Y up)."""

    CLOCKWISE = "cw"
    COUNTERCLOCKWISE = "ccw"


@dataclass(frozen=True, slots=True)
class DetectedArc:
    """A run of points replaced by one circular arc.

    Parameters
    ----------
    center : Point
        Fitted circle centre.
    radius : float
        Fitted radius.
    start_angle, end_angle : float
        Polar angles (radians) of the first and last consumed point
        about ``center``.  ``end_angle - start_angle`` is the signed
        sweep, positive counter-clockwise.
    direction : Direction
        Winding of the run.
    start_index, end_index : int
        Inclusive index range consumed from the input sequence.
    points : tuple[Point, ...]
        The consumed points, copied exactly.
    """

    center: Point
    radius: float
    start_angle: float
    end_angle: float
    direction: Direction
    start_index: int
    end_index: int
    points: tuple[Point, ...]

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    @property
    def sweep(self) -> float:
        """Signed sweep in radians."""
        return self.end_angle - self.start_angle

    @property
    def clockwise(self) -> bool:
        return self.direction is Direction.CLOCKWISE


@dataclass(frozen=True, slots=True)
class LineRun:
    """Points left as straight segments, inclusive index range."""

    start_index: int
    end_index: int
    points: tuple[Point, ...]


Piece = Union[LineRun, DetectedArc]


# ---------------------------------------------------------------------------
# Circle fitting
# ---------------------------------------------------------------------------


def fit_circle(points: NDArray[np.float64]) -> tuple[Point, float] | None:
    """Algebraic (Kåsa) least-squares circle fit.

    Solves ``2*cx*x + 2*cy*y + c = x**2 + y**2`` for ``(cx, cy, c)`` in a
    centroid-relative frame.  Returns ``None`` when the points are
    collinear or coincident.

    Parameters
    ----------
    points : NDArray
        ``(N, 2)`` array, ``N >= 3``.

    Returns
    -------
    tuple[Point, float] | None
        ``((cx, cy), radius)``.
    """
    origin = points.mean(axis=0)
    local = points - origin
    design = np.column_stack([2.0 * local, np.ones(len(local))])
    rhs = (local * local).sum(axis=1)
    solution, _residuals, rank, _sv = np.linalg.lstsq(design, rhs, rcond=None)
    if rank < 3:
        return None
    cx, cy, c = (float(v) for v in solution)
    r_sq = c + cx * cx + cy * cy
    if not math.isfinite(r_sq) or r_sq <= 0.0:
        return None
    return (cx + float(origin[0]), cy + float(origin[1])), math.sqrt(r_sq)


def _wrap(angle: NDArray[np.float64]) -> NDArray[np.float64]:
    """Wrap angles into ``(-pi, pi]``."""
    return np.pi - np.mod(np.pi - angle, 2.0 * np.pi)


def _max_chord_deviation(points: NDArray[np.float64]) -> float:
    """Largest distance of any point from the first-to-last chord line."""
    first, last = points[0], points[-1]
    chord = last - first
    length = math.hypot(float(chord[0]), float(chord[1]))
    rel = points - first
    if length == 0.0:
        return float(np.max(np.hypot(rel[:, 0], rel[:, 1])))
    cross = rel[:, 0] * chord[1] - rel[:, 1] * chord[0]
    return float(np.max(np.abs(cross))) / length


def _arc_fit(
    points: NDArray[np.float64], tolerance: float, min_radius: float,
) -> tuple[Point, float, float, float] | None:
    """Fit and validate a window; returns ``(center, r, start, sweep)``."""
    fit = fit_circle(points)
    if fit is None:
        return None
    (cx, cy), radius = fit
    if radius < min_radius:
        return None

    rel = points - np.array([cx, cy])
    distances = np.hypot(rel[:, 0], rel[:, 1])
    if float(np.max(np.abs(distances - radius))) > tolerance:
        return None

    edges = np.diff(points, axis=0)
    half_chords = np.hypot(edges[:, 0], edges[:, 1]) / 2.0
    if float(np.max(half_chords)) > radius:
        return None
    sagitta = radius - np.sqrt(radius * radius - half_chords * half_chords)
    if float(np.max(sagitta)) > tolerance:
        return None

    turn = float(edges[0, 0] * edges[1, 1] - edges[0, 1] * edges[1, 0])
    if turn == 0.0:
        return None
    angles = np.arctan2(rel[:, 1], rel[:, 0])
    steps = _wrap(np.diff(angles))
    if turn > 0:
        if not bool(np.all((steps > 0) & (steps < np.pi))):
            return None
    elif not bool(np.all((steps < 0) & (steps > -np.pi))):
        return None

    sweep = float(np.sum(steps))
    if not MIN_SWEEP <= abs(sweep) <= 2.0 * math.pi + _SWEEP_SLACK:
        return None
    if _max_chord_deviation(points) <= tolerance:
        return None
    return (cx, cy), radius, float(angles[0]), sweep


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _make_arc(
    points: Sequence[Point], start: int, end: int,
    fit: tuple[Point, float, float, float],
) -> DetectedArc:
    center, radius, start_angle, sweep = fit
    return DetectedArc(
        center=center,
        radius=radius,
        start_angle=start_angle,
        end_angle=start_angle + sweep,
        direction=Direction.COUNTERCLOCKWISE if sweep > 0 else Direction.CLOCKWISE,
        start_index=start,
        end_index=end,
        points=tuple(points[start:end + 1]),
    )


def detect_arcs(
    points: Sequence[Point],
    config: ArcDetectionConfig,
    tolerance: float,
) -> list[Piece]:
    """Split *points* into line runs and detected arcs.

    Parameters
    ----------
    points : Sequence[Point]
        Consecutive cut points of one subpath, in mm.
    config : ArcDetectionConfig
        Detection settings.
    tolerance : float
        Main conversion tolerance, used for unset arc settings.

    Returns
    -------
    list[Piece]
        Pieces covering the input in order.  Disabled detection, or
        fewer than two points, yields at most a single ``LineRun``
        holding the input unchanged.

    Raises
    ------
    GeometryError
        If any point is not finite.
    """
    pts = tuple(points)
    n = len(pts)
    if n < 2:
        return []
    if not config.enabled or n < config.min_points:
        return [LineRun(0, n - 1, pts)]

    array = np.asarray(pts, dtype=np.float64)
    if not np.all(np.isfinite(array)):
        raise GeometryError("Arc detection input contains non-finite points")

    arc_tol = config.effective_tolerance(tolerance)
    min_radius = config.effective_min_radius(tolerance)
    window = config.min_points

    pieces: list[Piece] = []
    line_start = 0
    i = 0
    while i + window <= n:
        best: tuple[int, tuple[Point, float, float, float]] | None = None
        j = i + window - 1
        while j < n:
            fit = _arc_fit(array[i:j + 1], arc_tol, min_radius)
            if fit is None:
                break
            best = (j, fit)
            j += 1
        if best is None:
            i += 1
            continue
        end, fit = best
        if i > line_start:
            pieces.append(LineRun(line_start, i, pts[line_start:i + 1]))
        pieces.append(_make_arc(pts, i, end, fit))
        line_start = end
        i = end

    if line_start < n - 1:
        pieces.append(LineRun(line_start, n - 1, pts[line_start:]))

    arcs = sum(1 for p in pieces if isinstance(p, DetectedArc))
    logger.debug("Arc detection: %d points -> %d arcs, %d pieces", n, arcs, len(pieces))
    return pieces
