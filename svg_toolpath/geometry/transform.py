"""2D affine transforms and SVG ``transform`` attribute parsing.

A :class:`Transform` wraps a 3×3 homogeneous matrix::

    | a c e |     x' = a·x + c·y + e
    | b d f |     y' = b·x + d·y + f
    | 0 0 1 |

Composition follows document order: ``parent @ child`` maps child
coordinates into the parent's frame.  Instances are immutable; every
operation returns a new transform.
"""

from __future__ import annotations

import math
import re
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from svg_toolpath.errors import ParseError


class Transform:
    """Immutable 2D affine transform."""

    __slots__ = ("_m",)

    def __init__(self, matrix: NDArray[np.float64] | None = None) -> None:
        m = np.eye(3) if matrix is None else np.array(matrix, dtype=np.float64)
        if m.shape != (3, 3):
            raise ValueError(f"Transform matrix must be 3x3, got {m.shape}")
        m.setflags(write=False)
        self._m = m

    # -- Constructors -------------------------------------------------------

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def from_coefficients(
        cls, a: float, b: float, c: float, d: float, e: float, f: float,
    ) -> Transform:
        """Build from SVG ``matrix(a b c d e f)`` coefficients."""
        return cls(np.array([[a, c, e], [b, d, f], [0.0, 0.0, 1.0]]))

    @classmethod
    def translation(cls, tx: float, ty: float = 0.0) -> Transform:
        return cls.from_coefficients(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scaling(cls, sx: float, sy: float | None = None) -> Transform:
        return cls.from_coefficients(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    @classmethod
    def rotation(cls, degrees: float, cx: float = 0.0, cy: float = 0.0) -> Transform:
        rad = math.radians(degrees)
        cos_a, sin_a = math.cos(rad), math.sin(rad)
        rot = cls.from_coefficients(cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
        if cx == 0.0 and cy == 0.0:
            return rot
        return cls.translation(cx, cy) @ rot @ cls.translation(-cx, -cy)

    @classmethod
    def skew_x(cls, degrees: float) -> Transform:
        return cls.from_coefficients(1.0, 0.0, math.tan(math.radians(degrees)), 1.0, 0.0, 0.0)

    @classmethod
    def skew_y(cls, degrees: float) -> Transform:
        return cls.from_coefficients(1.0, math.tan(math.radians(degrees)), 0.0, 1.0, 0.0, 0.0)

    # -- Algebra ------------------------------------------------------------

    def __matmul__(self, other: Transform) -> Transform:
        if not isinstance(other, Transform):
            return NotImplemented
        return Transform(self._m @ other._m)

    def then(self, other: Transform) -> Transform:
        """Apply ``self`` first, then *other*."""
        return other @ self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self) -> int:
        return hash(self._m.tobytes())

    def __repr__(self) -> str:
        a, b, c, d, e, f = self.coefficients
        return f"Transform({a:g}, {b:g}, {c:g}, {d:g}, {e:g}, {f:g})"

    @property
    def matrix(self) -> NDArray[np.float64]:
        """Read-only 3×3 matrix."""
        return self._m

    @property
    def coefficients(self) -> tuple[float, float, float, float, float, float]:
        """``(a, b, c, d, e, f)`` in SVG order."""
        m = self._m
        return (
            float(m[0, 0]), float(m[1, 0]), float(m[0, 1]),
            float(m[1, 1]), float(m[0, 2]), float(m[1, 2]),
        )

    @property
    def linear(self) -> NDArray[np.float64]:
        """The 2×2 linear part."""
        return self._m[:2, :2]

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self.linear))

    @property
    def max_scale(self) -> float:
        """Largest singular value: the worst-case length stretch."""
        return float(np.linalg.norm(self.linear, ord=2))

    def is_identity(self) -> bool:
        return bool(np.array_equal(self._m, np.eye(3)))

    # -- Application ----------------------------------------------------------

    def apply(self, x: float, y: float) -> tuple[float, float]:
        """Map a single point."""
        m = self._m
        return (
            float(m[0, 0] * x + m[0, 1] * y + m[0, 2]),
            float(m[1, 0] * x + m[1, 1] * y + m[1, 2]),
        )

    def apply_vector(self, x: float, y: float) -> tuple[float, float]:
        """Map a direction (translation ignored)."""
        m = self._m
        return (
            float(m[0, 0] * x + m[0, 1] * y),
            float(m[1, 0] * x + m[1, 1] * y),
        )

    def apply_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Map an ``(N, 2)`` array of points."""
        pts = np.asarray(points, dtype=np.float64)
        return pts @ self.linear.T + self._m[:2, 2]


# ---------------------------------------------------------------------------
# Attribute parsing
# ---------------------------------------------------------------------------

_NUMBER = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_FUNCTION_RE = re.compile(r"\s*,?\s*(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^()]*)\)\s*")
_NUMBER_RE = re.compile(_NUMBER)
_ARG_SPLIT_RE = re.compile(r"\s*,\s*|\s+")

_ARG_COUNTS = {
    "matrix": (6,),
    "translate": (1, 2),
    "scale": (1, 2),
    "rotate": (1, 3),
    "skewX": (1,),
    "skewY": (1,),
}


def _parse_args(name: str, raw: str) -> list[float]:
    tokens = [t for t in _ARG_SPLIT_RE.split(raw.strip()) if t]
    args: list[float] = []
    for token in tokens:
        if not _NUMBER_RE.fullmatch(token):
            # Numbers may be packed without separators, e.g. "10-5".
            packed = _NUMBER_RE.findall(token)
            if not packed or "".join(packed) != token:
                raise ParseError(f"Invalid number {token!r} in {name}()")
            args.extend(float(p) for p in packed)
        else:
            args.append(float(token))
    if len(args) not in _ARG_COUNTS[name]:
        expected = " or ".join(str(n) for n in _ARG_COUNTS[name])
        raise ParseError(f"{name}() takes {expected} arguments, got {len(args)}")
    return args


def _function_transform(name: str, args: list[float]) -> Transform:
    if name == "matrix":
        return Transform.from_coefficients(*args)
    if name == "translate":
        return Transform.translation(args[0], args[1] if len(args) > 1 else 0.0)
    if name == "scale":
        return Transform.scaling(args[0], args[1] if len(args) > 1 else None)
    if name == "rotate":
        if len(args) == 3:
            return Transform.rotation(args[0], args[1], args[2])
        return Transform.rotation(args[0])
    if name == "skewX":
        return Transform.skew_x(args[0])
    return Transform.skew_y(args[0])


def parse_transform(text: str | None) -> Transform:
    """Parse an SVG ``transform`` attribute.

    Functions compose left to right in the attribute, so
    ``"translate(10) scale(2)"`` scales first and then translates.

    Raises
    ------
    ParseError
        On unknown functions, bad numbers, wrong argument counts or
        trailing garbage.  No partial transform is returned.
    """
    if text is None or not text.strip():
        return Transform.identity()

    result = Transform.identity()
    pos = 0
    length = len(text)
    while pos < length:
        match = _FUNCTION_RE.match(text, pos)
        if match is None:
            raise ParseError(f"Malformed transform {text!r} at offset {pos}")
        name = match.group(1)
        result = result @ _function_transform(name, _parse_args(name, match.group(2)))
        pos = match.end()
    values = result.coefficients
    if not all(math.isfinite(v) for v in values):
        raise ParseError(f"Transform {text!r} is not finite")
    return result


def compose(transforms: Iterable[Transform]) -> Transform:
    """Multiply transforms in order (outermost first)."""
    result = Transform.identity()
    for transform in transforms:
        result = result @ transform
    return result
