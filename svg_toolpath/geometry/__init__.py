"""
Geometry module.

Affine transforms, immutable path segments, tolerance-bounded curve
flattening and circular-arc detection.  Pure functions only; nothing
here keeps state between calls.

All coordinates handed to the flattener and detector are output mm.
"""

from svg_toolpath.geometry.transform import Transform, compose, parse_transform
from svg_toolpath.geometry.segments import (
    Close,
    CubicCurve,
    EllipticalArc,
    Line,
    Move,
    PathSegment,
    QuadraticCurve,
)
from svg_toolpath.geometry.flatten import flatten_segment
from svg_toolpath.geometry.arcs import (
    ArcDetectionConfig,
    DetectedArc,
    Direction,
    LineRun,
    detect_arcs,
)

__all__ = [
    "Transform",
    "compose",
    "parse_transform",
    "Close",
    "CubicCurve",
    "EllipticalArc",
    "Line",
    "Move",
    "PathSegment",
    "QuadraticCurve",
    "flatten_segment",
    "ArcDetectionConfig",
    "DetectedArc",
    "Direction",
    "LineRun",
    "detect_arcs",
]
