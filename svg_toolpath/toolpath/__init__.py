"""
Toolpath module.

Defines the drawing primitives as immutable dataclasses and builds them
from resolved document events.  This vocabulary is the contract between
geometry and G-code emission.

All coordinates are in millimetres, output frame (y up).
"""

from svg_toolpath.toolpath.primitives import (
    Primitive,
    Comment,
    RapidMove,
    CutLine,
    CutArc,
    LayerBoundary,
    Program,
)
from svg_toolpath.toolpath.builder import PrimitiveBuilder, build_primitives

__all__ = [
    "Primitive",
    "Comment",
    "RapidMove",
    "CutLine",
    "CutArc",
    "LayerBoundary",
    "Program",
    "PrimitiveBuilder",
    "build_primitives",
]
