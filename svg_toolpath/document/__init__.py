"""
Document module.

Parses SVG text, resolves lengths, viewports and nested transforms, and
yields the ordered enter/drawable/exit event stream consumed by the
primitive builder.
"""

from svg_toolpath.document.units import Length, parse_length
from svg_toolpath.document.layout import BoundingBox, HorizontalAlign, VerticalAlign
from svg_toolpath.document.resolver import (
    Drawable,
    EnterGroup,
    ExitGroup,
    ResolvedDocument,
    Resolver,
    resolve,
)

__all__ = [
    "Length",
    "parse_length",
    "BoundingBox",
    "HorizontalAlign",
    "VerticalAlign",
    "Drawable",
    "EnterGroup",
    "ExitGroup",
    "ResolvedDocument",
    "Resolver",
    "resolve",
]
