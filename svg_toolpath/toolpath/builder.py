"""Primitive builder: resolver events to a flat primitive program.

For every drawable the builder emits a ``Comment`` naming the element,
then walks its output-space segments:

- ``Move`` starts a new subpath with a ``RapidMove``;
- every other segment is flattened and its points appended to the
  current subpath chain (consecutive duplicates dropped);
- each finished chain goes through arc detection and becomes
  ``CutLine``/``CutArc`` primitives.

Every ``ExitGroup`` becomes a ``LayerBoundary``.  The builder is pure:
no machine state, no tool handling.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from svg_toolpath.document.resolver import Drawable, Event, ExitGroup
from svg_toolpath.geometry.arcs import ArcDetectionConfig, DetectedArc, detect_arcs
from svg_toolpath.geometry.flatten import flatten_segment, validate_tolerance
from svg_toolpath.geometry.segments import Move, Point
from svg_toolpath.toolpath.primitives import (
    Comment,
    CutArc,
    CutLine,
    LayerBoundary,
    Program,
    RapidMove,
    count_primitives,
)

if TYPE_CHECKING:
    from svg_toolpath.gcode.tokens import Snippet

logger = logging.getLogger(__name__)


class PrimitiveBuilder:
    """Turn resolved events into primitives.

    Parameters
    ----------
    tolerance : float
        Flattening tolerance in mm (> 0).
    arc_detection : ArcDetectionConfig | None
        ``None`` or disabled leaves every chain as straight cuts.
    between_layers : Snippet | None
        Carried by each ``LayerBoundary``.
    """

    def __init__(
        self,
        tolerance: float,
        arc_detection: ArcDetectionConfig | None = None,
        between_layers: Snippet | None = None,
    ) -> None:
        self._tolerance = validate_tolerance(tolerance)
        self._arcs = arc_detection if arc_detection is not None else ArcDetectionConfig()
        self._between_layers = between_layers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, events: Iterable[Event]) -> Program:
        program: Program = []
        for event in events:
            if isinstance(event, Drawable):
                self._build_drawable(event, program)
            elif isinstance(event, ExitGroup):
                program.append(LayerBoundary(self._between_layers, event.name))
        logger.debug("Built primitives: %s", count_primitives(program))
        return program

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _build_drawable(self, drawable: Drawable, program: Program) -> None:
        program.append(Comment(drawable.name))
        chain: list[Point] = []
        for segment in drawable.output_segments():
            if isinstance(segment, Move):
                self._flush(chain, program)
                program.append(RapidMove(*segment.to))
                chain = [segment.to]
                continue
            points = flatten_segment(segment, self._tolerance)
            if not chain:
                program.append(RapidMove(*points[0]))
                chain = [points[0]]
            for point in points[1:]:
                if point != chain[-1]:
                    chain.append(point)
        self._flush(chain, program)

    def _flush(self, chain: list[Point], program: Program) -> None:
        if len(chain) < 2:
            return
        for piece in detect_arcs(chain, self._arcs, self._tolerance):
            if isinstance(piece, DetectedArc):
                program.append(CutArc(piece))
            else:
                program.extend(CutLine(x, y) for x, y in piece.points[1:])


def build_primitives(
    events: Iterable[Event],
    tolerance: float,
    arc_detection: ArcDetectionConfig | None = None,
    between_layers: Snippet | None = None,
) -> Program:
    """Convenience wrapper around :class:`PrimitiveBuilder`."""
    return PrimitiveBuilder(tolerance, arc_detection, between_layers).build(events)
