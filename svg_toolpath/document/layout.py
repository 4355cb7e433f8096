"""Placement of the drawing on the output sheet.

After the document is mapped to millimetres (y up) a *post* transform
positions it:

- **trim** scales the tight bounding box uniformly to the requested
  width and/or height;
- **alignment** moves the (scaled) box to the left/center/right and
  top/center/bottom of a container, which is the target box when
  trimming and the viewport otherwise;
- **origin** moves the bounding box's min corner to a fixed point when
  no alignment is requested, or offsets the aligned container when a
  non-default origin is given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from svg_toolpath.geometry.transform import Transform

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN: tuple[float | None, float | None] = (0.0, 0.0)


class HorizontalAlign(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlign(Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in mm."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @classmethod
    def of_points(cls, points) -> BoundingBox | None:
        """Tight box around an iterable of ``(x, y)`` pairs."""
        xs: list[float] = []
        ys: list[float] = []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            return None
        return cls(min(xs), min(ys), max(xs), max(ys))

    def union(self, other: BoundingBox | None) -> BoundingBox:
        if other is None:
            return self
        return BoundingBox(
            min(self.min_x, other.min_x), min(self.min_y, other.min_y),
            max(self.max_x, other.max_x), max(self.max_y, other.max_y),
        )

    def scaled(self, factor: float) -> BoundingBox:
        return BoundingBox(
            self.min_x * factor, self.min_y * factor,
            self.max_x * factor, self.max_y * factor,
        )


def trim_scale(
    bbox: BoundingBox, target_w: float | None, target_h: float | None,
) -> float:
    """Uniform scale fitting *bbox* into the target size.

    With both targets the box must have extent on both axes; with one
    target only that axis must. Anything else keeps scale 1.0.
    """
    if target_w is not None and target_h is not None:
        if bbox.width > 0 and bbox.height > 0:
            return min(target_w / bbox.width, target_h / bbox.height)
    elif target_w is not None:
        if bbox.width > 0:
            return target_w / bbox.width
    elif target_h is not None:
        if bbox.height > 0:
            return target_h / bbox.height
    else:
        return 1.0
    logger.warning("Trim requested on a zero-area bounding box; scale 1.0")
    return 1.0


def _align_offset(free: float, start: float, where: str) -> float:
    if where == "start":
        return -start
    if where == "center":
        return free / 2.0 - start
    return free - start


def placement_transform(
    bbox: BoundingBox | None,
    viewport_mm: tuple[float, float] | None,
    targets: tuple[float | None, float | None],
    h_align: HorizontalAlign,
    v_align: VerticalAlign,
    trim: bool,
    origin: tuple[float | None, float | None],
) -> Transform:
    """Build the post transform applied in output millimetres.

    Parameters
    ----------
    bbox : BoundingBox | None
        Tight bounding box of all drawable geometry in mm, y up.
        ``None`` for a document with nothing to draw.
    viewport_mm : tuple[float, float] | None
        Root viewport size in mm, if it could be determined.
    targets : tuple[float | None, float | None]
        Override width/height in mm.
    h_align, v_align : HorizontalAlign, VerticalAlign
        Requested placement.
    trim : bool
        Scale the bounding box to the targets.
    origin : tuple[float | None, float | None]
        Origin in mm per axis, ``None`` to leave that axis alone.
    """
    if bbox is None:
        return Transform.identity()

    aligned = trim or targets[0] is not None or targets[1] is not None
    if not aligned:
        dx = origin[0] - bbox.min_x if origin[0] is not None else 0.0
        dy = origin[1] - bbox.min_y if origin[1] is not None else 0.0
        return Transform.translation(dx, dy)

    post = Transform.identity()
    box = bbox
    if trim:
        scale = trim_scale(bbox, targets[0], targets[1])
        post = Transform.scaling(scale)
        box = bbox.scaled(scale)
        container_w = targets[0] if targets[0] is not None else box.width
        container_h = targets[1] if targets[1] is not None else box.height
    elif viewport_mm is not None:
        container_w, container_h = viewport_mm
    else:
        container_w, container_h = box.width, box.height

    h_where = {"left": "start", "center": "center", "right": "end"}[h_align.value]
    v_where = {"bottom": "start", "center": "center", "top": "end"}[v_align.value]
    dx = _align_offset(container_w - box.width, box.min_x, h_where)
    dy = _align_offset(container_h - box.height, box.min_y, v_where)

    if origin != DEFAULT_ORIGIN:
        dx += origin[0] or 0.0
        dy += origin[1] or 0.0
    return Transform.translation(dx, dy) @ post
