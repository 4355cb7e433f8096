"""Transform & traversal resolver: SVG tree to an ordered event stream.

Walks the document depth first and yields::

    EnterGroup(name)  ...  Drawable(name, segments, transform)  ...  ExitGroup(name)

``Drawable.segments`` stay in the element's user space; its
``transform`` maps them all the way to output millimetres (y up).  The
root frame is composed as::

    post @ mm_scale(25.4 / dpi) @ flip_y @ viewport(viewBox) @ root.transform

where *post* is the trim/alignment/origin placement, computed from the
tight bounding box of everything drawable once the walk has finished.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Union

from svg_toolpath.document.elements import (
    CONTAINER_TAGS,
    SHAPE_TAGS,
    SKIPPED_TAGS,
    is_hidden,
    length_attribute,
    local_name,
    node_name,
    parse_document,
    parse_view_box,
    shape_segments,
)
from svg_toolpath.document.layout import (
    DEFAULT_ORIGIN,
    BoundingBox,
    HorizontalAlign,
    VerticalAlign,
    placement_transform,
)
from svg_toolpath.document.units import (
    DimensionHint,
    Length,
    length_to_user_units,
    parse_length,
    user_units_to_mm,
)
from svg_toolpath.errors import ParseError
from svg_toolpath.geometry.flatten import flatten_segment
from svg_toolpath.geometry.segments import Move, PathSegment, transform_segments
from svg_toolpath.geometry.transform import Transform, parse_transform

if TYPE_CHECKING:
    from svg_toolpath.configs.loader import ConversionConfig, ConversionOptions

logger = logging.getLogger(__name__)

_ALIGN_FRACTIONS = {"Min": 0.0, "Mid": 0.5, "Max": 1.0}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EnterGroup:
    name: str


@dataclass(frozen=True, slots=True)
class ExitGroup:
    name: str


@dataclass(frozen=True, slots=True)
class Drawable:
    """One drawable element.

    Parameters
    ----------
    name : str
        Ancestry path used as a comment, e.g. ``svg > g#layer1 > path#p1``.
    segments : tuple[PathSegment, ...]
        Segments in the element's user space.
    transform : Transform
        Full transform from user space to output mm.
    """

    name: str
    segments: tuple[PathSegment, ...]
    transform: Transform

    def output_segments(self) -> tuple[PathSegment, ...]:
        """Segments mapped into output millimetres."""
        return transform_segments(self.segments, self.transform)


Event = Union[EnterGroup, ExitGroup, Drawable]


@dataclass(frozen=True, slots=True)
class ResolvedDocument:
    """Resolver output: the events plus the layout facts behind them."""

    events: tuple[Event, ...]
    bbox: BoundingBox | None
    viewport_mm: tuple[float, float] | None
    post: Transform


# ---------------------------------------------------------------------------
# Viewport helpers
# ---------------------------------------------------------------------------


def parse_preserve_aspect_ratio(raw: str | None) -> tuple[str | None, bool]:
    """Return ``(align, slice)``; ``align`` is ``None`` for ``none``.

    Unrecognised values fall back to the default ``xMidYMid meet``.
    """
    if raw is None or not raw.strip():
        return "xMidYMid", False
    tokens = raw.split()
    if tokens and tokens[0] == "defer":
        tokens = tokens[1:]
    if not tokens or len(tokens) > 2:
        logger.warning("Invalid preserveAspectRatio %r; using xMidYMid meet", raw)
        return "xMidYMid", False
    align = tokens[0]
    mode = tokens[1] if len(tokens) == 2 else "meet"
    valid_align = align == "none" or (
        len(align) == 8
        and align[0] == "x" and align[4] == "Y"
        and align[1:4] in _ALIGN_FRACTIONS and align[5:8] in _ALIGN_FRACTIONS
    )
    if not valid_align or mode not in ("meet", "slice"):
        logger.warning("Invalid preserveAspectRatio %r; using xMidYMid meet", raw)
        return "xMidYMid", False
    return (None if align == "none" else align), mode == "slice"


def view_box_transform(
    view_box: tuple[float, float, float, float],
    width: float,
    height: float,
    preserve_aspect_ratio: str | None = None,
) -> Transform:
    """Map a viewBox onto a ``width`` x ``height`` viewport.

    See https://www.w3.org/TR/SVG/coords.html#ComputingAViewportsTransform
    """
    min_x, min_y, vb_w, vb_h = view_box
    align, slice_ = parse_preserve_aspect_ratio(preserve_aspect_ratio)
    sx, sy = width / vb_w, height / vb_h
    if align is None:
        return Transform.scaling(sx, sy) @ Transform.translation(-min_x, -min_y)

    scale = max(sx, sy) if slice_ else min(sx, sy)
    fx = _ALIGN_FRACTIONS[align[1:4]]
    fy = _ALIGN_FRACTIONS[align[5:8]]
    tx = (width - vb_w * scale) * fx
    ty = (height - vb_h * scale) * fy
    return (
        Transform.translation(tx, ty)
        @ Transform.scaling(scale)
        @ Transform.translation(-min_x, -min_y)
    )


def _dimension(
    element: ET.Element, name: str, dpi: float,
) -> float | None:
    raw = element.get(name)
    if raw is None or not raw.strip():
        return None
    hint = DimensionHint.HORIZONTAL if name == "width" else DimensionHint.VERTICAL
    return length_to_user_units(parse_length(raw), dpi, hint, None)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class Resolver:
    """Resolve one document into ordered drawing events.

    Parameters
    ----------
    config : ConversionConfig
        Uses ``dpi``, ``tolerance``, ``origin`` and
        ``extra_attribute_name``.
    options : ConversionOptions | None
        Per-document override dimensions, alignment and trim.
    """

    def __init__(
        self,
        config: ConversionConfig,
        options: ConversionOptions | None = None,
    ) -> None:
        self._cfg = config
        self._dimensions: tuple[Length | None, Length | None] = (
            options.dimensions if options is not None else (None, None)
        )
        self._h_align = options.h_align if options is not None else HorizontalAlign.LEFT
        self._v_align = options.v_align if options is not None else VerticalAlign.TOP
        self._trim = options.trim if options is not None else False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_text(self, svg_text: str) -> ResolvedDocument:
        return self.resolve(parse_document(svg_text))

    def resolve(self, root: ET.Element) -> ResolvedDocument:
        """Walk *root* and return placed events.

        Raises
        ------
        ParseError
            On malformed transforms, lengths, viewBox or path data.
        """
        if local_name(root) != "svg":
            raise ParseError(f"Root element must be <svg>, got <{local_name(root)}>")

        frame, viewport_user, child_viewport = self._root_frame(root)
        events: list[Event] = []
        root_name = node_name(root, self._cfg.extra_attribute_name)
        self._walk_children(root, frame, child_viewport, [root_name], events)

        bbox = self._bounding_box(events)
        viewport_mm = None
        if viewport_user is not None:
            viewport_mm = (
                user_units_to_mm(viewport_user[0], self._cfg.dpi),
                user_units_to_mm(viewport_user[1], self._cfg.dpi),
            )
        targets = self._targets_mm()
        origin = tuple(self._cfg.origin) if self._cfg.origin is not None else DEFAULT_ORIGIN
        post = placement_transform(
            bbox, viewport_mm, targets, self._h_align, self._v_align, self._trim, origin,
        )
        if not post.is_identity():
            events = [
                replace(e, transform=post @ e.transform) if isinstance(e, Drawable) else e
                for e in events
            ]

        drawables = sum(1 for e in events if isinstance(e, Drawable))
        logger.debug(
            "Resolved %d events (%d drawables), bbox=%s, viewport_mm=%s",
            len(events), drawables, bbox, viewport_mm,
        )
        return ResolvedDocument(tuple(events), bbox, viewport_mm, post)

    # ------------------------------------------------------------------
    # Root viewport
    # ------------------------------------------------------------------

    def _override_user_units(self, index: int) -> float | None:
        length = self._dimensions[index]
        if length is None:
            return None
        return length_to_user_units(length, self._cfg.dpi)

    def _targets_mm(self) -> tuple[float | None, float | None]:
        out: list[float | None] = []
        for index in (0, 1):
            user = self._override_user_units(index)
            out.append(None if user is None else user_units_to_mm(user, self._cfg.dpi))
        return out[0], out[1]

    def _root_frame(
        self, root: ET.Element,
    ) -> tuple[Transform, tuple[float, float] | None, tuple[float, float] | None]:
        """Return ``(frame, viewport size, child percentage viewport)``."""
        dpi = self._cfg.dpi
        view_box = parse_view_box(root.get("viewBox"))
        override_w = self._override_user_units(0)
        override_h = self._override_user_units(1)

        if override_w is not None or override_h is not None:
            width, height = override_w, override_h
            if view_box is not None:
                aspect = view_box[2] / view_box[3]
                if width is None:
                    width = height * aspect
                elif height is None:
                    height = width / aspect
            else:
                if width is None:
                    width = _dimension(root, "width", dpi)
                if height is None:
                    height = _dimension(root, "height", dpi)
        else:
            width = _dimension(root, "width", dpi)
            height = _dimension(root, "height", dpi)
            if view_box is not None:
                aspect = view_box[2] / view_box[3]
                if width is None and height is None:
                    width, height = view_box[2], view_box[3]
                elif width is None:
                    width = height * aspect
                elif height is None:
                    height = width / aspect

        viewport = (width, height) if width is not None and height is not None else None
        if viewport is not None and (viewport[0] <= 0 or viewport[1] <= 0):
            raise ParseError(f"Root viewport must be positive, got {viewport}")

        frame = Transform.identity()
        if view_box is not None and viewport is not None:
            frame = view_box_transform(
                view_box, viewport[0], viewport[1], root.get("preserveAspectRatio"),
            )
        frame = frame @ parse_transform(root.get("transform"))

        mm_per_user_unit = user_units_to_mm(1.0, dpi)
        frame = Transform.scaling(mm_per_user_unit) @ Transform.scaling(1.0, -1.0) @ frame

        child_viewport = (view_box[2], view_box[3]) if view_box is not None else viewport
        return frame, viewport, child_viewport

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _walk_children(
        self,
        parent: ET.Element,
        transform: Transform,
        viewport: tuple[float, float] | None,
        names: list[str],
        events: list[Event],
    ) -> None:
        for child in parent:
            tag = local_name(child)
            if not tag or tag in SKIPPED_TAGS:
                continue
            if is_hidden(child):
                logger.debug("Skipping hidden <%s>", tag)
                continue

            name = node_name(child, self._cfg.extra_attribute_name)
            local = transform @ parse_transform(child.get("transform"))

            if tag in CONTAINER_TAGS:
                child_viewport = viewport
                if tag == "svg":
                    local, child_viewport = self._nested_viewport(child, local, viewport)
                events.append(EnterGroup(name))
                self._walk_children(child, local, child_viewport, names + [name], events)
                events.append(ExitGroup(name))
            elif tag in SHAPE_TAGS:
                segments = shape_segments(child, self._cfg.dpi, viewport)
                if not segments:
                    continue
                events.append(Drawable(" > ".join(names + [name]), segments, local))
            else:
                logger.warning("Unsupported element <%s> skipped", tag)

    def _nested_viewport(
        self,
        element: ET.Element,
        transform: Transform,
        viewport: tuple[float, float] | None,
    ) -> tuple[Transform, tuple[float, float] | None]:
        """Establish the viewport of a nested ``<svg>``."""
        dpi = self._cfg.dpi
        x = length_attribute(element, "x", dpi, viewport)
        y = length_attribute(element, "y", dpi, viewport)
        default_w = viewport[0] if viewport is not None else None
        default_h = viewport[1] if viewport is not None else None
        width = (
            length_attribute(element, "width", dpi, viewport)
            if element.get("width") else default_w
        )
        height = (
            length_attribute(element, "height", dpi, viewport)
            if element.get("height") else default_h
        )
        local = transform @ Transform.translation(x, y)
        view_box = parse_view_box(element.get("viewBox"))
        if view_box is None:
            if width is None or height is None:
                return local, viewport
            return local, (width, height)
        if width is None or height is None:
            width, height = view_box[2], view_box[3]
        local = local @ view_box_transform(
            view_box, width, height, element.get("preserveAspectRatio"),
        )
        return local, (view_box[2], view_box[3])

    # ------------------------------------------------------------------
    # Bounding box
    # ------------------------------------------------------------------

    def _bounding_box(self, events: list[Event]) -> BoundingBox | None:
        """Tight box of all drawn geometry in mm, before placement."""
        bbox: BoundingBox | None = None
        tolerance = self._cfg.tolerance
        for event in events:
            if not isinstance(event, Drawable):
                continue
            points = [
                point
                for segment in event.output_segments()
                if not isinstance(segment, Move)
                for point in flatten_segment(segment, tolerance)
            ]
            box = BoundingBox.of_points(points)
            if box is not None:
                bbox = box if bbox is None else box.union(bbox)
        return bbox


def resolve(
    svg_text: str,
    config: ConversionConfig,
    options: ConversionOptions | None = None,
) -> ResolvedDocument:
    """Parse *svg_text* and resolve it in one call."""
    return Resolver(config, options).resolve_text(svg_text)
