"""Toolpath primitives -- the vocabulary between geometry and G-code.

Every drawing action is an immutable, slotted dataclass.  Primitives use
**semantic** names (``CutLine``, not ``G1``), **millimetre** units and
**output** coordinates (y up, placement already applied).

Tool state is implicit: the Turtle switches the tool on before a cut
and off before a rapid, so primitives never carry ``ToolOn``/``ToolOff``.

Layers
------
``LayerBoundary`` marks the exit of a group element.  Its optional
between-layers snippet is held by the Turtle and flushed just before
the next tool-on.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import TYPE_CHECKING

from svg_toolpath.geometry.arcs import DetectedArc

if TYPE_CHECKING:
    from svg_toolpath.gcode.tokens import Snippet

# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Primitive(ABC):
    """Base class for all toolpath primitives."""

    pass


Program = list[Primitive]
"""A complete conversion is a flat sequence of primitives."""


# ---------------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Comment(Primitive):
    """Stand-alone comment naming the element being drawn.

    Parameters
    ----------
    text : str
        Single-line text, e.g. ``svg > g#layer1 > path#p1``.
    """

    text: str

    def __post_init__(self) -> None:
        if "\n" in self.text or "\r" in self.text:
            raise ValueError("Comment text must be a single line")


# ---------------------------------------------------------------------------
# Motion  (all coordinates are output mm)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RapidMove(Primitive):
    """Fast travel move -- tool **must** be off.

    Parameters
    ----------
    x, y : float
        Target position in mm.
    """

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class CutLine(Primitive):
    """Straight cut from the current position at the cutting feed.

    Parameters
    ----------
    x, y : float
        End-point in mm.
    """

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class CutArc(Primitive):
    """Circular cut through the points of a detected arc.

    The arc starts at the current position, which equals
    ``arc.start``.  The Turtle emits it as G2/G3 with I/J centre
    offsets, or as a G1 chain through ``arc.points`` when the machine
    has no circular interpolation.

    Parameters
    ----------
    arc : DetectedArc
        Fitted circle and the points it replaces.
    """

    arc: DetectedArc

    def __post_init__(self) -> None:
        if len(self.arc.points) < 3:
            raise ValueError(
                f"CutArc requires >= 3 points, got {len(self.arc.points)}"
            )


# ---------------------------------------------------------------------------
# Layer sequencing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LayerBoundary(Primitive):
    """A group was exited.

    Parameters
    ----------
    sequence : Snippet | None
        Between-layers snippet to flush before the next tool-on, or
        ``None`` when the machine defines none.
    name : str
        Name of the exited group, for logging.
    """

    sequence: Snippet | None = None
    name: str = ""


def count_primitives(program: Program) -> dict[str, int]:
    """Histogram of primitive type names, for logging and tests."""
    counts: dict[str, int] = {}
    for prim in program:
        key = type(prim).__name__
        counts[key] = counts.get(key, 0) + 1
    return counts
