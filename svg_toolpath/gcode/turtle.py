"""Primitive Turtle -- toolpath primitives to G-code tokens.

The Turtle is the only stateful stage of a conversion.  It owns one
:class:`MachineState` per run and emits tokens with minimal modal
output:

- ``G90``/``G91`` only when the tracked distance mode changes (snippets
  containing either update the tracked mode);
- ``F`` only when the cutting feed differs from the last one emitted
  (an ``F`` word inside a snippet counts as emitted);
- tool-on/tool-off snippets only on a tool state change.

Layer sequencing:
    A ``LayerBoundary`` stores its between-layers snippet as pending.
    The snippet is flushed exactly once, right before the next tool-on
    (after any rapid that followed the tool-off), preceded by a blank
    line.  A snippet still pending at the end of the program is
    discarded.

Arcs:
    ``CutArc`` is emitted as ``G2`` (clockwise) / ``G3``
    (counter-clockwise) with ``I``/``J`` centre offsets.  Sweeps of pi
    or more (semicircles within a small slack) are split at the fitted
    circle's angular midpoint, so no single command sweeps a full or
    half circle.  Without circular interpolation the arc is emitted as ``G1``
    moves through its original points.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from svg_toolpath.errors import GeometryError
from svg_toolpath.gcode.tokens import (
    BlankLine,
    Command,
    Comment,
    Snippet,
    Token,
    command,
)
from svg_toolpath.geometry.arcs import DetectedArc
from svg_toolpath.geometry.segments import Point
from svg_toolpath.toolpath import primitives as prim

if TYPE_CHECKING:
    from svg_toolpath.configs.loader import MachineConfig

logger = logging.getLogger(__name__)

_SEMICIRCLE_SLACK = 1e-5


class ToolState(Enum):
    OFF = "off"
    ON = "on"


class DistanceMode(Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    UNKNOWN = "unknown"


@dataclass
class MachineState:
    """Everything the Turtle knows about the machine.

    ``pending`` is the between-layers snippet waiting for the next
    tool-on, or ``None`` when nothing is pending.
    """

    position: Point | None = None
    tool: ToolState = ToolState.OFF
    distance_mode: DistanceMode = DistanceMode.UNKNOWN
    feed: float | None = None
    pending: Snippet | None = None


def _check_finite(*values: float) -> None:
    for value in values:
        if not math.isfinite(value):
            raise GeometryError(f"Non-finite coordinate {value!r} in toolpath")


class Turtle:
    """Convert toolpath primitives to G-code tokens.

    Parameters
    ----------
    machine : MachineConfig
        Capabilities and snippets of the target machine.
    feedrate : float
        Cutting feed in mm/min.

    Notes
    -----
    ``generate()`` resets the state, so one instance may convert many
    programs sequentially, but never concurrently.
    """

    def __init__(self, machine: MachineConfig, feedrate: float) -> None:
        self._machine = machine
        self._feedrate = float(feedrate)
        self._state = MachineState()
        self._tokens: list[Token] = []

    @property
    def state(self) -> MachineState:
        return self._state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, program: prim.Program) -> list[Token]:
        """Emit tokens for a complete primitive program.

        Returns
        -------
        list[Token]
            ``G21``/``G90`` header, begin snippet, body, end snippet.

        Raises
        ------
        GeometryError
            If any primitive carries a non-finite coordinate.  No tokens
            are returned in that case.
        """
        self._reset_state()
        self.begin()
        for op in program:
            self._generate_op(op)
        self.end()
        tokens, self._tokens = self._tokens, []
        return tokens

    def begin(self) -> None:
        self._tokens.append(command("G21"))
        self._ensure_absolute()
        self._splice(self._machine.begin)
        self._ensure_absolute()

    def end(self) -> None:
        if self._state.tool is ToolState.ON:
            self._tool_off()
        self._ensure_absolute()
        self._splice(self._machine.end)
        if self._state.pending is not None:
            logger.debug("Discarding between-layers sequence pending at end of program")
            self._state.pending = None

    # ------------------------------------------------------------------
    # Internal: per-primitive dispatch
    # ------------------------------------------------------------------

    def _reset_state(self) -> None:
        self._state = MachineState()
        self._tokens = []

    def _generate_op(self, op: prim.Primitive) -> None:
        if isinstance(op, prim.Comment):
            self._tokens.append(Comment(op.text))
        elif isinstance(op, prim.RapidMove):
            self._gen_rapid(op)
        elif isinstance(op, prim.CutLine):
            self._gen_line(op.x, op.y)
        elif isinstance(op, prim.CutArc):
            self._gen_arc(op.arc)
        elif isinstance(op, prim.LayerBoundary):
            if op.sequence is not None:
                self._state.pending = op.sequence
        else:
            raise GeometryError(f"Unsupported primitive: {type(op).__name__}")

    # ------------------------------------------------------------------
    # Individual generators
    # ------------------------------------------------------------------

    def _gen_rapid(self, op: prim.RapidMove) -> None:
        _check_finite(op.x, op.y)
        if self._state.tool is ToolState.ON:
            self._tool_off()
        self._ensure_absolute()
        self._tokens.append(command("G0", X=op.x, Y=op.y))
        self._state.position = (op.x, op.y)

    def _gen_line(self, x: float, y: float) -> None:
        _check_finite(x, y)
        if self._state.position == (x, y):
            return
        self._ensure_tool_on()
        self._tokens.append(self._cut("G1", X=x, Y=y))
        self._state.position = (x, y)

    def _gen_arc(self, arc: DetectedArc) -> None:
        _check_finite(arc.center[0], arc.center[1], arc.radius, arc.start_angle, arc.end_angle)
        for x, y in arc.points:
            _check_finite(x, y)

        if not self._machine.circular_interpolation:
            for x, y in arc.points[1:]:
                self._gen_line(x, y)
            return

        if self._state.position != arc.start:
            # Arc offsets are relative to the start point.
            self._gen_line(*arc.start)
        self._ensure_tool_on()

        sweep = arc.sweep
        if abs(sweep) > math.pi - _SEMICIRCLE_SLACK:
            mid_angle = arc.start_angle + sweep / 2.0
            mid = (
                arc.center[0] + arc.radius * math.cos(mid_angle),
                arc.center[1] + arc.radius * math.sin(mid_angle),
            )
            self._emit_arc(arc, mid)
            self._emit_arc(arc, arc.end)
        else:
            self._emit_arc(arc, arc.end)

    def _emit_arc(self, arc: DetectedArc, to: Point) -> None:
        start = self._state.position
        i = arc.center[0] - start[0]
        j = arc.center[1] - start[1]
        code = "G2" if arc.clockwise else "G3"
        self._tokens.append(self._cut(code, X=to[0], Y=to[1], I=i, J=j))
        self._state.position = to

    # ------------------------------------------------------------------
    # Modal state
    # ------------------------------------------------------------------

    def _cut(self, code: str, **params: float) -> Command:
        if self._state.feed != self._feedrate:
            params["F"] = self._feedrate
            self._state.feed = self._feedrate
        return command(code, **params)

    def _ensure_absolute(self) -> None:
        if self._state.distance_mode is not DistanceMode.ABSOLUTE:
            self._tokens.append(command("G90"))
            self._state.distance_mode = DistanceMode.ABSOLUTE

    def _ensure_tool_on(self) -> None:
        if self._state.tool is ToolState.ON:
            return
        if self._state.pending is not None:
            self._tokens.append(BlankLine())
            self._splice(self._state.pending)
            self._state.pending = None
        self._splice(self._machine.tool_on)
        self._state.tool = ToolState.ON
        self._ensure_absolute()

    def _tool_off(self) -> None:
        self._splice(self._machine.tool_off)
        self._state.tool = ToolState.OFF
        self._ensure_absolute()

    def _splice(self, snippet: Snippet | None) -> None:
        """Append a snippet verbatim, tracking the modal words it sets."""
        if not snippet:
            return
        for token in snippet:
            self._tokens.append(token)
            if not isinstance(token, Command):
                continue
            for word in token.words:
                if word.letter == "G" and word.value == 90:
                    self._state.distance_mode = DistanceMode.ABSOLUTE
                elif word.letter == "G" and word.value == 91:
                    self._state.distance_mode = DistanceMode.RELATIVE
                elif word.letter == "F" and word.value is not None:
                    self._state.feed = word.value
