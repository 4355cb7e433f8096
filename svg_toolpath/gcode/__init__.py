"""
G-code module.

Tokens and the snippet parser, the modal Turtle that turns primitives
into tokens, and the formatter that renders them as program text.
"""

from svg_toolpath.gcode.tokens import (
    BlankLine,
    Command,
    Comment,
    Word,
    parse_snippet,
)
from svg_toolpath.gcode.turtle import MachineState, Turtle
from svg_toolpath.gcode.formatter import Formatter, format_tokens

__all__ = [
    "BlankLine",
    "Command",
    "Comment",
    "Word",
    "parse_snippet",
    "MachineState",
    "Turtle",
    "Formatter",
    "format_tokens",
]
