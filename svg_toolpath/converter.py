"""Whole-pipeline conversion: SVG text to a G-code program.

    Resolver -> PrimitiveBuilder (flatten + arc detection) -> Turtle -> Formatter

Each call is single-threaded and owns all of its state; independent
calls may run in parallel.  Output is all-or-nothing: any failure raises
one :class:`~svg_toolpath.errors.ConversionError` and returns nothing.

Usage::

    from svg_toolpath import load_settings, svg2program
    gcode = svg2program(svg_text, load_settings())
"""

from __future__ import annotations

import itertools
import logging

from svg_toolpath.configs.loader import ConversionOptions, Settings, validate_settings
from svg_toolpath.document.resolver import Resolver
from svg_toolpath.errors import ConversionError
from svg_toolpath.gcode.formatter import format_tokens
from svg_toolpath.gcode.tokens import Token
from svg_toolpath.gcode.turtle import Turtle
from svg_toolpath.toolpath.builder import build_primitives
from svg_toolpath.utils.logging_config import conversion_context

logger = logging.getLogger(__name__)

_conversion_ids = itertools.count(1)


def svg2tokens(
    svg_text: str,
    settings: Settings | None = None,
    options: ConversionOptions | None = None,
) -> list[Token]:
    """Convert SVG text to unformatted G-code tokens.

    Parameters
    ----------
    svg_text : str
        Complete SVG document.
    settings : Settings | None
        Conversion, machine and post-processing settings.  ``None`` uses
        the built-in defaults.
    options : ConversionOptions | None
        Per-document overrides.  ``None`` uses ``settings.options``.

    Raises
    ------
    ParseError, ConfigError, GeometryError
        On invalid input or settings.
    """
    settings = settings if settings is not None else Settings()
    validate_settings(settings)
    options = options if options is not None else settings.options
    conv = settings.conversion

    resolved = Resolver(conv, options).resolve_text(svg_text)
    program = build_primitives(
        resolved.events,
        conv.tolerance,
        conv.arc_detection,
        settings.machine.between_layers,
    )
    return Turtle(settings.machine, conv.feedrate).generate(program)


def svg2program(
    svg_text: str,
    settings: Settings | None = None,
    options: ConversionOptions | None = None,
) -> str:
    """Convert SVG text to G-code program text.

    Returns
    -------
    str
        One instruction per line, newline terminated.  Byte-identical
        for identical input and settings.

    Raises
    ------
    ConversionError
        Exactly one, whose subclass names the failure kind.
    """
    settings = settings if settings is not None else Settings()
    with conversion_context(conversion=next(_conversion_ids)):
        logger.info("Converting SVG document (%d chars)", len(svg_text))
        try:
            tokens = svg2tokens(svg_text, settings, options)
            text = format_tokens(tokens, settings.postprocess)
        except ConversionError as exc:
            logger.error("Conversion failed (%s): %s", exc.kind, exc)
            raise
        logger.info("Conversion finished: %d lines", text.count("\n"))
    return text
