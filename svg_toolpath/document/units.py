"""Lengths, units and DPI-aware conversions.

SVG user units are CSS pixels.  Physical units are resolved against the
configured DPI rather than the fixed CSS reference of 96, so ``10mm``
stays ten millimetres whatever DPI the caller picks::

    user_units = inches * dpi
    mm         = user_units * 25.4 / dpi

Supported units: ``mm``, ``cm``, ``in``, ``pt``, ``pc``, ``px`` and
unit-less (treated as ``px``).  ``em``/``ex`` assume 16px; percentages
resolve against the nearest established viewport.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum

from svg_toolpath.errors import ConfigError, ParseError

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4
CSS_FONT_SIZE_PX = 16.0

# Inches per unit for absolute lengths.
_INCHES_PER_UNIT = {
    "in": 1.0,
    "cm": 1.0 / 2.54,
    "mm": 1.0 / MM_PER_INCH,
    "pt": 1.0 / 72.0,
    "pc": 1.0 / 6.0,
}

_LENGTH_RE = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*"
    r"(mm|cm|in|pt|pc|px|em|ex|%)?\s*$"
)


class DimensionHint(Enum):
    """Which viewport axis a percentage refers to."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    OTHER = "other"


_HINTS = {
    "x": DimensionHint.HORIZONTAL,
    "x1": DimensionHint.HORIZONTAL,
    "x2": DimensionHint.HORIZONTAL,
    "cx": DimensionHint.HORIZONTAL,
    "rx": DimensionHint.HORIZONTAL,
    "width": DimensionHint.HORIZONTAL,
    "y": DimensionHint.VERTICAL,
    "y1": DimensionHint.VERTICAL,
    "y2": DimensionHint.VERTICAL,
    "cy": DimensionHint.VERTICAL,
    "ry": DimensionHint.VERTICAL,
    "height": DimensionHint.VERTICAL,
}


def hint_for_attribute(name: str) -> DimensionHint:
    """Return the percentage axis for an SVG attribute name."""
    return _HINTS.get(name, DimensionHint.OTHER)


@dataclass(frozen=True, slots=True)
class Length:
    """A number with an optional CSS unit.

    Parameters
    ----------
    number : float
        Magnitude.
    unit : str
        One of ``mm cm in pt pc px em ex %`` or ``""`` (unit-less).
    """

    number: float
    unit: str = ""

    def __str__(self) -> str:
        return f"{self.number:g}{self.unit}"


def parse_length(text: str) -> Length:
    """Parse an SVG length such as ``"210mm"`` or ``"50%"``.

    Raises
    ------
    ParseError
        If *text* is not a number followed by a supported unit.
    """
    match = _LENGTH_RE.match(text)
    if match is None:
        raise ParseError(f"Invalid length {text!r}")
    number = float(match.group(1))
    if not math.isfinite(number):
        raise ParseError(f"Length {text!r} is not finite")
    return Length(number=number, unit=match.group(2) or "")


def parse_dimension_override(text: str) -> Length:
    """Parse an override width/height handed in by an adapter.

    Only absolute units and pixels make sense for an output size, so
    relative units are rejected.

    Raises
    ------
    ConfigError
        If the unit is unrecognised, relative, or the value is not > 0.
    """
    try:
        length = parse_length(text)
    except ParseError as exc:
        raise ConfigError(f"Invalid dimension override: {exc}") from exc
    if length.unit in ("em", "ex", "%"):
        raise ConfigError(
            f"Dimension override {text!r} must use an absolute unit, "
            f"got '{length.unit}'"
        )
    if length.number <= 0:
        raise ConfigError(f"Dimension override must be > 0, got {text!r}")
    return length


def length_to_user_units(
    length: Length,
    dpi: float,
    hint: DimensionHint = DimensionHint.OTHER,
    viewport: tuple[float, float] | None = None,
) -> float:
    """Convert *length* to user units (CSS px at *dpi*).

    Parameters
    ----------
    length : Length
        Parsed length.
    dpi : float
        Dots per inch used for physical units.
    hint : DimensionHint
        Axis used to resolve percentages.
    viewport : tuple[float, float] | None
        Current viewport size in user units, for percentages.
    """
    unit = length.unit
    if unit in _INCHES_PER_UNIT:
        return length.number * _INCHES_PER_UNIT[unit] * dpi
    if unit in ("", "px"):
        return length.number
    if unit in ("em", "ex"):
        logger.warning("Converting %s assumes 1%s = 16px", length, unit)
        return CSS_FONT_SIZE_PX * length.number
    # Percentages: https://www.w3.org/TR/SVG/coords.html#Units
    if viewport is None:
        logger.warning("Percentage %s without an established viewport", length)
        return length.number / 100.0
    width, height = viewport
    if hint is DimensionHint.HORIZONTAL:
        scale = width
    elif hint is DimensionHint.VERTICAL:
        scale = height
    else:
        scale = math.hypot(width, height) / math.sqrt(2.0)
    return length.number / 100.0 * scale


def length_to_mm(length: Length, dpi: float) -> float:
    """Convert an absolute or pixel length to millimetres."""
    if length.unit in _INCHES_PER_UNIT:
        return length.number * _INCHES_PER_UNIT[length.unit] * MM_PER_INCH
    if length.unit in ("", "px"):
        return user_units_to_mm(length.number, dpi)
    raise ConfigError(f"Cannot convert relative length {length} to millimetres")


def user_units_to_mm(value: float, dpi: float) -> float:
    """Convert user units (px) to millimetres at *dpi*."""
    return value * MM_PER_INCH / dpi


def mm_to_user_units(value: float, dpi: float) -> float:
    """Convert millimetres to user units (px) at *dpi*."""
    return value * dpi / MM_PER_INCH
