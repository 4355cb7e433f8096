"""Settings loader for conversions.

Loads and validates a settings YAML into typed, frozen dataclasses.
Every tunable of the core (tolerance, feed, DPI, origin, machine
snippets, arc detection, post-processing) comes from here -- nothing in
the pipeline is hardcoded beyond these defaults.

Feed rates are **mm/min** and lengths **mm** throughout.  Machine
snippets are stored parsed (token tuples), never as raw text.

Usage::

    from svg_toolpath.configs.loader import load_settings
    settings = load_settings()                        # default path
    settings = load_settings("/custom/settings.yaml") # explicit path
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from svg_toolpath.document.layout import DEFAULT_ORIGIN, HorizontalAlign, VerticalAlign
from svg_toolpath.document.units import Length, parse_dimension_override
from svg_toolpath.errors import ConfigError
from svg_toolpath.gcode.tokens import Snippet, parse_snippet
from svg_toolpath.geometry.arcs import ArcDetectionConfig
from svg_toolpath.utils.fs import load_yaml, load_yaml_text

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "default.yaml"

_SNIPPET_NAMES = ("tool_on", "tool_off", "begin", "end", "between_layers")
_SECTIONS = ("conversion", "machine", "postprocess", "options")


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConversionConfig:
    """Geometry settings shared by every document.

    Parameters
    ----------
    tolerance : float
        Curve flattening tolerance in mm (> 0).
    feedrate : float
        Cutting feed in mm/min (> 0).
    dpi : float
        Dots per inch for pixel-based lengths (> 0).
    origin : tuple[float | None, float | None]
        Where the drawing's min corner lands, in mm.  ``None`` leaves
        that axis untouched.
    extra_attribute_name : str | None
        Attribute whose value is appended to element comments.
    arc_detection : ArcDetectionConfig
        Circle-fitting settings.
    """

    tolerance: float = 0.002
    feedrate: float = 300.0
    dpi: float = 96.0
    origin: tuple[float | None, float | None] = DEFAULT_ORIGIN
    extra_attribute_name: str | None = None
    arc_detection: ArcDetectionConfig = field(default_factory=ArcDetectionConfig)


@dataclass(frozen=True)
class MachineConfig:
    """Target machine capabilities and instruction snippets.

    Each snippet is a parsed token tuple (see
    :func:`~svg_toolpath.gcode.tokens.parse_snippet`) or ``None``.
    """

    circular_interpolation: bool = False
    tool_on: Snippet | None = None
    tool_off: Snippet | None = None
    begin: Snippet | None = None
    end: Snippet | None = None
    between_layers: Snippet | None = None


@dataclass(frozen=True)
class PostprocessConfig:
    """Output formatting options."""

    checksums: bool = False
    line_numbers: bool = False
    newline_before_comment: bool = False
    decimal_places: int = 4


@dataclass(frozen=True)
class ConversionOptions:
    """Per-document options.

    Parameters
    ----------
    dimensions : tuple[Length | None, Length | None]
        Override width and height.
    h_align, v_align : HorizontalAlign, VerticalAlign
        Placement inside the viewport or trim box.  Only used when an
        override dimension is given or ``trim`` is set.
    trim : bool
        Scale the drawing's tight bounding box to ``dimensions``.
    """

    dimensions: tuple[Length | None, Length | None] = (None, None)
    h_align: HorizontalAlign = HorizontalAlign.LEFT
    v_align: VerticalAlign = VerticalAlign.TOP
    trim: bool = False


@dataclass(frozen=True)
class Settings:
    """Top-level settings: everything one conversion needs besides input."""

    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    machine: MachineConfig = field(default_factory=MachineConfig)
    postprocess: PostprocessConfig = field(default_factory=PostprocessConfig)
    options: ConversionOptions = field(default_factory=ConversionOptions)


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _parse_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value


def _parse_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(result):
        raise ConfigError(f"{name} must be finite, got {value!r}")
    return result


def _parse_optional_float(name: str, value: Any) -> float | None:
    return None if value is None else _parse_float(name, value)


def _parse_origin(value: Any) -> tuple[float | None, float | None]:
    if value is None:
        return (None, None)
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigError(f"conversion.origin must be a pair [x, y], got {value!r}")
    return (
        _parse_optional_float("conversion.origin[0]", value[0]),
        _parse_optional_float("conversion.origin[1]", value[1]),
    )


def _parse_arc_detection(data: dict[str, Any]) -> ArcDetectionConfig:
    min_points = data.get("min_points", 5)
    if isinstance(min_points, bool) or not isinstance(min_points, int):
        raise ConfigError(
            f"arc_detection.min_points must be an integer, got {min_points!r}"
        )
    return ArcDetectionConfig(
        enabled=_parse_bool("arc_detection.enabled", data.get("enabled", False)),
        min_points=min_points,
        tolerance=_parse_optional_float("arc_detection.tolerance", data.get("tolerance")),
        min_radius=_parse_optional_float("arc_detection.min_radius", data.get("min_radius")),
    )


def _parse_conversion(data: dict[str, Any]) -> ConversionConfig:
    extra = data.get("extra_attribute_name")
    if extra is not None and not isinstance(extra, str):
        raise ConfigError(f"conversion.extra_attribute_name must be text, got {extra!r}")
    return ConversionConfig(
        tolerance=_parse_float("conversion.tolerance", data.get("tolerance", 0.002)),
        feedrate=_parse_float("conversion.feedrate", data.get("feedrate", 300.0)),
        dpi=_parse_float("conversion.dpi", data.get("dpi", 96.0)),
        origin=_parse_origin(data.get("origin", list(DEFAULT_ORIGIN))),
        extra_attribute_name=extra or None,
        arc_detection=_parse_arc_detection(data.get("arc_detection") or {}),
    )


def _parse_snippet_field(name: str, value: Any) -> Snippet | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"machine.{name} must be G-code text, got {value!r}")
    try:
        return parse_snippet(value)
    except ConfigError as exc:
        raise ConfigError(f"machine.{name}: {exc}") from exc


def _parse_machine(data: dict[str, Any]) -> MachineConfig:
    snippets = {name: _parse_snippet_field(name, data.get(name)) for name in _SNIPPET_NAMES}
    return MachineConfig(
        circular_interpolation=_parse_bool(
            "machine.circular_interpolation", data.get("circular_interpolation", False),
        ),
        **snippets,
    )


def _parse_postprocess(data: dict[str, Any]) -> PostprocessConfig:
    places = data.get("decimal_places", 4)
    if isinstance(places, bool) or not isinstance(places, int):
        raise ConfigError(f"postprocess.decimal_places must be an integer, got {places!r}")
    return PostprocessConfig(
        checksums=_parse_bool("postprocess.checksums", data.get("checksums", False)),
        line_numbers=_parse_bool("postprocess.line_numbers", data.get("line_numbers", False)),
        newline_before_comment=_parse_bool(
            "postprocess.newline_before_comment", data.get("newline_before_comment", False),
        ),
        decimal_places=places,
    )


def _parse_enum(name: str, enum_cls: type, value: Any):
    try:
        return enum_cls(str(value).lower())
    except ValueError as exc:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"{name} must be one of {choices}, got {value!r}") from exc


def parse_options(data: dict[str, Any] | None) -> ConversionOptions:
    """Build :class:`ConversionOptions` from plain data.

    ``dimensions`` entries are length strings such as ``"210mm"``.

    Raises
    ------
    ConfigError
        On unknown alignments or invalid override lengths.
    """
    data = data or {}
    raw_dims = data.get("dimensions") or [None, None]
    if not isinstance(raw_dims, (list, tuple)) or len(raw_dims) != 2:
        raise ConfigError(f"options.dimensions must be [width, height], got {raw_dims!r}")
    dimensions = tuple(
        None if raw is None else parse_dimension_override(str(raw)) for raw in raw_dims
    )
    return ConversionOptions(
        dimensions=dimensions,
        h_align=_parse_enum("options.h_align", HorizontalAlign, data.get("h_align", "left")),
        v_align=_parse_enum("options.v_align", VerticalAlign, data.get("v_align", "top")),
        trim=_parse_bool("options.trim", data.get("trim", False)),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_settings(settings: Settings) -> None:
    """Cross-field checks run after parsing.

    Raises
    ------
    ConfigError
        If any value is out of range.
    """
    c = settings.conversion
    for name in ("tolerance", "feedrate", "dpi"):
        value = getattr(c, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"conversion.{name} must be a number, got {value!r}")
        if not math.isfinite(value) or value <= 0:
            raise ConfigError(f"conversion.{name} must be > 0, got {value!r}")
    if len(c.origin) != 2:
        raise ConfigError(f"conversion.origin must be a pair, got {c.origin!r}")
    for value in c.origin:
        if value is not None and not math.isfinite(value):
            raise ConfigError(f"conversion.origin must be finite, got {c.origin!r}")

    p = settings.postprocess
    if not 0 <= p.decimal_places <= 10:
        raise ConfigError(
            f"postprocess.decimal_places must be in [0, 10], got {p.decimal_places}"
        )

    o = settings.options
    for dim in o.dimensions:
        if dim is not None and (dim.unit in ("em", "ex", "%") or dim.number <= 0):
            raise ConfigError(f"Override dimension must be an absolute length > 0, got {dim}")
    if o.trim and o.dimensions == (None, None):
        logger.warning("trim requested without override dimensions; alignment only")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def settings_from_dict(data: dict[str, Any] | None) -> Settings:
    """Build and validate :class:`Settings` from a parsed document.

    Missing sections and keys take their defaults.

    Raises
    ------
    ConfigError
        If any field is malformed or fails validation.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings must be a mapping, got {type(data).__name__}")
    for key in data:
        if key not in _SECTIONS:
            logger.warning("Ignoring unknown settings section %r", key)

    try:
        settings = Settings(
            conversion=_parse_conversion(data.get("conversion") or {}),
            machine=_parse_machine(data.get("machine") or {}),
            postprocess=_parse_postprocess(data.get("postprocess") or {}),
            options=parse_options(data.get("options")),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Malformed settings: {exc}") from exc

    validate_settings(settings)
    return settings


def load_settings(path: str | Path | None = None) -> Settings:
    """Load and validate settings from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to a settings file.  ``None`` loads ``default.yaml``
        shipped alongside this module.

    Returns
    -------
    Settings
        Fully validated, frozen settings.

    Raises
    ------
    ConfigError
        If the YAML is malformed or any field fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    path = DEFAULT_SETTINGS_PATH if path is None else Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    logger.info("Loading settings from %s", path)
    try:
        data = load_yaml(path)
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc)) from exc
    return settings_from_dict(data)


def load_settings_text(text: str) -> Settings:
    """Load settings from YAML text held in memory."""
    try:
        data = load_yaml_text(text)
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc)) from exc
    return settings_from_dict(data)
