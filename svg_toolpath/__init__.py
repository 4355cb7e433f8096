"""
svg_toolpath -- SVG to G-code for pen plotters, lasers and CNC routers.

Pipeline (left to right, single pass per document):
    document: resolve viewports, transforms, trim and alignment
    geometry: flatten curves within tolerance, detect circular arcs
    toolpath: build semantic primitives (rapid, cut line, cut arc, layer)
    gcode:    modal Turtle emits tokens; Formatter renders text

Subpackages:
    configs:  settings dataclasses and YAML loading
    utils:    YAML helpers and logging setup
"""

from svg_toolpath.errors import (
    ConfigError,
    ConversionError,
    FormatError,
    GeometryError,
    ParseError,
)
from svg_toolpath.configs import (
    ConversionConfig,
    ConversionOptions,
    MachineConfig,
    PostprocessConfig,
    Settings,
    load_settings,
    settings_from_dict,
)
from svg_toolpath.document import HorizontalAlign, Length, VerticalAlign, parse_length
from svg_toolpath.gcode import parse_snippet
from svg_toolpath.geometry import ArcDetectionConfig
from svg_toolpath.converter import svg2program, svg2tokens

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConversionError",
    "FormatError",
    "GeometryError",
    "ParseError",
    "ConversionConfig",
    "ConversionOptions",
    "MachineConfig",
    "PostprocessConfig",
    "Settings",
    "load_settings",
    "settings_from_dict",
    "HorizontalAlign",
    "Length",
    "VerticalAlign",
    "parse_length",
    "parse_snippet",
    "ArcDetectionConfig",
    "svg2program",
    "svg2tokens",
]
