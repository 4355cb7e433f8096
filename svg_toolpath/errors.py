"""Error taxonomy for a single conversion.

Every error is fatal to the conversion that raised it: the pipeline never
returns partial output.  Callers see exactly one exception whose class is
the *kind* and whose message is human-readable.

Hierarchy::

    ConversionError
    ├── ParseError      malformed document, transform, length or path data
    ├── ConfigError     invalid settings, units or snippets
    ├── GeometryError   non-finite coordinates, degenerate geometry
    └── FormatError     post-processing invariant violated
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for all errors surfaced by the conversion core."""

    kind = "conversion"


class ParseError(ConversionError):
    """Raised when the input document cannot be interpreted."""

    kind = "parse"


class ConfigError(ConversionError):
    """Raised when configuration validation fails."""

    kind = "config"


class GeometryError(ConversionError):
    """Raised when a primitive carries unusable geometry."""

    kind = "geometry"


class FormatError(ConversionError):
    """Raised when the token stream cannot be formatted."""

    kind = "format"
