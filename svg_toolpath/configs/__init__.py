"""Settings loading and validation."""

from svg_toolpath.configs.loader import (
    ConversionConfig,
    ConversionOptions,
    MachineConfig,
    PostprocessConfig,
    Settings,
    load_settings,
    load_settings_text,
    parse_options,
    settings_from_dict,
    validate_settings,
)

__all__ = [
    "ConversionConfig",
    "ConversionOptions",
    "MachineConfig",
    "PostprocessConfig",
    "Settings",
    "load_settings",
    "load_settings_text",
    "parse_options",
    "settings_from_dict",
    "validate_settings",
]
