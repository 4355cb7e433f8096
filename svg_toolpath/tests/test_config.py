"""Tests for the settings loader.

Validates that the shipped default.yaml loads into the documented
defaults, YAML text and files parse into typed settings, snippets are
parsed at load time, and every malformed value raises ConfigError.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from svg_toolpath.configs.loader import (
    DEFAULT_SETTINGS_PATH,
    ConversionConfig,
    Settings,
    load_settings,
    load_settings_text,
    parse_options,
    settings_from_dict,
    validate_settings,
)
from svg_toolpath.document.layout import HorizontalAlign, VerticalAlign
from svg_toolpath.document.units import Length
from svg_toolpath.errors import ConfigError
from svg_toolpath.gcode.tokens import Command, Word


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_default_file_exists(self) -> None:
        assert DEFAULT_SETTINGS_PATH.is_file()

    def test_default_file_matches_dataclass_defaults(self) -> None:
        assert load_settings() == Settings()

    def test_documented_values(self) -> None:
        s = load_settings()
        assert s.conversion.tolerance == 0.002
        assert s.conversion.feedrate == 300.0
        assert s.conversion.dpi == 96.0
        assert s.conversion.origin == (0.0, 0.0)
        assert s.conversion.arc_detection.enabled is False
        assert s.machine.circular_interpolation is False
        assert s.machine.tool_on is None
        assert s.postprocess.decimal_places == 4
        assert s.options.h_align is HorizontalAlign.LEFT
        assert s.options.v_align is VerticalAlign.TOP

    def test_empty_document(self) -> None:
        assert settings_from_dict(None) == Settings()
        assert load_settings_text("") == Settings()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_yaml_text(self) -> None:
        s = load_settings_text(
            """
conversion:
  tolerance: 0.05
  feedrate: 1200
  origin: [10, null]
  extra_attribute_name: "inkscape:label"
  arc_detection:
    enabled: true
    min_points: 6
machine:
  circular_interpolation: true
  tool_on: "M3 S1000"
  tool_off: |
    M5
    G4 P0.5 ; settle
postprocess:
  line_numbers: true
"""
        )
        assert s.conversion.tolerance == 0.05
        assert s.conversion.feedrate == 1200.0
        assert s.conversion.origin == (10.0, None)
        assert s.conversion.extra_attribute_name == "inkscape:label"
        assert s.conversion.arc_detection.enabled is True
        assert s.conversion.arc_detection.min_points == 6
        assert s.machine.circular_interpolation is True
        assert s.machine.tool_on == (Command((Word("M", 3.0), Word("S", 1000.0))),)
        assert [c.code for c in s.machine.tool_off] == ["M5", "G4"]
        assert s.machine.tool_off[1].comment == "settle"
        assert s.postprocess.line_numbers is True

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "laser.yaml"
        path.write_text("conversion:\n  dpi: 72\n", encoding="utf-8")
        assert load_settings(path).conversion.dpi == 72.0

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_origin_null_disables_both_axes(self) -> None:
        s = settings_from_dict({"conversion": {"origin": None}})
        assert s.conversion.origin == (None, None)

    def test_unknown_section_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            settings_from_dict({"plotter": {}})
        assert "plotter" in caplog.text

    def test_trim_without_dimensions_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            settings_from_dict({"options": {"trim": True}})
        assert "trim" in caplog.text


class TestOptions:
    def test_defaults(self) -> None:
        o = parse_options(None)
        assert o.dimensions == (None, None)
        assert o.trim is False

    def test_values(self) -> None:
        o = parse_options({
            "dimensions": ["210mm", None],
            "h_align": "Center",
            "v_align": "bottom",
            "trim": True,
        })
        assert o.dimensions == (Length(210.0, "mm"), None)
        assert o.h_align is HorizontalAlign.CENTER
        assert o.v_align is VerticalAlign.BOTTOM
        assert o.trim is True


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize(
        "data",
        [
            {"conversion": {"tolerance": 0}},
            {"conversion": {"tolerance": -0.1}},
            {"conversion": {"tolerance": "fine"}},
            {"conversion": {"feedrate": -1}},
            {"conversion": {"dpi": 0}},
            {"conversion": {"dpi": True}},
            {"conversion": {"origin": [1]}},
            {"conversion": {"extra_attribute_name": 5}},
            {"conversion": {"arc_detection": {"min_points": 2}}},
            {"conversion": {"arc_detection": {"min_points": "five"}}},
            {"conversion": {"arc_detection": {"tolerance": 0}}},
            {"conversion": {"arc_detection": {"enabled": "yes"}}},
            {"machine": {"circular_interpolation": 1}},
            {"machine": {"tool_on": "hello"}},
            {"machine": {"tool_on": 5}},
            {"postprocess": {"decimal_places": 11}},
            {"postprocess": {"decimal_places": 2.5}},
            {"postprocess": {"checksums": "yes"}},
            {"options": {"h_align": "middle"}},
            {"options": {"dimensions": ["50%", None]}},
            {"options": {"dimensions": ["1em", None]}},
            {"options": {"dimensions": ["0mm", None]}},
            {"options": {"dimensions": "210mm"}},
        ],
    )
    def test_invalid_values(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            settings_from_dict(data)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ConfigError):
            load_settings_text("- just\n- a list\n")

    def test_malformed_yaml(self) -> None:
        with pytest.raises(ConfigError):
            load_settings_text("conversion: [unclosed\n")

    def test_malformed_yaml_file_names_path(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("conversion: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="broken.yaml"):
            load_settings(path)

    def test_validate_settings_catches_direct_construction(self) -> None:
        with pytest.raises(ConfigError):
            validate_settings(Settings(conversion=ConversionConfig(tolerance=0.0)))
