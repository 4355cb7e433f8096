"""End-to-end tests for svg2program.

Validates complete programs for a square and a circle, layer
sequencing between sibling groups, arc gating, determinism,
all-or-nothing error reporting, and conversion-scoped log context.
"""

from __future__ import annotations

import json
import logging

import pytest

from svg_toolpath import (
    ConfigError,
    ConversionConfig,
    ConversionError,
    MachineConfig,
    ParseError,
    PostprocessConfig,
    Settings,
    parse_snippet,
    svg2program,
    svg2tokens,
)
from svg_toolpath.gcode.tokens import Command
from svg_toolpath.geometry.arcs import ArcDetectionConfig
from svg_toolpath.utils.logging_config import ContextFormatter

SQUARE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="10mm" height="10mm" viewBox="0 0 10 10">'
    '<path d="M0 0 L10 0 L10 10 L0 10 Z"/>'
    "</svg>"
)

CIRCLE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="20mm" height="20mm" viewBox="0 0 20 20">'
    '<circle id="c" cx="10" cy="10" r="4"/>'
    "</svg>"
)

LAYERS = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="20mm" height="20mm" viewBox="0 0 20 20">'
    '<g id="a"><path id="l1" d="M0 0 L10 0"/></g>'
    '<g id="b"><path id="l2" d="M0 10 L10 10"/></g>'
    "</svg>"
)


def pen_machine(**overrides) -> MachineConfig:
    fields = {"tool_on": parse_snippet("M3"), "tool_off": parse_snippet("M5")}
    fields.update(overrides)
    return MachineConfig(**fields)


def arc_settings(detect: bool = True, interpolate: bool = True) -> Settings:
    return Settings(
        conversion=ConversionConfig(
            tolerance=0.01, arc_detection=ArcDetectionConfig(enabled=detect),
        ),
        machine=pen_machine(circular_interpolation=interpolate),
    )


# ---------------------------------------------------------------------------
# Complete programs
# ---------------------------------------------------------------------------


class TestPrograms:
    def test_square(self) -> None:
        gcode = svg2program(SQUARE, Settings(machine=pen_machine()))
        assert gcode.splitlines() == [
            "G21",
            "G90",
            ";svg > path",
            "G0 X0 Y10",
            "M3",
            "G1 X10 Y10 F300",
            "G1 X10 Y0",
            "G1 X0 Y0",
            "G1 X0 Y10",
            "M5",
        ]

    def test_default_settings(self) -> None:
        gcode = svg2program(SQUARE)
        assert gcode.startswith("G21\nG90\n")
        assert gcode.endswith("\n")
        assert "M3" not in gcode

    def test_circle_as_two_arcs(self) -> None:
        lines = svg2program(CIRCLE, arc_settings()).splitlines()
        assert lines[lines.index("G0 X8 Y4") + 1:] == [
            "M3",
            "G2 X0 Y4 I-4 J0 F300",
            "G2 X8 Y4 I4 J0",
            "M5",
        ]

    def test_detection_off_means_no_arcs(self) -> None:
        lines = svg2program(CIRCLE, arc_settings(detect=False)).splitlines()
        assert not any(line.startswith(("G2 ", "G3 ")) for line in lines)
        assert sum(line.startswith("G1") for line in lines) > 8

    def test_interpolation_off_means_no_arcs(self) -> None:
        lines = svg2program(CIRCLE, arc_settings(interpolate=False)).splitlines()
        assert not any(line.startswith(("G2 ", "G3 ")) for line in lines)

    def test_sibling_layers(self) -> None:
        settings = Settings(machine=pen_machine(between_layers=parse_snippet("M0 (next pen)")))
        lines = svg2program(LAYERS, settings).splitlines()
        assert lines.count("M0 (next pen)") == 1
        first = lines.index(";svg > g#a > path#l1")
        second = lines.index(";svg > g#b > path#l2")
        pause = lines.index("M0 (next pen)")
        assert first < second < pause
        assert lines[pause - 1] == ""
        assert lines[pause - 2].startswith("G0 ")
        assert lines[pause + 1] == "M3"
        assert lines[-1] == "M5"

    def test_postprocess_options(self) -> None:
        settings = Settings(postprocess=PostprocessConfig(line_numbers=True, checksums=True))
        lines = svg2program(SQUARE, settings).splitlines()
        assert lines[0].startswith("N1 G21*")
        assert lines[1].startswith("N2 G90*")

    def test_tokens(self) -> None:
        tokens = svg2tokens(SQUARE)
        assert isinstance(tokens[0], Command)
        assert tokens[0].code == "G21"

    def test_deterministic(self) -> None:
        settings = arc_settings()
        assert svg2program(CIRCLE, settings) == svg2program(CIRCLE, settings)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_malformed_xml(self) -> None:
        with pytest.raises(ParseError):
            svg2program("<svg><path></svg>")

    def test_invalid_settings(self) -> None:
        with pytest.raises(ConfigError):
            svg2program(SQUARE, Settings(conversion=ConversionConfig(tolerance=0.0)))

    def test_single_base_class(self) -> None:
        with pytest.raises(ConversionError) as info:
            svg2program('<svg xmlns="http://www.w3.org/2000/svg"><g transform="oops"/></svg>')
        assert info.value.kind == "parse"

    def test_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR), pytest.raises(ParseError):
            svg2program("not xml")
        assert "Conversion failed (parse)" in caplog.text


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


class TestLogging:
    def test_records_carry_conversion_id(self) -> None:
        handler = _ListHandler()
        handler.setFormatter(ContextFormatter("json", use_color=False))
        logger = logging.getLogger("svg_toolpath")
        old_level = logger.level
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            svg2program(SQUARE)
            svg2program(SQUARE)
        finally:
            logger.removeHandler(handler)
            logger.setLevel(old_level)

        records = [json.loads(line) for line in handler.lines]
        ids = {r["conversion"] for r in records}
        assert len(ids) == 2
        assert any("Converting SVG document" in r["msg"] for r in records)
