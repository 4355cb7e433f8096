"""Tests for SVG element helpers.

Validates path data conversion, basic shape normalisation (rect,
circle, ellipse, line, polyline, polygon), element naming for
comments, visibility, and viewBox parsing.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

import pytest

from svg_toolpath.document.elements import (
    is_hidden,
    local_name,
    node_name,
    parse_document,
    parse_view_box,
    path_segments,
    shape_segments,
)
from svg_toolpath.errors import ParseError
from svg_toolpath.geometry.segments import (
    Close,
    CubicCurve,
    EllipticalArc,
    Line,
    Move,
    QuadraticCurve,
)


def element(xml: str) -> ET.Element:
    return ET.fromstring(xml)


# ---------------------------------------------------------------------------
# Documents and names
# ---------------------------------------------------------------------------


class TestDocument:
    def test_namespaced_root(self) -> None:
        root = parse_document('<svg xmlns="http://www.w3.org/2000/svg"><g/></svg>')
        assert local_name(root) == "svg"
        assert local_name(root[0]) == "g"

    def test_malformed_xml(self) -> None:
        with pytest.raises(ParseError):
            parse_document("<svg><g></svg>")

    def test_wrong_root(self) -> None:
        with pytest.raises(ParseError):
            parse_document("<html/>")


class TestNames:
    def test_tag_only(self) -> None:
        assert node_name(element("<path/>")) == "path"

    def test_with_id(self) -> None:
        assert node_name(element('<path id="outline"/>')) == "path#outline"

    def test_extra_attribute(self) -> None:
        el = element('<g id="l1" label="Pen 1"/>')
        assert node_name(el, "label") == "g#l1 ( Pen 1 )"

    def test_namespaced_extra_attribute(self) -> None:
        el = element(
            '<g xmlns:inkscape="http://www.inkscape.org/namespaces/inkscape" '
            'id="layer1" inkscape:label="Outline"/>'
        )
        assert node_name(el, "inkscape:label") == "g#layer1 ( Outline )"

    def test_extra_attribute_needs_id(self) -> None:
        assert node_name(element('<g label="Pen 1"/>'), "label") == "g"


class TestHidden:
    @pytest.mark.parametrize(
        "xml",
        ['<g display="none"/>', '<g style="stroke:red; display : none"/>'],
    )
    def test_hidden(self, xml: str) -> None:
        assert is_hidden(element(xml))

    @pytest.mark.parametrize("xml", ["<g/>", '<g style="fill:none"/>', '<g display="inline"/>'])
    def test_visible(self, xml: str) -> None:
        assert not is_hidden(element(xml))


# ---------------------------------------------------------------------------
# Path data
# ---------------------------------------------------------------------------


class TestPathSegments:
    def test_empty(self) -> None:
        assert path_segments(None) == ()
        assert path_segments("  ") == ()

    def test_relative_commands_resolved(self) -> None:
        segs = path_segments("m 1 1 l 2 0 z")
        assert segs == (
            Move((1.0, 1.0)),
            Line((1.0, 1.0), (3.0, 1.0)),
            Close((3.0, 1.0), (1.0, 1.0)),
        )

    def test_curves_and_arcs(self) -> None:
        segs = path_segments("M0 0 C 1 2 3 2 4 0 Q 5 5 6 0 A 5 6 30 1 0 10 0")
        assert [type(s) for s in segs] == [Move, CubicCurve, QuadraticCurve, EllipticalArc]
        arc = segs[3]
        assert arc.radii == (5.0, 6.0)
        assert arc.rotation == 30.0
        assert arc.large_arc is True
        assert arc.sweep is False
        assert arc.end == (10.0, 0.0)


# ---------------------------------------------------------------------------
# Basic shapes
# ---------------------------------------------------------------------------


class TestShapes:
    def test_rect(self) -> None:
        segs = shape_segments(element('<rect x="1" y="2" width="3" height="4"/>'), 96.0, None)
        assert segs[0] == Move((1.0, 2.0))
        assert [type(s) for s in segs] == [Move, Line, Line, Line, Close]
        assert segs[-1] == Close((1.0, 6.0), (1.0, 2.0))

    def test_rounded_rect_radii_filled_and_clamped(self) -> None:
        segs = shape_segments(element('<rect width="10" height="4" rx="3"/>'), 96.0, None)
        arcs = [s for s in segs if isinstance(s, EllipticalArc)]
        assert len(arcs) == 4
        assert all(a.radii == (3.0, 2.0) for a in arcs)

    def test_circle(self) -> None:
        segs = shape_segments(element('<circle cx="5" cy="5" r="2"/>'), 96.0, None)
        assert segs[0] == Move((7.0, 5.0))
        assert [type(s) for s in segs[1:5]] == [EllipticalArc] * 4
        assert segs[4].end == (7.0, 5.0)

    def test_ellipse(self) -> None:
        segs = shape_segments(element('<ellipse cx="0" cy="0" rx="4" ry="2"/>'), 96.0, None)
        assert segs[1].radii == (4.0, 2.0)

    def test_line(self) -> None:
        segs = shape_segments(element('<line x1="1" y1="2" x2="3" y2="4"/>'), 96.0, None)
        assert segs == (Move((1.0, 2.0)), Line((1.0, 2.0), (3.0, 4.0)))

    def test_line_percentages(self) -> None:
        segs = shape_segments(element('<line x2="50%" y2="100%"/>'), 96.0, (100.0, 50.0))
        assert segs[1].end == (50.0, 50.0)

    def test_polygon_closed(self) -> None:
        segs = shape_segments(element('<polygon points="0,0 10,0 10,10"/>'), 96.0, None)
        assert [type(s) for s in segs] == [Move, Line, Line, Close]

    def test_polyline_open(self) -> None:
        segs = shape_segments(element('<polyline points="0 0 10 0 10 10"/>'), 96.0, None)
        assert [type(s) for s in segs] == [Move, Line, Line]

    def test_odd_points_drops_last(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            segs = shape_segments(element('<polyline points="0 0 10 0 5"/>'), 96.0, None)
        assert segs == (Move((0.0, 0.0)), Line((0.0, 0.0), (10.0, 0.0)))
        assert "Odd number" in caplog.text

    def test_physical_units(self) -> None:
        segs = shape_segments(element('<line x2="1in"/>'), 96.0, None)
        assert segs[1].end == (96.0, 0.0)

    @pytest.mark.parametrize(
        "xml",
        ['<rect width="0" height="5"/>', '<circle r="0"/>', '<ellipse rx="3"/>',
         '<polyline points="1 1"/>'],
    )
    def test_not_rendered(self, xml: str) -> None:
        assert shape_segments(element(xml), 96.0, None) == ()

    @pytest.mark.parametrize(
        "xml",
        ['<rect width="-1" height="5"/>', '<circle r="-2"/>', '<ellipse rx="-1" ry="2"/>',
         '<rect width="2" height="2" rx="-1"/>', '<polyline points="0 0 a b"/>',
         '<circle r="wide"/>'],
    )
    def test_invalid(self, xml: str) -> None:
        with pytest.raises(ParseError):
            shape_segments(element(xml), 96.0, None)


class TestViewBox:
    def test_parse(self) -> None:
        assert parse_view_box("0,0, 100 50") == (0.0, 0.0, 100.0, 50.0)

    def test_missing(self) -> None:
        assert parse_view_box(None) is None

    @pytest.mark.parametrize("raw", ["0 0 10", "0 0 -1 5", "a b c d", "0 0 0 10"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(ParseError):
            parse_view_box(raw)
