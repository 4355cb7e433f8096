"""Tests for affine transforms and ``transform`` attribute parsing.

Validates composition order, every SVG transform function, packed
numbers, error reporting, and how elliptical arcs map through linear
transforms (including mirroring).
"""

from __future__ import annotations

import math

import pytest

from svg_toolpath.errors import ParseError
from svg_toolpath.geometry.segments import EllipticalArc, Line, Move, transform_segments
from svg_toolpath.geometry.transform import Transform, compose, parse_transform


def _close(a: tuple[float, float], b: tuple[float, float]) -> bool:
    return math.isclose(a[0], b[0], abs_tol=1e-9) and math.isclose(a[1], b[1], abs_tol=1e-9)


# ---------------------------------------------------------------------------
# Transform algebra
# ---------------------------------------------------------------------------


class TestTransform:
    def test_identity(self) -> None:
        t = Transform.identity()
        assert t.is_identity()
        assert t.apply(3.0, -4.0) == (3.0, -4.0)

    def test_matmul_applies_right_first(self) -> None:
        t = Transform.translation(10.0, 0.0) @ Transform.scaling(2.0)
        assert _close(t.apply(1.0, 1.0), (12.0, 2.0))

    def test_then_applies_left_first(self) -> None:
        t = Transform.translation(10.0, 0.0).then(Transform.scaling(2.0))
        assert _close(t.apply(1.0, 1.0), (22.0, 2.0))

    def test_apply_vector_ignores_translation(self) -> None:
        t = Transform.translation(5.0, 5.0) @ Transform.scaling(3.0)
        assert _close(t.apply_vector(1.0, 0.0), (3.0, 0.0))

    def test_apply_points_matches_apply(self) -> None:
        t = parse_transform("rotate(30) translate(4 5) scale(2 3)")
        pts = [(0.0, 0.0), (1.0, 2.0), (-3.0, 7.5)]
        mapped = t.apply_points(pts)
        for (x, y), row in zip(pts, mapped):
            assert _close(t.apply(x, y), (float(row[0]), float(row[1])))

    def test_determinant_and_max_scale(self) -> None:
        t = Transform.scaling(2.0, -3.0)
        assert t.determinant == pytest.approx(-6.0)
        assert t.max_scale == pytest.approx(3.0)

    def test_compose(self) -> None:
        t = compose([Transform.translation(1.0, 2.0), Transform.scaling(2.0)])
        assert _close(t.apply(1.0, 1.0), (3.0, 4.0))

    def test_equality(self) -> None:
        assert Transform.scaling(2.0) == Transform.from_coefficients(2, 0, 0, 2, 0, 0)

    def test_rejects_non_3x3(self) -> None:
        with pytest.raises(ValueError):
            Transform([[1.0, 0.0], [0.0, 1.0]])


# ---------------------------------------------------------------------------
# Attribute parsing
# ---------------------------------------------------------------------------


class TestParseTransform:
    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_is_identity(self, text: str | None) -> None:
        assert parse_transform(text).is_identity()

    def test_translate(self) -> None:
        assert _close(parse_transform("translate(10 20)").apply(0.0, 0.0), (10.0, 20.0))

    def test_translate_single_argument(self) -> None:
        assert _close(parse_transform("translate(7)").apply(0.0, 0.0), (7.0, 0.0))

    def test_list_order(self) -> None:
        t = parse_transform("translate(10) scale(2)")
        assert _close(t.apply(1.0, 1.0), (12.0, 2.0))

    def test_comma_separated_functions(self) -> None:
        t = parse_transform("translate(10,0), scale(2)")
        assert _close(t.apply(1.0, 1.0), (12.0, 2.0))

    def test_rotate(self) -> None:
        assert _close(parse_transform("rotate(90)").apply(1.0, 0.0), (0.0, 1.0))

    def test_rotate_about_point(self) -> None:
        assert _close(parse_transform("rotate(90, 1, 1)").apply(2.0, 1.0), (1.0, 2.0))

    def test_matrix(self) -> None:
        t = parse_transform("matrix(1 0 0 1 5 6)")
        assert t.coefficients == (1.0, 0.0, 0.0, 1.0, 5.0, 6.0)

    def test_skew(self) -> None:
        assert _close(parse_transform("skewX(45)").apply(0.0, 1.0), (1.0, 1.0))
        assert _close(parse_transform("skewY(45)").apply(1.0, 0.0), (1.0, 1.0))

    def test_packed_numbers(self) -> None:
        assert _close(parse_transform("translate(10-5)").apply(0.0, 0.0), (10.0, -5.0))

    def test_exponent(self) -> None:
        assert _close(parse_transform("scale(1e1)").apply(1.0, 1.0), (10.0, 10.0))

    @pytest.mark.parametrize(
        "text",
        [
            "translate(1,2,3)",
            "foo(1)",
            "translate(1",
            "scale()",
            "rotate(1, 2)",
            "translate(a b)",
            "translate(1) garbage",
            "matrix(1 0 0 1 0)",
        ],
    )
    def test_malformed_raises(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_transform(text)


# ---------------------------------------------------------------------------
# Segments under transforms
# ---------------------------------------------------------------------------


class TestSegmentTransform:
    def test_identity_returns_same_tuple(self) -> None:
        segs = (Move((0.0, 0.0)), Line((0.0, 0.0), (1.0, 1.0)))
        assert transform_segments(segs, Transform.identity()) is segs

    def test_line_endpoints_mapped(self) -> None:
        (line,) = transform_segments((Line((0.0, 0.0), (1.0, 1.0)),), Transform.scaling(2.0))
        assert line == Line((0.0, 0.0), (2.0, 2.0))

    def test_arc_uniform_scale_scales_radii(self) -> None:
        arc = EllipticalArc((10.0, 0.0), (10.0, 10.0), 0.0, False, True, (0.0, 10.0))
        out = arc.transformed(Transform.scaling(2.0))
        assert out.radii[0] == pytest.approx(20.0)
        assert out.radii[1] == pytest.approx(20.0)
        assert _close(out.end, (0.0, 20.0))
        assert out.sweep is True

    def test_arc_mirror_flips_sweep(self) -> None:
        arc = EllipticalArc((10.0, 0.0), (10.0, 10.0), 0.0, False, True, (0.0, 10.0))
        out = arc.transformed(Transform.scaling(1.0, -1.0))
        assert out.sweep is False
        assert out.large_arc is False

    def test_arc_non_uniform_scale(self) -> None:
        arc = EllipticalArc((10.0, 0.0), (10.0, 10.0), 0.0, False, True, (0.0, 10.0))
        out = arc.transformed(Transform.scaling(3.0, 1.0))
        assert sorted(out.radii) == pytest.approx([10.0, 30.0])
