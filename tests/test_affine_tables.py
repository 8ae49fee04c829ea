import math

import pytest

from affine_tables import (
    CURVE_TIME,
    AffineFlexigonTable,
    AffinePolygonTable,
    AffineSemicircleTable,
    EllipseTable,
    StadiumTable,
)
from billiard_errors import ConstructionError, InteriorPointError, SingularPointError
from complex_number import Complex


def _square():
    return AffinePolygonTable(
        [Complex(1.0, -1.0), Complex(1.0, 1.0), Complex(-1.0, 1.0), Complex(-1.0, -1.0)]
    )


def _assert_supports(table, point, samples=240):
    """The right tangent point has the whole table on its left, the left one on its right."""
    boundary = [table.point(i / samples) for i in range(samples)]
    right = table.right_tangent_point(point)
    left = table.left_tangent_point(point)
    assert table.point_on_boundary(right)
    assert table.point_on_boundary(left)
    for b in boundary:
        assert (right - point).cross(b - point) > -1e-6
        assert (left - point).cross(b - point) < 1e-6


def test_square_boundary_parametrization():
    square = _square()
    assert square.point(0.125).equals(Complex(1.0, 0.0))
    assert math.isclose(square.tangent_heading(0.125), math.pi / 2)
    assert square.tangent_heading(0.0) is None
    assert square.tangent_heading(0.5) is None
    assert math.isclose(square.time_of(Complex(0.0, 1.0)), 0.375)
    assert math.isclose(square.intersect(0.125, math.pi), 0.625)
    assert math.isclose(square.chord_heading(0.125, 0.625), math.pi)


def test_square_support_points():
    square = _square()
    assert square.right_tangent_point(Complex(3.0, 0.0)).equals(Complex(1.0, 1.0))
    assert square.left_tangent_point(Complex(3.0, 0.0)).equals(Complex(1.0, -1.0))
    with pytest.raises(SingularPointError):
        square.right_tangent_point(Complex(3.0, 1.0))
    assert square.left_tangent_point(Complex(3.0, 1.0)).equals(Complex(1.0, -1.0))
    with pytest.raises(InteriorPointError):
        square.right_tangent_point(Complex(0.2, 0.3))
    with pytest.raises(InteriorPointError):
        square.left_tangent_point(Complex(1.0, 0.0))


def test_square_membership_and_rays():
    square = _square()
    assert square.contains_point(Complex(0.5, -0.5))
    assert not square.contains_point(Complex(3.0, 0.0))
    assert not square.contains_point(Complex(1.0, 0.5))
    assert square.point_on_boundary(Complex(1.0, 0.5))
    seeds = square.seed_rays()
    slices = square.slicing_rays()
    assert len(seeds) == len(slices) == 4
    assert all(ray.infinite for ray in seeds + slices)
    assert seeds[0].start.equals(Complex(1.0, -1.0))
    assert seeds[0].direction.equals(Complex(0.0, -1.0))
    assert slices[0].start.equals(Complex(1.0, 1.0))
    assert slices[0].direction.equals(Complex(0.0, 1.0))


def test_regular_polygon_supports():
    pentagon = AffinePolygonTable.regular(5, 1.5)
    assert pentagon.n == 5
    assert len(pentagon.edges) == 5
    assert all(math.isclose(v.modulus(), 1.5) for v in pentagon.vertices)
    for k in range(9):
        point = Complex.polar(3.0, 0.1 + 0.7 * k)
        right = pentagon.right_tangent_point(point)
        left = pentagon.left_tangent_point(point)
        assert any(right.equals(v) for v in pentagon.vertices)
        for v in pentagon.vertices:
            assert (right - point).cross(v - point) > -1e-9
            assert (left - point).cross(v - point) < 1e-9


@pytest.mark.parametrize(
    "vertices",
    [
        [Complex(0.0, 0.0), Complex(1.0, 0.0)],
        [Complex(0.0, 0.0), Complex(0.0, 1.0), Complex(1.0, 0.0)],
        [Complex(0.0, 0.0), Complex(1.0, 0.0), Complex(2.0, 0.0), Complex(1.0, 1.0)],
    ],
)
def test_bad_polygons_are_rejected(vertices):
    with pytest.raises(ConstructionError):
        AffinePolygonTable(vertices)


def test_bad_regular_polygon_parameters():
    with pytest.raises(ConstructionError):
        AffinePolygonTable.regular(2)
    with pytest.raises(ConstructionError):
        AffinePolygonTable.regular(4, 0.0)


def test_semicircle_table():
    table = AffineSemicircleTable()
    assert table.point(0.0).equals(Complex(1.0, 0.0))
    assert table.point(CURVE_TIME / 2).equals(Complex(0.0, 1.0))
    assert math.isclose(abs(table.tangent_heading(CURVE_TIME / 2)), math.pi)
    assert table.tangent_heading(0.0) is None
    assert table.tangent_heading(CURVE_TIME) is None
    assert table.contains_point(Complex(0.0, 0.5))
    assert not table.contains_point(Complex(0.0, -0.5))
    assert table.right_tangent_point(Complex(0.0, 2.0)).equals(Complex(-math.sqrt(3) / 2, 0.5))
    assert table.right_tangent_point(Complex(0.0, -2.0)).equals(Complex(1.0, 0.0))
    assert table.left_tangent_point(Complex(0.0, -2.0)).equals(Complex(-1.0, 0.0))
    assert len(table.seed_rays()) == 1
    _assert_supports(table, Complex(0.7, 4.1))


def test_flexigon_table():
    table = AffineFlexigonTable(3, 0.5)
    assert len(table.arcs) == 3
    assert all(math.isclose(v.modulus(), 1.0) for v in table.vertices)
    assert table.tangent_heading(0.0) is None
    assert table.seed_rays() == []
    _assert_supports(table, Complex(0.7, 4.1))
    _assert_supports(table, Complex(-2.3, -1.9))
    # with unit curvature the arcs close up into the unit circle
    assert AffineFlexigonTable(3, 1.0).boundary.corners == ()
    with pytest.raises(ConstructionError):
        AffineFlexigonTable(3, 0.0)
    with pytest.raises(ConstructionError):
        AffineFlexigonTable(1, 0.5)


def test_flexigon_arc_winding_inside_and_outside_its_circle():
    arc = AffineFlexigonTable(3, 1.0).arcs[0]
    assert arc.center.equals(Complex(0.0, 0.0))
    assert arc.start.equals(Complex(0.0, 1.0))
    assert arc.end.equals(Complex(-math.sqrt(3) / 2, -0.5))
    near = Complex(-0.5, 0.5)
    expected = 2 * math.pi - math.atan2(0.5, 0.5) + math.atan2(-1.0, 0.5 - math.sqrt(3) / 2)
    assert math.isclose(arc.winding_number(near), expected, abs_tol=1e-9)
    assert arc.winding_number(near) > math.pi
    across = arc.winding_number(Complex(0.5, 0.0))
    assert 0.0 < across < math.pi
    far = arc.winding_number(Complex(0.0, 3.0))
    assert math.isclose(far, math.atan2(-3.5, -math.sqrt(3) / 2) + math.pi / 2, abs_tol=1e-9)
    assert far < 0.0


def test_stadium_table():
    table = StadiumTable(1.0, 0.5)
    assert table.point(0.125).equals(Complex(1.0, 0.0))
    assert table.point(0.375).equals(Complex(0.0, 0.5))
    assert table.boundary.corners == ()
    assert table.contains_point(Complex(0.0, 0.0))
    assert len(table.seed_rays()) == 2
    _assert_supports(table, Complex(0.7, 4.1))
    with pytest.raises(ConstructionError):
        StadiumTable(0.0, 1.0)


def test_ellipse_table():
    circle = EllipseTable(0.0)
    assert circle.right_tangent_point(Complex(2.0, 0.0)).equals(Complex(0.5, math.sqrt(3) / 2))
    assert circle.left_tangent_point(Complex(2.0, 0.0)).equals(Complex(0.5, -math.sqrt(3) / 2))

    table = EllipseTable(0.6)
    assert math.isclose(table.semi_major * table.semi_minor, 1.0)
    assert math.isclose(table.tangent_heading(0.0), math.pi / 2)
    assert math.isclose(table.time_of(table.point(0.3)), 0.3, abs_tol=1e-9)
    assert math.isclose(table.intersect(0.0, math.pi), 0.5, abs_tol=1e-9)
    assert table.contains_point(Complex(0.5, 0.2))
    assert table.seed_rays() == []
    _assert_supports(table, Complex(2.5, 0.3))
    with pytest.raises(InteriorPointError):
        table.right_tangent_point(Complex(0.1, 0.1))
    with pytest.raises(ConstructionError):
        EllipseTable(1.0)
