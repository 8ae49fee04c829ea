import math

import pytest

from affine_tables import AffinePolygonTable, EllipseTable
from billiard_errors import ConstructionError, Outcome, SingularPointError, UnsupportedError
from billiard_orbits import (
    InnerState,
    chord_state,
    fourth_circle,
    hyperbolic_outer_step,
    inner_symplectic_step,
    iterate_inner,
    iterate_outer,
    outer_regular_step,
    outer_step,
    outer_symplectic_step,
)
from billiard_settings import Flavor
from complex_number import Complex
from hyperbolic import HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable
from plane_geometry import Line


def _square():
    return AffinePolygonTable(
        [Complex(1.0, -1.0), Complex(1.0, 1.0), Complex(-1.0, 1.0), Complex(-1.0, -1.0)]
    )


def test_regular_triangle_orbit_is_periodic():
    triangle = AffinePolygonTable.regular(3)
    orbit = iterate_outer(triangle, Complex(2.0, 0.0), Flavor.REGULAR, 100)
    assert orbit.outcome is Outcome.PERIODIC
    assert orbit.period == 6
    assert len(orbit) == 7
    s3 = math.sqrt(3)
    expected = [
        Complex(2.0, 0.0),
        Complex(-2.0, 2.0),
        Complex(2.0 - s3, -3.0),
        Complex(2 * s3 - 2.0, 2.0),
        Complex(2.0 - 2 * s3, 0.0),
        Complex(s3 - 2.0, -1.0),
        Complex(2.0, 0.0),
    ]
    for point, want in zip(orbit.points, expected):
        assert point.equals(want, 1e-9)
        assert not triangle.contains_point(point)


def test_reverse_step_undoes_forward_step():
    pentagon = AffinePolygonTable.regular(5)
    for k in range(7):
        point = Complex.polar(2.5 + 0.3 * k, 0.2 + 0.9 * k)
        image = outer_regular_step(pentagon, point)
        assert outer_regular_step(pentagon, image, reverse=True).equals(point, 1e-9)


def test_reverse_orbit_retraces_forward_orbit():
    triangle = AffinePolygonTable.regular(3)
    forward = iterate_outer(triangle, Complex(2.3, 0.4), Flavor.REGULAR, 5)
    backward = iterate_outer(triangle, forward.points[-1], Flavor.REGULAR, 5, reverse=True)
    for a, b in zip(forward.points, reversed(backward.points)):
        assert a.equals(b, 1e-9)


def test_orbit_from_inside_or_on_a_singular_ray_is_truncated():
    square = _square()
    inside = iterate_outer(square, Complex(0.1, 0.2), Flavor.REGULAR, 10)
    assert inside.outcome is Outcome.TRUNCATED
    assert len(inside) == 1
    assert inside.reason
    singular = iterate_outer(square, Complex(3.0, 1.0), Flavor.REGULAR, 10)
    assert singular.outcome is Outcome.TRUNCATED
    assert len(singular) == 1


def test_iteration_count_is_checked():
    with pytest.raises(ConstructionError):
        iterate_outer(_square(), Complex(3.0, 0.0), Flavor.REGULAR, -1)
    orbit = iterate_outer(_square(), Complex(3.0, 0.0), Flavor.REGULAR, 0)
    assert orbit.outcome is Outcome.COMPLETED
    assert orbit.points == (Complex(3.0, 0.0),)


def test_fourth_circle():
    point = Complex(3.0, 0.0)
    forward = Complex(-2.0, 1.0).normalize()
    backward = Complex(2.0, 1.0).normalize()
    circle = fourth_circle(point, forward, backward, Complex(1.0, 1.0))
    assert circle.center.equals(Complex(3.0, 5.0))
    assert math.isclose(circle.radius, math.sqrt(20.0))
    with pytest.raises(SingularPointError):
        fourth_circle(point, Complex(1.0, 0.0), Complex(-1.0, 0.0), Complex(1.0, 1.0))


def test_symplectic_step_on_square_is_invertible():
    square = _square()
    start = Complex(3.0, 0.0)
    image = outer_symplectic_step(square, start)
    assert Line.through_two_points(start, Complex(1.0, 1.0)).contains_point(image, 1e-9)
    assert math.isclose(image.real, -1.254, abs_tol=5e-3)
    assert math.isclose(image.imag, 2.127, abs_tol=5e-3)
    assert not square.contains_point(image)
    assert outer_symplectic_step(square, image, reverse=True).equals(start, 1e-6)


def test_symplectic_step_on_a_circle_matches_the_regular_one():
    circle = EllipseTable(0.0)
    start = Complex(2.0, 0.0)
    image = outer_step(circle, start, Flavor.SYMPLECTIC)
    assert image.equals(Complex(-1.0, math.sqrt(3)), 1e-6)
    assert image.equals(outer_step(circle, start, Flavor.REGULAR), 1e-6)


def test_hyperbolic_outer_step_is_an_involution():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    start = HyperPoint.from_poincare(Complex(0.8, 0.1))
    image = hyperbolic_outer_step(table, start)
    assert not table.contains_point(image)
    assert hyperbolic_outer_step(table, image, reverse=True).equals(start)
    pivot = table.right_tangent_point(start)
    assert math.isclose(pivot.distance(start), pivot.distance(image), abs_tol=1e-9)


def test_hyperbolic_outer_orbit_stays_outside():
    table = HyperbolicPolygonTable.regular(4, 0.8)
    orbit = iterate_outer(table, HyperPoint.from_poincare(Complex(0.1, 0.75)), Flavor.REGULAR, 4)
    assert len(orbit) > 1
    assert all(not table.contains_point(p) for p in orbit.points)


def test_hyperbolic_symplectic_is_unsupported():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    start = HyperPoint.from_poincare(Complex(0.8, 0.1))
    orbit = iterate_outer(table, start, Flavor.SYMPLECTIC, 10)
    assert orbit.outcome is Outcome.UNSUPPORTED
    assert orbit.points == (start,)
    with pytest.raises(UnsupportedError):
        outer_step(table, start, Flavor.SYMPLECTIC)
    inner = iterate_inner(table, InnerState(0.1, 1.0), Flavor.SYMPLECTIC, 10)
    assert inner.outcome is Outcome.UNSUPPORTED
    assert len(inner) == 1
    with pytest.raises(UnsupportedError):
        inner_symplectic_step(table, InnerState(0.1, 1.0))


def test_chord_state_on_a_circle():
    circle = EllipseTable(0.0)
    state = chord_state(circle, 0.0, 1.0 / 3.0)
    assert state.time == 0.0
    assert math.isclose(state.angle, math.pi / 3)


@pytest.mark.parametrize("flavor", [Flavor.REGULAR, Flavor.SYMPLECTIC])
def test_inner_orbit_on_a_circle_keeps_its_angle(flavor):
    circle = EllipseTable(0.0)
    orbit = iterate_inner(circle, InnerState(0.0, math.pi / 3), flavor, 20)
    assert orbit.outcome is Outcome.PERIODIC
    assert orbit.period == 3
    assert math.isclose(orbit.states[1].time, 1.0 / 3.0, abs_tol=1e-9)
    assert all(math.isclose(s.angle, math.pi / 3, abs_tol=1e-9) for s in orbit.states)
    assert orbit.points[1].equals(Complex(-0.5, math.sqrt(3) / 2))


def test_inner_orbit_bounces_across_the_square():
    square = _square()
    orbit = iterate_inner(square, InnerState(0.125, math.pi / 2), Flavor.REGULAR, 10)
    assert orbit.outcome is Outcome.PERIODIC
    assert orbit.period == 2
    assert orbit.points[1].equals(Complex(-1.0, 0.0))


def test_inner_orbit_on_a_hyperbolic_square():
    table = HyperbolicPolygonTable.regular(4, 1.0)
    orbit = iterate_inner(table, InnerState(0.125, math.pi / 2), Flavor.REGULAR, 10)
    assert orbit.outcome is Outcome.PERIODIC
    assert orbit.period == 2
    assert math.isclose(orbit.states[1].time, 0.625, abs_tol=1e-9)


def test_inner_orbit_edge_cases():
    square = _square()
    with pytest.raises(ConstructionError):
        iterate_inner(square, InnerState(0.1, 4.0), Flavor.REGULAR, 5)
    with pytest.raises(ConstructionError):
        iterate_inner(square, InnerState(0.1, 1.0), Flavor.REGULAR, -2)
    corner = iterate_inner(square, InnerState(0.0, 1.0), Flavor.REGULAR, 5)
    assert corner.outcome is Outcome.TRUNCATED
    assert len(corner) == 1
    generic = iterate_inner(square, InnerState(0.1, 1.0), Flavor.SYMPLECTIC, 15)
    assert generic.outcome in (Outcome.COMPLETED, Outcome.PERIODIC, Outcome.TRUNCATED)
    assert len(generic.points) == len(generic.states)
