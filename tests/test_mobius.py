import pytest

from billiard_errors import ConstructionError
from complex_number import I, INFINITY, ONE, ZERO, Complex
from mobius import Mobius


def test_identity_and_reciprocal():
    z = Complex(0.3, -1.2)
    assert Mobius.identity().apply(z) == z
    reciprocal = Mobius(ZERO, ONE, ONE, ZERO)
    assert reciprocal.apply(INFINITY) == ZERO
    assert reciprocal.apply(ZERO).is_infinite
    assert reciprocal.apply(I).equals(-I)


def test_degenerate_transformations_are_rejected():
    with pytest.raises(ConstructionError):
        Mobius(ONE, ONE, ONE, ONE)
    with pytest.raises(ConstructionError):
        Mobius(INFINITY, ZERO, ZERO, ONE)
    with pytest.raises(ConstructionError):
        Mobius.to01inf(ONE, ONE, I)


def test_to01inf_sends_points_to_zero_one_infinity():
    z1, z2, z3 = Complex(1.0, 1.0), Complex(-2.0, 0.5), Complex(0.0, 3.0)
    m = Mobius.to01inf(z1, z2, z3)
    assert m.apply(z1).equals(ZERO)
    assert m.apply(z2).equals(ONE)
    assert m.apply(z3).is_infinite
    with_infinity = Mobius.to01inf(INFINITY, z2, z3)
    assert with_infinity.apply(INFINITY).equals(ZERO)
    assert with_infinity.apply(z2).equals(ONE)


def test_map_three_and_inverse():
    sources = [Complex(1.0, 0.0), Complex(2.0, 0.0), Complex(3.0, 0.0)]
    targets = [ZERO, I, INFINITY]
    m = Mobius.map_three(*sources, *targets)
    assert m.apply(sources[0]).equals(targets[0])
    assert m.apply(sources[1]).equals(targets[1])
    assert m.apply(sources[2]).is_infinite
    z = Complex(0.25, -0.75)
    assert m.inverse().apply(m.apply(z)).equals(z)
    assert m.inverse().compose(m).apply(z).equals(z)


def test_fixed_points():
    dilation = Mobius(Complex(2.0, 0.0), ZERO, ZERO, ONE)
    fixed = dilation.fixed_points()
    assert fixed[0].equals(ZERO)
    assert fixed[1].is_infinite
    assert Mobius(ONE, ONE, ZERO, ONE).fixed_points() == [INFINITY]
    reciprocal = Mobius(ZERO, ONE, ONE, ZERO)
    assert sorted(p.real for p in reciprocal.fixed_points()) == pytest.approx([-1.0, 1.0])
