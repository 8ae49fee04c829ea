import pytest

from affine_tables import AffinePolygonTable, AffineSemicircleTable, EllipseTable
from billiard_errors import ConstructionError, Outcome, UnsupportedError
from billiard_settings import Flavor
from billiard_singularities import (
    EXACT_LIMITS,
    FINITE_LIMITS,
    HyperbolicTracerLimits,
    TracerLimits,
    affine_seeds,
    default_limits,
    hyperbolic_seeds,
    next_affine_generation,
    next_hyperbolic_generation,
    slice_geodesic,
    slice_ray,
    subdivide_geodesic,
    subdivide_ray,
    trace_affine_singularities,
    trace_hyperbolic_singularities,
    trace_singularities,
)
from complex_number import Complex
from hyperbolic import HyperGeodesic, HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable
from plane_geometry import AffineRay


def _square():
    return AffinePolygonTable(
        [Complex(1.0, -1.0), Complex(1.0, 1.0), Complex(-1.0, 1.0), Complex(-1.0, -1.0)]
    )


def test_slice_ray_cuts_at_slicing_rays():
    square = _square()
    piece = AffineRay(Complex(-2.0, 3.0), Complex(2.0, 3.0))
    pieces = slice_ray(piece, square.slicing_rays())
    assert len(pieces) == 2
    assert pieces[0].end.equals(Complex(1.0, 3.0))
    assert pieces[1].start.equals(Complex(1.0, 3.0))
    buffered = slice_ray(piece, square.slicing_rays(), buffer=0.1)
    assert buffered[0].end.equals(Complex(0.9, 3.0))
    assert buffered[1].start.equals(Complex(1.1, 3.0))
    untouched = AffineRay(Complex(-0.5, 3.0), Complex(0.5, 3.0))
    assert slice_ray(untouched, square.slicing_rays()) == [untouched]
    below = slice_ray(AffineRay(Complex(-2.0, -3.0), Complex(2.0, -3.0)), square.slicing_rays())
    assert len(below) == 2
    assert below[0].end.equals(Complex(-1.0, -3.0))


def test_slice_ray_keeps_infinite_tail():
    square = _square()
    piece = AffineRay(Complex(-3.0, 3.0), Complex(-2.0, 3.0), infinite=True)
    pieces = slice_ray(piece, square.slicing_rays())
    assert len(pieces) == 2
    assert not pieces[0].infinite
    assert pieces[1].infinite
    assert pieces[1].start.equals(Complex(1.0, 3.0))


def test_subdivide_ray():
    ray = AffineRay(Complex(0.0, 0.0), Complex(1.0, 0.0))
    pieces = subdivide_ray(ray, 0.3)
    assert len(pieces) == 4
    assert pieces[0].start == ray.start
    assert pieces[-1].end.equals(ray.end)
    infinite = AffineRay(Complex(0.0, 0.0), Complex(1.0, 0.0), infinite=True)
    assert subdivide_ray(infinite, 0.3) == [infinite]


def test_tracer_limits_are_validated():
    with pytest.raises(ConstructionError):
        TracerLimits(seed_pieces=1)
    with pytest.raises(ConstructionError):
        TracerLimits(min_length=0.5, max_length=0.1)
    with pytest.raises(ConstructionError):
        TracerLimits(far_cutoff=0.0)
    assert TracerLimits(seed_length=2.0, seed_pieces=8).seed_step == 0.25


def test_seeds_depend_on_flavor():
    square = _square()
    exact = affine_seeds(square, Flavor.REGULAR, TracerLimits())
    assert len(exact) == 4
    assert all(seed.infinite for seed in exact)
    limits = TracerLimits(seed_length=1.5, seed_pieces=6)
    finite = affine_seeds(square, Flavor.SYMPLECTIC, limits)
    assert len(finite) == 4 * 5
    assert not any(seed.infinite for seed in finite)
    assert finite[0].start.equals(Complex(1.0, -1.25))
    assert finite[0].end.equals(Complex(1.0, -1.5))
    assert affine_seeds(EllipseTable(0.5), Flavor.REGULAR, limits) == ()


def test_exact_trace_on_square():
    square = _square()
    limits = TracerLimits(far_cutoff=10.0)
    traced = trace_affine_singularities(square, Flavor.REGULAR, 3, limits)
    assert traced.outcome is Outcome.COMPLETED
    assert traced.generations == 3
    assert len(traced) > 4
    assert all(piece.infinite for piece in traced.pieces[:4])
    assert all(piece.mid.modulus() <= limits.far_cutoff for piece in traced.pieces)
    # the first image of the seed below (1, -1) is reflected through (-1, -1)
    first = next_affine_generation(square, traced.pieces[:1], Flavor.REGULAR, limits)
    assert first[0].start.equals(Complex(-3.0, -1.0))
    assert first[0].direction.equals(Complex(0.0, 1.0))


def test_next_generation_leaves_frontier_alone():
    square = _square()
    frontier = affine_seeds(square, Flavor.REGULAR, TracerLimits())
    snapshot = list(frontier)
    result = next_affine_generation(square, frontier, Flavor.REGULAR)
    assert isinstance(result, tuple)
    assert result is not frontier
    assert list(frontier) == snapshot


def test_finite_trace_on_semicircle_is_bounded():
    table = AffineSemicircleTable()
    limits = TracerLimits(far_cutoff=4.0, seed_length=2.0, seed_pieces=8, max_length=0.5)
    traced = trace_affine_singularities(table, Flavor.REGULAR, 2, limits)
    assert len(traced) >= 7
    assert not any(piece.infinite for piece in traced.pieces)
    assert all(piece.mid.modulus() <= limits.far_cutoff for piece in traced.pieces)


def test_symplectic_trace_maps_seeds():
    square = _square()
    limits = TracerLimits(far_cutoff=6.0, seed_length=1.5, seed_pieces=6, max_length=0.5)
    traced = trace_affine_singularities(square, Flavor.SYMPLECTIC, 1, limits)
    assert traced.generations == 1
    assert len(traced.frontier) > 0
    assert len(traced) > 20


def test_zero_generations_returns_seeds():
    square = _square()
    traced = trace_affine_singularities(square, Flavor.REGULAR, 0)
    assert traced.generations == 0
    assert len(traced) == 4
    with pytest.raises(ConstructionError):
        trace_affine_singularities(square, Flavor.REGULAR, -1)


def test_hyperbolic_trace():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    seeds = hyperbolic_seeds(table)
    assert len(seeds) == 3
    assert all(seed.end.is_ideal and not seed.start.is_ideal for seed in seeds)
    traced = trace_hyperbolic_singularities(table, Flavor.REGULAR, 2)
    assert traced.generations == 2
    assert len(traced) > 3
    assert all(isinstance(piece, HyperGeodesic) for piece in traced.pieces)
    nxt = next_hyperbolic_generation(table, seeds)
    assert isinstance(nxt, tuple)
    assert all(not table.contains_point(piece.mid) for piece in nxt)


def test_slice_geodesic_without_crossings():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    seed = hyperbolic_seeds(table)[0]
    assert slice_geodesic(seed, []) == [seed]


def test_symplectic_hyperbolic_trace_is_unsupported():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    with pytest.raises(UnsupportedError):
        trace_hyperbolic_singularities(table, Flavor.SYMPLECTIC, 1)
    with pytest.raises(UnsupportedError):
        trace_singularities(table, Flavor.SYMPLECTIC, 1)


def test_default_limits_follow_tracing_mode():
    square = _square()
    assert default_limits(square, Flavor.REGULAR) is EXACT_LIMITS
    assert default_limits(square, Flavor.SYMPLECTIC) is FINITE_LIMITS
    assert default_limits(AffineSemicircleTable(), Flavor.REGULAR) is FINITE_LIMITS
    assert EXACT_LIMITS.far_cutoff == 100.0
    assert EXACT_LIMITS.min_length == 1e-4
    assert FINITE_LIMITS.far_cutoff == 10.0
    traced = trace_affine_singularities(square, Flavor.REGULAR, 4)
    assert all(piece.mid.modulus() <= EXACT_LIMITS.far_cutoff for piece in traced.pieces)


def test_subdivide_geodesic():
    table = HyperbolicPolygonTable.regular(3, 1.0)
    seed = hyperbolic_seeds(table)[0]
    pieces = subdivide_geodesic(seed, 0.1)
    assert len(pieces) > 1
    assert pieces[0].start.equals(seed.start)
    assert pieces[-1].end.equals(seed.end)
    assert pieces[-1].end.is_ideal
    for a, b in zip(pieces, pieces[1:]):
        assert a.end.equals(b.start)
    assert all(p.start.klein.distance(p.end.klein) <= 0.1 + 1e-9 for p in pieces)
    assert subdivide_geodesic(seed, 5.0) == [seed]


def test_hyperbolic_limits():
    with pytest.raises(ConstructionError):
        HyperbolicTracerLimits(far_cutoff=0.0)
    with pytest.raises(ConstructionError):
        HyperbolicTracerLimits(min_length=0.5, max_length=0.1)
    table = HyperbolicPolygonTable.regular(3, 1.0)
    limits = HyperbolicTracerLimits(far_cutoff=2.0)
    traced = trace_hyperbolic_singularities(table, Flavor.REGULAR, 2, limits)
    origin = HyperPoint.origin()
    assert all(piece.mid.distance(origin) <= limits.far_cutoff for piece in traced.pieces)
    assert len(traced) <= len(trace_hyperbolic_singularities(table, Flavor.REGULAR, 2))
