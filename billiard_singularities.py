from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import List, Optional, Sequence, Tuple, Union

from billiard_errors import ConstructionError, DomainError, Outcome, UnsupportedError
from billiard_orbits import outer_regular_step, outer_symplectic_step
from billiard_settings import Flavor
from complex_number import Complex
from hyperbolic import HyperGeodesic, HyperIsometry, HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable
from plane_geometry import AffineRay, LineSegment

_LOGGER = logging.getLogger(__name__)

Piece = Union[AffineRay, HyperGeodesic]


@dataclass(frozen=True)
class TracerLimits:
    """
    Thresholds of the affine tracer.

    Pieces whose midpoint is farther than ``far_cutoff`` from the origin or
    shorter than ``min_length`` are dropped; pieces longer than
    ``max_length`` are cut into shorter ones before they are mapped.
    """

    far_cutoff: float = 10.0
    seed_length: float = 10.0
    seed_pieces: int = 400
    min_length: float = 1e-6
    max_length: float = 0.125
    buffer: float = 1e-9

    def __post_init__(self) -> None:
        if self.far_cutoff <= 0 or self.seed_length <= 0:
            raise ConstructionError("Tracer distances must be positive")
        if self.seed_pieces < 2:
            raise ConstructionError("Seed rays need at least two pieces")
        if not 0 <= self.min_length < self.max_length:
            raise ConstructionError("Tracer length bounds must satisfy 0 <= min_length < max_length")

    @property
    def seed_step(self) -> float:
        return self.seed_length / self.seed_pieces


# Default thresholds of the exact (polygon, regular) and finite tracing modes.
EXACT_LIMITS = TracerLimits(far_cutoff=100.0, min_length=1e-4)
FINITE_LIMITS = TracerLimits()


@dataclass(frozen=True)
class HyperbolicTracerLimits:
    """
    ``far_cutoff`` is a hyperbolic distance from the origin; ``min_length``
    and ``max_length`` are Klein chord lengths.
    """

    far_cutoff: float = 8.0
    min_length: float = 1e-5
    max_length: float = 0.25

    def __post_init__(self) -> None:
        if self.far_cutoff <= 0:
            raise ConstructionError("Tracer distances must be positive")
        if not 0 <= self.min_length < self.max_length:
            raise ConstructionError("Tracer length bounds must satisfy 0 <= min_length < max_length")


@dataclass(frozen=True)
class SingularitySet:
    pieces: Tuple[Piece, ...]
    frontier: Tuple[Piece, ...]
    generations: int
    outcome: Outcome = Outcome.COMPLETED

    def __len__(self) -> int:
        return len(self.pieces)


# Affine tables


def _make_ray(start: Complex, end: Complex, infinite: bool = False) -> Optional[AffineRay]:
    try:
        return AffineRay(start, end, infinite)
    except ConstructionError:
        return None


def slice_ray(piece: AffineRay, slicing_rays: Sequence[AffineRay], buffer: float = 0.0) -> List[AffineRay]:
    """
    Cut ``piece`` wherever a slicing ray crosses it.

    With a positive ``buffer`` each cut leaves a gap of twice that width, so
    no returned piece touches a slicing ray.
    """
    cuts = []
    for ray in slicing_rays:
        hit = ray.intersect(piece)
        if hit is None or hit.equals(piece.start):
            continue
        if not piece.infinite and hit.equals(piece.end):
            continue
        cuts.append(hit)
    if not cuts:
        return [piece]
    cuts.sort(key=lambda c: c.distance_squared(piece.start))
    direction = piece.direction
    gap = direction * buffer
    starts = [piece.start] + [c + gap for c in cuts]
    ends = [c - gap for c in cuts]
    pieces = [_make_ray(a, b) for a, b in zip(starts, ends)]
    if piece.infinite:
        pieces.append(_make_ray(starts[-1], starts[-1] + direction, True))
    else:
        pieces.append(_make_ray(starts[-1], piece.end))
    return [p for p in pieces if p is not None]


def subdivide_ray(piece: AffineRay, max_length: float) -> List[AffineRay]:
    if piece.infinite or piece.length <= max_length:
        return [piece]
    count = int(math.ceil(piece.length / max_length))
    points = [piece.start.lerp(piece.end, i / count) for i in range(count + 1)]
    return [AffineRay(a, b) for a, b in zip(points, points[1:])]


def _exact_mode(table, flavor: Flavor) -> bool:
    return getattr(table, "polygonal", False) and flavor is Flavor.REGULAR


def default_limits(table, flavor: Flavor) -> TracerLimits:
    return EXACT_LIMITS if _exact_mode(table, flavor) else FINITE_LIMITS


def affine_seeds(table, flavor: Flavor, limits: TracerLimits) -> Tuple[AffineRay, ...]:
    """First generation: the backward extensions of the straight boundary pieces."""
    rays = table.seed_rays()
    if _exact_mode(table, flavor):
        return tuple(rays)
    dl = limits.seed_step
    seeds = []
    for ray in rays:
        u = ray.direction
        for j in range(1, limits.seed_pieces):
            seeds.append(AffineRay(ray.start + u * (j * dl), ray.start + u * ((j + 1) * dl)))
    return tuple(seeds)


def _too_far(point: Complex, limits: TracerLimits) -> bool:
    return point.modulus() > limits.far_cutoff


def _next_exact(table, frontier: Sequence[AffineRay], limits: TracerLimits) -> Tuple[AffineRay, ...]:
    slicing = table.slicing_rays()
    result = []
    for preimage in frontier:
        for piece in slice_ray(preimage, slicing):
            if piece.infinite:
                if _too_far(piece.start, limits) and piece.direction.dot(piece.start) > 0:
                    continue
            elif _too_far(piece.mid, limits) or piece.length < limits.min_length:
                continue
            try:
                pivot = table.left_tangent_point(piece.mid)
            except DomainError as exc:
                _LOGGER.debug("Dropping frontier piece at %s: %s", piece.mid, exc)
                continue
            mapped = _make_ray(pivot * 2.0 - piece.start, pivot * 2.0 - piece.end, piece.infinite)
            if mapped is not None:
                result.append(mapped)
    return tuple(result)


def _next_finite(table, frontier: Sequence[AffineRay], flavor: Flavor, limits: TracerLimits) -> Tuple[AffineRay, ...]:
    step = outer_symplectic_step if flavor is Flavor.SYMPLECTIC else outer_regular_step
    slicing = table.slicing_rays()
    result = []
    for preimage in frontier:
        for sliced in slice_ray(preimage, slicing, limits.buffer):
            if _too_far(sliced.mid, limits) or sliced.length < limits.min_length:
                continue
            for piece in subdivide_ray(sliced, limits.max_length):
                try:
                    start = step(table, piece.start, reverse=True)
                    end = step(table, piece.end, reverse=True)
                except DomainError as exc:
                    _LOGGER.debug("Dropping frontier piece at %s: %s", piece.mid, exc)
                    continue
                mapped = _make_ray(start, end)
                if mapped is not None:
                    result.append(mapped)
    return tuple(result)


def next_affine_generation(
    table,
    frontier: Sequence[AffineRay],
    flavor: Flavor,
    limits: Optional[TracerLimits] = None,
) -> Tuple[AffineRay, ...]:
    """Map one generation of the frontier backward; the input is left untouched."""
    limits = limits or default_limits(table, flavor)
    if _exact_mode(table, flavor):
        return _next_exact(table, frontier, limits)
    return _next_finite(table, frontier, flavor, limits)


def _within(pieces: Sequence[AffineRay], limits: TracerLimits) -> List[AffineRay]:
    return [p for p in pieces if not _too_far(p.mid, limits)]


def trace_affine_singularities(
    table,
    flavor: Flavor,
    generations: int,
    limits: Optional[TracerLimits] = None,
) -> SingularitySet:
    if generations < 0:
        raise ConstructionError(f"Generation count must be non-negative, got {generations}")
    limits = limits or default_limits(table, flavor)
    frontier = affine_seeds(table, flavor, limits)
    pieces = _within(frontier, limits)
    done = 0
    while done < generations and frontier:
        frontier = next_affine_generation(table, frontier, flavor, limits)
        done += 1
        _LOGGER.debug("Generation %d: %d frontier pieces", done, len(frontier))
        pieces.extend(_within(frontier, limits))
    return SingularitySet(tuple(pieces), frontier, done)


# Hyperbolic tables


def hyperbolic_seeds(table: HyperbolicPolygonTable) -> Tuple[HyperGeodesic, ...]:
    return tuple(table.seed_geodesics())


def slice_geodesic(piece: HyperGeodesic, slicing_segments: Sequence[LineSegment]) -> List[HyperGeodesic]:
    chord = piece.klein_segment
    cuts: List[HyperPoint] = []
    for segment in slicing_segments:
        hits = segment.intersect(chord)
        if len(hits) != 1:
            continue
        cut = HyperPoint.from_klein(hits[0])
        if cut.equals(piece.start) or cut.equals(piece.end):
            continue
        cuts.append(cut)
    if not cuts:
        return [piece]
    cuts.sort(key=lambda c: c.klein.distance(piece.start.klein))
    bounds = [piece.start] + cuts + [piece.end]
    pieces = []
    for a, b in zip(bounds, bounds[1:]):
        try:
            pieces.append(HyperGeodesic(a, b))
        except ConstructionError:
            continue
    return pieces


def subdivide_geodesic(piece: HyperGeodesic, max_length: float) -> List[HyperGeodesic]:
    """Cut ``piece`` into parts whose Klein chords are at most ``max_length`` long."""
    k1 = piece.start.klein
    k2 = piece.end.klein
    chord = k1.distance(k2)
    if chord <= max_length:
        return [piece]
    count = int(math.ceil(chord / max_length))
    points = [piece.start]
    points.extend(HyperPoint.from_klein(k1.lerp(k2, i / count)) for i in range(1, count))
    points.append(piece.end)
    return [HyperGeodesic(a, b) for a, b in zip(points, points[1:])]


def _too_far_hyperbolic(piece: HyperGeodesic, limits: HyperbolicTracerLimits) -> bool:
    return piece.mid.distance(HyperPoint.origin()) > limits.far_cutoff


def next_hyperbolic_generation(
    table: HyperbolicPolygonTable,
    frontier: Sequence[HyperGeodesic],
    limits: Optional[HyperbolicTracerLimits] = None,
) -> Tuple[HyperGeodesic, ...]:
    limits = limits or HyperbolicTracerLimits()
    slicing = table.slicing_segments()
    result = []
    for preimage in frontier:
        for sliced in slice_geodesic(preimage, slicing):
            if _too_far_hyperbolic(sliced, limits):
                continue
            for piece in subdivide_geodesic(sliced, limits.max_length):
                try:
                    inversion = HyperIsometry.point_inversion(table.left_tangent_point(piece.mid))
                    start = inversion.apply(piece.start)
                    end = inversion.apply(piece.end)
                    if start.klein.distance(end.klein) < limits.min_length:
                        continue
                    result.append(HyperGeodesic(start, end))
                except (DomainError, ConstructionError) as exc:
                    _LOGGER.debug("Dropping hyperbolic frontier piece: %s", exc)
    return tuple(result)


def trace_hyperbolic_singularities(
    table: HyperbolicPolygonTable,
    flavor: Flavor,
    generations: int,
    limits: Optional[HyperbolicTracerLimits] = None,
) -> SingularitySet:
    if flavor is Flavor.SYMPLECTIC:
        raise UnsupportedError("Singularities of symplectic hyperbolic outer billiards")
    if generations < 0:
        raise ConstructionError(f"Generation count must be non-negative, got {generations}")
    limits = limits or HyperbolicTracerLimits()
    frontier = hyperbolic_seeds(table)
    pieces = [p for p in frontier if not _too_far_hyperbolic(p, limits)]
    done = 0
    while done < generations and frontier:
        frontier = next_hyperbolic_generation(table, frontier, limits)
        done += 1
        _LOGGER.debug("Generation %d: %d hyperbolic frontier pieces", done, len(frontier))
        pieces.extend(p for p in frontier if not _too_far_hyperbolic(p, limits))
    return SingularitySet(tuple(pieces), frontier, done)


def trace_singularities(table, flavor: Flavor, generations: int) -> SingularitySet:
    if isinstance(table, HyperbolicPolygonTable):
        return trace_hyperbolic_singularities(table, flavor, generations)
    return trace_affine_singularities(table, flavor, generations)


__all__ = [
    "EXACT_LIMITS",
    "FINITE_LIMITS",
    "HyperbolicTracerLimits",
    "SingularitySet",
    "TracerLimits",
    "affine_seeds",
    "default_limits",
    "hyperbolic_seeds",
    "next_affine_generation",
    "next_hyperbolic_generation",
    "slice_geodesic",
    "slice_ray",
    "subdivide_geodesic",
    "subdivide_ray",
    "trace_affine_singularities",
    "trace_hyperbolic_singularities",
    "trace_singularities",
]
