from __future__ import annotations

from dataclasses import dataclass, field
import enum
import math
from typing import List, Sequence, Union

from billiard_errors import ConstructionError, DomainError
from complex_number import EPSILON, I, INFINITY, ONE, ZERO, Complex, normalize_angle
from mobius import Mobius
from plane_geometry import ArcSegment, Circle, Line, LineSegment

UNIT_CIRCLE = Circle(ZERO, 1.0)


class HyperbolicModel(enum.Enum):
    POINCARE = "poincare"
    KLEIN = "klein"
    HALF_PLANE = "half_plane"


# The boundary circle lands on Im(z) = 0 and i goes to infinity.
POINCARE_TO_HALF_PLANE = Mobius.map_three(-I, ZERO, I, ZERO, I, INFINITY)
HALF_PLANE_TO_POINCARE = POINCARE_TO_HALF_PLANE.inverse()


def validate_disk(z: Complex) -> None:
    if z.is_infinite or z.modulus_squared() > 1 + EPSILON:
        raise ConstructionError(f"Point {z} is outside the unit disk")


def validate_half_plane(z: Complex) -> None:
    if z.is_infinite:
        return
    if z.imag < -EPSILON:
        raise ConstructionError(f"Point {z} is below the real axis")


def _clamp_to_disk(z: Complex) -> Complex:
    m = z.modulus()
    if m > 1:
        return z.scale(1.0 / m)
    return z


def poincare_to_klein(p: Complex) -> Complex:
    validate_disk(p)
    return p.scale(2.0 / (1.0 + p.modulus_squared()))


def klein_to_poincare(k: Complex) -> Complex:
    validate_disk(k)
    return k.scale(1.0 / (1.0 + math.sqrt(max(0.0, 1.0 - k.modulus_squared()))))


def poincare_to_half_plane(p: Complex) -> Complex:
    validate_disk(p)
    return POINCARE_TO_HALF_PLANE.apply(p)


def half_plane_to_poincare(h: Complex) -> Complex:
    validate_half_plane(h)
    return _clamp_to_disk(HALF_PLANE_TO_POINCARE.apply(h))


def klein_to_half_plane(k: Complex) -> Complex:
    return poincare_to_half_plane(klein_to_poincare(k))


def half_plane_to_klein(h: Complex) -> Complex:
    return poincare_to_klein(half_plane_to_poincare(h))


def true_to_poincare(distance: float) -> float:
    """Euclidean radius in the Poincare disk of a hyperbolic distance from the origin."""
    return math.tanh(distance / 2.0)


def translation_to_origin(p: Complex) -> Mobius:
    """Disk automorphism sending ``p`` to 0 with positive derivative at ``p``."""
    return Mobius(ONE, -p, -p.conjugate(), ONE)


@dataclass(frozen=True)
class HyperPoint:
    """A point of the hyperbolic plane carried in all three charts.

    Build instances with the ``from_*`` constructors so the charts agree.
    """

    poincare: Complex
    klein: Complex
    half_plane: Complex

    @classmethod
    def from_poincare(cls, p: Complex) -> "HyperPoint":
        validate_disk(p)
        p = _clamp_to_disk(p)
        return cls(p, poincare_to_klein(p), poincare_to_half_plane(p))

    @classmethod
    def from_klein(cls, k: Complex) -> "HyperPoint":
        validate_disk(k)
        k = _clamp_to_disk(k)
        p = klein_to_poincare(k)
        return cls(p, k, poincare_to_half_plane(p))

    @classmethod
    def from_half_plane(cls, h: Complex) -> "HyperPoint":
        validate_half_plane(h)
        if not h.is_infinite and h.imag < 0:
            h = Complex(h.real, 0.0)
        p = half_plane_to_poincare(h)
        return cls(p, poincare_to_klein(p), h)

    @classmethod
    def origin(cls) -> "HyperPoint":
        return cls(ZERO, ZERO, I)

    def resolve(self, model: HyperbolicModel) -> Complex:
        if model is HyperbolicModel.POINCARE:
            return self.poincare
        if model is HyperbolicModel.KLEIN:
            return self.klein
        if model is HyperbolicModel.HALF_PLANE:
            return self.half_plane
        raise ValueError(f"Unknown hyperbolic model: {model}")

    @property
    def is_ideal(self) -> bool:
        return self.poincare.modulus_squared() > 1 - EPSILON

    def equals(self, other: "HyperPoint") -> bool:
        return self.klein.equals(other.klein)

    def distance(self, other: "HyperPoint") -> float:
        if self.is_ideal or other.is_ideal:
            return math.inf
        p = self.poincare
        q = other.poincare
        ratio = 2 * p.distance_squared(q) / ((1 - p.modulus_squared()) * (1 - q.modulus_squared()))
        return math.acosh(1 + ratio)

    def heading(self, other: "HyperPoint") -> float:
        """Poincare-chart direction in which the geodesic toward ``other`` leaves this point."""
        if self.is_ideal:
            raise DomainError("Heading from an ideal point is undefined")
        return translation_to_origin(self.poincare).apply(other.poincare).argument()


def poincare_ray(point: HyperPoint, heading: float) -> HyperPoint:
    """The ideal point reached by the geodesic ray leaving ``point`` at ``heading``."""
    ideal = translation_to_origin(point.poincare).inverse().apply(Complex.polar(1.0, heading))
    return HyperPoint.from_poincare(ideal)


@dataclass(frozen=True)
class HyperGeodesic:
    """Geodesic segment between two distinct points, possibly ideal ones.

    ``ideal_start`` is the boundary endpoint of the full geodesic on the side
    of ``start``, ``ideal_end`` the one on the side of ``end``.
    """

    start: HyperPoint
    end: HyperPoint
    ideal_start: HyperPoint = field(init=False, compare=False)
    ideal_end: HyperPoint = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if self.start.equals(self.end):
            raise ConstructionError("Geodesic through two equal points")
        line = Line.through_two_points(self.start.klein, self.end.klein)
        ideals = UNIT_CIRCLE.intersect_line(line)
        if len(ideals) != 2:
            raise ConstructionError("Geodesic chord does not cross the disk")
        i1, i2 = ideals
        direction = self.end.klein - self.start.klein
        if i1.dot(direction) > i2.dot(direction):
            i1, i2 = i2, i1
        object.__setattr__(self, "ideal_start", HyperPoint.from_klein(i1))
        object.__setattr__(self, "ideal_end", HyperPoint.from_klein(i2))

    @property
    def mid(self) -> HyperPoint:
        return HyperPoint.from_klein(self.start.klein.lerp(self.end.klein, 0.5))

    @property
    def klein_segment(self) -> LineSegment:
        return LineSegment(self.start.klein, self.end.klein)

    @property
    def heading1(self) -> float:
        return self.start.heading(self.end)

    @property
    def heading2(self) -> float:
        return self.end.heading(self.start)

    @property
    def length(self) -> float:
        return self.start.distance(self.end)

    def segment(self, model: HyperbolicModel) -> Union[LineSegment, ArcSegment]:
        """Euclidean view of the geodesic in ``model``."""
        p1 = self.start.resolve(model)
        p2 = self.end.resolve(model)
        if model is HyperbolicModel.KLEIN:
            return LineSegment(p1, p2)
        if model is HyperbolicModel.POINCARE:
            straight = Line.through_two_points(self.start.klein, self.end.klein).contains_point(ZERO)
        else:
            straight = self.ideal_start.half_plane.is_infinite or self.ideal_end.half_plane.is_infinite
        if straight:
            return LineSegment(p1, p2)
        circle = Circle.from_three_points(
            self.ideal_start.resolve(model),
            self.mid.resolve(model),
            self.ideal_end.resolve(model),
        )
        a1 = circle.center.heading(p1)
        a2 = normalize_angle(circle.center.heading(p2), a1)
        if a2 - a1 > math.pi:
            a1, a2 = a2, a1 + 2 * math.pi
        return ArcSegment(circle.center, circle.radius, a1, a2)

    def interpolate(self, model: HyperbolicModel) -> List[Complex]:
        """Polyline from ``start`` to ``end`` in ``model``."""
        points = self.segment(model).interpolate()
        if not points[0].equals(self.start.resolve(model), 1e-6):
            points.reverse()
        return points

    def contains_point(self, point: HyperPoint) -> bool:
        return self.klein_segment.contains_point(point.klein)

    def intersect(self, other: "HyperGeodesic") -> List[HyperPoint]:
        return [HyperPoint.from_klein(k) for k in self.klein_segment.intersect(other.klein_segment)]

    def split(self, points: Sequence[HyperPoint]) -> List["HyperGeodesic"]:
        cuts = [self.start, self.end]
        cuts.extend(p for p in points if self.contains_point(p))
        cuts.sort(key=lambda p: p.klein.distance(self.start.klein))
        pieces = []
        for a, b in zip(cuts, cuts[1:]):
            if a.equals(b):
                continue
            pieces.append(HyperGeodesic(a, b))
        return pieces


@dataclass(frozen=True)
class HyperIsometry:
    """Orientation-preserving isometry acting on the Poincare chart."""

    mobius: Mobius

    @classmethod
    def identity(cls) -> "HyperIsometry":
        return cls(Mobius.identity())

    @classmethod
    def point_inversion(cls, point: HyperPoint) -> "HyperIsometry":
        """Half-turn about ``point``: fixes it and swaps the ends of every geodesic through it."""
        if point.poincare.modulus_squared() >= 1 - EPSILON:
            raise ConstructionError("Cannot invert about an ideal point")
        half_turn = Mobius(-ONE, ZERO, ZERO, ONE)
        if point.poincare.is_zero():
            return cls(half_turn)
        to_origin = translation_to_origin(point.poincare)
        return cls(to_origin.inverse().compose(half_turn.compose(to_origin)))

    def apply(self, point: HyperPoint) -> HyperPoint:
        return HyperPoint.from_poincare(self.mobius.apply(point.poincare))

    def apply_geodesic(self, geodesic: HyperGeodesic) -> HyperGeodesic:
        return HyperGeodesic(self.apply(geodesic.start), self.apply(geodesic.end))

    def compose(self, other: "HyperIsometry") -> "HyperIsometry":
        return HyperIsometry(self.mobius.compose(other.mobius))

    def inverse(self) -> "HyperIsometry":
        return HyperIsometry(self.mobius.inverse())

    def fixed_points(self) -> List[Complex]:
        return self.mobius.fixed_points()


__all__ = [
    "HALF_PLANE_TO_POINCARE",
    "HyperGeodesic",
    "HyperIsometry",
    "HyperPoint",
    "HyperbolicModel",
    "POINCARE_TO_HALF_PLANE",
    "half_plane_to_klein",
    "half_plane_to_poincare",
    "klein_to_half_plane",
    "klein_to_poincare",
    "poincare_ray",
    "poincare_to_half_plane",
    "poincare_to_klein",
    "translation_to_origin",
    "true_to_poincare",
    "validate_disk",
    "validate_half_plane",
]
