from __future__ import annotations

from dataclasses import dataclass
import math
from typing import List, Optional, Sequence, Union

from billiard_errors import ConstructionError, DomainError, NoTangentError, ParallelLinesError
from complex_number import EPSILON, I, TAU, Complex, close_enough, normalize_angle

# Arcs are interpolated with roughly one point per degree.
_ARC_POINTS_PER_RADIAN = 180.0 / math.pi


def _check_finite(*points: Complex) -> None:
    for p in points:
        if p.is_infinite:
            raise ConstructionError("Geometric objects need finite points")


@dataclass(frozen=True)
class Line:
    """Oriented line ``a x + b y + c = 0`` with ``a^2 + b^2 = 1``.

    The normal ``(a, b)`` points to the left of the line's direction.
    """

    a: float
    b: float
    c: float

    def __post_init__(self) -> None:
        if not all(math.isfinite(v) for v in (self.a, self.b, self.c)):
            raise ConstructionError(f"Line coefficients must be finite: {self.a}, {self.b}, {self.c}")
        norm = math.hypot(self.a, self.b)
        if norm < EPSILON:
            raise ConstructionError("Line needs a non-zero normal")
        object.__setattr__(self, "a", self.a / norm)
        object.__setattr__(self, "b", self.b / norm)
        object.__setattr__(self, "c", self.c / norm)

    @classmethod
    def src_dir(cls, src: Complex, direction: Complex) -> "Line":
        _check_finite(src, direction)
        if direction.is_zero():
            raise ConstructionError("Line direction must be non-zero")
        m = direction * I
        return cls(m.real, m.imag, -m.dot(src))

    @classmethod
    def through_two_points(cls, p1: Complex, p2: Complex) -> "Line":
        _check_finite(p1, p2)
        if p1.equals(p2):
            raise ConstructionError(f"Line through two equal points {p1}")
        return cls.src_dir(p1, p2 - p1)

    @classmethod
    def bisector(cls, p1: Complex, p2: Complex) -> "Line":
        _check_finite(p1, p2)
        if p1.equals(p2):
            raise ConstructionError(f"Bisector of two equal points {p1}")
        return cls.src_dir(p1.lerp(p2, 0.5), (p2 - p1) * I)

    @property
    def normal(self) -> Complex:
        return Complex(self.a, self.b)

    @property
    def direction(self) -> Complex:
        return Complex(self.b, -self.a)

    @property
    def slope(self) -> float:
        if self.b == 0:
            return math.inf
        return -self.a / self.b

    def side_of(self, point: Complex) -> float:
        """Signed distance, positive to the left of the line."""
        return self.a * point.real + self.b * point.imag + self.c

    def contains_point(self, point: Complex, tolerance: float = EPSILON) -> bool:
        if point.is_infinite:
            return False
        return abs(self.side_of(point)) < tolerance

    def perp_at_point(self, point: Complex) -> "Line":
        return Line.src_dir(point, self.normal)

    def project(self, point: Complex) -> Complex:
        return point - self.normal * self.side_of(point)

    def intersect_line(self, other: "Line") -> Complex:
        d = self.a * other.b - self.b * other.a
        if abs(d) < EPSILON:
            raise ParallelLinesError("Lines are parallel")
        solution = Complex(
            (-other.b * self.c + self.b * other.c) / d,
            (other.a * self.c - self.a * other.c) / d,
        )
        tolerance = EPSILON * max(1.0, solution.modulus())
        assert self.contains_point(solution, tolerance) and other.contains_point(solution, tolerance), (
            "Bad line intersection"
        )
        return solution

    def intersect_circle(self, circle: "Circle") -> List[Complex]:
        return circle.intersect_line(self)


@dataclass(frozen=True)
class Circle:
    center: Complex
    radius: float

    def __post_init__(self) -> None:
        if self.center.is_infinite:
            raise ConstructionError("Circle center must be finite")
        if not math.isfinite(self.radius) or self.radius <= 0:
            raise ConstructionError(f"Circle radius must be positive: {self.radius}")

    @classmethod
    def from_three_points(cls, p1: Complex, p2: Complex, p3: Complex):
        try:
            center = Line.bisector(p1, p2).intersect_line(Line.bisector(p2, p3))
        except ParallelLinesError as exc:
            raise ConstructionError("Circle through three collinear points") from exc
        return cls(center, center.distance(p1))

    def contains_point(self, point: Complex) -> bool:
        return self.center.distance(point) < self.radius

    def point_on_boundary(self, point: Complex) -> bool:
        return close_enough(self.center.distance(point), self.radius)

    def point_at(self, angle: float) -> Complex:
        return self.center + Complex.polar(self.radius, angle)

    def intersect_line(self, line: Line) -> List[Complex]:
        d = line.side_of(self.center)
        foot = self.center - line.normal * d
        if close_enough(abs(d), self.radius):
            return [foot]
        if abs(d) > self.radius:
            return []
        h = math.sqrt(self.radius * self.radius - d * d)
        return [foot + line.direction * h, foot - line.direction * h]

    def intersect_circle(self, other: "Circle") -> List[Complex]:
        d = self.center.distance(other.center)
        if d < EPSILON:
            return []
        r1 = self.radius
        r2 = other.radius
        unit = (other.center - self.center).normalize()
        x = (d * d - r2 * r2 + r1 * r1) / (2.0 * d)
        if close_enough(d, r1 + r2) or close_enough(d, abs(r1 - r2)):
            return [self.center + unit * x]
        if d > r1 + r2 or d < abs(r1 - r2):
            return []
        h = math.sqrt(max(0.0, r1 * r1 - x * x))
        base = self.center + unit * x
        offset = unit * I * h
        return [base + offset, base - offset]


class AffineCircle(Circle):
    """Circle with the tangent constructions used by affine outer billiards.

    "Left" and "right" are the viewer's sides: the viewer stands at the given
    point and faces the circle. From the right tangent point the circle lies
    to the left of the ray from the viewer.
    """

    def tangent_point(self, point: Complex, clockwise: bool) -> Complex:
        if self.point_on_boundary(point):
            return point
        if self.contains_point(point):
            raise NoTangentError("No tangent from a point inside the circle")
        mid = point.lerp(self.center, 0.5)
        half = mid.distance(self.center)
        foot = self.radius * self.radius / (2.0 * half)
        diff = (mid - self.center).normalize()
        base = self.center + diff * foot
        h = math.sqrt(max(0.0, self.radius * self.radius - foot * foot))
        if clockwise:
            return base + Complex(-diff.imag * h, diff.real * h)
        return base + Complex(diff.imag * h, -diff.real * h)

    def right_tangent_point(self, point: Complex) -> Complex:
        return self.tangent_point(point, clockwise=True)

    def left_tangent_point(self, point: Complex) -> Complex:
        return self.tangent_point(point, clockwise=False)

    def right_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.right_tangent_point(point))

    def left_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.left_tangent_point(point))

    def tangent_segment_from(self, other: Circle, left: bool) -> "LineSegment":
        """External common tangent running from ``other`` to this circle.

        Both circles lie on the left of the segment when ``left`` is true and
        on the right otherwise.
        """
        offset = self.center - other.center
        d = offset.modulus()
        if d < EPSILON:
            raise NoTangentError("Concentric circles have no common tangent")
        cos_alpha = (self.radius - other.radius) / d
        if abs(cos_alpha) > 1:
            raise NoTangentError("One circle contains the other")
        alpha = math.acos(cos_alpha)
        if not left:
            alpha = -alpha
        normal = offset.normalize() * Complex.polar(1.0, alpha)
        start = other.center - normal * other.radius
        end = self.center - normal * self.radius
        if start.equals(end):
            raise NoTangentError("Circles are internally tangent")
        return LineSegment(start, end)


@dataclass(frozen=True)
class LineSegment:
    start: Complex
    end: Complex

    def __post_init__(self) -> None:
        _check_finite(self.start, self.end)
        if self.start.equals(self.end):
            raise ConstructionError(f"Degenerate line segment at {self.start}")

    @property
    def mid(self) -> Complex:
        return self.start.lerp(self.end, 0.5)

    @property
    def length(self) -> float:
        return self.start.distance(self.end)

    @property
    def line(self) -> Line:
        return Line.through_two_points(self.start, self.end)

    @property
    def start_heading(self) -> float:
        return self.start.heading(self.end)

    @property
    def end_heading(self) -> float:
        return self.end.heading(self.start)

    @property
    def start_curvature(self) -> float:
        return 0.0

    @property
    def end_curvature(self) -> float:
        return 0.0

    def point_at(self, alpha: float) -> Complex:
        return self.start.lerp(self.end, alpha)

    def fraction_of(self, point: Complex) -> float:
        return self.start.distance(point) / self.length

    def contains_point(self, point: Complex) -> bool:
        if point.is_infinite:
            return False
        return close_enough(point.distance(self.start) + point.distance(self.end), self.length)

    def intersect(self, other: "Segment") -> List[Complex]:
        if isinstance(other, LineSegment):
            try:
                candidate = self.line.intersect_line(other.line)
            except ParallelLinesError:
                return []
            candidates = [candidate]
        elif isinstance(other, ArcSegment):
            candidates = other.circle.intersect_line(self.line)
        else:
            raise TypeError(f"Unknown segment type: {type(other).__name__}")
        return [c for c in candidates if self.contains_point(c) and other.contains_point(c)]

    def winding_number(self, point: Complex) -> float:
        if self.contains_point(point):
            raise DomainError("Winding number undefined on the segment")
        return normalize_angle(point.heading(self.end) - point.heading(self.start))

    def split(self, points: Sequence[Complex]) -> List["LineSegment"]:
        cuts = [self.start, self.end]
        cuts.extend(p for p in points if self.contains_point(p))
        cuts.sort(key=lambda p: p.distance(self.start))
        pieces = []
        for a, b in zip(cuts, cuts[1:]):
            if a.equals(b):
                continue
            pieces.append(LineSegment(a, b))
        return pieces

    def interpolate(self, reverse: bool = False) -> List[Complex]:
        return [self.end, self.start] if reverse else [self.start, self.end]

    def reverse(self) -> "LineSegment":
        return LineSegment(self.end, self.start)


@dataclass(frozen=True)
class ArcSegment:
    """Counterclockwise arc of the circle around ``center``.

    The angles are reordered so that ``start_angle < end_angle`` and the arc
    spans at most a full turn.
    """

    center: Complex
    radius: float
    start_angle: float
    end_angle: float

    def __post_init__(self) -> None:
        if self.center.is_infinite:
            raise ConstructionError("Arc center must be finite")
        if not math.isfinite(self.radius) or self.radius <= 0:
            raise ConstructionError(f"Arc radius must be positive: {self.radius}")
        a1, a2 = self.start_angle, self.end_angle
        if a1 > a2:
            a1, a2 = a2, a1
        span = a2 - a1
        if span > TAU + EPSILON:
            raise ConstructionError("Arc spans more than a full turn")
        if span * self.radius < EPSILON:
            raise ConstructionError("Degenerate arc segment")
        start = normalize_angle(a1)
        object.__setattr__(self, "start_angle", start)
        object.__setattr__(self, "end_angle", start + min(span, TAU))

    @property
    def circle(self) -> AffineCircle:
        return AffineCircle(self.center, self.radius)

    @property
    def start(self) -> Complex:
        return self.point_at_angle(self.start_angle)

    @property
    def mid(self) -> Complex:
        return self.point_at_angle(0.5 * (self.start_angle + self.end_angle))

    @property
    def end(self) -> Complex:
        return self.point_at_angle(self.end_angle)

    @property
    def span(self) -> float:
        return self.end_angle - self.start_angle

    @property
    def length(self) -> float:
        return self.radius * self.span

    @property
    def start_heading(self) -> float:
        return normalize_angle(self.start_angle + math.pi / 2)

    @property
    def end_heading(self) -> float:
        return normalize_angle(self.end_angle - math.pi / 2)

    @property
    def start_curvature(self) -> float:
        return 1.0 / self.radius

    @property
    def end_curvature(self) -> float:
        return -1.0 / self.radius

    def point_at_angle(self, angle: float) -> Complex:
        return self.center + Complex.polar(self.radius, angle)

    def point_at(self, alpha: float) -> Complex:
        return self.point_at_angle(self.start_angle + alpha * self.span)

    def angle_of(self, point: Complex) -> float:
        """Angle of ``point`` seen from the center, in ``[start, start + 2pi)``."""
        slack = EPSILON / self.radius
        angle = normalize_angle(self.center.heading(point), self.start_angle - slack)
        return max(angle, self.start_angle)

    def fraction_of(self, point: Complex) -> float:
        return min(1.0, (self.angle_of(point) - self.start_angle) / self.span)

    def contains_point(self, point: Complex) -> bool:
        if point.is_infinite or not close_enough(self.center.distance(point), self.radius):
            return False
        return self.angle_of(point) <= self.end_angle + EPSILON / self.radius

    def intersect(self, other: "Segment") -> List[Complex]:
        if isinstance(other, LineSegment):
            return other.intersect(self)
        if isinstance(other, ArcSegment):
            candidates = self.circle.intersect_circle(other.circle)
            return [c for c in candidates if self.contains_point(c) and other.contains_point(c)]
        raise TypeError(f"Unknown segment type: {type(other).__name__}")

    def winding_number(self, point: Complex) -> float:
        if self.contains_point(point):
            raise DomainError("Winding number undefined on the arc")
        w = normalize_angle(point.heading(self.end) - point.heading(self.start))
        # Seen from inside the circle a counterclockwise arc always turns positively.
        if self.circle.contains_point(point) and w < 0:
            return w + TAU
        return w

    def split(self, points: Sequence[Complex]) -> List["ArcSegment"]:
        angles = [self.start_angle, self.end_angle]
        angles.extend(self.angle_of(p) for p in points if self.contains_point(p))
        angles.sort()
        pieces = []
        for a, b in zip(angles, angles[1:]):
            if (b - a) * self.radius < EPSILON:
                continue
            pieces.append(ArcSegment(self.center, self.radius, a, b))
        return pieces

    def interpolate(self, reverse: bool = False) -> List[Complex]:
        count = int(round(self.span * _ARC_POINTS_PER_RADIAN)) + 1
        points = [self.point_at_angle(self.start_angle + i * self.span / count) for i in range(count)]
        points.append(self.end)
        if reverse:
            points.reverse()
        return points


Segment = Union[LineSegment, ArcSegment]


@dataclass(frozen=True)
class AffineRay:
    """Oriented segment used while tracing singularities.

    An infinite ray starts at ``start`` and passes through ``end``; it is
    never represented by an unbounded coordinate.
    """

    start: Complex
    end: Complex
    infinite: bool = False

    def __post_init__(self) -> None:
        _check_finite(self.start, self.end)
        if self.start.equals(self.end):
            raise ConstructionError(f"Degenerate ray at {self.start}")

    @property
    def direction(self) -> Complex:
        return (self.end - self.start).normalize()

    @property
    def mid(self) -> Complex:
        if self.infinite:
            return self.start + self.direction
        return self.start.lerp(self.end, 0.5)

    @property
    def length(self) -> float:
        if self.infinite:
            return math.inf
        return self.start.distance(self.end)

    @property
    def line(self) -> Line:
        return Line.through_two_points(self.start, self.end)

    def contains_point(self, point: Complex) -> bool:
        if not self.line.contains_point(point):
            return False
        d1 = point.distance(self.start)
        d2 = point.distance(self.end)
        span = self.start.distance(self.end)
        return close_enough(d1 + d2, span) or (self.infinite and d1 > d2)

    def intersect(self, other: "AffineRay") -> Optional[Complex]:
        try:
            candidate = self.line.intersect_line(other.line)
        except ParallelLinesError:
            return None
        if self.contains_point(candidate) and other.contains_point(candidate):
            return candidate
        return None

    def to_tuple(self):
        return (self.start.to_tuple(), self.end.to_tuple(), self.infinite)


__all__ = [
    "AffineCircle",
    "AffineRay",
    "ArcSegment",
    "Circle",
    "Line",
    "LineSegment",
    "Segment",
]
