from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
import logging
import math
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np

from billiard_errors import (
    ConstructionError,
    DomainError,
    InteriorPointError,
    NoIntersectionError,
    NoTangentError,
    SingularPointError,
)
from complex_number import EPSILON, TAU, ZERO, Complex, close_enough, fix_time, normalize_angle
from plane_geometry import AffineCircle, AffineRay, ArcSegment, Line, LineSegment, Segment

_LOGGER = logging.getLogger(__name__)

UNIT_CIRCLE = AffineCircle(ZERO, 1.0)

# Candidate support points closer than this are the same point.
_SAME_POINT = 1e-6
# Tolerance of the drift check run on every ray-cast hit.
_DRIFT = 1e-5


class BilliardTable(Protocol):
    """Capability shared by every table variant."""

    def point(self, time: float): ...

    def tangent_heading(self, time: float) -> Optional[float]: ...

    def time_of(self, point) -> float: ...

    def intersect(self, time: float, heading: float) -> float: ...

    def chord_heading(self, time_from: float, time_to: float) -> float: ...

    def left_tangent_point(self, point): ...

    def right_tangent_point(self, point): ...

    def support_points(self, point, side: int, strict: bool = True) -> list: ...

    def contains_point(self, point) -> bool: ...

    def point_on_boundary(self, point) -> bool: ...


@dataclass(frozen=True)
class Corner:
    """Boundary point where the one-sided tangents disagree."""

    point: Complex
    time: float
    incoming: Complex
    outgoing: Complex

    def side(self, direction: Complex, strict: bool = True) -> int:
        """
        +1 when the table lies strictly left of the line through the corner
        with this direction, -1 when strictly right, 0 otherwise.

        Without ``strict`` the line may also run along one of the two edges.
        """
        u = direction.normalize()
        back = u.cross(-self.incoming)
        ahead = u.cross(self.outgoing)
        if strict:
            if back > EPSILON and ahead > EPSILON:
                return 1
            if back < -EPSILON and ahead < -EPSILON:
                return -1
            return 0
        if min(back, ahead) > -EPSILON and max(back, ahead) > EPSILON:
            return 1
        if max(back, ahead) < EPSILON and min(back, ahead) < -EPSILON:
            return -1
        return 0


def _travel_direction(heading: float) -> Complex:
    return Complex.polar(1.0, heading)


class PiecewiseBoundary:
    """
    Counterclockwise convex boundary made of line and arc segments.

    Piece ``i`` covers the times ``[times[i], times[i + 1])``; within a piece
    time is proportional to the segment's own parameter.
    """

    def __init__(self, pieces: Sequence[Segment], times: Sequence[float]) -> None:
        pieces = tuple(pieces)
        if len(pieces) < 2 or len(times) != len(pieces) + 1:
            raise ConstructionError("Boundary needs at least two pieces and one time per joint")
        if times[0] != 0.0 or times[-1] != 1.0 or any(b <= a for a, b in zip(times, times[1:])):
            raise ConstructionError("Boundary times must increase from 0 to 1")
        for prev, piece in zip(pieces[-1:] + pieces[:-1], pieces):
            if not prev.end.equals(piece.start, _SAME_POINT):
                raise ConstructionError("Boundary pieces must join end to start")
        self.pieces: Tuple[Segment, ...] = tuple(pieces)
        self.times: Tuple[float, ...] = tuple(times)
        corners = []
        for i, piece in enumerate(self.pieces):
            prev = self.pieces[i - 1]
            incoming = _travel_direction(prev.end_heading + math.pi)
            outgoing = _travel_direction(piece.start_heading)
            if incoming.cross(outgoing) < -EPSILON:
                raise ConstructionError("Boundary must turn counterclockwise")
            if not incoming.equals(outgoing):
                corners.append(Corner(piece.start, self.times[i], incoming, outgoing))
        self.corners: Tuple[Corner, ...] = tuple(corners)
        self.bound = max(
            max(p.start.modulus() for p in self.pieces),
            max(p.center.modulus() + p.radius for p in self.pieces if isinstance(p, ArcSegment))
            if any(isinstance(p, ArcSegment) for p in self.pieces)
            else 0.0,
        )

    def _locate(self, time: float) -> Tuple[int, float]:
        t = fix_time(time)
        idx = min(bisect_right(self.times, t) - 1, len(self.pieces) - 1)
        alpha = (t - self.times[idx]) / (self.times[idx + 1] - self.times[idx])
        return idx, alpha

    def point(self, time: float) -> Complex:
        idx, alpha = self._locate(time)
        return self.pieces[idx].point_at(alpha)

    def tangent_heading(self, time: float) -> Optional[float]:
        t = fix_time(time)
        for corner in self.corners:
            if close_enough(corner.time, t) or close_enough(corner.time + 1.0, t):
                return None
        idx, alpha = self._locate(t)
        piece = self.pieces[idx]
        if isinstance(piece, LineSegment):
            return piece.start_heading
        return normalize_angle(piece.start_angle + alpha * piece.span + math.pi / 2)

    def time_of(self, point: Complex) -> float:
        for idx, piece in enumerate(self.pieces):
            if piece.contains_point(point):
                t0 = self.times[idx]
                return fix_time(t0 + piece.fraction_of(point) * (self.times[idx + 1] - t0))
        raise DomainError(f"Point {point} is not on the boundary")

    def point_on_boundary(self, point: Complex) -> bool:
        return any(piece.contains_point(point) for piece in self.pieces)

    def contains_point(self, point: Complex) -> bool:
        if self.point_on_boundary(point):
            return False
        winding = sum(piece.winding_number(point) for piece in self.pieces)
        return abs(winding - TAU) < 1.0

    def intersect(self, time: float, heading: float) -> float:
        """Time of the other boundary crossing of the ray leaving ``point(time)``."""
        t = fix_time(time)
        origin = self.point(t)
        far = origin + Complex.polar(2.0 * self.bound + 1.0, heading)
        ray = LineSegment(origin, far)
        best = None
        for piece in self.pieces:
            for candidate in piece.intersect(ray):
                if candidate.equals(origin):
                    continue
                hit = self.time_of(candidate)
                if close_enough(hit, t) or close_enough(abs(hit - t), 1.0):
                    continue
                assert self.point(hit).distance(candidate) < _DRIFT, "Boundary parametrization drifted"
                d = candidate.distance(origin)
                if best is None or d < best[0]:
                    best = (d, hit)
        if best is None:
            raise NoIntersectionError(f"Ray from time {t} at heading {heading} leaves the table")
        return best[1]

    def _check_outside(self, point: Complex) -> None:
        if self.point_on_boundary(point) or self.contains_point(point):
            raise InteriorPointError(f"Point {point} is not outside the table")

    def tangent_point(self, point: Complex, side: int) -> Complex:
        """
        Support point seen from ``point``: the table lies to the left of the
        ray from ``point`` through it when ``side`` is +1, to the right when -1.
        """
        candidates = self.support_points(point, side)
        if len(candidates) == 1:
            return candidates[0]
        raise SingularPointError(f"Point {point} lies on a singular ray ({len(candidates)} support points)")

    def support_points(self, point: Complex, side: int, strict: bool = True) -> List[Complex]:
        """
        Every distinct support point on ``side``.

        On the extension of a straight piece the strict test finds none of its
        end corners and the loose one finds both.
        """
        self._check_outside(point)
        candidates: List[Complex] = []
        for piece in self.pieces:
            if not isinstance(piece, ArcSegment):
                continue
            circle = piece.circle
            try:
                tp = circle.right_tangent_point(point) if side > 0 else circle.left_tangent_point(point)
            except NoTangentError:
                continue
            if piece.contains_point(tp):
                candidates.append(tp)
        for corner in self.corners:
            if corner.side(corner.point - point, strict) == side:
                candidates.append(corner.point)
        return _distinct(candidates)

    def tangent_line_to_circle(self, circle: AffineCircle, side: int) -> Line:
        """
        Common tangent running from ``circle`` to the table with both on the
        left (``side`` +1) or on the right (``side`` -1).
        """
        lines: List[Tuple[Complex, Complex]] = []
        for piece in self.pieces:
            if not isinstance(piece, ArcSegment):
                continue
            try:
                segment = piece.circle.tangent_segment_from(circle, left=side > 0)
            except NoTangentError:
                continue
            if piece.contains_point(segment.end):
                lines.append((segment.start, segment.end))
        for corner in self.corners:
            q = corner.point
            if circle.point_on_boundary(q):
                continue
            try:
                tp = circle.left_tangent_point(q) if side > 0 else circle.right_tangent_point(q)
            except NoTangentError:
                continue
            if corner.side(q - tp) == side:
                lines.append((tp, q))
        distinct: List[Tuple[Complex, Complex]] = []
        for tp, q in lines:
            if not any(q.equals(other_q, _SAME_POINT) for _, other_q in distinct):
                distinct.append((tp, q))
        if not distinct:
            raise NoTangentError("No common tangent between table and circle")
        if len(distinct) > 1:
            raise SingularPointError("Common tangent touches the table twice")
        tp, q = distinct[0]
        return Line.through_two_points(tp, q)

    def seed_rays(self) -> List[AffineRay]:
        """Backward extensions of the straight pieces, where the forward map jumps."""
        rays = []
        for piece in self.pieces:
            if isinstance(piece, LineSegment):
                direction = (piece.start - piece.end).normalize()
                rays.append(AffineRay(piece.start, piece.start + direction, True))
        return rays

    def slicing_rays(self) -> List[AffineRay]:
        """Forward extensions of the straight pieces, where the reverse map jumps."""
        rays = []
        for piece in self.pieces:
            if isinstance(piece, LineSegment):
                direction = (piece.end - piece.start).normalize()
                rays.append(AffineRay(piece.end, piece.end + direction, True))
        return rays


def _distinct(candidates: Sequence[Complex]) -> List[Complex]:
    distinct: List[Complex] = []
    for c in candidates:
        if not any(c.equals(d, _SAME_POINT) for d in distinct):
            distinct.append(c)
    return distinct


class _PiecewiseTable:
    """Delegates the table capability to a :class:`PiecewiseBoundary`."""

    boundary: PiecewiseBoundary
    polygonal = False

    def point(self, time: float) -> Complex:
        return self.boundary.point(time)

    def tangent_heading(self, time: float) -> Optional[float]:
        return self.boundary.tangent_heading(time)

    def time_of(self, point: Complex) -> float:
        return self.boundary.time_of(point)

    def intersect(self, time: float, heading: float) -> float:
        return self.boundary.intersect(time, heading)

    def chord_heading(self, time_from: float, time_to: float) -> float:
        return self.point(time_from).heading(self.point(time_to))

    def contains_point(self, point: Complex) -> bool:
        return self.boundary.contains_point(point)

    def point_on_boundary(self, point: Complex) -> bool:
        return self.boundary.point_on_boundary(point)

    def right_tangent_point(self, point: Complex) -> Complex:
        return self.boundary.tangent_point(point, 1)

    def left_tangent_point(self, point: Complex) -> Complex:
        return self.boundary.tangent_point(point, -1)

    def support_points(self, point: Complex, side: int, strict: bool = True) -> List[Complex]:
        return self.boundary.support_points(point, side, strict)

    def right_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.right_tangent_point(point))

    def left_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.left_tangent_point(point))

    def right_tangent_line_to_circle(self, circle: AffineCircle) -> Line:
        return self.boundary.tangent_line_to_circle(circle, 1)

    def left_tangent_line_to_circle(self, circle: AffineCircle) -> Line:
        return self.boundary.tangent_line_to_circle(circle, -1)

    def seed_rays(self) -> List[AffineRay]:
        return self.boundary.seed_rays()

    def slicing_rays(self) -> List[AffineRay]:
        return self.boundary.slicing_rays()


class AffinePolygonTable(_PiecewiseTable):
    polygonal = True

    def __init__(self, vertices: Sequence[Complex]) -> None:
        if len(vertices) < 3:
            raise ConstructionError("A polygon table needs at least three vertices")
        n = len(vertices)
        for i in range(n):
            v1, v2, v3 = vertices[i], vertices[(i + 1) % n], vertices[(i + 2) % n]
            if (v2 - v1).cross(v3 - v2) <= EPSILON:
                raise ConstructionError("Polygon vertices must be strictly convex and counterclockwise")
        self.vertices: Tuple[Complex, ...] = tuple(vertices)
        edges = [LineSegment(vertices[i], vertices[(i + 1) % n]) for i in range(n)]
        self.boundary = PiecewiseBoundary(edges, [i / n for i in range(n)] + [1.0])

    @classmethod
    def regular(cls, n: int, radius: float = 1.0) -> "AffinePolygonTable":
        if n < 3 or radius <= 0:
            raise ConstructionError(f"Bad regular polygon parameters: n={n}, radius={radius}")
        offset = math.pi / n - math.pi / 2
        return cls([Complex.polar(radius, TAU * i / n + offset) for i in range(n)])

    @property
    def n(self) -> int:
        return len(self.vertices)

    @property
    def edges(self) -> Tuple[Segment, ...]:
        return self.boundary.pieces


class AffineFlexigonTable(_PiecewiseTable):
    """Unit-circle vertices joined by outward arcs of radius ``1 / k``."""

    def __init__(self, n: int, k: float) -> None:
        if not isinstance(n, int) or n < 2 or not 0 < k <= 1:
            raise ConstructionError(f"Bad flexigon parameters: n={n}, k={k}")
        self.n = n
        self.k = k
        offset = 0.0 if n == 2 else math.pi / 2
        self.vertices: Tuple[Complex, ...] = tuple(Complex.polar(1.0, TAU * i / n + offset) for i in range(n))
        r = 1.0 / k
        half = self.vertices[0].distance(self.vertices[1]) / 2.0
        d = math.sqrt(max(0.0, r * r - half * half))
        arcs = []
        for i in range(n):
            v1 = self.vertices[i]
            v2 = self.vertices[(i + 1) % n]
            dv = (v2 - v1).normalize()
            center = v1.lerp(v2, 0.5) + Complex(-dv.imag, dv.real) * d
            a1 = center.heading(v1)
            a2 = normalize_angle(center.heading(v2), a1)
            arcs.append(ArcSegment(center, r, a1, a2))
        self.boundary = PiecewiseBoundary(arcs, [i / n for i in range(n)] + [1.0])

    @property
    def arcs(self) -> Tuple[Segment, ...]:
        return self.boundary.pieces


CURVE_TIME = math.pi / (math.pi + 2.0)


class AffineSemicircleTable(_PiecewiseTable):
    """Upper half of the unit disk, timed by arc length."""

    def __init__(self) -> None:
        arc = ArcSegment(ZERO, 1.0, 0.0, math.pi)
        flat = LineSegment(Complex(-1.0, 0.0), Complex(1.0, 0.0))
        self.boundary = PiecewiseBoundary([arc, flat], [0.0, CURVE_TIME, 1.0])


class StadiumTable(_PiecewiseTable):
    """Two half-disk caps of ``radius`` joined by flat edges of ``length``; a quarter of time each."""

    def __init__(self, length: float, radius: float) -> None:
        if not length > 0 or not radius > 0:
            raise ConstructionError(f"Bad stadium parameters: length={length}, radius={radius}")
        self.length = length
        self.radius = radius
        half = length / 2.0
        pieces = [
            ArcSegment(Complex(half, 0.0), radius, -math.pi / 2, math.pi / 2),
            LineSegment(Complex(half, radius), Complex(-half, radius)),
            ArcSegment(Complex(-half, 0.0), radius, math.pi / 2, 3 * math.pi / 2),
            LineSegment(Complex(-half, -radius), Complex(half, -radius)),
        ]
        self.boundary = PiecewiseBoundary(pieces, [0.0, 0.25, 0.5, 0.75, 1.0])


class EllipseTable:
    """Ellipse of the given eccentricity normalized to unit area factor ``ab = 1``."""

    polygonal = False
    _SAMPLES = 720

    def __init__(self, eccentricity: float) -> None:
        if not 0 <= eccentricity < 1:
            raise ConstructionError("Ellipse eccentricity must be in [0, 1)")
        self.eccentricity = eccentricity
        squeeze = math.sqrt(1.0 - eccentricity * eccentricity)
        self.semi_major = 1.0 / math.sqrt(squeeze)
        self.semi_minor = math.sqrt(squeeze)

    def _to_circle(self, p: Complex) -> Complex:
        return Complex(p.real / self.semi_major, p.imag / self.semi_minor)

    def _from_circle(self, p: Complex) -> Complex:
        return Complex(p.real * self.semi_major, p.imag * self.semi_minor)

    def point(self, time: float) -> Complex:
        theta = TAU * fix_time(time)
        return Complex(self.semi_major * math.cos(theta), self.semi_minor * math.sin(theta))

    def tangent_heading(self, time: float) -> Optional[float]:
        theta = TAU * fix_time(time)
        return math.atan2(self.semi_minor * math.cos(theta), -self.semi_major * math.sin(theta))

    def time_of(self, point: Complex) -> float:
        if not self.point_on_boundary(point):
            raise DomainError(f"Point {point} is not on the ellipse")
        c = self._to_circle(point)
        return fix_time(math.atan2(c.imag, c.real) / TAU)

    def chord_heading(self, time_from: float, time_to: float) -> float:
        return self.point(time_from).heading(self.point(time_to))

    def intersect(self, time: float, heading: float) -> float:
        p = self.point(time)
        hx = math.cos(heading)
        hy = math.sin(heading)
        a2 = self.semi_major ** 2
        b2 = self.semi_minor ** 2
        qa = hx * hx / a2 + hy * hy / b2
        qb = 2.0 * (p.real * hx / a2 + p.imag * hy / b2)
        qc = p.real * p.real / a2 + p.imag * p.imag / b2 - 1.0
        disc = max(0.0, qb * qb - 4.0 * qa * qc)
        roots = ((-qb + math.sqrt(disc)) / (2.0 * qa), (-qb - math.sqrt(disc)) / (2.0 * qa))
        s = max(roots, key=abs)
        if s < EPSILON:
            raise NoIntersectionError(f"Ray from time {time} at heading {heading} leaves the ellipse")
        q = p + Complex.polar(s, heading)
        hit = self.time_of(q)
        assert self.point(hit).distance(q) < _DRIFT, "Ellipse parametrization drifted"
        return hit

    def _circle_value(self, point: Complex) -> float:
        c = self._to_circle(point)
        return c.modulus_squared()

    def contains_point(self, point: Complex) -> bool:
        return self._circle_value(point) < 1.0 and not self.point_on_boundary(point)

    def point_on_boundary(self, point: Complex) -> bool:
        return close_enough(self._circle_value(point), 1.0, 1e-6)

    def _check_outside(self, point: Complex) -> None:
        if self._circle_value(point) <= 1.0 + 1e-6:
            raise InteriorPointError(f"Point {point} is not outside the ellipse")

    def right_tangent_point(self, point: Complex) -> Complex:
        self._check_outside(point)
        return self._from_circle(UNIT_CIRCLE.right_tangent_point(self._to_circle(point)))

    def left_tangent_point(self, point: Complex) -> Complex:
        self._check_outside(point)
        return self._from_circle(UNIT_CIRCLE.left_tangent_point(self._to_circle(point)))

    def support_points(self, point: Complex, side: int, strict: bool = True) -> List[Complex]:
        if side > 0:
            return [self.right_tangent_point(point)]
        return [self.left_tangent_point(point)]

    def right_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.right_tangent_point(point))

    def left_tangent_line(self, point: Complex) -> Line:
        return Line.through_two_points(point, self.left_tangent_point(point))

    def _tangent_offsets(self, thetas: np.ndarray, circle: AffineCircle) -> np.ndarray:
        """Signed distance of the circle's center from each tangent line, minus the radius."""
        qx = self.semi_major * np.cos(thetas)
        qy = self.semi_minor * np.sin(thetas)
        tx = -self.semi_major * np.sin(thetas)
        ty = self.semi_minor * np.cos(thetas)
        norm = np.hypot(tx, ty)
        cross = (tx * (circle.center.imag - qy) - ty * (circle.center.real - qx)) / norm
        return cross - circle.radius

    def _tangent_roots(self, circle: AffineCircle) -> List[float]:
        thetas = np.linspace(0.0, TAU, self._SAMPLES + 1)
        values = self._tangent_offsets(thetas, circle)
        roots = []
        for i in np.nonzero(np.sign(values[:-1]) != np.sign(values[1:]))[0]:
            lo, hi = float(thetas[i]), float(thetas[i + 1])
            f_lo = float(values[i])
            for _ in range(60):
                mid = 0.5 * (lo + hi)
                f_mid = float(self._tangent_offsets(np.array([mid]), circle)[0])
                if (f_mid > 0) == (f_lo > 0):
                    lo, f_lo = mid, f_mid
                else:
                    hi = mid
            roots.append(0.5 * (lo + hi))
        return roots

    def _tangent_line_to_circle(self, circle: AffineCircle, side: int) -> Line:
        matches = []
        for theta in self._tangent_roots(circle):
            q = self.point(theta / TAU)
            tangent = Complex(-self.semi_major * math.sin(theta), self.semi_minor * math.cos(theta)).normalize()
            tp = circle.center - tangent * Complex(0.0, 1.0) * circle.radius
            if tp.equals(q):
                continue
            if (q - tp).dot(tangent) * side > 0:
                matches.append((tp, q))
        if not matches:
            raise NoTangentError("No common tangent between ellipse and circle")
        if len(matches) > 1:
            _LOGGER.debug("Ellipse has %d tangent candidates, keeping the first", len(matches))
        tp, q = matches[0]
        return Line.through_two_points(tp, q)

    def right_tangent_line_to_circle(self, circle: AffineCircle) -> Line:
        return self._tangent_line_to_circle(circle, 1)

    def left_tangent_line_to_circle(self, circle: AffineCircle) -> Line:
        return self._tangent_line_to_circle(circle, -1)

    def seed_rays(self) -> List[AffineRay]:
        return []

    def slicing_rays(self) -> List[AffineRay]:
        return []


__all__ = [
    "AffineFlexigonTable",
    "AffinePolygonTable",
    "AffineSemicircleTable",
    "BilliardTable",
    "CURVE_TIME",
    "Corner",
    "EllipseTable",
    "PiecewiseBoundary",
    "StadiumTable",
]
