from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from billiard_errors import (
    ConstructionError,
    DomainError,
    InteriorPointError,
    NoIntersectionError,
    SingularPointError,
)
from complex_number import EPSILON, TAU, Complex, close_enough, fix_time
from hyperbolic import HyperGeodesic, HyperPoint, poincare_ray, true_to_poincare
from plane_geometry import LineSegment


class HyperbolicPolygonTable:
    """Convex polygon of the hyperbolic plane with geodesic edges.

    All tangency tests run in the Klein chart, where geodesics are straight.
    Times are uniform per edge, linear in Klein coordinates along an edge.
    """

    polygonal = True

    def __init__(self, vertices: Sequence[HyperPoint]) -> None:
        n = len(vertices)
        if n < 3:
            raise ConstructionError("A hyperbolic polygon needs at least three vertices")
        for v in vertices:
            if v.is_ideal:
                raise ConstructionError("Hyperbolic polygon vertices must be interior points")
        for i in range(n):
            k1, k2, k3 = (vertices[(i + j) % n].klein for j in range(3))
            if (k2 - k1).cross(k3 - k2) <= EPSILON:
                raise ConstructionError("Polygon vertices must be strictly convex and counterclockwise")
        self.vertices: Tuple[HyperPoint, ...] = tuple(vertices)
        self.edges: Tuple[HyperGeodesic, ...] = tuple(
            HyperGeodesic(vertices[i], vertices[(i + 1) % n]) for i in range(n)
        )

    @classmethod
    def regular(cls, n: int, radius: float) -> "HyperbolicPolygonTable":
        """Regular ``n``-gon whose vertices sit at hyperbolic distance ``radius`` from the origin."""
        if n < 3 or radius <= 0:
            raise ConstructionError(f"Bad regular polygon parameters: n={n}, radius={radius}")
        r = true_to_poincare(radius)
        offset = math.pi / n - math.pi / 2
        return cls([HyperPoint.from_poincare(Complex.polar(r, TAU * i / n + offset)) for i in range(n)])

    @property
    def n(self) -> int:
        return len(self.vertices)

    def _klein_edge(self, i: int) -> LineSegment:
        return self.edges[i].klein_segment

    def point(self, time: float) -> HyperPoint:
        t = fix_time(time)
        i = min(int(math.floor(t * self.n)), self.n - 1)
        alpha = t * self.n - i
        k1 = self.vertices[i].klein
        k2 = self.vertices[(i + 1) % self.n].klein
        return HyperPoint.from_klein(k1.lerp(k2, alpha))

    def time_of(self, point: HyperPoint) -> float:
        for i in range(self.n):
            edge = self._klein_edge(i)
            if edge.contains_point(point.klein):
                return fix_time((i + edge.fraction_of(point.klein)) / self.n)
        raise DomainError("Point is not on the polygon boundary")

    def tangent_heading(self, time: float) -> Optional[float]:
        t = fix_time(time)
        if close_enough(t * self.n, round(t * self.n)):
            return None
        i = int(math.floor(t * self.n))
        return self.point(t).heading(self.vertices[(i + 1) % self.n])

    def chord_heading(self, time_from: float, time_to: float) -> float:
        return self.point(time_from).heading(self.point(time_to))

    def intersect(self, time: float, heading: float) -> float:
        """Time where the geodesic leaving ``point(time)`` at a Poincare ``heading`` exits."""
        t = fix_time(time)
        origin = self.point(t)
        ideal = poincare_ray(origin, heading)
        chord = LineSegment(origin.klein, ideal.klein)
        best = None
        for i in range(self.n):
            for candidate in self._klein_edge(i).intersect(chord):
                if candidate.equals(origin.klein):
                    continue
                hit = self.time_of(HyperPoint.from_klein(candidate))
                if close_enough(hit, t) or close_enough(abs(hit - t), 1.0):
                    continue
                d = candidate.distance(origin.klein)
                if best is None or d < best[0]:
                    best = (d, hit)
        if best is None:
            raise NoIntersectionError(f"Geodesic from time {t} at heading {heading} leaves the table")
        return best[1]

    def contains_point(self, point: HyperPoint) -> bool:
        k = point.klein
        for i in range(self.n):
            v1 = self.vertices[i].klein
            v2 = self.vertices[(i + 1) % self.n].klein
            if (v2 - v1).cross(k - v1) <= EPSILON:
                return False
        return True

    def point_on_boundary(self, point: HyperPoint) -> bool:
        return any(self._klein_edge(i).contains_point(point.klein) for i in range(self.n))

    def _check_outside(self, point: HyperPoint) -> None:
        if self.point_on_boundary(point) or self.contains_point(point):
            raise InteriorPointError("Point is not outside the table")

    def right_tangent_point(self, point: HyperPoint) -> HyperPoint:
        """Forward vertex: the table lies to the left of the geodesic from ``point`` through it."""
        self._check_outside(point)
        p = point.klein
        n = self.n
        for i in range(n):
            v1, v2, v3 = (self.vertices[(i + j) % n].klein for j in range(3))
            if (v2 - v1).cross(p - v1) < 0 and (v3 - v2).cross(p - v2) > 0:
                return self.vertices[(i + 1) % n]
        raise SingularPointError("Point lies on the extension of an edge")

    def left_tangent_point(self, point: HyperPoint) -> HyperPoint:
        """Reverse vertex: the table lies to the right of the geodesic from ``point`` through it."""
        self._check_outside(point)
        p = point.klein
        n = self.n
        for i in range(n):
            v1, v2, v3 = (self.vertices[(i + j) % n].klein for j in range(3))
            if (v2 - v1).cross(p - v2) > 0 and (v3 - v2).cross(p - v3) < 0:
                return self.vertices[(i + 1) % n]
        raise SingularPointError("Point lies on the extension of an edge")

    def right_tangent_geodesic(self, point: HyperPoint) -> HyperGeodesic:
        return HyperGeodesic(point, self.right_tangent_point(point))

    def left_tangent_geodesic(self, point: HyperPoint) -> HyperGeodesic:
        return HyperGeodesic(point, self.left_tangent_point(point))

    def seed_geodesics(self) -> List[HyperGeodesic]:
        """Edge geodesics continued backward from each start vertex to the boundary."""
        return [HyperGeodesic(edge.start, edge.ideal_start) for edge in self.edges]

    def slicing_segments(self) -> List[LineSegment]:
        """Klein chords continuing each edge forward from its end vertex to the boundary."""
        return [LineSegment(edge.end.klein, edge.ideal_end.klein) for edge in self.edges]


__all__ = ["HyperbolicPolygonTable"]
