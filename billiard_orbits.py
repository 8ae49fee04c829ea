from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Optional, Tuple, Union

from affine_tables import BilliardTable
from billiard_errors import ConstructionError, DomainError, Outcome, SingularPointError, UnsupportedError
from billiard_settings import Flavor
from complex_number import EPSILON, I, Complex, close_enough, normalize_angle
from hyperbolic import HyperIsometry, HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable
from plane_geometry import AffineCircle, Line

_LOGGER = logging.getLogger(__name__)

Point = Union[Complex, HyperPoint]


@dataclass(frozen=True)
class Orbit:
    """Outer billiard orbit: ``points[0]`` is the start."""

    points: Tuple[Point, ...]
    outcome: Outcome
    period: Optional[int] = None
    reason: Optional[str] = None

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class InnerState:
    """A chord leaving ``point(time)`` at ``angle`` counterclockwise from the tangent."""

    time: float
    angle: float


@dataclass(frozen=True)
class InnerOrbit:
    states: Tuple[InnerState, ...]
    points: Tuple[Point, ...]
    outcome: Outcome
    period: Optional[int] = None
    reason: Optional[str] = None

    def __len__(self) -> int:
        return len(self.states)


def _is_hyperbolic(table) -> bool:
    return isinstance(table, HyperbolicPolygonTable)


def _pivot(table: BilliardTable, point, reverse: bool):
    if reverse:
        return table.left_tangent_point(point)
    return table.right_tangent_point(point)


# Outer billiards


def outer_regular_step(table: BilliardTable, point: Complex, reverse: bool = False) -> Complex:
    """Reflect ``point`` through its forward (or reverse) support point."""
    pivot = _pivot(table, point, reverse)
    return pivot * 2.0 - point


def fourth_circle(
    point: Complex,
    forward_direction: Complex,
    backward_direction: Complex,
    tangent_point: Complex,
) -> AffineCircle:
    """
    Circle tangent to the forward line at ``tangent_point`` and to the
    backward line through ``point``.

    Both directions must be unit vectors; the center sits where the bisector
    of the two directions meets the perpendicular at ``tangent_point``.
    """
    bisector = forward_direction + backward_direction
    if bisector.is_zero():
        raise SingularPointError(f"Tangent lines at {point} are opposite")
    center = Line.src_dir(point, bisector).intersect_line(
        Line.src_dir(tangent_point, forward_direction * I)
    )
    radius = center.distance(tangent_point)
    if radius < EPSILON:
        raise SingularPointError(f"Fourth circle at {point} collapses")
    return AffineCircle(center, radius)


def _backward_pivot(table: BilliardTable, point: Complex, reverse: bool) -> Complex:
    # Only the direction from the pivot to ``point`` matters, and every loose
    # candidate lies on the same support line.
    candidates = table.support_points(point, 1 if reverse else -1, strict=False)
    if not candidates:
        raise SingularPointError(f"No backward support point from {point}")
    return min(candidates, key=point.distance)


def outer_symplectic_step(table: BilliardTable, point: Complex, reverse: bool = False) -> Complex:
    t1 = _pivot(table, point, reverse)
    t2 = _backward_pivot(table, point, reverse)
    circle = fourth_circle(point, (t1 - point).normalize(), (point - t2).normalize(), t1)
    if reverse:
        tangent = table.left_tangent_line_to_circle(circle)
    else:
        tangent = table.right_tangent_line_to_circle(circle)
    return Line.through_two_points(point, t1).intersect_line(tangent)


def hyperbolic_outer_step(
    table: HyperbolicPolygonTable, point: HyperPoint, reverse: bool = False
) -> HyperPoint:
    """Half-turn of ``point`` about its forward (or reverse) support vertex."""
    pivot = _pivot(table, point, reverse)
    return HyperIsometry.point_inversion(pivot).apply(point)


def outer_step(table: BilliardTable, point: Point, flavor: Flavor, reverse: bool = False) -> Point:
    if _is_hyperbolic(table):
        if flavor is Flavor.SYMPLECTIC:
            raise UnsupportedError("Symplectic outer billiards on hyperbolic tables")
        return hyperbolic_outer_step(table, point, reverse)
    if flavor is Flavor.SYMPLECTIC:
        return outer_symplectic_step(table, point, reverse)
    return outer_regular_step(table, point, reverse)


def iterate_outer(
    table: BilliardTable,
    start: Point,
    flavor: Flavor,
    iterations: int,
    reverse: bool = False,
) -> Orbit:
    """
    Apply the outer map up to ``iterations`` times.

    Stops early when the orbit returns to ``start``; a step with no defined
    answer ends the orbit and keeps what was computed.
    """
    if iterations < 0:
        raise ConstructionError(f"Iteration count must be non-negative, got {iterations}")
    if _is_hyperbolic(table) and flavor is Flavor.SYMPLECTIC:
        _LOGGER.warning("Symplectic outer billiards are not available on hyperbolic tables")
        return Orbit((start,), Outcome.UNSUPPORTED, reason="hyperbolic symplectic outer billiards")
    points = [start]
    point = start
    for _ in range(iterations):
        try:
            point = outer_step(table, point, flavor, reverse)
        except DomainError as exc:
            _LOGGER.debug("Outer orbit truncated after %d steps: %s", len(points) - 1, exc)
            return Orbit(tuple(points), Outcome.TRUNCATED, reason=str(exc))
        points.append(point)
        if point.equals(start):
            return Orbit(tuple(points), Outcome.PERIODIC, period=len(points) - 1)
    return Orbit(tuple(points), Outcome.COMPLETED)


# Inner billiards


def _tangent_at(table: BilliardTable, time: float) -> float:
    heading = table.tangent_heading(time)
    if heading is None:
        raise SingularPointError(f"No tangent at corner time {time}")
    return heading


def chord_state(table: BilliardTable, time_from: float, time_to: float) -> InnerState:
    """State of the chord running from ``point(time_from)`` to ``point(time_to)``."""
    tangent = _tangent_at(table, time_from)
    return InnerState(time_from, normalize_angle(table.chord_heading(time_from, time_to) - tangent, 0.0))


def _chord_end(table: BilliardTable, state: InnerState) -> float:
    return table.intersect(state.time, _tangent_at(table, state.time) + state.angle)


def inner_regular_step(table: BilliardTable, state: InnerState) -> InnerState:
    """Bounce the chord off the boundary by the reflection law."""
    t2 = _chord_end(table, state)
    tangent2 = _tangent_at(table, t2)
    heading_in = table.chord_heading(t2, state.time) + math.pi
    heading_out = 2.0 * tangent2 - heading_in
    return InnerState(t2, normalize_angle(heading_out - tangent2, 0.0))


def inner_symplectic_step(table: BilliardTable, state: InnerState) -> InnerState:
    """
    Next chord starts where the current one ends; its far end is cut by the
    line through the current start parallel to the tangent at the bounce.
    """
    if _is_hyperbolic(table):
        raise UnsupportedError("Symplectic inner billiards on hyperbolic tables")
    t1 = state.time
    t2 = _chord_end(table, state)
    tangent1 = _tangent_at(table, t1)
    tangent2 = _tangent_at(table, t2)
    t3 = table.intersect(t1, tangent1 + normalize_angle(tangent2 - tangent1, 0.0) % math.pi)
    return chord_state(table, t2, t3)


def _same_state(a: InnerState, b: InnerState) -> bool:
    same_time = close_enough(a.time, b.time) or close_enough(abs(a.time - b.time), 1.0)
    return same_time and close_enough(a.angle, b.angle)


def iterate_inner(table: BilliardTable, state: InnerState, flavor: Flavor, iterations: int) -> InnerOrbit:
    if iterations < 0:
        raise ConstructionError(f"Iteration count must be non-negative, got {iterations}")
    if not 0.0 <= state.angle <= math.pi:
        raise ConstructionError(f"Chord angle {state.angle} is outside [0, pi]")
    if _is_hyperbolic(table) and flavor is Flavor.SYMPLECTIC:
        _LOGGER.warning("Symplectic inner billiards are not available on hyperbolic tables")
        return InnerOrbit(
            (state,),
            (table.point(state.time),),
            Outcome.UNSUPPORTED,
            reason="hyperbolic symplectic inner billiards",
        )
    step = inner_symplectic_step if flavor is Flavor.SYMPLECTIC else inner_regular_step
    states = [state]
    current = state
    outcome = Outcome.COMPLETED
    period = None
    reason = None
    for _ in range(iterations):
        try:
            current = step(table, current)
        except DomainError as exc:
            _LOGGER.debug("Inner orbit truncated after %d bounces: %s", len(states) - 1, exc)
            outcome = Outcome.TRUNCATED
            reason = str(exc)
            break
        states.append(current)
        if _same_state(current, state):
            outcome = Outcome.PERIODIC
            period = len(states) - 1
            break
    points = tuple(table.point(s.time) for s in states)
    return InnerOrbit(tuple(states), points, outcome, period, reason)


__all__ = [
    "InnerOrbit",
    "InnerState",
    "Orbit",
    "chord_state",
    "fourth_circle",
    "hyperbolic_outer_step",
    "inner_regular_step",
    "inner_symplectic_step",
    "iterate_inner",
    "iterate_outer",
    "outer_regular_step",
    "outer_step",
    "outer_symplectic_step",
]
