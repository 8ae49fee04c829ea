"""Run billiard orbits and singularity traces from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

import billiards_math
from billiard_errors import BilliardsError, UnsupportedError
from billiard_orbits import InnerState, iterate_inner, iterate_outer
from billiard_settings import (
    BilliardsSettings,
    Duality,
    EllipseDetails,
    Flavor,
    FlexigonDetails,
    Plane,
    PolygonDetails,
    StadiumDetails,
    TableShape,
    configure_logging,
    create_table,
)
from billiard_singularities import trace_singularities
from complex_number import Complex
from hyperbolic import HyperGeodesic, HyperbolicModel, HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable

_LOGGER = logging.getLogger(__name__)

AFFINE_START = Complex(2.0, 0.0)
HYPERBOLIC_START = Complex(0.8, 0.1)


def _point(text: str) -> Complex:
    try:
        x, y = (float(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected 'x,y', got {text!r}") from None
    return Complex(x, y)


def _add_table_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--plane", choices=[p.value for p in Plane], default=Plane.AFFINE.value)
    parser.add_argument("--shape", choices=[s.value for s in TableShape], default=TableShape.POLYGON.value)
    parser.add_argument("--flavor", choices=[f.value for f in Flavor], default=Flavor.REGULAR.value)
    parser.add_argument("--vertices", type=int, default=PolygonDetails.vertex_count, help="Polygon/flexigon vertex count.")
    parser.add_argument("--radius", type=float, default=PolygonDetails.radius, help="Polygon circumradius.")
    parser.add_argument("--eccentricity", type=float, default=EllipseDetails.eccentricity)
    parser.add_argument("--stadium-length", type=float, default=StadiumDetails.length)
    parser.add_argument("--stadium-radius", type=float, default=StadiumDetails.radius)
    parser.add_argument("--curvature", type=float, default=FlexigonDetails.curvature, help="Flexigon arc curvature k.")
    parser.add_argument(
        "--model",
        choices=[m.value for m in HyperbolicModel],
        default=HyperbolicModel.POINCARE.value,
        help="Chart used to print hyperbolic coordinates.",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument(
        "--backend",
        choices=[b.name for b in billiards_math.list_backends(available_only=True)],
        default=billiards_math.get_backend_name(),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    orbit = sub.add_parser("orbit", help="Iterate an inner or outer billiard orbit.")
    _add_table_arguments(orbit)
    orbit.add_argument("--duality", choices=[d.value for d in Duality], default=Duality.OUTER.value)
    orbit.add_argument(
        "--start",
        type=_point,
        default=None,
        help="Outer start point 'x,y' (Poincare coordinates on the hyperbolic plane).",
    )
    orbit.add_argument("--start-time", type=float, default=0.1, help="Inner start time in [0, 1).")
    orbit.add_argument("--angle", type=float, default=1.0, help="Inner start angle from the tangent.")
    orbit.add_argument("--iterations", type=int, default=BilliardsSettings.iterations)
    orbit.add_argument("--reverse", action="store_true", help="Iterate the inverse outer map.")

    cloud = sub.add_parser("cloud", help="Point cloud of regular outer orbits on a polygon.")
    cloud.add_argument("--vertices", type=int, default=PolygonDetails.vertex_count)
    cloud.add_argument("--radius", type=float, default=PolygonDetails.radius)
    cloud.add_argument("--start", type=_point, action="append", required=True, help="Start point 'x,y'; repeatable.")
    cloud.add_argument("--iterations", type=int, default=BilliardsSettings.iterations)

    sing = sub.add_parser("singularities", help="Trace the singular set of the outer map.")
    _add_table_arguments(sing)
    sing.add_argument("--generations", type=int, default=BilliardsSettings.generations)
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> BilliardsSettings:
    return BilliardsSettings(
        plane=Plane(args.plane),
        duality=Duality(getattr(args, "duality", Duality.OUTER.value)),
        flavor=Flavor(args.flavor),
        shape=TableShape(args.shape),
        polygon=PolygonDetails(args.vertices, args.radius),
        ellipse=EllipseDetails(args.eccentricity),
        stadium=StadiumDetails(args.stadium_length, args.stadium_radius),
        flexigon=FlexigonDetails(args.vertices, args.curvature),
        iterations=getattr(args, "iterations", BilliardsSettings.iterations),
        generations=getattr(args, "generations", BilliardsSettings.generations),
    )


def _coords(point, model: HyperbolicModel) -> List[float]:
    if isinstance(point, HyperPoint):
        point = point.resolve(model)
    return list(point.to_tuple())


def run_orbit(args: argparse.Namespace) -> dict:
    settings = settings_from_args(args)
    table = create_table(settings)
    model = HyperbolicModel(args.model)
    if settings.duality is Duality.INNER:
        orbit = iterate_inner(table, InnerState(args.start_time, args.angle), settings.flavor, settings.iterations)
        extra = {"states": [[s.time, s.angle] for s in orbit.states]}
    else:
        start = args.start
        if isinstance(table, HyperbolicPolygonTable):
            start = HyperPoint.from_poincare(HYPERBOLIC_START if start is None else start)
        elif start is None:
            start = AFFINE_START
        orbit = iterate_outer(table, start, settings.flavor, settings.iterations, reverse=args.reverse)
        extra = {}
    result = {
        "outcome": orbit.outcome.value,
        "period": orbit.period,
        "reason": orbit.reason,
        "points": [_coords(p, model) for p in orbit.points],
    }
    result.update(extra)
    return result


def run_singularities(args: argparse.Namespace) -> dict:
    settings = settings_from_args(args)
    table = create_table(settings)
    model = HyperbolicModel(args.model)
    traced = trace_singularities(table, settings.flavor, settings.generations)
    pieces = []
    for piece in traced.pieces:
        if isinstance(piece, HyperGeodesic):
            pieces.append({"start": _coords(piece.start, model), "end": _coords(piece.end, model), "infinite": False})
        else:
            start, end, infinite = piece.to_tuple()
            pieces.append({"start": list(start), "end": list(end), "infinite": infinite})
    return {"outcome": traced.outcome.value, "generations": traced.generations, "pieces": pieces}


def run_cloud(args: argparse.Namespace) -> dict:
    table = create_table(BilliardsSettings(polygon=PolygonDetails(args.vertices, args.radius)))
    points = billiards_math.outer_point_cloud(table, args.start, args.iterations)
    return {"backend": billiards_math.get_backend_name(), "points": points.tolist()}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    billiards_math.set_backend(args.backend)
    try:
        if args.command == "orbit":
            result = run_orbit(args)
        elif args.command == "cloud":
            result = run_cloud(args)
        else:
            result = run_singularities(args)
    except UnsupportedError as exc:
        _LOGGER.error("Unsupported: %s", exc)
        return 2
    except BilliardsError as exc:
        _LOGGER.error("%s", exc)
        return 1
    json.dump(result, sys.stdout)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
