from __future__ import annotations

from dataclasses import dataclass, field
import enum
import logging
from typing import Optional, Union

from affine_tables import (
    AffineFlexigonTable,
    AffinePolygonTable,
    AffineSemicircleTable,
    EllipseTable,
    StadiumTable,
)
from billiard_errors import ConstructionError, UnsupportedError
from hyperbolic_tables import HyperbolicPolygonTable

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Plane(enum.Enum):
    AFFINE = "affine"
    HYPERBOLIC = "hyperbolic"
    SPHERICAL = "spherical"


class Duality(enum.Enum):
    INNER = "inner"
    OUTER = "outer"


class Flavor(enum.Enum):
    REGULAR = "regular"
    SYMPLECTIC = "symplectic"


class TableShape(enum.Enum):
    POLYGON = "polygon"
    FLEXIGON = "flexigon"
    SEMICIRCLE = "semicircle"
    ELLIPSE = "ellipse"
    STADIUM = "stadium"


@dataclass(frozen=True)
class PolygonDetails:
    vertex_count: int = 3
    radius: float = 1.0


@dataclass(frozen=True)
class EllipseDetails:
    eccentricity: float = 0.75


@dataclass(frozen=True)
class StadiumDetails:
    length: float = 1.0
    radius: float = 0.5


@dataclass(frozen=True)
class FlexigonDetails:
    vertex_count: int = 3
    curvature: float = 0.5


@dataclass(frozen=True)
class BilliardsSettings:
    """Everything needed to build a table and run an orbit or a trace on it."""

    plane: Plane = Plane.AFFINE
    duality: Duality = Duality.OUTER
    flavor: Flavor = Flavor.REGULAR
    shape: TableShape = TableShape.POLYGON
    polygon: PolygonDetails = field(default_factory=PolygonDetails)
    ellipse: EllipseDetails = field(default_factory=EllipseDetails)
    stadium: StadiumDetails = field(default_factory=StadiumDetails)
    flexigon: FlexigonDetails = field(default_factory=FlexigonDetails)
    iterations: int = 1000
    generations: int = 5

    def __post_init__(self) -> None:
        if self.iterations < 0:
            raise ConstructionError(f"Iteration count must be non-negative, got {self.iterations}")
        if self.generations < 0:
            raise ConstructionError(f"Generation count must be non-negative, got {self.generations}")


Table = Union[
    AffinePolygonTable,
    AffineFlexigonTable,
    AffineSemicircleTable,
    EllipseTable,
    StadiumTable,
    HyperbolicPolygonTable,
]


def create_table(settings: BilliardsSettings) -> Table:
    """Build the table described by ``settings``.

    Raises ``UnsupportedError`` for plane/shape combinations that have no
    table and ``ConstructionError`` for invalid numeric parameters.
    """
    if settings.plane is Plane.SPHERICAL:
        raise UnsupportedError("Spherical tables are not supported")
    if settings.plane is Plane.HYPERBOLIC:
        if settings.shape is not TableShape.POLYGON:
            raise UnsupportedError(f"No hyperbolic {settings.shape.value} table")
        details = settings.polygon
        return HyperbolicPolygonTable.regular(details.vertex_count, details.radius)
    shape = settings.shape
    if shape is TableShape.POLYGON:
        return AffinePolygonTable.regular(settings.polygon.vertex_count, settings.polygon.radius)
    if shape is TableShape.FLEXIGON:
        return AffineFlexigonTable(settings.flexigon.vertex_count, settings.flexigon.curvature)
    if shape is TableShape.SEMICIRCLE:
        return AffineSemicircleTable()
    if shape is TableShape.ELLIPSE:
        return EllipseTable(settings.ellipse.eccentricity)
    if shape is TableShape.STADIUM:
        return StadiumTable(settings.stadium.length, settings.stadium.radius)
    raise UnsupportedError(f"Unknown table shape: {shape}")


def configure_logging(level: Union[int, str] = logging.INFO, fmt: Optional[str] = None) -> None:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    logging.basicConfig(level=level, format=fmt or LOG_FORMAT)
    _LOGGER.debug("Logging configured at level %s", logging.getLevelName(level))


__all__ = [
    "BilliardsSettings",
    "Duality",
    "EllipseDetails",
    "Flavor",
    "FlexigonDetails",
    "LOG_FORMAT",
    "Plane",
    "PolygonDetails",
    "StadiumDetails",
    "Table",
    "TableShape",
    "configure_logging",
    "create_table",
]
