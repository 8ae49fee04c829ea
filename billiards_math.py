from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Sequence

import numpy as np

from affine_tables import AffinePolygonTable
from complex_number import Complex
from math_backends import numba_backend, python_backend

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MathBackend:
    name: str
    label: str
    available: bool
    generator: Callable


_BACKENDS: dict[str, MathBackend] = {}
_ACTIVE_BACKEND = "python"


def register_backend(backend: MathBackend) -> None:
    _BACKENDS[backend.name] = backend


def list_backends(*, available_only: bool = False) -> list[MathBackend]:
    backends = list(_BACKENDS.values())
    if available_only:
        backends = [b for b in backends if b.available]
    return sorted(backends, key=lambda b: b.name)


def get_backend_name() -> str:
    return _ACTIVE_BACKEND


def set_backend(name: str) -> None:
    backend = _BACKENDS.get(name)
    if backend is None:
        raise ValueError(f"Unknown math backend: {name}")
    if not backend.available:
        raise ValueError(f"Math backend not available: {name}")
    global _ACTIVE_BACKEND
    _ACTIVE_BACKEND = backend.name
    _LOGGER.debug("Math backend set to %s", name)


def polygon_array(table: AffinePolygonTable) -> np.ndarray:
    return np.array([v.to_tuple() for v in table.vertices], dtype=np.float64)


def outer_orbit_array(
    table: AffinePolygonTable,
    starts: Sequence[Complex],
    iterations: int,
    reverse: bool = False,
) -> np.ndarray:
    """Regular outer orbits of ``starts`` as an ``(m, iterations + 1, 2)`` array, NaN after a singularity."""
    if iterations < 0:
        raise ValueError(f"Iteration count must be non-negative, got {iterations}")
    backend = _BACKENDS.get(_ACTIVE_BACKEND)
    if backend is None:
        raise ValueError(f"Unknown math backend: {_ACTIVE_BACKEND}")
    start_array = np.array([p.to_tuple() for p in starts], dtype=np.float64).reshape(-1, 2)
    return backend.generator(polygon_array(table), start_array, iterations, reverse)


def outer_point_cloud(
    table: AffinePolygonTable,
    starts: Sequence[Complex],
    iterations: int,
    reverse: bool = False,
) -> np.ndarray:
    """Every finite orbit point of ``starts`` flattened into an ``(k, 2)`` array."""
    points = outer_orbit_array(table, starts, iterations, reverse).reshape(-1, 2)
    return points[~np.isnan(points).any(axis=1)]


register_backend(
    MathBackend(
        name="python",
        label="Python",
        available=True,
        generator=python_backend.outer_polygon_orbits,
    )
)
register_backend(
    MathBackend(
        name="numba",
        label="Numba",
        available=numba_backend.NUMBA_AVAILABLE,
        generator=numba_backend.outer_polygon_orbits,
    )
)


__all__ = [
    "MathBackend",
    "get_backend_name",
    "list_backends",
    "outer_orbit_array",
    "outer_point_cloud",
    "polygon_array",
    "register_backend",
    "set_backend",
]
