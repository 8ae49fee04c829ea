from __future__ import annotations

import importlib.util
import logging

import numpy as np

from math_backends import python_backend

_LOGGER = logging.getLogger(__name__)

NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None
if NUMBA_AVAILABLE:
    import numba


if NUMBA_AVAILABLE:

    @numba.njit(cache=True)
    def _outer_polygon_orbits_numba(
        vx: np.ndarray,
        vy: np.ndarray,
        sx: np.ndarray,
        sy: np.ndarray,
        iterations: int,
        reverse: bool,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = len(vx)
        m = len(sx)
        out_x = np.full((m, iterations + 1), np.nan)
        out_y = np.full((m, iterations + 1), np.nan)
        for j in range(m):
            px = sx[j]
            py = sy[j]
            out_x[j, 0] = px
            out_y[j, 0] = py
            for k in range(1, iterations + 1):
                pivot = -1
                for i in range(n):
                    i2 = (i + 1) % n
                    i3 = (i + 2) % n
                    s2x = vx[i2] - vx[i]
                    s2y = vy[i2] - vy[i]
                    s3x = vx[i3] - vx[i2]
                    s3y = vy[i3] - vy[i2]
                    if reverse:
                        a = s2x * (py - vy[i2]) - s2y * (px - vx[i2])
                        b = s3x * (py - vy[i3]) - s3y * (px - vx[i3])
                        hit = a > 0.0 and b < 0.0
                    else:
                        a = s2x * (py - vy[i]) - s2y * (px - vx[i])
                        b = s3x * (py - vy[i2]) - s3y * (px - vx[i2])
                        hit = a < 0.0 and b > 0.0
                    if hit:
                        pivot = i2
                        break
                if pivot < 0:
                    break
                px = 2.0 * vx[pivot] - px
                py = 2.0 * vy[pivot] - py
                out_x[j, k] = px
                out_y[j, k] = py
        return out_x, out_y


def outer_polygon_orbits(
    vertices: np.ndarray,
    starts: np.ndarray,
    iterations: int,
    reverse: bool = False,
) -> np.ndarray:
    if not NUMBA_AVAILABLE:
        _LOGGER.warning("numba is not installed; using the python backend")
        return python_backend.outer_polygon_orbits(vertices, starts, iterations, reverse)
    v = np.ascontiguousarray(vertices, dtype=np.float64)
    s = np.ascontiguousarray(np.asarray(starts, dtype=np.float64).reshape(-1, 2))
    out_x, out_y = _outer_polygon_orbits_numba(
        np.ascontiguousarray(v[:, 0]),
        np.ascontiguousarray(v[:, 1]),
        np.ascontiguousarray(s[:, 0]),
        np.ascontiguousarray(s[:, 1]),
        int(iterations),
        bool(reverse),
    )
    return np.stack((out_x, out_y), axis=-1)
