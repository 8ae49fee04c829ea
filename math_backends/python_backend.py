from __future__ import annotations

import numpy as np


def _cross(sides: np.ndarray, offsets: np.ndarray) -> np.ndarray:
    return sides[None, :, 0] * offsets[..., 1] - sides[None, :, 1] * offsets[..., 0]


def outer_polygon_orbits(
    vertices: np.ndarray,
    starts: np.ndarray,
    iterations: int,
    reverse: bool = False,
) -> np.ndarray:
    """
    Regular outer billiard orbits of many starting points at once.

    ``vertices`` is an ``(n, 2)`` counterclockwise convex polygon and
    ``starts`` an ``(m, 2)`` array. Returns an ``(m, iterations + 1, 2)``
    array; once an orbit reaches a point with no unique support vertex the
    remaining rows are NaN.
    """
    v1 = np.asarray(vertices, dtype=np.float64)
    v2 = np.roll(v1, -1, axis=0)
    v3 = np.roll(v1, -2, axis=0)
    s2 = v2 - v1
    s3 = v3 - v2
    current = np.asarray(starts, dtype=np.float64).reshape(-1, 2).copy()
    out = np.full((len(current), iterations + 1, 2), np.nan)
    out[:, 0] = current
    with np.errstate(invalid="ignore"):
        for k in range(1, iterations + 1):
            p = current[:, None, :]
            if reverse:
                mask = (_cross(s2, p - v2[None]) > 0) & (_cross(s3, p - v3[None]) < 0)
            else:
                mask = (_cross(s2, p - v1[None]) < 0) & (_cross(s3, p - v2[None]) > 0)
            found = mask.any(axis=1)
            pivots = v2[mask.argmax(axis=1)]
            current = np.where(found[:, None], 2.0 * pivots - current, np.nan)
            out[:, k] = current
    return out
