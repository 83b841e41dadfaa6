"""
Optional neighbourhood filters over a quantized occupancy grid.

None of these run unless a non-default DenoisePolicy is configured.

- local_sum: 3x3 local-sum rule, scanned row-major in place. Each window sum
  is accumulated into the centre cell itself, so the centre is read after it
  has already absorbed part of its window, and windows see neighbours that
  were rewritten earlier in the scan. Arithmetic wraps like the int8 wire
  type. Border cells are left untouched.
- local_sum_snapshot: the same rule with every window read from the
  unmodified input (cell value + its 3x3 window sum, no wrap). Order
  independent; vectorized with jax.numpy.
- majority_vote: 5x5 window clamped at the grid edges. A candidate cell
  becomes free when more than half of its window is confidently free
  (0 < v < threshold). Unlike the in-place rule it was derived from, every
  window is read from the unmodified input, so an earlier flip never changes
  a later vote and an isolated speck inside a free area is always cleared.

All functions take a (height, width) array and return a new int8 array.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
import math
from typing import Union

import numpy as np

from submap_occupancy.common import constants
from submap_occupancy.common.jax_init import jnp
from submap_occupancy.backend.operators.quantize import OccupancyGridData


class DenoisePolicy(str, Enum):
    NONE = "none"
    LOCAL_SUM = "local_sum"
    LOCAL_SUM_SNAPSHOT = "local_sum_snapshot"
    MAJORITY_VOTE = "majority_vote"


def _wrap_int8(v: int) -> int:
    return ((int(v) + 128) % 256) - 128


def _is_candidate(v, threshold: float):
    """Unknown or above threshold."""
    return (v < 0) | (v > threshold)


def local_sum_filter(grid: np.ndarray, threshold: float = constants.DENOISE_THRESHOLD_DEFAULT) -> np.ndarray:
    """Order-dependent 3x3 local-sum filter (see module docstring)."""
    src = np.asarray(grid, dtype=np.int8)
    if src.ndim != 2:
        raise ValueError(f"Expected a 2D grid, got shape {src.shape}")
    height, width = src.shape
    cells = src.astype(np.int64).tolist()
    occupied_floor = threshold * constants.LOCAL_SUM_OCCUPIED_FRACTION

    for y in range(1, height - 1):
        row = cells[y]
        for x in range(1, width - 1):
            if row[x] < 0 or row[x] > threshold:
                for i in range(y - 1, y + 2):
                    for j in range(x - 1, x + 2):
                        row[x] = _wrap_int8(row[x] + cells[i][j])
                v = math.trunc(row[x] / constants.LOCAL_SUM_DIVISOR)
                if v > occupied_floor:
                    row[x] = constants.CELL_OCCUPIED
                else:
                    row[x] = constants.CELL_FREE if v > 1 else constants.CELL_UNKNOWN
            else:
                row[x] = constants.CELL_FREE

    return np.asarray(cells, dtype=np.int8).reshape(height, width)


def local_sum_filter_snapshot(
    grid: np.ndarray, threshold: float = constants.DENOISE_THRESHOLD_DEFAULT
) -> np.ndarray:
    """Order-independent 3x3 local-sum filter over a snapshot of the input."""
    src = np.asarray(grid, dtype=np.int8)
    if src.ndim != 2:
        raise ValueError(f"Expected a 2D grid, got shape {src.shape}")
    height, width = src.shape
    if height < 3 or width < 3:
        return src.copy()

    g = jnp.asarray(src, dtype=jnp.int64)
    centre = g[1:-1, 1:-1]
    window_sum = jnp.zeros_like(centre)
    for di in (-1, 0, 1):
        for dj in (-1, 0, 1):
            window_sum = window_sum + g[1 + di:height - 1 + di, 1 + dj:width - 1 + dj]
    total = centre + window_sum
    # C-style division truncates toward zero
    scaled = jnp.sign(total) * (jnp.abs(total) // constants.LOCAL_SUM_DIVISOR)
    occupied_floor = threshold * constants.LOCAL_SUM_OCCUPIED_FRACTION
    candidate_value = jnp.where(
        scaled > occupied_floor,
        constants.CELL_OCCUPIED,
        jnp.where(scaled > 1, constants.CELL_FREE, constants.CELL_UNKNOWN),
    )
    interior = jnp.where(_is_candidate(centre, threshold), candidate_value, constants.CELL_FREE)

    out = src.copy()
    out[1:-1, 1:-1] = np.asarray(interior, dtype=np.int8)
    return out


def majority_vote_filter(
    grid: np.ndarray,
    threshold: float = constants.DENOISE_THRESHOLD_DEFAULT,
    radius: int = constants.MAJORITY_VOTE_RADIUS,
) -> np.ndarray:
    """Clamped-window majority vote (see module docstring)."""
    src = np.asarray(grid, dtype=np.int8)
    if src.ndim != 2:
        raise ValueError(f"Expected a 2D grid, got shape {src.shape}")
    height, width = src.shape
    if src.size == 0:
        return src.copy()
    values = src.astype(np.int64)

    confident_free = ((values > 0) & (values < threshold)).astype(np.int64)
    integral = np.zeros((height + 1, width + 1), dtype=np.int64)
    integral[1:, 1:] = confident_free.cumsum(axis=0).cumsum(axis=1)

    rows = np.arange(height)
    cols = np.arange(width)
    y0 = np.clip(rows - radius, 0, height)[:, None]
    y1 = np.clip(rows + radius + 1, 0, height)[:, None]
    x0 = np.clip(cols - radius, 0, width)[None, :]
    x1 = np.clip(cols + radius + 1, 0, width)[None, :]

    free_count = integral[y1, x1] - integral[y0, x1] - integral[y1, x0] + integral[y0, x0]
    window_count = (y1 - y0) * (x1 - x0)

    voted = np.where(
        free_count > window_count // 2,
        constants.CELL_FREE,
        np.where(values > 0, constants.CELL_OCCUPIED, constants.CELL_UNKNOWN),
    )
    out = np.where(_is_candidate(values, threshold), voted, constants.CELL_FREE)
    return out.astype(np.int8)


def apply_denoise(
    grid: OccupancyGridData,
    policy: Union[DenoisePolicy, str] = DenoisePolicy.NONE,
    threshold: float = constants.DENOISE_THRESHOLD_DEFAULT,
) -> OccupancyGridData:
    """Run the selected filter on a grid; NONE returns the grid unchanged."""
    policy = DenoisePolicy(policy)
    if policy is DenoisePolicy.NONE:
        return grid
    cells = grid.as_2d()
    if policy is DenoisePolicy.LOCAL_SUM:
        filtered = local_sum_filter(cells, threshold)
    elif policy is DenoisePolicy.LOCAL_SUM_SNAPSHOT:
        filtered = local_sum_filter_snapshot(cells, threshold)
    else:
        filtered = majority_vote_filter(cells, threshold)
    return replace(grid, data=np.ascontiguousarray(filtered).reshape(-1))
