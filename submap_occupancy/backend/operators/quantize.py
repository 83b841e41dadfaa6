"""
Canvas -> three-valued occupancy grid.

Rows are read bottom to top (grid row 0 is the canvas's last pixel row) and
columns left to right. Per pixel:

    color    = (word >> 16) & 0xFF
    observed = (word >> 8) & 0xFF
    observed == 0           -> -1 (unknown)
    p = round((1 - color/255) * 100), half away from zero, must lie in [0, 100]
    p > 50                  -> 100 (occupied)
    otherwise               -> 0 (free)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from submap_occupancy.common import constants
from submap_occupancy.backend.rendering import Canvas


@dataclass(frozen=True, eq=False)
class OccupancyGridData:
    """
    Occupancy grid payload.

    data: (width*height,) int8 row-major, values in {-1, 0, 100}.
    origin: position of cell (0, 0) in the map frame; orientation is identity.
    """

    width: int
    height: int
    resolution: float
    origin_x: float
    origin_y: float
    data: np.ndarray
    origin_z: float = 0.0

    def as_2d(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width)


def round_half_away_from_zero(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


def probability_percent(color: np.ndarray) -> np.ndarray:
    """Occupancy probability in percent from the intensity channel, as int64."""
    c = np.asarray(color, dtype=np.float64)
    return round_half_away_from_zero((1.0 - c / 255.0) * 100.0).astype(np.int64)


def classify_cells(color: np.ndarray, observed: np.ndarray) -> np.ndarray:
    """Vectorized per-pixel classification into int8 {-1, 0, 100}."""
    color = np.asarray(color)
    observed = np.asarray(observed)
    seen = observed != 0
    percent = probability_percent(color)
    bad = seen & ((percent < 0) | (percent > 100))
    if bad.any():
        raise RuntimeError(
            f"Occupancy probability out of [0, 100]: {int(percent[bad][0])} "
            f"({int(bad.sum())} cells); canvas buffer is corrupted"
        )
    cells = np.where(
        seen,
        np.where(percent > constants.OCCUPIED_THRESHOLD_PERCENT, constants.CELL_OCCUPIED, constants.CELL_FREE),
        constants.CELL_UNKNOWN,
    )
    return cells.astype(np.int8)


def quantize_canvas(canvas: Canvas, resolution: float) -> OccupancyGridData:
    """Quantize a composited canvas into an occupancy grid at `resolution` m/cell."""
    words = np.asarray(canvas.data, dtype=np.uint32)[::-1, :]
    color = (words >> 16) & 0xFF
    observed = (words >> 8) & 0xFF
    cells = classify_cells(color, observed)
    return OccupancyGridData(
        width=canvas.width,
        height=canvas.height,
        resolution=float(resolution),
        origin_x=-canvas.origin_x * resolution,
        origin_y=(-canvas.height + canvas.origin_y) * resolution,
        data=np.ascontiguousarray(cells).reshape(-1),
    )
