"""
Grid operators.

quantize: canvas -> {-1, 0, 100} occupancy grid.
denoise: optional neighbourhood filters, off by default.
"""

from submap_occupancy.backend.operators.quantize import (
    OccupancyGridData,
    classify_cells,
    probability_percent,
    quantize_canvas,
)

__all__ = [
    "OccupancyGridData",
    "classify_cells",
    "probability_percent",
    "quantize_canvas",
]
