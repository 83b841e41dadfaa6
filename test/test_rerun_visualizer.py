"""
Tests for the Rerun occupancy grid image conversion.
"""

import numpy as np

from submap_occupancy.backend.operators.quantize import OccupancyGridData
from submap_occupancy.backend.rerun_visualizer import (
    FREE_WHITE,
    OCCUPIED_BLACK,
    UNKNOWN_GREY,
    RerunVisualizer,
    occupancy_grid_to_rgb,
)


def _grid(rows):
    cells = np.asarray(rows, dtype=np.int8)
    h, w = cells.shape
    return OccupancyGridData(
        width=w, height=h, resolution=0.05, origin_x=0.0, origin_y=0.0, data=cells.reshape(-1)
    )


class TestOccupancyGridToRgb:
    def test_colours_and_flip(self):
        # Grid row 0 is the bottom of the map, so it becomes the last image row.
        image = occupancy_grid_to_rgb(_grid([[0, 100], [-1, -1]]))
        assert image.shape == (2, 2, 3)
        assert image.dtype == np.uint8
        assert image[1, 0].tolist() == [FREE_WHITE] * 3
        assert image[1, 1].tolist() == [OCCUPIED_BLACK] * 3
        assert image[0].tolist() == [[UNKNOWN_GREY] * 3] * 2


class TestRerunVisualizer:
    def test_inactive_until_init(self):
        viz = RerunVisualizer()
        assert not viz.active
        # No-op without an initialized recording.
        viz.log_occupancy_grid(_grid([[0]]), 1.0)
