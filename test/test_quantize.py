"""
Tests for canvas quantization into a three-valued occupancy grid.
"""

import numpy as np
import pytest

from submap_occupancy.common import constants
from submap_occupancy.common.pixels import CellPixel, pack_cell, rgba_to_word
from submap_occupancy.backend.operators.quantize import (
    classify_cells,
    probability_percent,
    quantize_canvas,
    round_half_away_from_zero,
)
from submap_occupancy.backend.rendering import Canvas


def _seen(intensity):
    return pack_cell(CellPixel(alpha=255, intensity=intensity, observed=255))


BACKGROUND = rgba_to_word(*constants.CANVAS_BACKGROUND_RGBA)


class TestProbability:
    def test_round_half_away_from_zero(self):
        out = round_half_away_from_zero(np.array([0.5, 1.5, 2.5, -0.5, -2.5, 2.4]))
        assert out.tolist() == [1.0, 2.0, 3.0, -1.0, -3.0, 2.0]

    def test_extremes(self):
        assert probability_percent(np.array([0, 255])).tolist() == [100, 0]

    def test_threshold_boundary(self):
        # 126 -> 50.59 -> 51 (occupied); 127 -> 50.2 -> 50; 128 -> 49.8 -> 50 (free)
        assert probability_percent(np.array([126, 127, 128])).tolist() == [51, 50, 50]
        cells = classify_cells(np.array([126, 127, 128]), np.array([255, 255, 255]))
        assert cells.tolist() == [100, 0, 0]

    def test_unobserved_is_unknown(self):
        cells = classify_cells(np.array([0, 255]), np.array([0, 0]))
        assert cells.tolist() == [-1, -1]

    def test_out_of_range_probability_is_fatal(self):
        with pytest.raises(RuntimeError, match="out of"):
            classify_cells(np.array([-10]), np.array([255]))

    def test_out_of_range_ignored_when_unobserved(self):
        assert classify_cells(np.array([-10]), np.array([0])).tolist() == [-1]


class TestQuantizeCanvas:
    def test_vertical_flip(self):
        # Canvas top-left pixel lands in the last grid row, first column.
        data = np.full((2, 3), BACKGROUND, dtype=np.uint32)
        data[0, 0] = _seen(0)
        grid = quantize_canvas(Canvas(data=data, origin_x=0.0, origin_y=0.0), 0.05)
        cells = grid.as_2d()
        assert cells.shape == (2, 3)
        assert cells[1, 0] == constants.CELL_OCCUPIED
        assert int((cells == constants.CELL_UNKNOWN).sum()) == 5

    def test_row_major_layout(self):
        data = np.full((2, 3), BACKGROUND, dtype=np.uint32)
        data[1, 2] = _seen(255)
        grid = quantize_canvas(Canvas(data=data, origin_x=0.0, origin_y=0.0), 0.05)
        assert grid.data.dtype == np.int8
        assert grid.data.shape == (6,)
        # Bottom canvas row is grid row 0.
        assert grid.data[2] == constants.CELL_FREE

    def test_origin(self):
        data = np.full((12, 10), BACKGROUND, dtype=np.uint32)
        grid = quantize_canvas(Canvas(data=data, origin_x=7.0, origin_y=5.0), 0.05)
        assert (grid.width, grid.height) == (10, 12)
        assert grid.resolution == pytest.approx(0.05)
        assert grid.origin_x == pytest.approx(-0.35)
        assert grid.origin_y == pytest.approx(-0.35)
        assert grid.origin_z == 0.0
