"""
Tests for the two-pass tile renderer.
"""

import math

import numpy as np
import pytest

from submap_occupancy.common import constants
from submap_occupancy.common.pixels import pack_cell, rgba_to_word, CellPixel
from submap_occupancy.common.transforms.rigid import Rigid3d
from submap_occupancy.backend.rendering import (
    DrawingContext,
    ImageSurface,
    composite_over,
    compute_bounding_box,
    render_tiles,
)
from submap_occupancy.backend.structures.tile_cache import TileId, TileState, build_raster

from conftest import make_texture


def _tile(pose, width, height, resolution=0.05, intensity=255, alpha=255):
    texture = make_texture(width, height, intensity=intensity, alpha=alpha, resolution=resolution)
    return TileState(
        width=width,
        height=height,
        version=1,
        resolution=resolution,
        slice_pose=Rigid3d.identity(),
        raster=build_raster(texture),
        pose=pose,
        metadata_version=1,
    )


class TestSurface:
    def test_invalid_size_rejected(self):
        with pytest.raises(ValueError, match="Surface creation failed"):
            ImageSurface(0, 5)

    def test_stride(self):
        assert ImageSurface(7, 3).stride == 28

    def test_restore_without_save(self):
        with pytest.raises(RuntimeError):
            DrawingContext(ImageSurface(1, 1)).restore()


class TestCompositeOver:
    def test_opaque_source_replaces(self):
        src = np.array([pack_cell(CellPixel(255, 10, 255))], dtype=np.uint32)
        dst = np.array([rgba_to_word(*constants.CANVAS_BACKGROUND_RGBA)], dtype=np.uint32)
        assert composite_over(src, dst).tolist() == src.tolist()

    def test_transparent_source_keeps_destination(self):
        src = np.array([0], dtype=np.uint32)
        dst = np.array([pack_cell(CellPixel(255, 77, 255))], dtype=np.uint32)
        assert composite_over(src, dst).tolist() == dst.tolist()

    def test_channel_sum_saturates(self):
        src = np.array([pack_cell(CellPixel(128, 255, 255))], dtype=np.uint32)
        dst = np.array([pack_cell(CellPixel(255, 255, 255))], dtype=np.uint32)
        out = composite_over(src, dst)
        assert int(out[0]) >> 24 == 255
        assert (int(out[0]) >> 16) & 0xFF == 255


class TestBoundingBox:
    def test_no_raster_returns_none(self):
        state = TileState(pose=Rigid3d.identity())
        assert compute_bounding_box([(TileId(0, 0), state)], 20.0) is None
        assert render_tiles([(TileId(0, 0), state)], 0.05) is None

    def test_empty_tile_list(self):
        assert compute_bounding_box([], 20.0) is None

    def test_quarter_turn_tile(self):
        # Device coordinates: x = 2u + 20, y = 2v - 40
        pose = Rigid3d.from_yaw(1.0, 2.0, math.pi / 2)
        tiles = [(TileId(0, 0), _tile(pose, 4, 2, resolution=0.1))]
        box = compute_bounding_box(tiles, 1.0 / 0.05)
        assert box.min_x == pytest.approx(20.0)
        assert box.max_x == pytest.approx(28.0)
        assert box.min_y == pytest.approx(-40.0)
        assert box.max_y == pytest.approx(-36.0)

    def test_union_of_rotated_and_translated_tiles(self):
        rotated = Rigid3d.from_yaw(0.0, 0.0, math.pi / 4)
        shifted = Rigid3d.from_xyz_quat((1.0, 0.0, 0.0))
        tiles = [
            (TileId(0, 0), _tile(rotated, 10, 10)),
            (TileId(0, 1), _tile(shifted, 10, 10)),
        ]
        half_diag = 10.0 / math.sqrt(2.0)
        box = compute_bounding_box(tiles, 1.0 / 0.05)
        assert box.min_x == pytest.approx(-half_diag)
        assert box.max_x == pytest.approx(20.0)
        assert box.min_y == pytest.approx(0.0, abs=1e-9)
        assert box.max_y == pytest.approx(2.0 * half_diag)

        canvas = render_tiles(tiles, 0.05)
        assert canvas.width == 28 + 2 * constants.CANVAS_PADDING_PX
        assert canvas.height == 15 + 2 * constants.CANVAS_PADDING_PX
        assert canvas.origin_x == pytest.approx(half_diag + constants.CANVAS_PADDING_PX)

    def test_raster_less_tile_skipped_not_aborting(self):
        tiles = [
            (TileId(0, 0), TileState(pose=Rigid3d.identity())),
            (TileId(0, 1), _tile(Rigid3d.identity(), 2, 2)),
        ]
        box = compute_bounding_box(tiles, 20.0)
        assert box is not None
        assert box.width == pytest.approx(2.0)


class TestComposite:
    def test_identity_tile_placement(self):
        tiles = [(TileId(0, 0), _tile(Rigid3d.identity(), 2, 2, intensity=0))]
        canvas = render_tiles(tiles, 0.05)
        assert (canvas.width, canvas.height) == (12, 12)
        assert canvas.origin_x == pytest.approx(7.0)
        assert canvas.origin_y == pytest.approx(5.0)

        background = rgba_to_word(*constants.CANVAS_BACKGROUND_RGBA)
        tile_word = pack_cell(CellPixel(255, 0, 255))
        painted = np.argwhere(canvas.data == tile_word)
        assert sorted(map(tuple, painted.tolist())) == [(5, 5), (5, 6), (6, 5), (6, 6)]
        assert int((canvas.data == background).sum()) == 12 * 12 - 4

    def test_higher_identity_painted_last(self):
        # Same footprint; the larger TileId wins regardless of input order.
        lower = _tile(Rigid3d.identity(), 2, 2, intensity=255)
        higher = _tile(Rigid3d.identity(), 2, 2, intensity=0)
        tiles = sorted([(TileId(0, 1), higher), (TileId(0, 0), lower)])
        canvas = render_tiles(tiles, 0.05)
        assert int(canvas.data[5, 5]) == pack_cell(CellPixel(255, 0, 255))

    def test_unseen_cells_leave_background(self):
        tiles = [(TileId(0, 0), _tile(Rigid3d.identity(), 2, 2, intensity=0, alpha=0))]
        canvas = render_tiles(tiles, 0.05)
        background = rgba_to_word(*constants.CANVAS_BACKGROUND_RGBA)
        assert bool((canvas.data == background).all())
