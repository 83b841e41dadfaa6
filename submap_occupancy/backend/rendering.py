"""
Submap rendering: ARGB32 canvas, drawing transform stack, two-pass compositing.

Backend output: given cached tiles (textures + poses) produce one canvas in
output-grid pixels. Two passes share the same transform stack:

(1) Bounding box: push every tile's transform over a throwaway 1x1 probe
    surface and map the four texture corners through user_to_device. The box
    is analytic; nothing is rasterized.
(2) Composite: allocate ceil(box) + 2*padding, paint the background, translate
    so the box minimum (plus padding) lands at the canvas origin, then paint
    every tile in ascending identity order with premultiplied source-over.

Sampling is nearest-neighbour at device pixel centres; outside a texture the
source is transparent.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from submap_occupancy.common import constants
from submap_occupancy.common.pixels import join_argb, rgba_to_word, split_argb
from submap_occupancy.common.transforms.rigid import (
    scale_affine,
    tile_affine,
    translate_affine,
)
from submap_occupancy.backend.structures.tile_cache import TileId, TileState


# -----------------------------------------------------------------------------
# Surface and compositing
# -----------------------------------------------------------------------------


class ImageSurface:
    """ARGB32 image surface backed by a (height, width) uint32 array."""

    def __init__(self, width: int, height: int) -> None:
        width = int(width)
        height = int(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface creation failed: invalid size {width}x{height}")
        self.data = np.zeros((height, width), dtype=np.uint32)

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def stride(self) -> int:
        return self.data.strides[0]


def _mul_un8(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Rounded a*b/255 for 8-bit channels."""
    t = a * b + 0x80
    return ((t >> 8) + t) >> 8


def composite_over(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """
    Premultiplied source-over on packed words: dst' = src + dst * (1 - src_a).

    Channel sums saturate at 255.
    """
    sa, sr, sg, sb = split_argb(src)
    da, dr, dg, db = split_argb(dst)
    ia = 255 - sa
    out = [
        np.minimum(s + _mul_un8(d, ia), 255)
        for s, d in ((sa, da), (sr, dr), (sg, dg), (sb, db))
    ]
    return join_argb(*out)


class DrawingContext:
    """
    Transform stack over an ImageSurface.

    The current transformation matrix (CTM) maps user coordinates to device
    pixels. translate/scale/transform post-multiply the CTM, so the most
    recently applied transform acts first on user coordinates.
    """

    def __init__(self, surface: ImageSurface) -> None:
        self._surface = surface
        self._matrix = np.eye(3, dtype=np.float64)
        self._saved: List[np.ndarray] = []

    @property
    def surface(self) -> ImageSurface:
        return self._surface

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    def save(self) -> None:
        self._saved.append(self._matrix.copy())

    def restore(self) -> None:
        if not self._saved:
            raise RuntimeError("restore() without matching save()")
        self._matrix = self._saved.pop()

    def transform(self, affine: np.ndarray) -> None:
        self._matrix = self._matrix @ np.asarray(affine, dtype=np.float64)

    def translate(self, tx: float, ty: float) -> None:
        self.transform(translate_affine(tx, ty))

    def scale(self, sx: float, sy: float) -> None:
        self.transform(scale_affine(sx, sy))

    def user_to_device(self, x: float, y: float) -> Tuple[float, float]:
        m = self._matrix
        return (
            float(m[0, 0] * x + m[0, 1] * y + m[0, 2]),
            float(m[1, 0] * x + m[1, 1] * y + m[1, 2]),
        )

    def paint_rgba(self, red: float, green: float, blue: float, alpha: float) -> None:
        """Paint a solid colour over the whole surface."""
        data = self._surface.data
        word = np.full(data.shape, rgba_to_word(red, green, blue, alpha), dtype=np.uint32)
        data[...] = composite_over(word, data)

    def paint_raster(self, raster: np.ndarray) -> None:
        """Paint a (h, w) ARGB32 raster placed at user (0, 0) under the CTM."""
        src = np.asarray(raster, dtype=np.uint32)
        h, w = src.shape
        data = self._surface.data
        H, W = data.shape

        # Device-space extent of the raster, clipped to the surface.
        corners = self._matrix @ np.array(
            [[0.0, w, 0.0, w], [0.0, 0.0, h, h], [1.0, 1.0, 1.0, 1.0]]
        )
        x0 = max(int(math.floor(corners[0].min())), 0)
        x1 = min(int(math.ceil(corners[0].max())), W)
        y0 = max(int(math.floor(corners[1].min())), 0)
        y1 = min(int(math.ceil(corners[1].max())), H)
        if x0 >= x1 or y0 >= y1:
            return

        inv = np.linalg.inv(self._matrix)
        ys, xs = np.mgrid[y0:y1, x0:x1]
        px = xs + 0.5
        py = ys + 0.5
        u = np.floor(inv[0, 0] * px + inv[0, 1] * py + inv[0, 2]).astype(np.int64)
        v = np.floor(inv[1, 0] * px + inv[1, 1] * py + inv[1, 2]).astype(np.int64)
        inside = (u >= 0) & (u < w) & (v >= 0) & (v < h)
        if not inside.any():
            return

        region = data[y0:y1, x0:x1]
        region[inside] = composite_over(src[v[inside], u[inside]], region[inside])


# -----------------------------------------------------------------------------
# Per-tile transform stack
# -----------------------------------------------------------------------------


TileList = Sequence[Tuple[TileId, TileState]]


def draw_each_tile(
    scale: float,
    tiles: TileList,
    ctx: DrawingContext,
    draw_callback: Callable[[TileState], None],
) -> None:
    """
    Apply the canvas scale, then for every tile with a raster push its
    texture-pixel -> canvas transform and call draw_callback.

    Tiles without a raster are skipped.
    """
    ctx.scale(scale, scale)
    for _tile_id, state in tiles:
        if not state.has_raster:
            continue
        ctx.save()
        ctx.transform(tile_affine(state.pose, state.slice_pose, state.resolution))
        draw_callback(state)
        ctx.restore()


# -----------------------------------------------------------------------------
# Pass 1: bounding box
# -----------------------------------------------------------------------------


class BoundingBox:
    """Axis-aligned 2D box; starts empty and grows with extend()."""

    def __init__(self) -> None:
        self.min_x = math.inf
        self.min_y = math.inf
        self.max_x = -math.inf
        self.max_y = -math.inf

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    def extend(self, x: float, y: float) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def __repr__(self) -> str:
        return (
            f"BoundingBox(min=({self.min_x:.3f}, {self.min_y:.3f}), "
            f"max=({self.max_x:.3f}, {self.max_y:.3f}))"
        )


def compute_bounding_box(tiles: TileList, scale: float) -> Optional[BoundingBox]:
    """Canvas-pixel bounding box of all tiles with a raster, or None if there are none."""
    box = BoundingBox()
    ctx = DrawingContext(ImageSurface(1, 1))

    def update_bounding_box(x: float, y: float) -> None:
        box.extend(*ctx.user_to_device(x, y))

    def extend_by_corners(state: TileState) -> None:
        update_bounding_box(0.0, 0.0)
        update_bounding_box(float(state.width), 0.0)
        update_bounding_box(0.0, float(state.height))
        update_bounding_box(float(state.width), float(state.height))

    draw_each_tile(scale, tiles, ctx, extend_by_corners)
    if box.is_empty:
        return None
    return box


# -----------------------------------------------------------------------------
# Pass 2: composite
# -----------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Canvas:
    """
    Composited canvas for one cycle.

    data: (height, width) uint32 ARGB32 words, top row first.
    origin_x, origin_y: canvas pixel of the drawing origin (box min + padding).
    """

    data: np.ndarray
    origin_x: float
    origin_y: float

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]


def composite_tiles(
    tiles: TileList,
    scale: float,
    box: BoundingBox,
    padding: int = constants.CANVAS_PADDING_PX,
) -> Canvas:
    """Paint all tiles with a raster onto a freshly sized canvas."""
    width = int(math.ceil(box.width)) + 2 * padding
    height = int(math.ceil(box.height)) + 2 * padding
    origin_x = -box.min_x + padding
    origin_y = -box.min_y + padding

    surface = ImageSurface(width, height)
    ctx = DrawingContext(surface)
    ctx.paint_rgba(*constants.CANVAS_BACKGROUND_RGBA)
    ctx.translate(origin_x, origin_y)
    draw_each_tile(scale, tiles, ctx, lambda state: ctx.paint_raster(state.raster))
    return Canvas(data=surface.data, origin_x=origin_x, origin_y=origin_y)


def render_tiles(
    tiles: TileList,
    resolution: float,
    padding: int = constants.CANVAS_PADDING_PX,
) -> Optional[Canvas]:
    """Both passes at output resolution; None if no tile has a raster."""
    scale = 1.0 / resolution
    box = compute_bounding_box(tiles, scale)
    if box is None:
        return None
    return composite_tiles(tiles, scale, box, padding=padding)
