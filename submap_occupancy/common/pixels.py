"""
Packed ARGB32 pixels carrying submap texture cells.

A texture cell travels through compositing as one premultiplied ARGB32 word:

    word = (alpha << 24) | (intensity << 16) | (observed << 8) | 0

Intensity uses the red channel; the green channel tracks whether the cell
was ever observed. The layout is the rasterizer's native word layout, so a
(height, width) uint32 array is directly a surface buffer.
"""

from __future__ import annotations

from typing import NamedTuple, Tuple

import numpy as np

from submap_occupancy.common import constants


class CellPixel(NamedTuple):
    alpha: int
    intensity: int
    observed: int


def observed_flag(intensity: int, alpha: int) -> int:
    """0 iff the cell was never seen (intensity == 0 and alpha == 0), else 255."""
    if intensity == 0 and alpha == 0:
        return constants.OBSERVED_FLAG_UNSEEN
    return constants.OBSERVED_FLAG_SEEN


def pack_cell(cell: CellPixel) -> int:
    return (
        ((int(cell.alpha) & 0xFF) << 24)
        | ((int(cell.intensity) & 0xFF) << 16)
        | ((int(cell.observed) & 0xFF) << 8)
    )


def unpack_cell(word: int) -> CellPixel:
    word = int(word)
    return CellPixel(
        alpha=(word >> 24) & 0xFF,
        intensity=(word >> 16) & 0xFF,
        observed=(word >> 8) & 0xFF,
    )


def pack_texture_cells(intensity: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Vectorized pack of per-cell (intensity, alpha) into ARGB32 words (uint32)."""
    i = np.asarray(intensity, dtype=np.uint32)
    a = np.asarray(alpha, dtype=np.uint32)
    if i.shape != a.shape:
        raise ValueError(f"intensity/alpha shape mismatch: {i.shape} vs {a.shape}")
    observed = np.where(
        (i == 0) & (a == 0),
        np.uint32(constants.OBSERVED_FLAG_UNSEEN),
        np.uint32(constants.OBSERVED_FLAG_SEEN),
    ).astype(np.uint32)
    return (a << 24) | (i << 16) | (observed << 8)


def split_argb(words: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """(a, r, g, b) channel arrays (uint32) from packed words."""
    w = np.asarray(words, dtype=np.uint32)
    return (w >> 24) & 0xFF, (w >> 16) & 0xFF, (w >> 8) & 0xFF, w & 0xFF


def join_argb(a: np.ndarray, r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    a = np.asarray(a, dtype=np.uint32)
    r = np.asarray(r, dtype=np.uint32)
    g = np.asarray(g, dtype=np.uint32)
    b = np.asarray(b, dtype=np.uint32)
    return (a << 24) | (r << 16) | (g << 8) | b


def color_to_byte(value: float) -> int:
    """[0, 1] colour component to 8 bits, rounding through 16 bits like cairo."""
    v = min(max(float(value), 0.0), 1.0)
    return int(v * 65535.0 + 0.5) >> 8


def rgba_to_word(red: float, green: float, blue: float, alpha: float) -> int:
    """Premultiplied ARGB32 word for a solid colour."""
    return int(
        join_argb(
            color_to_byte(alpha),
            color_to_byte(red * alpha),
            color_to_byte(green * alpha),
            color_to_byte(blue * alpha),
        )
    )
