"""
Decoding of SubmapQuery texture cells.

`cells` is a gzip-compressed byte string of interleaved (intensity, alpha)
pairs, one pair per texture pixel, row-major.
"""

from __future__ import annotations

import gzip
from typing import Tuple

import numpy as np


def decode_texture_cells(
    compressed: bytes, width: int, height: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Inflate and de-interleave texture cells into (intensity, alpha) uint8 arrays."""
    raw = np.frombuffer(gzip.decompress(bytes(compressed)), dtype=np.uint8)
    if raw.size % 2 != 0:
        raise ValueError(f"Texture cells must hold (intensity, alpha) pairs, got {raw.size} bytes")
    expected = int(width) * int(height)
    if raw.size // 2 != expected:
        raise ValueError(
            f"Texture cell count {raw.size // 2} does not match {width}x{height}={expected}"
        )
    intensity = raw[0::2].copy()
    alpha = raw[1::2].copy()
    return intensity, alpha
