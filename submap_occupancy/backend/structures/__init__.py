"""
Data structures for submap occupancy.

TileCache is the only owner of per-submap state.
"""

from submap_occupancy.backend.structures.tile_cache import (
    FetchedTexture,
    SubmapEntry,
    SubmapListBatch,
    TileCache,
    TileFetchError,
    TileId,
    TileState,
    UpdateResult,
    build_raster,
    stride_for_width,
)

__all__ = [
    "FetchedTexture",
    "SubmapEntry",
    "SubmapListBatch",
    "TileCache",
    "TileFetchError",
    "TileId",
    "TileState",
    "UpdateResult",
    "build_raster",
    "stride_for_width",
]
