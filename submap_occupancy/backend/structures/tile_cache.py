"""
TileCache: versioned cache of submap textures and poses.

Each submap ("tile") is identified by (trajectory_id, submap_index). The cache
keeps, per tile:
- Metadata: global pose and metadata version, refreshed on every batch
- Texture: size, content version, slice pose, resolution and the packed
  ARGB32 raster, replaced wholesale when the content version changes

Tiles are created on first mention and never evicted. States are frozen
dataclasses swapped in one dict assignment, so a reader never observes a
half-updated tile.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from submap_occupancy.common import constants
from submap_occupancy.common import runtime_counters
from submap_occupancy.common.pixels import pack_texture_cells
from submap_occupancy.common.transforms.rigid import Rigid3d

_logger = logging.getLogger(__name__)


# =============================================================================
# Identity and ingress types
# =============================================================================


class TileId(NamedTuple):
    """Globally unique tile identity; tuple ordering gives iteration order."""

    trajectory_id: int
    submap_index: int


@dataclass(frozen=True)
class SubmapEntry:
    """One tile descriptor from a metadata batch."""

    tile_id: TileId
    version: int
    pose: Rigid3d


@dataclass(frozen=True)
class SubmapListBatch:
    """
    Tile metadata batch plus the header it arrived with.

    The header stamp is kept as integer (sec, nanosec) so it reaches the
    published grid bit-exact.
    """

    stamp_sec: int
    stamp_nanosec: int
    frame_id: str
    entries: Tuple[SubmapEntry, ...] = ()


@dataclass(frozen=True, eq=False)
class FetchedTexture:
    """
    Texture returned by the fetch collaborator.

    intensity/alpha: (width*height,) uint8, row-major.
    stride: declared row stride in bytes; None means the packed default.
    """

    width: int
    height: int
    version: int
    slice_pose: Rigid3d
    resolution: float
    intensity: np.ndarray
    alpha: np.ndarray
    stride: Optional[int] = None


class TileFetchError(RuntimeError):
    """Transient or not-found failure fetching one tile's texture."""


TileFetcher = Callable[[TileId], Optional[FetchedTexture]]


# =============================================================================
# Tile state
# =============================================================================


@dataclass(frozen=True, eq=False)
class TileState:
    """
    Cached state of one tile.

    Attributes:
        width, height: raster size in pixels (0 until first fetch)
        version: texture content version (-1 until first fetch)
        resolution: meters per texture pixel
        slice_pose: texture frame -> tile frame
        raster: (height, width) uint32 ARGB32 words, read-only, or None
        pose: tile frame -> map frame
        metadata_version: latest metadata version seen (-1 until first seen)
    """

    width: int = 0
    height: int = 0
    version: int = -1
    resolution: float = 0.0
    slice_pose: Rigid3d = field(default_factory=Rigid3d.identity)
    raster: Optional[np.ndarray] = None
    pose: Rigid3d = field(default_factory=Rigid3d.identity)
    metadata_version: int = -1

    @property
    def has_raster(self) -> bool:
        return self.raster is not None


def stride_for_width(width: int) -> int:
    """Row stride of an ARGB32 raster: 32 bpp rounded up to 4-byte alignment."""
    return ((32 * int(width) + 7) // 8 + 3) & ~3


def build_raster(texture: FetchedTexture) -> np.ndarray:
    """
    Pack a fetched texture into a read-only (height, width) ARGB32 raster.

    Raises ValueError when the declared stride is not exactly 4*width or the
    cell buffers do not hold width*height entries. Both are data contract
    violations, never retried.
    """
    width = int(texture.width)
    height = int(texture.height)
    expected_stride = constants.BYTES_PER_PIXEL * width
    stride = stride_for_width(width) if texture.stride is None else int(texture.stride)
    if stride != expected_stride:
        raise ValueError(
            f"Unsupported raster stride {stride} for width {width} (expected {expected_stride})"
        )
    intensity = np.asarray(texture.intensity, dtype=np.uint8).reshape(-1)
    alpha = np.asarray(texture.alpha, dtype=np.uint8).reshape(-1)
    n_cells = width * height
    if intensity.size != n_cells or alpha.size != n_cells:
        raise ValueError(
            f"Texture buffers hold {intensity.size} intensity / {alpha.size} alpha cells, "
            f"expected {width}x{height}={n_cells}"
        )
    raster = np.ascontiguousarray(pack_texture_cells(intensity, alpha).reshape(height, width))
    if raster.strides[0] != expected_stride:
        raise ValueError(f"Raster row stride {raster.strides[0]} != {expected_stride}")
    raster.setflags(write=False)
    return raster


# =============================================================================
# Cache
# =============================================================================


@dataclass(frozen=True)
class UpdateResult:
    fetched: int = 0
    cache_hits: int = 0
    failed: int = 0


class TileCache:
    """Mapping TileId -> TileState. Not thread-safe; the owner serializes access."""

    def __init__(self) -> None:
        self._tiles: Dict[TileId, TileState] = {}

    def __len__(self) -> int:
        return len(self._tiles)

    def __contains__(self, tile_id: object) -> bool:
        return tile_id in self._tiles

    def get(self, tile_id: TileId) -> Optional[TileState]:
        return self._tiles.get(tile_id)

    def renderable(self) -> List[Tuple[TileId, TileState]]:
        """Tiles with a raster, ascending identity."""
        return [(tid, st) for tid, st in sorted(self._tiles.items()) if st.has_raster]

    def update(self, entries: Iterable[SubmapEntry], fetch: TileFetcher) -> UpdateResult:
        fetched = 0
        cache_hits = 0
        failed = 0
        for entry in entries:
            tile_id = TileId(*entry.tile_id)
            state = self._tiles.get(tile_id, TileState())
            state = replace(state, pose=entry.pose, metadata_version=int(entry.version))
            self._tiles[tile_id] = state

            if state.has_raster and state.version == entry.version:
                cache_hits += 1
                runtime_counters.record_cache_hit()
                continue

            runtime_counters.record_fetch_request()
            try:
                texture = fetch(tile_id)
            except TileFetchError as e:
                _logger.warning(f"Fetching tile {tuple(tile_id)} failed: {e}")
                texture = None
            if texture is None:
                failed += 1
                runtime_counters.record_fetch_failure()
                continue

            raster = build_raster(texture)
            self._tiles[tile_id] = replace(
                state,
                width=int(texture.width),
                height=int(texture.height),
                version=int(texture.version),
                slice_pose=texture.slice_pose,
                resolution=float(texture.resolution),
                raster=raster,
            )
            fetched += 1
        return UpdateResult(fetched=fetched, cache_hits=cache_hits, failed=failed)
