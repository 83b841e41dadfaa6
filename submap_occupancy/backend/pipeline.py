"""
Occupancy grid assembly pipeline.

One serialized handler owns the tile cache:

    SubmapListBatch
      -> TileCache.update      (fetch only new / re-versioned tiles)
      -> compute_bounding_box  (pass 1)
      -> composite_tiles       (pass 2)
      -> quantize_canvas
      -> apply_denoise         (optional, off by default)
      -> PublishedGrid

The whole cycle runs under one lock, including blocking fetches; a batch that
arrives meanwhile waits. Tile states never leave the assembler.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import Callable, Iterable, Optional

from submap_occupancy.common import constants
from submap_occupancy.common import runtime_counters
from submap_occupancy.backend.operators.denoise import DenoisePolicy, apply_denoise
from submap_occupancy.backend.operators.quantize import OccupancyGridData, quantize_canvas
from submap_occupancy.backend.rendering import render_tiles
from submap_occupancy.backend.structures.tile_cache import (
    SubmapEntry,
    SubmapListBatch,
    TileCache,
    TileFetcher,
    UpdateResult,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    resolution: float = constants.DEFAULT_RESOLUTION
    padding_px: int = constants.CANVAS_PADDING_PX
    denoise_policy: DenoisePolicy = DenoisePolicy.NONE
    denoise_threshold: float = constants.DENOISE_THRESHOLD_DEFAULT

    def __post_init__(self) -> None:
        if not self.resolution > 0.0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if self.padding_px < 0:
            raise ValueError(f"padding_px must be non-negative, got {self.padding_px}")
        object.__setattr__(self, "denoise_policy", DenoisePolicy(self.denoise_policy))


@dataclass(frozen=True)
class PublishedGrid:
    """One cycle's output: header fields plus the grid."""

    stamp_sec: int
    stamp_nanosec: int
    frame_id: str
    grid: OccupancyGridData

    @property
    def time_sec(self) -> float:
        """Stamp as float seconds; lossy, for visualization timelines only."""
        return float(self.stamp_sec) + float(self.stamp_nanosec) * 1e-9


def _always_consumed() -> bool:
    return True


class OccupancyGridAssembler:
    """
    Single-writer owner of the tile cache.

    fetch: TileId -> FetchedTexture | None (may raise TileFetchError).
    has_consumer: whether anyone wants the output; checked first on every
        batch, before the cache is touched.
    """

    def __init__(
        self,
        fetch: TileFetcher,
        config: Optional[PipelineConfig] = None,
        has_consumer: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._fetch = fetch
        self._config = config or PipelineConfig()
        self._has_consumer = has_consumer or _always_consumed
        self._cache = TileCache()
        self._lock = threading.Lock()

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def tile_count(self) -> int:
        with self._lock:
            return len(self._cache)

    def update(self, entries: Iterable[SubmapEntry]) -> UpdateResult:
        with self._lock:
            return self._update_locked(entries)

    def render_cycle(self, stamp_sec: int, stamp_nanosec: int, frame_id: str) -> Optional[PublishedGrid]:
        with self._lock:
            return self._render_locked(stamp_sec, stamp_nanosec, frame_id)

    def handle_submap_list(self, batch: SubmapListBatch) -> Optional[PublishedGrid]:
        """Update from one metadata batch and render; None when nothing is published."""
        with self._lock:
            if not self._has_consumer():
                runtime_counters.record_cycle(published=False)
                return None
            self._update_locked(batch.entries)
            return self._render_locked(batch.stamp_sec, batch.stamp_nanosec, batch.frame_id)

    def _update_locked(self, entries: Iterable[SubmapEntry]) -> UpdateResult:
        result = self._cache.update(entries, self._fetch)
        _logger.debug(
            f"Tile cache update: fetched={result.fetched} cache_hits={result.cache_hits} "
            f"failed={result.failed} total={len(self._cache)}"
        )
        return result

    def _render_locked(
        self, stamp_sec: int, stamp_nanosec: int, frame_id: str
    ) -> Optional[PublishedGrid]:
        cfg = self._config
        canvas = render_tiles(self._cache.renderable(), cfg.resolution, padding=cfg.padding_px)
        if canvas is None:
            runtime_counters.record_cycle(published=False)
            return None
        grid = quantize_canvas(canvas, cfg.resolution)
        grid = apply_denoise(grid, cfg.denoise_policy, cfg.denoise_threshold)
        runtime_counters.record_cycle(published=True)
        return PublishedGrid(
            stamp_sec=int(stamp_sec),
            stamp_nanosec=int(stamp_nanosec),
            frame_id=str(frame_id),
            grid=grid,
        )
