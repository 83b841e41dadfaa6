"""
Rerun visualization of published occupancy grids (Wayland-friendly; replaces RViz).

Logs each grid as an RGB image: unknown grey, free white, occupied black.
Optional: spawn viewer or save to .rrd file and open with `rerun recording.rrd`.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from submap_occupancy.common import constants
from submap_occupancy.backend.operators.quantize import OccupancyGridData

UNKNOWN_GREY = 128
FREE_WHITE = 255
OCCUPIED_BLACK = 0


def _ensure_rerun():
    """Lazy import so rerun is optional when use_rerun=False."""
    try:
        import rerun as rr
        return rr
    except ImportError:
        return None


def _set_rerun_time(rr, time_sec: float) -> None:
    """Set current time on the 'time' timeline across rerun API versions."""
    if hasattr(rr, "set_time_seconds"):
        rr.set_time_seconds("time", time_sec)
    else:
        rr.set_time("time", timestamp=time_sec)


def occupancy_grid_to_rgb(grid: OccupancyGridData) -> np.ndarray:
    """
    (height, width, 3) uint8 image of the grid, top row = highest map y.

    Grid row 0 is the bottom of the map, so rows are flipped back for display.
    """
    cells = grid.as_2d()[::-1, :]
    grey = np.full(cells.shape, UNKNOWN_GREY, dtype=np.uint8)
    grey[cells == constants.CELL_FREE] = FREE_WHITE
    grey[cells == constants.CELL_OCCUPIED] = OCCUPIED_BLACK
    return np.repeat(grey[:, :, None], 3, axis=2)


class RerunVisualizer:
    """
    Log occupancy grids to Rerun.

    Call init() once when use_rerun is True; then log_occupancy_grid() from
    the publisher on every published cycle.
    """

    def __init__(
        self,
        application_id: str = constants.RERUN_APPLICATION_ID,
        spawn: bool = False,
        recording_path: Optional[str] = None,
    ):
        self._application_id = application_id
        self._spawn = spawn
        self._recording_path = recording_path
        self._initialized = False
        self._rr = None

    @property
    def active(self) -> bool:
        return self._rr is not None

    def init(self) -> bool:
        """Initialize Rerun (spawn viewer and/or record to file). Returns True if active."""
        if self._initialized:
            return self._rr is not None
        rr = _ensure_rerun()
        if rr is None:
            return False
        self._rr = rr
        rr.init(
            application_id=self._application_id,
            default_enabled=True,
            spawn=self._spawn,
        )
        # If recording to file: must call save() before any log (Rerun API).
        if self._recording_path and not self._spawn:
            rr.save(self._recording_path)
        self._initialized = True
        return True

    def log_occupancy_grid(self, grid: OccupancyGridData, time_sec: float) -> None:
        if self._rr is None:
            return
        rr = self._rr
        _set_rerun_time(rr, time_sec)
        rr.log("occupancy/grid", rr.Image(occupancy_grid_to_rgb(grid)))
