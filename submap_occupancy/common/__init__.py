"""
Common package for submap occupancy.

Shared utilities and transforms used by both frontend and backend.

Subpackages:
- transforms/: rigid 3D poses and drawing-plane projection
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "CellPixel",
    "OccupancyGridParams",
    "constants",
]

_LAZY_ATTRS: dict[str, tuple[str, str | None]] = {
    "CellPixel": ("submap_occupancy.common.pixels", "CellPixel"),
    "OccupancyGridParams": ("submap_occupancy.common.param_models", "OccupancyGridParams"),
    # Expose these as submodules, but do not eagerly import them at package import time.
    "constants": ("submap_occupancy.common.constants", None),
}


def __getattr__(name: str) -> Any:
    target = _LAZY_ATTRS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    module = import_module(module_name)
    return module if attr_name is None else getattr(module, attr_name)


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_ATTRS.keys()))
