import gzip
import os
import sys
from typing import Any, Dict

import numpy as np
import pytest

# Ensure local package import works for pytest collection.
_TEST_DIR = os.path.dirname(__file__)
_PKG_ROOT = os.path.abspath(os.path.join(_TEST_DIR, ".."))
if _PKG_ROOT not in sys.path:
    sys.path.insert(0, _PKG_ROOT)

from submap_occupancy.common import runtime_counters
from submap_occupancy.common.transforms.rigid import Rigid3d
from submap_occupancy.backend.structures.tile_cache import FetchedTexture, TileId


# =============================================================================
# Production Config Fixtures
# =============================================================================


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """Load a YAML config file, handling the ros__parameters wrapper."""
    import yaml
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    # ROS2 YAML files wrap parameters in /**:/ros__parameters:
    if "/**" in data and "ros__parameters" in data.get("/**", {}):
        return data["/**"]["ros__parameters"]
    return data


@pytest.fixture
def prod_config_path() -> str:
    return os.path.join(_PKG_ROOT, "config", "occupancy_grid.yaml")


@pytest.fixture
def prod_config(prod_config_path) -> Dict[str, Any]:
    """Production parameters shipped with the package."""
    if not os.path.exists(prod_config_path):
        pytest.skip("occupancy_grid.yaml not found")
    return _load_yaml_file(prod_config_path)


# =============================================================================
# Test Utility Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_counters():
    """Cycle counters are module-global; isolate every test."""
    runtime_counters.reset_cycle_counters()
    yield
    runtime_counters.reset_cycle_counters()


@pytest.fixture
def identity_pose() -> Rigid3d:
    return Rigid3d.identity()


def make_texture(
    width: int,
    height: int,
    intensity: int = 255,
    alpha: int = 255,
    version: int = 1,
    resolution: float = 0.05,
    slice_pose: Rigid3d = None,
    stride: int = None,
) -> FetchedTexture:
    """Uniform texture of `width` x `height` cells."""
    n = width * height
    return FetchedTexture(
        width=width,
        height=height,
        version=version,
        slice_pose=slice_pose if slice_pose is not None else Rigid3d.identity(),
        resolution=resolution,
        intensity=np.full(n, intensity, dtype=np.uint8),
        alpha=np.full(n, alpha, dtype=np.uint8),
        stride=stride,
    )


class FakeSubmapServer:
    """Fetch collaborator backed by a dict; records every call."""

    def __init__(self, textures: Dict[TileId, FetchedTexture] = None):
        self.textures: Dict[TileId, FetchedTexture] = dict(textures or {})
        self.calls = []

    def __call__(self, tile_id: TileId):
        self.calls.append(tile_id)
        return self.textures.get(tile_id)


@pytest.fixture
def texture_factory():
    return make_texture


@pytest.fixture
def submap_server() -> FakeSubmapServer:
    return FakeSubmapServer()


@pytest.fixture
def gzip_cells():
    """Compress interleaved (intensity, alpha) pairs the way SubmapQuery ships them."""

    def _compress(intensity, alpha) -> bytes:
        pairs = np.stack(
            [np.asarray(intensity, dtype=np.uint8), np.asarray(alpha, dtype=np.uint8)], axis=1
        )
        return gzip.compress(pairs.reshape(-1).tobytes())

    return _compress
