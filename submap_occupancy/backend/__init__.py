"""
Submap occupancy backend.

Structure:
- structures/: TileCache and the submap ingress types
- operators/: quantization and optional denoise filters
- rendering.py: ARGB32 canvas, transform stack, bounding-box and composite passes
- pipeline.py: OccupancyGridAssembler (single-writer owner of the tile cache)
- occupancy_grid_node.py: ROS2 node entry point
"""

# Lazy imports so the core stays importable without ROS
__all__ = [
    "OccupancyGridAssembler",
    "PipelineConfig",
]


def __getattr__(name):
    if name == "OccupancyGridAssembler":
        from submap_occupancy.backend.pipeline import OccupancyGridAssembler
        return OccupancyGridAssembler
    elif name == "PipelineConfig":
        from submap_occupancy.backend.pipeline import PipelineConfig
        return PipelineConfig
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
