"""Rigid transforms and 2D drawing-plane affines."""

from submap_occupancy.common.transforms.rigid import (
    Rigid3d,
    affine_coefficients,
    affine_from_coefficients,
    project_to_drawing_plane,
    scale_affine,
    tile_affine,
    translate_affine,
)

__all__ = [
    "Rigid3d",
    "affine_coefficients",
    "affine_from_coefficients",
    "project_to_drawing_plane",
    "scale_affine",
    "tile_affine",
    "translate_affine",
]
