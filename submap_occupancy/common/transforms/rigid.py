"""
Rigid 3D transforms and their projection onto the 2D drawing plane.

Representation: Rigid3d = (translation (3,), quaternion (x, y, z, w)).
Composition follows the usual right-multiplication convention:

    (a * b)(p) = a(b(p))
    t_out = t_a + R_a @ t_b
    R_out = R_a @ R_b

Drawing-plane projection:
    The canvas y axis points down, so the 4x4 homogeneous matrix m of a pose
    is projected to the affine (xx, yx, xy, yy, x0, y0) =
    (m10, m00, -m11, -m01, m03, -m13), in the (xx, yx, xy, yy, x0, y0)
    argument order of cairo_matrix_init. As a 3x3 matrix acting on column
    vectors (x, y, 1):

        [[xx, xy, x0],
         [yx, yy, y0],
         [ 0,  0,  1]]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation


@dataclass(frozen=True, eq=False)
class Rigid3d:
    """Rigid transform; rotation stored as a unit quaternion (x, y, z, w)."""

    translation: np.ndarray
    rotation: np.ndarray

    @staticmethod
    def identity() -> "Rigid3d":
        return Rigid3d(
            translation=np.zeros(3, dtype=np.float64),
            rotation=np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64),
        )

    @staticmethod
    def from_xyz_quat(
        xyz: Sequence[float],
        quat_xyzw: Sequence[float] = (0.0, 0.0, 0.0, 1.0),
    ) -> "Rigid3d":
        t = np.asarray(xyz, dtype=np.float64).reshape(3)
        q = np.asarray(quat_xyzw, dtype=np.float64).reshape(4)
        n = float(np.linalg.norm(q))
        if n < 1e-12:
            raise ValueError(f"Degenerate quaternion {tuple(q)}")
        return Rigid3d(translation=t, rotation=q / n)

    @staticmethod
    def from_yaw(x: float, y: float, yaw: float, z: float = 0.0) -> "Rigid3d":
        """Planar pose helper: rotation of `yaw` radians about +z."""
        q = Rotation.from_euler("z", yaw).as_quat()
        return Rigid3d.from_xyz_quat((x, y, z), q)

    def rotation_matrix(self) -> np.ndarray:
        return Rotation.from_quat(self.rotation).as_matrix()

    def matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix."""
        m = np.eye(4, dtype=np.float64)
        m[:3, :3] = self.rotation_matrix()
        m[:3, 3] = self.translation
        return m

    def __mul__(self, other: "Rigid3d") -> "Rigid3d":
        R_a = Rotation.from_quat(self.rotation)
        t_out = self.translation + R_a.apply(other.translation)
        q_out = (R_a * Rotation.from_quat(other.rotation)).as_quat()
        return Rigid3d(translation=t_out, rotation=q_out)

    def inverse(self) -> "Rigid3d":
        R_inv = Rotation.from_quat(self.rotation).inv()
        return Rigid3d(
            translation=-R_inv.apply(self.translation),
            rotation=R_inv.as_quat(),
        )

    def apply(self, points: np.ndarray) -> np.ndarray:
        pts = np.asarray(points, dtype=np.float64)
        return Rotation.from_quat(self.rotation).apply(pts) + self.translation


# =============================================================================
# 2D affine helpers (3x3 matrices acting on column vectors)
# =============================================================================


def affine_from_coefficients(
    xx: float, yx: float, xy: float, yy: float, x0: float, y0: float
) -> np.ndarray:
    """3x3 affine from coefficients in cairo_matrix_init order."""
    return np.array(
        [
            [xx, xy, x0],
            [yx, yy, y0],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def affine_coefficients(affine: np.ndarray) -> Tuple[float, float, float, float, float, float]:
    """Inverse of affine_from_coefficients."""
    a = np.asarray(affine, dtype=np.float64)
    return (
        float(a[0, 0]),
        float(a[1, 0]),
        float(a[0, 1]),
        float(a[1, 1]),
        float(a[0, 2]),
        float(a[1, 2]),
    )


def scale_affine(sx: float, sy: float) -> np.ndarray:
    return affine_from_coefficients(sx, 0.0, 0.0, sy, 0.0, 0.0)


def translate_affine(tx: float, ty: float) -> np.ndarray:
    return affine_from_coefficients(1.0, 0.0, 0.0, 1.0, tx, ty)


def project_to_drawing_plane(homo: np.ndarray) -> np.ndarray:
    """Project a 4x4 pose matrix onto the (y-down) drawing plane."""
    m = np.asarray(homo, dtype=np.float64)
    return affine_from_coefficients(
        m[1, 0], m[0, 0], -m[1, 1], -m[0, 1], m[0, 3], -m[1, 3]
    )


def tile_affine(pose: Rigid3d, slice_pose: Rigid3d, resolution: float) -> np.ndarray:
    """
    Affine taking texture pixel coordinates to drawing-plane meters.

    Composes pose * slice_pose, projects it, and scales by the tile's
    resolution so that callers draw in texture pixels.
    """
    plane = project_to_drawing_plane((pose * slice_pose).matrix())
    return plane @ scale_affine(resolution, resolution)
