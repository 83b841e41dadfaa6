"""
ROS message <-> core type conversions.

Kept apart from the core so that everything below backend/pipeline.py stays
importable without a ROS installation.
"""

from __future__ import annotations

from builtin_interfaces.msg import Time
from geometry_msgs.msg import Pose
from nav_msgs.msg import OccupancyGrid

from submap_occupancy.common.transforms.rigid import Rigid3d
from submap_occupancy.backend.pipeline import PublishedGrid
from submap_occupancy.backend.structures.tile_cache import (
    SubmapEntry,
    SubmapListBatch,
    TileId,
)


def stamp_to_msg(stamp_sec: int, stamp_nanosec: int) -> Time:
    return Time(sec=int(stamp_sec), nanosec=int(stamp_nanosec))


def rigid_from_pose_msg(pose: Pose) -> Rigid3d:
    p = pose.position
    q = pose.orientation
    return Rigid3d.from_xyz_quat((p.x, p.y, p.z), (q.x, q.y, q.z, q.w))


def submap_list_from_msg(msg) -> SubmapListBatch:
    """cartographer_ros_msgs/msg/SubmapList -> SubmapListBatch."""
    entries = tuple(
        SubmapEntry(
            tile_id=TileId(int(s.trajectory_id), int(s.submap_index)),
            version=int(s.submap_version),
            pose=rigid_from_pose_msg(s.pose),
        )
        for s in msg.submap
    )
    return SubmapListBatch(
        stamp_sec=int(msg.header.stamp.sec),
        stamp_nanosec=int(msg.header.stamp.nanosec),
        frame_id=msg.header.frame_id,
        entries=entries,
    )


def occupancy_grid_to_msg(published: PublishedGrid) -> OccupancyGrid:
    grid = published.grid
    msg = OccupancyGrid()
    msg.header.stamp = stamp_to_msg(published.stamp_sec, published.stamp_nanosec)
    msg.header.frame_id = published.frame_id
    msg.info.map_load_time = stamp_to_msg(published.stamp_sec, published.stamp_nanosec)
    msg.info.resolution = float(grid.resolution)
    msg.info.width = int(grid.width)
    msg.info.height = int(grid.height)
    msg.info.origin.position.x = float(grid.origin_x)
    msg.info.origin.position.y = float(grid.origin_y)
    msg.info.origin.position.z = float(grid.origin_z)
    msg.info.origin.orientation.w = 1.0
    msg.info.origin.orientation.x = 0.0
    msg.info.origin.orientation.y = 0.0
    msg.info.origin.orientation.z = 0.0
    msg.data = grid.data.astype("int8").tolist()
    return msg
