"""
Occupancy grid publisher: publishes assembled grids as nav_msgs/OccupancyGrid.

Latched (transient-local, depth 1) so late subscribers receive the latest map.
Also exposes has_consumer() for the assembler's skip-work decision.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from nav_msgs.msg import OccupancyGrid
from rclpy.qos import DurabilityPolicy, HistoryPolicy, QoSProfile, ReliabilityPolicy

from submap_occupancy.common import constants
from submap_occupancy.backend.msg_conversion import occupancy_grid_to_msg
from submap_occupancy.backend.pipeline import PublishedGrid

if TYPE_CHECKING:
    from submap_occupancy.backend.rerun_visualizer import RerunVisualizer


class OccupancyGridPublisher:
    """Publishes PublishedGrid as OccupancyGrid on `topic`."""

    def __init__(
        self,
        node,
        topic: str = constants.OCCUPANCY_GRID_TOPIC_DEFAULT,
        rerun_visualizer: Optional["RerunVisualizer"] = None,
    ):
        self._node = node
        self._rerun_visualizer = rerun_visualizer
        qos = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            durability=DurabilityPolicy.TRANSIENT_LOCAL,
            history=HistoryPolicy.KEEP_LAST,
            depth=constants.LATEST_ONLY_PUBLISHER_QUEUE_SIZE,
        )
        self._pub = node.create_publisher(OccupancyGrid, topic, qos)

    def has_consumer(self) -> bool:
        """Rerun counts as a consumer so recordings keep updating without ROS subscribers."""
        if self._rerun_visualizer is not None and self._rerun_visualizer.active:
            return True
        return self._pub.get_subscription_count() > 0

    def publish(self, published: PublishedGrid) -> OccupancyGrid:
        msg = occupancy_grid_to_msg(published)
        self._pub.publish(msg)
        if self._rerun_visualizer is not None:
            self._rerun_visualizer.log_occupancy_grid(published.grid, published.time_sec)
        return msg
