"""
Occupancy grid node.

Subscribes to the SLAM submap list, fetches changed submap textures over the
SubmapQuery service, and publishes the assembled occupancy grid.

Topic Flow:
    /submap_list (SubmapList) -> [this node] -> /map (OccupancyGrid, latched)
                                     |
                                     +-- /submap_query (SubmapQuery, per stale tile)

The submap-list callback runs in a MutuallyExclusiveCallbackGroup; the
service client lives in a ReentrantCallbackGroup so the blocking fetch inside
the callback can complete on another executor thread.
"""

from __future__ import annotations

import traceback
from typing import Any, Dict, Optional

import rclpy
from cartographer_ros_msgs.msg import SubmapList
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node
from rclpy.parameter import Parameter
from rclpy.qos import DurabilityPolicy, HistoryPolicy, QoSProfile, ReliabilityPolicy

from submap_occupancy.common import constants
from submap_occupancy.common import runtime_counters
from submap_occupancy.common.param_models import OccupancyGridParams
from submap_occupancy.backend.map_publisher import OccupancyGridPublisher
from submap_occupancy.backend.msg_conversion import submap_list_from_msg
from submap_occupancy.backend.pipeline import OccupancyGridAssembler, PipelineConfig
from submap_occupancy.backend.rerun_visualizer import RerunVisualizer
from submap_occupancy.frontend.submap_query_client import SubmapQueryClient


class OccupancyGridNode(Node):
    """Assembles submaps into a nav_msgs/OccupancyGrid."""

    def __init__(self, parameter_overrides: Optional[Dict[str, Any]] = None) -> None:
        overrides = None
        if parameter_overrides:
            overrides = [Parameter(k, value=v) for k, v in parameter_overrides.items()]
        super().__init__("occupancy_grid_node", parameter_overrides=overrides)

        self.params = self._declare_parameters()

        self.cb_group_submaps = MutuallyExclusiveCallbackGroup()
        self.cb_group_query = ReentrantCallbackGroup()

        self.rerun_visualizer: Optional[RerunVisualizer] = None
        if self.params.use_rerun:
            self.rerun_visualizer = RerunVisualizer(
                spawn=self.params.rerun_spawn,
                recording_path=self.params.rerun_recording_path or None,
            )
            if not self.rerun_visualizer.init():
                self.get_logger().warn("use_rerun=True but rerun is not importable; visualization disabled")
                self.rerun_visualizer = None

        self.query_client = SubmapQueryClient(
            self,
            service_name=self.params.submap_query_service,
            timeout_sec=self.params.fetch_timeout_sec,
            callback_group=self.cb_group_query,
        )
        self.grid_publisher = OccupancyGridPublisher(
            self,
            topic=self.params.occupancy_grid_topic,
            rerun_visualizer=self.rerun_visualizer,
        )
        self.assembler = OccupancyGridAssembler(
            fetch=self.query_client.fetch,
            config=PipelineConfig(
                resolution=self.params.resolution,
                denoise_policy=self.params.denoise_policy,
                denoise_threshold=self.params.denoise_threshold,
            ),
            has_consumer=self.grid_publisher.has_consumer,
        )

        qos_sub = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            durability=DurabilityPolicy.VOLATILE,
            history=HistoryPolicy.KEEP_LAST,
            depth=constants.LATEST_ONLY_PUBLISHER_QUEUE_SIZE,
        )
        self.sub_submap_list = self.create_subscription(
            SubmapList,
            self.params.submap_list_topic,
            self._on_submap_list,
            qos_sub,
            callback_group=self.cb_group_submaps,
        )

        self.batch_count = 0
        self.publish_count = 0

        self.get_logger().info("=" * 60)
        self.get_logger().info("OCCUPANCY GRID NODE")
        self.get_logger().info("=" * 60)
        self.get_logger().info(f"  Submap list:  {self.params.submap_list_topic}")
        self.get_logger().info(f"  Submap query: {self.params.submap_query_service}")
        self.get_logger().info(f"  Output:       {self.params.occupancy_grid_topic} (latched)")
        self.get_logger().info(f"  Resolution:   {self.params.resolution:.4f} m/cell")
        self.get_logger().info(
            f"  Denoise:      {self.params.denoise_policy} (threshold={self.params.denoise_threshold})"
        )
        self.get_logger().info("=" * 60)

    def _declare_parameters(self) -> OccupancyGridParams:
        """Declare ROS parameters and validate them through OccupancyGridParams."""
        defaults = OccupancyGridParams()
        self.declare_parameter("resolution", defaults.resolution)
        self.declare_parameter("submap_list_topic", defaults.submap_list_topic)
        self.declare_parameter("submap_query_service", defaults.submap_query_service)
        self.declare_parameter("occupancy_grid_topic", defaults.occupancy_grid_topic)
        self.declare_parameter("fetch_timeout_sec", defaults.fetch_timeout_sec)
        self.declare_parameter("denoise_policy", defaults.denoise_policy)
        self.declare_parameter("denoise_threshold", defaults.denoise_threshold)
        self.declare_parameter("use_rerun", defaults.use_rerun)
        self.declare_parameter("rerun_spawn", defaults.rerun_spawn)
        self.declare_parameter("rerun_recording_path", defaults.rerun_recording_path)

        names = [
            "resolution",
            "submap_list_topic",
            "submap_query_service",
            "occupancy_grid_topic",
            "fetch_timeout_sec",
            "denoise_policy",
            "denoise_threshold",
            "use_rerun",
            "rerun_spawn",
            "rerun_recording_path",
        ]
        values = {name: self.get_parameter(name).value for name in names}
        # use_sim_time is declared by rclpy itself.
        values["use_sim_time"] = bool(self.get_parameter("use_sim_time").value)
        return OccupancyGridParams.model_validate(values)

    def _on_submap_list(self, msg: SubmapList) -> None:
        self.batch_count += 1
        batch = submap_list_from_msg(msg)
        try:
            published = self.assembler.handle_submap_list(batch)
        except Exception as e:
            self.get_logger().error(f"Occupancy grid cycle failed on batch {self.batch_count}: {e}")
            self.get_logger().error(traceback.format_exc())
            raise

        counters = runtime_counters.consume_cycle_counters()
        if published is None:
            self.get_logger().debug(
                f"Batch {self.batch_count}: nothing published "
                f"(tiles={self.assembler.tile_count}, fetch_failures={counters.fetch_failures})"
            )
            return

        self.grid_publisher.publish(published)
        self.publish_count += 1
        grid = published.grid
        self.get_logger().debug(
            f"Batch {self.batch_count}: published {grid.width}x{grid.height} grid "
            f"(fetches={counters.fetch_requests}, cache_hits={counters.fetch_cache_hits}, "
            f"fetch_failures={counters.fetch_failures})"
        )
        if self.publish_count == 1:
            self.get_logger().info(
                f"First occupancy grid: {grid.width}x{grid.height} at "
                f"origin ({grid.origin_x:.3f}, {grid.origin_y:.3f})"
            )


def main() -> None:
    """Standalone entry point for the occupancy grid node."""
    rclpy.init()
    node = OccupancyGridNode()
    executor = MultiThreadedExecutor()
    executor.add_node(node)

    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        node.get_logger().info(
            f"Shutting down. batches={node.batch_count}, published={node.publish_count}"
        )
        executor.shutdown()
        node.destroy_node()
        rclpy.shutdown()


if __name__ == "__main__":
    main()
