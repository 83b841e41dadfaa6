"""
Occupancy grid launch file.

Runs the occupancy grid node next to a running SLAM stack that publishes
/submap_list and serves /submap_query.

Architecture:
    SLAM node -> /submap_list, /submap_query -> occupancy_grid_node -> /map (latched)
"""

import os

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument, OpaqueFunction
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node

from ament_index_python.packages import get_package_share_directory

from submap_occupancy.common.param_models import read_ros_parameters

# Parameters that must be numeric/bool (LaunchConfiguration returns strings)
_NODE_TYPED_PARAMS = {
    "resolution": float,
    "denoise_threshold": int,
    "use_sim_time": lambda s: s.strip().lower() in ("true", "1", "yes"),
    "use_rerun": lambda s: s.strip().lower() in ("true", "1", "yes"),
    "rerun_spawn": lambda s: s.strip().lower() in ("true", "1", "yes"),
}


def generate_launch_description():
    """Generate launch description for the occupancy grid node."""

    config_path_arg = DeclareLaunchArgument(
        "config_path",
        default_value=os.path.join(
            get_package_share_directory("submap_occupancy"), "config", "occupancy_grid.yaml"
        ),
        description="Parameter YAML (/**: ros__parameters).",
    )
    resolution_arg = DeclareLaunchArgument(
        "resolution",
        default_value="",
        description="Resolution of a grid cell in the published occupancy grid (m). Empty = from config.",
    )
    denoise_policy_arg = DeclareLaunchArgument(
        "denoise_policy",
        default_value="",
        description="none | local_sum | local_sum_snapshot | majority_vote. Empty = from config.",
    )
    denoise_threshold_arg = DeclareLaunchArgument(
        "denoise_threshold",
        default_value="",
        description="Occupancy threshold used by the denoise filters. Empty = from config.",
    )
    use_sim_time_arg = DeclareLaunchArgument(
        "use_sim_time",
        default_value="false",
        description="Use /clock (rosbag playback).",
    )
    use_rerun_arg = DeclareLaunchArgument(
        "use_rerun",
        default_value="",
        description="Log published grids to Rerun. Empty = from config.",
    )

    def node_with_config(context):
        config_path = LaunchConfiguration("config_path").perform(context)
        params = {}
        if config_path and os.path.isfile(config_path):
            params = read_ros_parameters(config_path)
        overrides = {
            "resolution": LaunchConfiguration("resolution").perform(context),
            "denoise_policy": LaunchConfiguration("denoise_policy").perform(context),
            "denoise_threshold": LaunchConfiguration("denoise_threshold").perform(context),
            "use_sim_time": LaunchConfiguration("use_sim_time").perform(context),
            "use_rerun": LaunchConfiguration("use_rerun").perform(context),
        }
        # Empty launch args defer to the config file
        overrides = {k: v for k, v in overrides.items() if v != ""}
        for key, conv in _NODE_TYPED_PARAMS.items():
            if key in overrides:
                overrides[key] = conv(overrides[key])
        merged = {**params, **overrides}
        return [
            Node(
                package="submap_occupancy",
                executable="occupancy_grid_node",
                name="occupancy_grid_node",
                output="screen",
                parameters=[merged],
            )
        ]

    return LaunchDescription([
        config_path_arg,
        resolution_arg,
        denoise_policy_arg,
        denoise_threshold_arg,
        use_sim_time_arg,
        use_rerun_arg,
        OpaqueFunction(function=node_with_config),
    ])
