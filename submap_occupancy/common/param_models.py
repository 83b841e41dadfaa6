"""Pydantic parameter models for submap occupancy nodes."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from submap_occupancy.common import constants


DenoisePolicyName = Literal["none", "local_sum", "local_sum_snapshot", "majority_vote"]


class OccupancyGridParams(BaseModel):
    """Occupancy grid node parameter model."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    use_sim_time: bool = False
    resolution: float = Field(constants.DEFAULT_RESOLUTION, gt=0.0)

    submap_list_topic: str = constants.SUBMAP_LIST_TOPIC_DEFAULT
    submap_query_service: str = constants.SUBMAP_QUERY_SERVICE_DEFAULT
    occupancy_grid_topic: str = constants.OCCUPANCY_GRID_TOPIC_DEFAULT
    fetch_timeout_sec: float = Field(constants.FETCH_TIMEOUT_SEC_DEFAULT, gt=0.0)

    denoise_policy: DenoisePolicyName = constants.DENOISE_POLICY_DEFAULT
    denoise_threshold: int = Field(constants.DENOISE_THRESHOLD_DEFAULT, ge=0, le=100)

    use_rerun: bool = False
    rerun_spawn: bool = False
    rerun_recording_path: str = ""


def _unwrap_ros_parameters(data: Dict[str, Any]) -> Dict[str, Any]:
    """ROS2 YAML files wrap parameters in <node or /**>: ros__parameters:."""
    for key in ("/**", "occupancy_grid_node"):
        section = data.get(key)
        if isinstance(section, dict) and "ros__parameters" in section:
            return dict(section["ros__parameters"] or {})
    return data


def read_ros_parameters(path: str) -> Dict[str, Any]:
    """Raw parameter mapping from a YAML file, unwrapped but not validated."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _unwrap_ros_parameters(data)


def load_params_yaml(path: str, overrides: Optional[Dict[str, Any]] = None) -> OccupancyGridParams:
    """Load and validate an occupancy grid parameter file."""
    params = read_ros_parameters(path)
    if overrides:
        params = {**params, **overrides}
    return OccupancyGridParams.model_validate(params)
