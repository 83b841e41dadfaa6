"""
Tests for parameter validation and the shipped config file.
"""

import pytest
import yaml
from pydantic import ValidationError

from submap_occupancy.common import constants
from submap_occupancy.common.param_models import (
    OccupancyGridParams,
    load_params_yaml,
    read_ros_parameters,
)
from submap_occupancy.backend.pipeline import PipelineConfig


class TestOccupancyGridParams:
    def test_defaults(self):
        params = OccupancyGridParams()
        assert params.resolution == pytest.approx(constants.DEFAULT_RESOLUTION)
        assert params.submap_list_topic == "/submap_list"
        assert params.submap_query_service == "/submap_query"
        assert params.occupancy_grid_topic == "/map"
        assert params.denoise_policy == "none"

    @pytest.mark.parametrize("resolution", [0.0, -1.0])
    def test_non_positive_resolution_rejected(self, resolution):
        with pytest.raises(ValidationError):
            OccupancyGridParams(resolution=resolution)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            OccupancyGridParams.model_validate({"resolutoin": 0.1})

    def test_unknown_denoise_policy_rejected(self):
        with pytest.raises(ValidationError):
            OccupancyGridParams(denoise_policy="median")

    def test_assignment_validated(self):
        params = OccupancyGridParams()
        with pytest.raises(ValidationError):
            params.denoise_threshold = 101

    def test_feeds_pipeline_config(self):
        params = OccupancyGridParams(resolution=0.1, denoise_policy="local_sum_snapshot")
        cfg = PipelineConfig(
            resolution=params.resolution,
            denoise_policy=params.denoise_policy,
            denoise_threshold=params.denoise_threshold,
        )
        assert cfg.denoise_policy.value == "local_sum_snapshot"


class TestConfigFile:
    def test_production_config_validates(self, prod_config):
        params = OccupancyGridParams.model_validate(prod_config)
        assert params.resolution == pytest.approx(0.05)
        assert params.denoise_policy == "none"
        assert params.use_rerun is False

    def test_load_params_yaml(self, prod_config_path):
        params = load_params_yaml(prod_config_path, overrides={"resolution": 0.1})
        assert params.resolution == pytest.approx(0.1)
        assert params.fetch_timeout_sec == pytest.approx(constants.FETCH_TIMEOUT_SEC_DEFAULT)

    def test_node_name_wrapper(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text(yaml.safe_dump({
            "occupancy_grid_node": {"ros__parameters": {"denoise_policy": "majority_vote"}}
        }))
        assert load_params_yaml(str(path)).denoise_policy == "majority_vote"

    def test_bare_mapping(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text(yaml.safe_dump({"resolution": 0.2}))
        assert load_params_yaml(str(path)).resolution == pytest.approx(0.2)

    def test_read_ros_parameters_matches_shipped_config(self, prod_config_path, prod_config):
        # The launch file merges overrides onto this raw mapping.
        raw = read_ros_parameters(prod_config_path)
        assert raw == prod_config
        assert "ros__parameters" not in raw

    def test_read_ros_parameters_does_not_validate(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text(yaml.safe_dump({"/**": {"ros__parameters": {"resolution": -1.0}}}))
        assert read_ros_parameters(str(path)) == {"resolution": -1.0}
        with pytest.raises(ValidationError):
            load_params_yaml(str(path))
