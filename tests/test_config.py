"""Tests for configuration system."""

import logging
from pathlib import Path

import pytest
import yaml

from volmap.config import (
    CalibrationConfig,
    ChannelConfig,
    MapConfig,
    MapperConfig,
)


class TestCalibrationConfig:
    """Tests for CalibrationConfig."""

    def test_defaults(self):
        """Test default values."""
        config = CalibrationConfig()
        assert config.Q is None
        assert config.image_size == (752, 480)

    def test_q_length_not_validated(self):
        """Test a malformed Q is kept for the resolver to report."""
        config = CalibrationConfig(Q=[1.0, 2.0, 3.0, 4.0, 5.0])
        assert len(config.Q) == 5

    def test_invalid_image_size(self):
        with pytest.raises(ValueError):
            CalibrationConfig(full_image_width=0)


class TestMapConfig:
    """Tests for MapConfig."""

    def test_defaults(self):
        """Test default values."""
        config = MapConfig()
        assert config.resolution == 0.15
        assert config.probability_hit == 0.65
        assert config.probability_miss == 0.4
        assert config.filter_speckles is True
        assert config.visualize_min_z is None

    def test_probability_range(self):
        with pytest.raises(ValueError, match="probability must be in"):
            MapConfig(probability_hit=1.5)

    def test_threshold_order(self):
        with pytest.raises(ValueError, match="threshold_min"):
            MapConfig(threshold_min=0.9, threshold_max=0.5)

    def test_visualize_range(self):
        with pytest.raises(ValueError, match="visualize_min_z"):
            MapConfig(visualize_min_z=2.0, visualize_max_z=1.0)


class TestMapperConfig:
    """Tests for MapperConfig."""

    def test_defaults(self):
        config = MapperConfig()
        assert config.world_frame == "world"
        assert config.map_publish_frequency == 0.0
        assert config.not_ready_warn_period == 1.0
        assert isinstance(config.channels, ChannelConfig)
        assert config.channels.left_camera_info == "cam0/camera_info"

    def test_empty_world_frame(self):
        with pytest.raises(ValueError, match="world_frame"):
            MapperConfig(world_frame="  ")

    def test_negative_frequency(self):
        with pytest.raises(ValueError):
            MapperConfig(map_publish_frequency=-1.0)

    def test_unknown_keys_warn(self, caplog):
        MapperConfig.model_validate({"not_a_key": 1})
        assert "Unknown config keys in MapperConfig" in caplog.text


class TestYaml:
    """Tests for YAML loading and saving."""

    def test_round_trip(self, tmp_path: Path):
        config = MapperConfig(world_frame="odom", map_publish_frequency=2.0)
        config.calibration.Q = [float(i) for i in range(16)]
        config.map.visualize_max_z = 3.0
        path = tmp_path / "nested" / "config.yaml"

        config.to_yaml(path)
        loaded = MapperConfig.from_yaml(path)

        assert loaded == config

    def test_partial_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("world_frame: map\nmap:\n  resolution: 0.05\n")

        config = MapperConfig.from_yaml(path)

        assert config.world_frame == "map"
        assert config.map.resolution == 0.05
        assert config.map.probability_hit == 0.65

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert MapperConfig.from_yaml(path) == MapperConfig()

    def test_legacy_flat_keys(self, tmp_path: Path, caplog):
        """Test flat node parameters are migrated into sections."""
        data = {
            "tf_frame": "odom",
            "resolution": 0.1,
            "sensor_max_range": 8.0,
            "Q": [0.0] * 16,
            "full_image_width": 1024,
            "full_image_height": 768,
            "map_publish_frequency": 1.0,
        }
        path = tmp_path / "legacy.yaml"
        path.write_text(yaml.safe_dump(data))

        with caplog.at_level(logging.INFO):
            config = MapperConfig.from_yaml(path)

        assert config.world_frame == "odom"
        assert config.map.resolution == 0.1
        assert config.map.sensor_max_range == 8.0
        assert config.calibration.Q == [0.0] * 16
        assert config.calibration.image_size == (1024, 768)
        assert config.map_publish_frequency == 1.0
        assert "Migrating legacy config key 'tf_frame'" in caplog.text

    def test_nested_value_wins_over_legacy(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("resolution: 0.3\nmap:\n  resolution: 0.05\n")
        assert MapperConfig.from_yaml(path).map.resolution == 0.05

    def test_validation_errors_have_paths(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("map:\n  probability_hit: 2.0\ncalibration:\n  Q: [1, two]\n")

        with pytest.raises(ValueError) as exc_info:
            MapperConfig.from_yaml(path)

        message = str(exc_info.value)
        assert "Configuration validation failed" in message
        assert "map.probability_hit" in message
        assert "calibration.Q[1]" in message

    def test_non_mapping_root(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            MapperConfig.from_yaml(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            MapperConfig.from_yaml(tmp_path / "missing.yaml")
