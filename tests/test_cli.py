"""Tests for CLI init and check commands."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from volmap.cli import check_command, init_config, main
from volmap.config import MapperConfig


def _camera_info(path: Path, baseline: float = 0.0) -> Path:
    """Write a calibration-file style camera_info YAML."""
    data = {
        "image_width": 640,
        "image_height": 480,
        "camera_matrix": {"rows": 3, "cols": 3, "data": [500, 0, 320, 0, 500, 240, 0, 0, 1]},
        "distortion_coefficients": {"rows": 1, "cols": 5, "data": [0, 0, 0, 0, 0]},
        "projection_matrix": {
            "rows": 3,
            "cols": 4,
            "data": [500, 0, 320, -500 * baseline, 0, 500, 240, 0, 0, 0, 1, 0],
        },
    }
    path.write_text(yaml.safe_dump(data))
    return path


def test_init_default(tmp_path: Path):
    config_path = tmp_path / "volmap.yaml"

    config = init_config(config_path, world_frame="odom")

    assert config_path.exists()
    loaded = MapperConfig.from_yaml(config_path)
    assert loaded == config
    assert loaded.world_frame == "odom"
    assert loaded.calibration.Q is None


def test_init_with_q(tmp_path: Path):
    q_path = tmp_path / "q.yaml"
    q_path.write_text(yaml.safe_dump({"Q": [[float(c + 4 * r) for c in range(4)] for r in range(4)]}))
    config_path = tmp_path / "volmap.yaml"

    init_config(config_path, q_path=q_path)

    loaded = MapperConfig.from_yaml(config_path)
    assert loaded.calibration.Q == [float(i) for i in range(16)]


def test_init_with_wrong_q_size(tmp_path: Path, capsys):
    q_path = tmp_path / "q.yaml"
    q_path.write_text(yaml.safe_dump([1.0, 2.0, 3.0]))

    with pytest.raises(SystemExit) as exc_info:
        init_config(tmp_path / "volmap.yaml", q_path=q_path)

    assert exc_info.value.code == 1
    assert "expected 16" in capsys.readouterr().err


def test_check_explicit_q(tmp_path: Path, capsys):
    config_path = tmp_path / "volmap.yaml"
    config = MapperConfig()
    config.calibration.Q = [float(i) for i in range(16)]
    config.to_yaml(config_path)

    assert check_command(config_path) is True

    out = capsys.readouterr().out
    assert "Calibration:  ready" in out
    assert "Image size:   752x480" in out


def test_check_camera_info(tmp_path: Path, capsys):
    config_path = tmp_path / "volmap.yaml"
    MapperConfig(calibration={"Q": [1.0] * 5}).to_yaml(config_path)
    left = _camera_info(tmp_path / "left.yaml")
    right = _camera_info(tmp_path / "right.yaml", baseline=0.12)

    assert check_command(config_path, left_info=left, right_info=right) is True

    out = capsys.readouterr().out
    assert "[WARN] Invalid Q matrix size" in out
    assert "Calibration:  ready" in out
    assert "Image size:   640x480" in out


def test_check_left_only_not_ready(tmp_path: Path, capsys):
    config_path = tmp_path / "volmap.yaml"
    MapperConfig().to_yaml(config_path)
    left = _camera_info(tmp_path / "left.yaml")

    assert check_command(config_path, left_info=left) is False
    assert "Calibration:  pending" in capsys.readouterr().out


def test_check_missing_config(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        check_command(tmp_path / "missing.yaml")
    assert exc_info.value.code == 1
    assert "Config file not found" in capsys.readouterr().err


def test_check_invalid_config(tmp_path: Path, capsys):
    config_path = tmp_path / "volmap.yaml"
    config_path.write_text("map:\n  resolution: -1\n")

    with pytest.raises(SystemExit):
        check_command(config_path)
    assert "Failed to load config" in capsys.readouterr().err


def test_main_check_exit_code(tmp_path: Path):
    """Test the check subcommand exits 1 when calibration is not ready."""
    config_path = tmp_path / "volmap.yaml"
    MapperConfig().to_yaml(config_path)

    with patch.object(sys, "argv", ["volmap", "check", "--config", str(config_path)]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    assert exc_info.value.code == 1


def test_main_init(tmp_path: Path):
    config_path = tmp_path / "out.yaml"
    with patch.object(
        sys, "argv", ["volmap", "init", "--config", str(config_path), "--world-frame", "map"]
    ):
        main()
    assert MapperConfig.from_yaml(config_path).world_frame == "map"


def test_main_no_command(capsys):
    with patch.object(sys, "argv", ["volmap"]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    assert exc_info.value.code == 1
