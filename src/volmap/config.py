"""Configuration management for the volmap mapping front end."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

# Flat parameter names used by older node launch files, mapped to their
# (section, key) in the nested structure. A section of None means top level.
LEGACY_KEYS: dict[str, tuple[str | None, str]] = {
    "tf_frame": (None, "world_frame"),
    "Q": ("calibration", "Q"),
    "full_image_width": ("calibration", "full_image_width"),
    "full_image_height": ("calibration", "full_image_height"),
    "resolution": ("map", "resolution"),
    "probability_hit": ("map", "probability_hit"),
    "probability_miss": ("map", "probability_miss"),
    "threshold_min": ("map", "threshold_min"),
    "threshold_max": ("map", "threshold_max"),
    "threshold_occupancy": ("map", "threshold_occupancy"),
    "filter_speckles": ("map", "filter_speckles"),
    "sensor_max_range": ("map", "sensor_max_range"),
    "visualize_min_z": ("map", "visualize_min_z"),
    "visualize_max_z": ("map", "visualize_max_z"),
}


class CalibrationConfig(BaseModel):
    """Configuration for the stereo reprojection matrix.

    Attributes:
        Q: Optional explicit reprojection matrix as 16 row-major values.
            The length is checked when the matrix is applied, not here, so a
            malformed list is reported without rejecting the whole config.
        full_image_width: Expected full-frame image width in pixels.
        full_image_height: Expected full-frame image height in pixels.
    """

    model_config = ConfigDict(extra="allow")

    Q: list[float] | None = None
    full_image_width: int = Field(default=752, gt=0)
    full_image_height: int = Field(default=480, gt=0)

    @property
    def image_size(self) -> tuple[int, int]:
        """Configured image size as (width, height)."""
        return (self.full_image_width, self.full_image_height)

    @model_validator(mode="after")
    def warn_extra_fields(self) -> "CalibrationConfig":
        """Warn about unknown configuration keys."""
        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in CalibrationConfig (ignored): %s",
                list(self.__pydantic_extra__.keys()),
            )
        return self


class MapConfig(BaseModel):
    """Occupancy map parameters handed to the mapping engine.

    Attributes:
        resolution: Voxel edge length (meters).
        probability_hit: Occupancy probability applied to a hit.
        probability_miss: Occupancy probability applied to a miss.
        threshold_min: Lower clamping threshold for occupancy probability.
        threshold_max: Upper clamping threshold for occupancy probability.
        threshold_occupancy: Probability above which a voxel counts as occupied.
        filter_speckles: Drop isolated occupied voxels when generating output.
        sensor_max_range: Maximum sensor range used for insertion (meters).
        visualize_min_z: Lower height cut-off for markers (None = unbounded).
        visualize_max_z: Upper height cut-off for markers (None = unbounded).
    """

    model_config = ConfigDict(extra="allow")

    resolution: float = Field(default=0.15, gt=0.0)
    probability_hit: float = 0.65
    probability_miss: float = 0.4
    threshold_min: float = 0.12
    threshold_max: float = 0.97
    threshold_occupancy: float = 0.7
    filter_speckles: bool = True
    sensor_max_range: float = 5.0
    visualize_min_z: float | None = None
    visualize_max_z: float | None = None

    @field_validator(
        "probability_hit",
        "probability_miss",
        "threshold_min",
        "threshold_max",
        "threshold_occupancy",
    )
    @classmethod
    def validate_probability(cls, v: float) -> float:
        """Validate that probabilities lie in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"probability must be in [0, 1], got {v}")
        return v

    @model_validator(mode="after")
    def check_thresholds(self) -> "MapConfig":
        """Validate threshold ordering and warn about extra fields."""
        if self.threshold_min >= self.threshold_max:
            raise ValueError(
                f"threshold_min ({self.threshold_min}) must be below "
                f"threshold_max ({self.threshold_max})"
            )
        if (
            self.visualize_min_z is not None
            and self.visualize_max_z is not None
            and self.visualize_min_z > self.visualize_max_z
        ):
            raise ValueError(
                f"visualize_min_z ({self.visualize_min_z}) must not exceed "
                f"visualize_max_z ({self.visualize_max_z})"
            )
        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in MapConfig (ignored): %s",
                list(self.__pydantic_extra__.keys()),
            )
        return self


class ChannelConfig(BaseModel):
    """Transport channel names for inputs and published outputs."""

    model_config = ConfigDict(extra="allow")

    # Inputs
    left_camera_info: str = "cam0/camera_info"
    right_camera_info: str = "cam1/camera_info"
    disparity: str = "disparity"
    pointcloud: str = "pointcloud"

    # Outputs
    occupied_markers: str = "octomap_occupied"
    free_markers: str = "octomap_free"
    binary_map: str = "octomap_binary"
    full_map: str = "octomap_full"

    @model_validator(mode="after")
    def warn_extra_fields(self) -> "ChannelConfig":
        """Warn about unknown configuration keys."""
        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in ChannelConfig (ignored): %s",
                list(self.__pydantic_extra__.keys()),
            )
        return self


class MapperConfig(BaseModel):
    """Top-level configuration for the mapping front end.

    Read once at start-up; there is no hot reload.

    Attributes:
        world_frame: Name of the fixed frame all observations are registered into.
        map_publish_frequency: Rate (Hz) of periodic map publication. 0 disables it.
        not_ready_warn_period: Minimum seconds between "calibration not ready"
            warnings while disparity frames are being dropped.
        calibration: Reprojection matrix configuration.
        map: Occupancy map parameters.
        channels: Transport channel names.
    """

    model_config = ConfigDict(extra="allow")

    world_frame: str = "world"
    map_publish_frequency: float = Field(default=0.0, ge=0.0)
    not_ready_warn_period: float = Field(default=1.0, gt=0.0)

    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    channels: ChannelConfig = Field(default_factory=ChannelConfig)

    @field_validator("world_frame")
    @classmethod
    def validate_world_frame(cls, v: str) -> str:
        """Validate that the world frame name is not empty."""
        if not v.strip():
            raise ValueError("world_frame must not be empty")
        return v

    @model_validator(mode="after")
    def warn_extra_fields(self) -> "MapperConfig":
        """Warn about unknown top-level keys."""
        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in MapperConfig (ignored): %s",
                list(self.__pydantic_extra__.keys()),
            )
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "MapperConfig":
        """Load configuration from a YAML file.

        Missing fields use their default values. Flat legacy parameter files
        are migrated into the nested structure first.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Loaded configuration with defaults filled in.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            ValueError: If validation fails (with all errors collected).
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Configuration root must be a mapping, got {type(data).__name__}"
            )

        data = cls._migrate_legacy_config(data)

        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            formatted_errors = format_validation_errors(e)
            raise ValueError(
                f"Configuration validation failed:\n{formatted_errors}"
            ) from None

        return config

    @staticmethod
    def _migrate_legacy_config(data: dict[str, Any]) -> dict[str, Any]:
        """Move flat legacy parameter names into their nested sections.

        Nested values win over legacy flat ones when both are present.

        Args:
            data: Configuration dictionary loaded from YAML.

        Returns:
            Migrated configuration dictionary.
        """
        migrated = data.copy()

        for old_key, (section, new_key) in LEGACY_KEYS.items():
            if old_key not in migrated:
                continue
            logger.info("Migrating legacy config key '%s' to new structure", old_key)
            value = migrated.pop(old_key)

            if section is None:
                migrated.setdefault(new_key, value)
                continue

            target = migrated.get(section)
            if target is None:
                target = {}
            elif isinstance(target, dict):
                target = dict(target)
            else:
                # Leave the malformed section for validation to report.
                continue
            target.setdefault(new_key, value)
            migrated[section] = target

        return migrated

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file.

        All fields including defaults are written for explicitness.

        Args:
            path: Path to output YAML file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors with YAML-style paths.

    Args:
        error: Pydantic ValidationError.

    Returns:
        Formatted error string with YAML paths and messages.
    """
    lines = []
    for err in error.errors():
        loc = err["loc"]
        path_parts: list[str] = []
        for part in loc:
            if isinstance(part, int) and path_parts:
                # Array index
                path_parts[-1] = f"{path_parts[-1]}[{part}]"
            else:
                path_parts.append(str(part))

        path = ".".join(path_parts)
        msg = err["msg"]
        lines.append(f"  {path}: {msg}")

    return "\n".join(lines)
