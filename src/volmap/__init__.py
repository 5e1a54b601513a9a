"""Calibration and transform resolution for streaming volumetric mapping."""

from .calibration import (
    CalibrationNotReadyError,
    CalibrationReadiness,
    CalibrationResolver,
    IntrinsicDescriptor,
    InvalidSizeError,
    compute_reprojection_matrix,
)
from .config import (
    CalibrationConfig,
    ChannelConfig,
    MapConfig,
    MapperConfig,
)
from .dispatch import FrameDispatcher
from .engine import MapBackend, MappingEngine, MapStore, PublicationSink, Transport
from .frames import DisparityFrame, PointCloudFrame, SensorFrame
from .manager import MapManager
from .publication import MapPublisher, MapSnapshot
from .transforms import (
    LookupFailure,
    ResolvedTransform,
    SpatialTransform,
    StampedTransform,
    TransformBuffer,
    TransformError,
    TransformProvider,
    TransformResolver,
)

__version__ = "0.1.0"

__all__ = [
    "MapperConfig",
    "CalibrationConfig",
    "MapConfig",
    "ChannelConfig",
    "CalibrationResolver",
    "CalibrationReadiness",
    "IntrinsicDescriptor",
    "InvalidSizeError",
    "CalibrationNotReadyError",
    "compute_reprojection_matrix",
    "SpatialTransform",
    "StampedTransform",
    "TransformProvider",
    "TransformError",
    "TransformBuffer",
    "TransformResolver",
    "ResolvedTransform",
    "LookupFailure",
    "DisparityFrame",
    "PointCloudFrame",
    "SensorFrame",
    "FrameDispatcher",
    "MapBackend",
    "MappingEngine",
    "MapStore",
    "Transport",
    "PublicationSink",
    "MapPublisher",
    "MapSnapshot",
    "MapManager",
]
