"""Sensor frame envelopes awaiting registration into the world frame."""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class DisparityFrame:
    """Stereo disparity image.

    Attributes:
        frame_id: Sensor frame the disparity was computed in.
        stamp: Capture time in seconds.
        payload: Disparity data, forwarded to the mapping engine unmodified.
    """

    frame_id: str
    stamp: float
    payload: Any


@dataclass(frozen=True)
class PointCloudFrame:
    """Point cloud already reprojected into 3D.

    Attributes:
        frame_id: Sensor frame the points are expressed in.
        stamp: Capture time in seconds.
        payload: Point data, forwarded to the mapping engine unmodified.
    """

    frame_id: str
    stamp: float
    payload: Any


SensorFrame = Union[DisparityFrame, PointCloudFrame]
