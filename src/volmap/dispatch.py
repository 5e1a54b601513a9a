"""Frame dispatch: calibration gate, transform lookup, hand-off to the map."""

import logging
import threading
import time
from collections.abc import Callable

from .calibration import CalibrationResolver
from .engine import MappingEngine
from .frames import DisparityFrame, PointCloudFrame, SensorFrame
from .transforms.resolver import LookupFailure, ResolvedTransform, TransformResolver

logger = logging.getLogger(__name__)


class ThrottledWarning:
    """Log a warning at most once per ``period`` seconds.

    Args:
        log: Logger to write to.
        period: Minimum seconds between two emitted warnings.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        log: logging.Logger,
        period: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.log = log
        self.period = period
        self.clock = clock
        self._last: float | None = None
        self._lock = threading.Lock()

    def warning(self, msg: str, *args) -> bool:
        """Emit the warning unless one was emitted within the period.

        Returns:
            True if the warning was logged.
        """
        now = self.clock()
        with self._lock:
            if self._last is not None and now - self._last < self.period:
                return False
            self._last = now
        self.log.warning(msg, *args)
        return True


class FrameDispatcher:
    """Registers incoming frames into the world frame and forwards them.

    Disparity frames need the reprojection matrix and are dropped until it is
    ready. Point clouds only need the transform. A frame whose transform cannot
    be resolved is dropped; the resolver has already logged the cause.

    Args:
        calibration: Source of the reprojection matrix.
        transforms: Sensor-to-world transform resolver.
        engine: Mapping engine receiving registered frames.
        world_frame: Fixed frame to register into.
        not_ready_warn_period: Seconds between "not ready" warnings.
        clock: Monotonic time source for warning throttling.
    """

    def __init__(
        self,
        calibration: CalibrationResolver,
        transforms: TransformResolver,
        engine: MappingEngine,
        world_frame: str,
        not_ready_warn_period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.calibration = calibration
        self.transforms = transforms
        self.engine = engine
        self.world_frame = world_frame
        self._not_ready_warning = ThrottledWarning(logger, not_ready_warn_period, clock)

    def dispatch(self, frame: SensorFrame) -> bool:
        """Route a frame to its handler.

        Returns:
            True if the frame was handed to the mapping engine.

        Raises:
            TypeError: If ``frame`` is neither a DisparityFrame nor a PointCloudFrame.
        """
        if isinstance(frame, DisparityFrame):
            return self.on_disparity_frame(frame)
        elif isinstance(frame, PointCloudFrame):
            return self.on_pointcloud_frame(frame)
        raise TypeError(f"Unsupported frame type: {type(frame).__name__}")

    def on_disparity_frame(self, frame: DisparityFrame) -> bool:
        """Insert a disparity frame once calibration is available."""
        if not self.calibration.is_ready():
            self._not_ready_warning.warning(
                "No camera info available yet, skipping adding disparity."
            )
            return False

        resolved = self._resolve(frame.frame_id, frame.stamp)
        if resolved is None:
            return False

        self.engine.insert_disparity(
            resolved.transform,
            frame.payload,
            self.calibration.matrix(),
            self.calibration.image_size,
        )
        return True

    def on_pointcloud_frame(self, frame: PointCloudFrame) -> bool:
        """Insert a point cloud frame; no calibration is required."""
        resolved = self._resolve(frame.frame_id, frame.stamp)
        if resolved is None:
            return False

        self.engine.insert_pointcloud(resolved.transform, frame.payload)
        return True

    def _resolve(self, frame_id: str, stamp: float) -> ResolvedTransform | None:
        try:
            return self.transforms.resolve(frame_id, self.world_frame, stamp)
        except LookupFailure:
            logger.debug("Dropping frame from '%s' at t=%.6f", frame_id, stamp)
            return None
