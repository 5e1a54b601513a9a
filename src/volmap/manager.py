"""Manager wiring configuration, resolvers, dispatch and publication together."""

import logging
from typing import Any

import numpy as np

from .calibration import CalibrationResolver, IntrinsicDescriptor, InvalidSizeError
from .config import MapperConfig
from .dispatch import FrameDispatcher
from .engine import MapBackend, PublicationSink, Transport
from .frames import DisparityFrame, PointCloudFrame
from .publication import MapPublisher
from .transforms.protocol import TransformProvider
from .transforms.resolver import TransformResolver

logger = logging.getLogger(__name__)


class MapManager:
    """Front end of a volumetric map: configuration, callbacks and services.

    On construction the map parameters are applied to the engine, the explicit
    reprojection matrix is tried (a malformed one is reported and skipped so
    that camera info can still provide the matrix), and periodic publication
    is started when configured.

    Args:
        config: Start-up configuration.
        engine: Mapping engine that also manages and serves the map.
        transform_provider: Source of sensor-to-world transforms.
        sink: Destination for published maps and markers. Without one,
            publication is disabled.
    """

    def __init__(
        self,
        config: MapperConfig,
        engine: MapBackend,
        transform_provider: TransformProvider,
        sink: PublicationSink | None = None,
    ):
        self.config = config
        self.engine = engine
        self.engine.set_parameters(config.map)

        self.calibration = CalibrationResolver(config.calibration.image_size)
        if config.calibration.Q is not None:
            try:
                self.calibration.set_explicit(config.calibration.Q)
            except InvalidSizeError as e:
                logger.error("%s", e)

        self.transforms = TransformResolver(transform_provider)
        self.dispatcher = FrameDispatcher(
            self.calibration,
            self.transforms,
            engine,
            config.world_frame,
            not_ready_warn_period=config.not_ready_warn_period,
        )

        self.publisher: MapPublisher | None = None
        if sink is not None:
            self.publisher = MapPublisher(
                engine, sink, config.world_frame, config.channels
            )
            if config.map_publish_frequency > 0.0:
                self.publisher.start(config.map_publish_frequency)
        elif config.map_publish_frequency > 0.0:
            logger.warning(
                "map_publish_frequency=%.2f but no publication sink given; "
                "periodic publication disabled",
                config.map_publish_frequency,
            )

    def bind(self, transport: Transport) -> None:
        """Subscribe the input callbacks on their configured channels."""
        channels = self.config.channels
        transport.subscribe(channels.left_camera_info, self.on_left_camera_info)
        transport.subscribe(channels.right_camera_info, self.on_right_camera_info)
        transport.subscribe(channels.disparity, self.on_disparity)
        transport.subscribe(channels.pointcloud, self.on_pointcloud)

    # Input callbacks

    def on_left_camera_info(self, info: IntrinsicDescriptor) -> None:
        self.calibration.on_left_intrinsics(info)

    def on_right_camera_info(self, info: IntrinsicDescriptor) -> None:
        self.calibration.on_right_intrinsics(info)

    def on_disparity(self, frame: DisparityFrame) -> None:
        self.dispatcher.on_disparity_frame(frame)

    def on_pointcloud(self, frame: PointCloudFrame) -> None:
        self.dispatcher.on_pointcloud_frame(frame)

    # Service handlers

    def reset_map(self) -> bool:
        self.engine.reset_map()
        logger.info("Map reset")
        return True

    def publish_all(self) -> bool:
        if self.publisher is None:
            logger.warning("No publication sink configured; nothing published")
            return False
        self.publisher.publish_all()
        return True

    def get_map(self) -> Any:
        """Full map snapshot in the world frame."""
        return self.engine.get_full_map()

    def save_map(self, path: str) -> bool:
        ok = bool(self.engine.write_to_file(path))
        if not ok:
            logger.error("Failed to save map to %s", path)
        return ok

    def load_map(self, path: str) -> bool:
        ok = bool(self.engine.load_from_file(path))
        if not ok:
            logger.error("Failed to load map from %s", path)
        return ok

    def set_box_occupancy(
        self, center: np.ndarray, size: np.ndarray, occupied: bool
    ) -> bool:
        """Mark an axis-aligned box as occupied or free.

        Args:
            center: Box center in the world frame, shape (3,).
            size: Box edge lengths, shape (3,), all non-negative.
            occupied: True to mark occupied, False to mark free.

        Returns:
            True if the box was applied, False if the request was invalid.
        """
        center = np.asarray(center, dtype=np.float64).reshape(-1)
        size = np.asarray(size, dtype=np.float64).reshape(-1)
        if center.shape != (3,) or size.shape != (3,):
            logger.error(
                "Box center and size must have 3 components, got %d and %d",
                center.size,
                size.size,
            )
            return False
        if np.any(size < 0.0) or not np.all(np.isfinite(size)):
            logger.error("Box size must be finite and non-negative, got %s", size)
            return False

        if occupied:
            self.engine.set_occupied(center, size)
        else:
            self.engine.set_free(center, size)
        return True

    # Lifecycle

    def close(self) -> None:
        if self.publisher is not None:
            self.publisher.stop()

    def __enter__(self) -> "MapManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
