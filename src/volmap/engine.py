"""Protocol interfaces for the collaborators around the mapping front end."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import numpy as np

from .config import MapConfig
from .transforms.spatial import SpatialTransform


@runtime_checkable
class MappingEngine(Protocol):
    """Protocol for the occupancy map insertion entry points.

    Both calls are synchronous and only mutate the map.
    """

    def insert_disparity(
        self,
        transform: SpatialTransform,
        disparity: Any,
        reprojection_matrix: np.ndarray,
        image_size: tuple[int, int],
    ) -> None:
        """Insert a disparity image observed from ``transform`` (sensor to world).

        Args:
            transform: Sensor-to-world transform at the image timestamp.
            disparity: Disparity payload as received.
            reprojection_matrix: Disparity-to-3D matrix, shape (4, 4).
            image_size: Expected full-frame (width, height) in pixels.
        """
        ...

    def insert_pointcloud(self, transform: SpatialTransform, pointcloud: Any) -> None:
        """Insert a point cloud observed from ``transform`` (sensor to world)."""
        ...


@runtime_checkable
class MapStore(Protocol):
    """Protocol for map management, snapshot and persistence operations."""

    def set_parameters(self, params: MapConfig) -> None:
        """Apply occupancy map parameters."""
        ...

    def reset_map(self) -> None:
        """Clear all map contents."""
        ...

    def generate_marker_array(self, frame_id: str) -> tuple[Any, Any]:
        """Build (occupied, free) visualization markers in ``frame_id``."""
        ...

    def get_binary_map(self) -> Any:
        """Return a binary (occupied/free only) map snapshot."""
        ...

    def get_full_map(self) -> Any:
        """Return a full-probability map snapshot."""
        ...

    def load_from_file(self, path: str) -> bool:
        """Replace the map with the one stored at ``path``."""
        ...

    def write_to_file(self, path: str) -> bool:
        """Write the map to ``path``."""
        ...

    def set_occupied(self, center: np.ndarray, size: np.ndarray) -> None:
        """Mark an axis-aligned box as occupied."""
        ...

    def set_free(self, center: np.ndarray, size: np.ndarray) -> None:
        """Mark an axis-aligned box as free."""
        ...


@runtime_checkable
class MapBackend(MappingEngine, MapStore, Protocol):
    """Protocol for an engine that inserts observations and serves the map."""


@runtime_checkable
class Transport(Protocol):
    """Protocol for the message transport delivering inputs by channel name."""

    def subscribe(self, channel: str, callback: Callable[[Any], None]) -> None:
        ...


@runtime_checkable
class PublicationSink(Protocol):
    """Protocol for publishing outputs by channel name."""

    def publish(self, channel: str, message: Any) -> None:
        ...
