"""Protocol definition for transform providers."""

from typing import Protocol, runtime_checkable

from .spatial import SpatialTransform


class TransformError(RuntimeError):
    """A provider could not produce the requested transform."""


@runtime_checkable
class TransformProvider(Protocol):
    """Protocol for sources of frame-to-frame rigid transforms.

    Mirrors the usual transform-tree query pair: an availability check and a
    lookup. Both are synchronous and must not wait for future data.
    """

    def can_transform(self, target_frame: str, source_frame: str, stamp: float) -> bool:
        """Return True if ``source_frame -> target_frame`` is known at ``stamp``.

        Args:
            target_frame: Frame to map into.
            source_frame: Frame to map from.
            stamp: Time in seconds.
        """
        ...

    def lookup_transform(
        self, target_frame: str, source_frame: str, stamp: float | None
    ) -> SpatialTransform:
        """Return the transform mapping ``source_frame`` coordinates into ``target_frame``.

        Args:
            target_frame: Frame to map into.
            source_frame: Frame to map from.
            stamp: Time in seconds, or None for the latest available transform.

        Raises:
            TransformError: If the frames are not connected or the time is
                outside the known history.
        """
        ...
