"""Sensor-to-world transform lookup with latest-transform fallback."""

import logging
from dataclasses import dataclass

from .protocol import TransformError, TransformProvider
from .spatial import SpatialTransform

logger = logging.getLogger(__name__)


class LookupFailure(RuntimeError):
    """No transform between two frames, even when falling back to the latest one.

    Attributes:
        from_frame: Source frame of the failed lookup.
        to_frame: Target frame of the failed lookup.
        stamp: Requested time in seconds.
        cause: Text of the underlying provider error.
    """

    def __init__(self, from_frame: str, to_frame: str, stamp: float, cause: str):
        super().__init__(
            f"Cannot transform '{from_frame}' -> '{to_frame}' at t={stamp:.6f}: {cause}"
        )
        self.from_frame = from_frame
        self.to_frame = to_frame
        self.stamp = stamp
        self.cause = cause


@dataclass(frozen=True)
class ResolvedTransform:
    """Outcome of a successful lookup.

    Attributes:
        transform: Maps ``from_frame`` coordinates into ``to_frame``.
        stamp: Requested time in seconds.
        exact: False when the latest transform was substituted for the
            requested time.
    """

    transform: SpatialTransform
    stamp: float
    exact: bool


class TransformResolver:
    """Two-step lookup: exact timestamp first, then the latest known transform.

    The fallback tolerates replayed recordings and static transform publishers
    that do not keep a dense time history. Each call is independent; nothing
    is cached between frames.

    Args:
        provider: Source of transforms.
    """

    def __init__(self, provider: TransformProvider):
        self.provider = provider

    def resolve(self, from_frame: str, to_frame: str, stamp: float) -> ResolvedTransform:
        """Resolve the transform from ``from_frame`` into ``to_frame`` at ``stamp``.

        Args:
            from_frame: Sensor frame of the observation.
            to_frame: Frame to register the observation into.
            stamp: Observation time in seconds.

        Returns:
            ResolvedTransform; ``exact`` is False if the latest transform was used.

        Raises:
            LookupFailure: If the provider cannot produce a transform even for
                the latest time.
        """
        try:
            exact = self.provider.can_transform(to_frame, from_frame, stamp)
            lookup_stamp: float | None = stamp
            if not exact:
                lookup_stamp = None
                logger.warning(
                    "Using latest transform instead of timestamp match (%s -> %s at t=%.6f)",
                    from_frame,
                    to_frame,
                    stamp,
                )
            transform = self.provider.lookup_transform(to_frame, from_frame, lookup_stamp)
        except TransformError as e:
            logger.error("Error getting transform for sensor data: %s", e)
            raise LookupFailure(from_frame, to_frame, stamp, str(e)) from e

        return ResolvedTransform(transform=transform, stamp=stamp, exact=exact)
