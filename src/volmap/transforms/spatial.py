"""Rigid transform types."""

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation, Slerp


@dataclass(frozen=True, eq=False)
class SpatialTransform:
    """Rigid 6-DOF transform: ``x_parent = R @ x_child + t``.

    Attributes:
        rotation: Rotation part.
        translation: Translation vector, shape (3,), float64.
    """

    rotation: Rotation
    translation: np.ndarray  # shape (3,), float64

    def __post_init__(self):
        translation = np.asarray(self.translation, dtype=np.float64).reshape(3)
        object.__setattr__(self, "translation", translation)

    @classmethod
    def identity(cls) -> "SpatialTransform":
        return cls(Rotation.identity(), np.zeros(3))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "SpatialTransform":
        """Build from a homogeneous (4, 4) matrix.

        Raises:
            ValueError: If the matrix is not (4, 4).
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a (4, 4) matrix, got shape {matrix.shape}")
        return cls(Rotation.from_matrix(matrix[:3, :3]), matrix[:3, 3])

    @classmethod
    def from_quaternion(
        cls, translation: np.ndarray, quaternion: np.ndarray
    ) -> "SpatialTransform":
        """Build from a translation and an (x, y, z, w) quaternion."""
        return cls(Rotation.from_quat(quaternion), translation)

    def as_matrix(self) -> np.ndarray:
        """Homogeneous matrix, shape (4, 4), float64."""
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation.as_matrix()
        matrix[:3, 3] = self.translation
        return matrix

    def inverse(self) -> "SpatialTransform":
        inv_rotation = self.rotation.inv()
        return SpatialTransform(inv_rotation, -inv_rotation.apply(self.translation))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform points of shape (3,) or (N, 3)."""
        return self.rotation.apply(points) + self.translation

    def __matmul__(self, other: "SpatialTransform") -> "SpatialTransform":
        if not isinstance(other, SpatialTransform):
            return NotImplemented
        return SpatialTransform(
            self.rotation * other.rotation,
            self.rotation.apply(other.translation) + self.translation,
        )

    def interpolate(self, other: "SpatialTransform", fraction: float) -> "SpatialTransform":
        """Blend towards ``other``: slerp on rotation, lerp on translation.

        Args:
            other: Transform at fraction 1.
            fraction: Blend factor in [0, 1].
        """
        slerp = Slerp([0.0, 1.0], Rotation.concatenate([self.rotation, other.rotation]))
        rotation = slerp([fraction])[0]
        translation = (1.0 - fraction) * self.translation + fraction * other.translation
        return SpatialTransform(rotation, translation)

    def is_close(self, other: "SpatialTransform", atol: float = 1e-9) -> bool:
        return bool(np.allclose(self.as_matrix(), other.as_matrix(), atol=atol))


@dataclass(frozen=True)
class StampedTransform:
    """Transform from ``child_frame`` into ``parent_frame`` at ``stamp``.

    Attributes:
        parent_frame: Frame the transform maps into.
        child_frame: Frame the transform maps from.
        stamp: Time in seconds.
        transform: The rigid transform.
    """

    parent_frame: str
    child_frame: str
    stamp: float
    transform: SpatialTransform
