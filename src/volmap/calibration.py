"""Stereo reprojection matrix acquisition and readiness tracking."""

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE = (752, 480)


class InvalidSizeError(ValueError):
    """Explicit reprojection coefficients do not have exactly 16 values."""


class CalibrationNotReadyError(RuntimeError):
    """The reprojection matrix was requested before it was established."""


class CalibrationReadiness(Enum):
    """Readiness of the reprojection matrix.

    - UNSET: nothing received yet.
    - PENDING: one of the two intrinsic descriptors received, waiting for the other.
    - READY: matrix established (explicitly or derived); terminal until reset.
    """

    UNSET = "unset"
    PENDING = "pending"
    READY = "ready"


@dataclass(frozen=True, eq=False)
class IntrinsicDescriptor:
    """Per-camera calibration metadata, as carried by a camera_info message.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        K: Intrinsic matrix, shape (3, 3), float64.
        P: Rectified projection matrix, shape (3, 4), float64. For the right
            camera of a rectified pair, P[0, 3] = -fx * baseline.
        D: Distortion coefficients, shape (N,). Not used for reprojection.
        frame_id: Optional optical frame of the camera.
    """

    width: int
    height: int
    K: np.ndarray  # shape (3, 3), float64
    P: np.ndarray  # shape (3, 4), float64
    D: np.ndarray = field(default_factory=lambda: np.zeros(0))
    frame_id: str = ""

    @property
    def fx(self) -> float:
        return float(self.P[0, 0])

    @property
    def fy(self) -> float:
        return float(self.P[1, 1])

    @property
    def cx(self) -> float:
        return float(self.P[0, 2])

    @property
    def cy(self) -> float:
        return float(self.P[1, 2])

    @property
    def tx(self) -> float:
        """Projection translation term P[0, 3] (pixels * meters)."""
        return float(self.P[0, 3])

    @classmethod
    def from_pinhole(
        cls,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        width: int,
        height: int,
        baseline: float = 0.0,
        frame_id: str = "",
    ) -> "IntrinsicDescriptor":
        """Build a descriptor for a distortion-free rectified camera.

        Args:
            fx: Focal length along x (pixels).
            fy: Focal length along y (pixels).
            cx: Principal point x (pixels).
            cy: Principal point y (pixels).
            width: Image width in pixels.
            height: Image height in pixels.
            baseline: Distance to the left camera (meters). 0 for the left camera.
            frame_id: Optional optical frame name.

        Returns:
            IntrinsicDescriptor with K and P filled in.
        """
        K = np.array([[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]])
        P = np.zeros((3, 4))
        P[:, :3] = K
        P[0, 3] = -fx * baseline
        return cls(width=width, height=height, K=K, P=P, frame_id=frame_id)

    @classmethod
    def from_camera_info(cls, data: Mapping[str, Any]) -> "IntrinsicDescriptor":
        """Build a descriptor from a camera_info mapping.

        Accepts both the message layout (``width``, ``height``, ``K``, ``D``,
        ``P``, ``header.frame_id``) and the calibration file layout
        (``image_width``, ``image_height``, ``camera_matrix``,
        ``distortion_coefficients``, ``projection_matrix`` with ``data`` lists).

        Args:
            data: Parsed camera_info dictionary.

        Returns:
            IntrinsicDescriptor.

        Raises:
            KeyError: If the image size or camera matrix is missing.
            ValueError: If a matrix has the wrong number of entries.
        """

        def _matrix(keys: tuple[str, ...], shape: tuple[int, ...]) -> np.ndarray | None:
            for key in keys:
                if key in data and data[key] is not None:
                    value = data[key]
                    if isinstance(value, Mapping):
                        value = value["data"]
                    arr = np.asarray(value, dtype=np.float64)
                    if shape and arr.size != int(np.prod(shape)):
                        raise ValueError(
                            f"camera_info '{key}' has {arr.size} entries, "
                            f"expected {int(np.prod(shape))}"
                        )
                    return arr.reshape(shape) if shape else arr.ravel()
            return None

        width = int(data["width"] if "width" in data else data["image_width"])
        height = int(data["height"] if "height" in data else data["image_height"])

        K = _matrix(("K", "k", "camera_matrix"), (3, 3))
        if K is None:
            raise KeyError("camera_info is missing the camera matrix")

        P = _matrix(("P", "p", "projection_matrix"), (3, 4))
        if P is None:
            # Unrectified camera: project with K and no translation.
            P = np.zeros((3, 4))
            P[:, :3] = K

        D = _matrix(("D", "d", "distortion_coefficients"), ())
        if D is None:
            D = np.zeros(0)

        header = data.get("header") or {}
        frame_id = str(header.get("frame_id", data.get("frame_id", "")))

        return cls(width=width, height=height, K=K, P=P, D=D, frame_id=frame_id)


def compute_reprojection_matrix(
    left: IntrinsicDescriptor, right: IntrinsicDescriptor
) -> np.ndarray:
    """Compute the disparity-to-3D reprojection matrix of a rectified pair.

    For a pixel (u, v) with disparity d, ``Q @ [u, v, d, 1]`` gives the
    homogeneous 3D point in the left optical frame.

    Args:
        left: Left camera descriptor.
        right: Right camera descriptor; its P[0, 3] encodes the baseline.

    Returns:
        Reprojection matrix, shape (4, 4), float64.

    Raises:
        ValueError: If a focal length is not positive or the baseline is zero.
    """
    if left.fx <= 0.0 or left.fy <= 0.0 or right.fx <= 0.0:
        raise ValueError(
            f"Focal lengths must be positive (left fx={left.fx}, fy={left.fy}, "
            f"right fx={right.fx})"
        )

    baseline = -right.tx / right.fx
    if baseline == 0.0:
        raise ValueError(
            "Right camera projection has no baseline (P[0, 3] == 0); "
            "is it the rectified right camera?"
        )

    fx, fy = left.fx, left.fy
    cx, cy = left.cx, left.cy

    Q = np.zeros((4, 4))
    Q[0, 0] = fy * baseline
    Q[0, 3] = -fy * cx * baseline
    Q[1, 1] = fx * baseline
    Q[1, 3] = -fx * cy * baseline
    Q[2, 3] = fx * fy * baseline
    Q[3, 2] = fy
    Q[3, 3] = -fy * (cx - right.cx)
    return Q


class CalibrationResolver:
    """Owns the reprojection matrix and its one-shot readiness latch.

    The matrix becomes ready either from an explicit 16-value list or once both
    left and right intrinsic descriptors have been received, whichever happens
    first. After that, further descriptors are stored but never change the
    matrix or the image size until :meth:`reset` is called.

    Args:
        default_image_size: Expected full-frame (width, height) before any
            descriptor has been seen.
    """

    def __init__(self, default_image_size: tuple[int, int] = DEFAULT_IMAGE_SIZE):
        self._default_image_size = (
            int(default_image_size[0]),
            int(default_image_size[1]),
        )
        self._lock = threading.Lock()
        self._readiness = CalibrationReadiness.UNSET
        self._matrix = np.eye(4)
        self._image_size = self._default_image_size
        self._left: IntrinsicDescriptor | None = None
        self._right: IntrinsicDescriptor | None = None

    @property
    def readiness(self) -> CalibrationReadiness:
        return self._readiness

    @property
    def image_size(self) -> tuple[int, int]:
        """Expected full-frame image size as (width, height)."""
        return self._image_size

    @property
    def left_intrinsics(self) -> IntrinsicDescriptor | None:
        return self._left

    @property
    def right_intrinsics(self) -> IntrinsicDescriptor | None:
        return self._right

    def is_ready(self) -> bool:
        return self._readiness is CalibrationReadiness.READY

    def matrix(self) -> np.ndarray:
        """Return the reprojection matrix as a read-only (4, 4) array.

        Raises:
            CalibrationNotReadyError: If the matrix has not been established.
        """
        if not self.is_ready():
            raise CalibrationNotReadyError("Reprojection matrix is not available yet")
        view = self._matrix.view()
        view.flags.writeable = False
        return view

    def set_explicit(self, coefficients: Sequence[float]) -> None:
        """Set the matrix from 16 row-major coefficients and mark it ready.

        A later call overwrites the matrix.

        Args:
            coefficients: 16 values, row-major.

        Raises:
            InvalidSizeError: If the sequence does not have exactly 16 values.
                Readiness is left unchanged.
        """
        values = np.asarray(coefficients, dtype=np.float64).ravel()
        if values.size != 16:
            raise InvalidSizeError(
                f"Invalid Q matrix size, expected size: 16, actual size: {values.size}"
            )

        with self._lock:
            self._matrix = values.reshape(4, 4).copy()
            self._readiness = CalibrationReadiness.READY
        logger.info("Reprojection matrix set from explicit coefficients")

    def on_left_intrinsics(self, descriptor: IntrinsicDescriptor) -> None:
        """Store the latest left camera descriptor and try to derive the matrix."""
        with self._lock:
            self._left = descriptor
            self._update_locked()

    def on_right_intrinsics(self, descriptor: IntrinsicDescriptor) -> None:
        """Store the latest right camera descriptor and try to derive the matrix."""
        with self._lock:
            self._right = descriptor
            self._update_locked()

    def reset(self) -> None:
        """Forget the matrix and both descriptors, returning to UNSET."""
        with self._lock:
            self._readiness = CalibrationReadiness.UNSET
            self._matrix = np.eye(4)
            self._image_size = self._default_image_size
            self._left = None
            self._right = None
        logger.info("Calibration reset")

    def _update_locked(self) -> None:
        if self._readiness is CalibrationReadiness.READY:
            return

        if self._left is None or self._right is None:
            self._readiness = CalibrationReadiness.PENDING
            return

        try:
            Q = compute_reprojection_matrix(self._left, self._right)
        except ValueError as e:
            logger.error("Cannot derive reprojection matrix from camera info: %s", e)
            self._readiness = CalibrationReadiness.PENDING
            return

        self._matrix = Q
        self._image_size = (self._left.width, self._left.height)
        self._readiness = CalibrationReadiness.READY
        logger.info(
            "Reprojection matrix derived from camera info (image size %dx%d)",
            self._left.width,
            self._left.height,
        )
