"""Shared pytest fixtures for volmap tests."""

import pytest

from volmap.calibration import IntrinsicDescriptor
from volmap.transforms import SpatialTransform, TransformError


class RecordingEngine:
    """Mapping engine double that records every call."""

    def __init__(self):
        self.disparity_calls = []
        self.pointcloud_calls = []
        self.params = None
        self.resets = 0
        self.boxes = []
        self.saved = []
        self.loaded = []
        self.file_ok = True

    def insert_disparity(self, transform, disparity, reprojection_matrix, image_size):
        self.disparity_calls.append(
            (transform, disparity, reprojection_matrix.copy(), image_size)
        )

    def insert_pointcloud(self, transform, pointcloud):
        self.pointcloud_calls.append((transform, pointcloud))

    def set_parameters(self, params):
        self.params = params

    def reset_map(self):
        self.resets += 1

    def generate_marker_array(self, frame_id):
        return (f"occupied@{frame_id}", f"free@{frame_id}")

    def get_binary_map(self):
        return b"binary"

    def get_full_map(self):
        return b"full"

    def load_from_file(self, path):
        self.loaded.append(path)
        return self.file_ok

    def write_to_file(self, path):
        self.saved.append(path)
        return self.file_ok

    def set_occupied(self, center, size):
        self.boxes.append(("occupied", center, size))

    def set_free(self, center, size):
        self.boxes.append(("free", center, size))


class FakeProvider:
    """Transform provider double with separate exact and latest answers.

    Args:
        exact: Stamps at which ``can_transform`` answers True.
        latest: Transform returned for latest lookups, or None to fail them.
    """

    def __init__(self, exact=(), latest=None, at_stamp=None):
        self.exact = set(exact)
        self.latest = latest
        self.at_stamp = at_stamp or SpatialTransform.identity()
        self.lookups = []

    def can_transform(self, target_frame, source_frame, stamp):
        return stamp in self.exact

    def lookup_transform(self, target_frame, source_frame, stamp):
        self.lookups.append((target_frame, source_frame, stamp))
        if stamp is None:
            if self.latest is None:
                raise TransformError(
                    f"'{source_frame}' and '{target_frame}' are not connected"
                )
            return self.latest
        if stamp not in self.exact:
            raise TransformError(f"no transform at {stamp}")
        return self.at_stamp


class RecordingSink:
    """Publication sink double collecting (channel, message) pairs."""

    def __init__(self):
        self.messages = []

    def publish(self, channel, message):
        self.messages.append((channel, message))


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def left_info():
    """Left camera of a rectified pair: focal 500, 640x480."""
    return IntrinsicDescriptor.from_pinhole(
        fx=500.0, fy=500.0, cx=320.0, cy=240.0, width=640, height=480
    )


@pytest.fixture
def right_info():
    """Right camera of the same pair, 0.12 m baseline, matching principal point."""
    return IntrinsicDescriptor.from_pinhole(
        fx=500.0, fy=500.0, cx=320.0, cy=240.0, width=640, height=480, baseline=0.12
    )
