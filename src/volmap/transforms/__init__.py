"""Rigid transforms, transform providers and the sensor-to-world resolver."""

from .buffer import TransformBuffer
from .protocol import TransformError, TransformProvider
from .resolver import LookupFailure, ResolvedTransform, TransformResolver
from .spatial import SpatialTransform, StampedTransform

__all__ = [
    "LookupFailure",
    "ResolvedTransform",
    "SpatialTransform",
    "StampedTransform",
    "TransformBuffer",
    "TransformError",
    "TransformProvider",
    "TransformResolver",
]
