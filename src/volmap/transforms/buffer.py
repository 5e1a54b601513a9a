"""In-memory transform tree satisfying the TransformProvider protocol."""

import bisect
import logging
import threading
from dataclasses import dataclass, field

from .protocol import TransformError
from .spatial import SpatialTransform, StampedTransform

logger = logging.getLogger(__name__)

# Stamps closer than this (seconds) are treated as identical.
STAMP_TOLERANCE = 1e-9


@dataclass
class _Edge:
    """Sample history of one child frame relative to its parent."""

    parent: str
    static: bool = False
    stamps: list[float] = field(default_factory=list)
    transforms: list[SpatialTransform] = field(default_factory=list)

    def insert(self, stamp: float, transform: SpatialTransform) -> None:
        i = bisect.bisect_left(self.stamps, stamp)
        if i < len(self.stamps) and abs(self.stamps[i] - stamp) <= STAMP_TOLERANCE:
            self.transforms[i] = transform
            return
        self.stamps.insert(i, stamp)
        self.transforms.insert(i, transform)

    def prune(self, cache_time: float) -> None:
        if self.static or not self.stamps:
            return
        oldest = self.stamps[-1] - cache_time
        keep = bisect.bisect_left(self.stamps, oldest)
        if keep:
            del self.stamps[:keep]
            del self.transforms[:keep]

    def sample(self, stamp: float | None) -> SpatialTransform | None:
        """Transform at ``stamp`` (None = latest), or None when outside history."""
        if not self.transforms:
            return None
        if self.static or stamp is None:
            return self.transforms[-1]

        if stamp < self.stamps[0] - STAMP_TOLERANCE:
            return None
        if stamp > self.stamps[-1] + STAMP_TOLERANCE:
            return None

        i = bisect.bisect_left(self.stamps, stamp)
        if i < len(self.stamps) and abs(self.stamps[i] - stamp) <= STAMP_TOLERANCE:
            return self.transforms[i]
        if i > 0 and abs(self.stamps[i - 1] - stamp) <= STAMP_TOLERANCE:
            return self.transforms[i - 1]

        t0, t1 = self.stamps[i - 1], self.stamps[i]
        fraction = (stamp - t0) / (t1 - t0)
        return self.transforms[i - 1].interpolate(self.transforms[i], fraction)


class TransformBuffer:
    """Time-stamped transform tree with interpolation and no extrapolation.

    Each child frame has exactly one parent. Dynamic edges keep a bounded
    history of samples and are interpolated between them; static edges are
    valid at every time. Lookups chain edges through the nearest common
    ancestor of the two frames.

    Args:
        cache_time: Seconds of history kept per dynamic edge.
    """

    def __init__(self, cache_time: float = 10.0):
        if cache_time <= 0.0:
            raise ValueError(f"cache_time must be positive, got {cache_time}")
        self.cache_time = cache_time
        self._edges: dict[str, _Edge] = {}
        self._lock = threading.Lock()

    def set_transform(self, stamped: StampedTransform, static: bool = False) -> None:
        """Insert a transform sample.

        A child that is re-published under a different parent is moved to the
        new parent and loses its previous history.

        Args:
            stamped: Transform from ``child_frame`` into ``parent_frame``.
            static: If True, the edge is valid at all times.

        Raises:
            ValueError: If parent and child are the same frame.
        """
        if stamped.parent_frame == stamped.child_frame:
            raise ValueError(
                f"Transform parent and child are both '{stamped.child_frame}'"
            )

        with self._lock:
            edge = self._edges.get(stamped.child_frame)
            if edge is None or edge.parent != stamped.parent_frame or edge.static != static:
                if edge is not None and edge.parent == stamped.parent_frame:
                    logger.warning(
                        "Frame '%s' switched from %s to %s",
                        stamped.child_frame,
                        "static" if edge.static else "dynamic",
                        "static" if static else "dynamic",
                    )
                elif edge is not None:
                    logger.warning(
                        "Frame '%s' re-parented from '%s' to '%s'",
                        stamped.child_frame,
                        edge.parent,
                        stamped.parent_frame,
                    )
                edge = _Edge(parent=stamped.parent_frame, static=static)
                self._edges[stamped.child_frame] = edge

            if static:
                edge.stamps = [stamped.stamp]
                edge.transforms = [stamped.transform]
            else:
                edge.insert(stamped.stamp, stamped.transform)
                edge.prune(self.cache_time)

    def set_static_transform(self, stamped: StampedTransform) -> None:
        self.set_transform(stamped, static=True)

    def clear(self) -> None:
        with self._lock:
            self._edges.clear()

    def frames(self) -> set[str]:
        """All frame names known to the buffer."""
        with self._lock:
            names = set(self._edges)
            names.update(edge.parent for edge in self._edges.values())
        return names

    def can_transform(self, target_frame: str, source_frame: str, stamp: float) -> bool:
        try:
            self.lookup_transform(target_frame, source_frame, stamp)
        except TransformError:
            return False
        return True

    def lookup_transform(
        self, target_frame: str, source_frame: str, stamp: float | None
    ) -> SpatialTransform:
        """Chain edges to map ``source_frame`` coordinates into ``target_frame``.

        Args:
            target_frame: Frame to map into.
            source_frame: Frame to map from.
            stamp: Time in seconds, or None to use the latest sample of every edge.

        Raises:
            TransformError: If a frame is unknown, the frames are not connected,
                or ``stamp`` lies outside an edge's history.
        """
        with self._lock:
            known = set(self._edges)
            known.update(edge.parent for edge in self._edges.values())
            for name in (target_frame, source_frame):
                if name not in known:
                    raise TransformError(f"Frame '{name}' does not exist")

            if target_frame == source_frame:
                return SpatialTransform.identity()

            source_chain = self._chain(source_frame)
            target_chain = self._chain(target_frame)
            target_index = {name: i for i, name in enumerate(target_chain)}

            common = None
            for i, name in enumerate(source_chain):
                if name in target_index:
                    common = (i, target_index[name])
                    break
            if common is None:
                raise TransformError(
                    f"Frames '{source_frame}' and '{target_frame}' are not connected"
                )

            ancestor_from_source = self._compose(source_chain[: common[0]], stamp)
            ancestor_from_target = self._compose(target_chain[: common[1]], stamp)

        return ancestor_from_target.inverse() @ ancestor_from_source

    def _chain(self, frame: str) -> list[str]:
        chain = [frame]
        seen = {frame}
        while chain[-1] in self._edges:
            parent = self._edges[chain[-1]].parent
            if parent in seen:
                raise TransformError(f"Transform tree has a loop at frame '{parent}'")
            chain.append(parent)
            seen.add(parent)
        return chain

    def _compose(self, frames: list[str], stamp: float | None) -> SpatialTransform:
        """Compose child-to-parent edges starting at ``frames[0]``."""
        result = SpatialTransform.identity()
        for name in frames:
            edge = self._edges[name]
            sample = edge.sample(stamp)
            if sample is None:
                if not edge.stamps:
                    raise TransformError(f"No transform samples for frame '{name}'")
                raise TransformError(
                    f"Lookup of '{name}' -> '{edge.parent}' at t={stamp:.6f} would "
                    f"require extrapolation (history {edge.stamps[0]:.6f} to "
                    f"{edge.stamps[-1]:.6f})"
                )
            result = sample @ result
        return result
