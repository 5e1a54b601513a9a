"""Periodic and on-demand publication of map snapshots and markers."""

import logging
import threading
from dataclasses import dataclass
from typing import Any

from .config import ChannelConfig
from .engine import MapStore, PublicationSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapSnapshot:
    """A map snapshot tagged with the frame it is expressed in.

    Attributes:
        frame_id: Frame of the map (the world frame).
        binary: True for occupied/free only, False for full probabilities.
        data: Snapshot as returned by the map store.
    """

    frame_id: str
    binary: bool
    data: Any


class MapPublisher:
    """Emits marker arrays and map snapshots on the output channels.

    Args:
        store: Map providing snapshots and markers.
        sink: Destination for published messages.
        world_frame: Frame the outputs are tagged with.
        channels: Output channel names.
    """

    def __init__(
        self,
        store: MapStore,
        sink: PublicationSink,
        world_frame: str,
        channels: ChannelConfig | None = None,
    ):
        self.store = store
        self.sink = sink
        self.world_frame = world_frame
        self.channels = channels or ChannelConfig()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def publish_all(self) -> None:
        """Publish occupied/free markers and binary/full map snapshots."""
        occupied, free = self.store.generate_marker_array(self.world_frame)
        self.sink.publish(self.channels.occupied_markers, occupied)
        self.sink.publish(self.channels.free_markers, free)

        binary_map = MapSnapshot(
            frame_id=self.world_frame, binary=True, data=self.store.get_binary_map()
        )
        full_map = MapSnapshot(
            frame_id=self.world_frame, binary=False, data=self.store.get_full_map()
        )
        self.sink.publish(self.channels.binary_map, binary_map)
        self.sink.publish(self.channels.full_map, full_map)
        logger.debug("Published map in frame '%s'", self.world_frame)

    def start(self, frequency: float) -> None:
        """Publish every ``1 / frequency`` seconds on a background thread.

        A previous run that is still finishing a publication after
        :meth:`stop` is waited for before the new thread starts.

        Raises:
            ValueError: If ``frequency`` is not positive.
            RuntimeError: If periodic publication is already running.
        """
        if frequency <= 0.0:
            raise ValueError(f"frequency must be positive, got {frequency}")
        if self.running:
            if not self._stop.is_set():
                raise RuntimeError("Periodic map publication is already running")
            self._thread.join()

        period = 1.0 / frequency
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(period, self._stop), name="map-publisher", daemon=True
        )
        self._thread.start()
        logger.info("Publishing map every %.3f s", period)

    def stop(self, timeout: float | None = None) -> None:
        """Stop periodic publication and wait for the thread to exit.

        If the thread is still publishing when ``timeout`` expires it is left
        to finish on its own; it never publishes again.
        """
        self._stop.set()
        if self._thread is None:
            return
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Map publisher still busy after stop, letting it finish")
        else:
            self._thread = None

    def _run(self, period: float, stop: threading.Event) -> None:
        while not stop.wait(period):
            try:
                self.publish_all()
            except Exception:
                logger.exception("Periodic map publication failed")
