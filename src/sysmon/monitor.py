"""Continuous sampling loop for sysmon."""

import logging
import threading
from queue import Queue

from sysmon.assembler import SnapshotAssembler
from sysmon.models import SamplingState, Snapshot
from sysmon.timing import interruptible_wait

logger = logging.getLogger(__name__)


class SystemMonitor:
    """
    Continuous-mode driver around a SnapshotAssembler.

    Runs in a separate daemon thread and pushes one Snapshot per refresh
    interval to a thread-safe Queue. The refresh wait polls the stop event in
    short steps so stop() returns within one poll interval.
    """

    def __init__(
        self,
        assembler: SnapshotAssembler,
        update_queue: Queue[Snapshot],
        state: SamplingState | None = None,
        top_n: int = 10,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            assembler: Assembler used for every cycle.
            update_queue: Thread-safe queue to push snapshots to.
            state: Samples for run_cycle() calls made without start(). start()
                always takes a fresh baseline.
            top_n: Initial number of processes per snapshot.
        """
        self._assembler = assembler
        self._queue = update_queue
        self._state = state
        self._top_n = max(0, top_n)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def refresh_interval(self) -> float:
        return self._assembler.config.refresh_interval

    @property
    def top_n(self) -> int:
        """Number of processes kept per snapshot."""
        return self._top_n

    @top_n.setter
    def top_n(self, value: int) -> None:
        self._top_n = max(0, value)

    @property
    def state(self) -> SamplingState | None:
        """Samples the next cycle will compute deltas against."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Take a fresh baseline and start the monitoring thread.

        The baseline is read immediately before the thread starts so the first
        cycle spans exactly one refresh interval.

        Raises:
            Unavailable: if the processor counters cannot be read.
        """
        if self.is_running:
            return

        self._state = self._assembler.begin()

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        config = self._assembler.config
        while interruptible_wait(
            config.refresh_interval,
            self._stop_event,
            poll_interval=config.poll_interval,
        ):
            try:
                self.run_cycle()
            except Exception:
                # Keep the loop alive; the next cycle starts from the last good state
                logger.exception("sampling cycle failed")

    def run_cycle(self) -> Snapshot:
        """Compute one cycle from the carried state and queue the snapshot."""
        if self._state is None:
            self._state = self._assembler.begin()
        snapshot, self._state = self._assembler.next_cycle(self._state, self._top_n)
        self._queue.put(snapshot)
        return snapshot
