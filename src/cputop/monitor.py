"""Polling loop for cputop."""

import logging
import threading
import time
from collections.abc import Callable
from queue import Queue

from cputop.engine import TOP_N, evaluate
from cputop.models import CycleReport, Snapshot
from cputop.reader import CputopError, SnapshotReader

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0


class SnapshotBuffer:
    """Owns the ``before`` and ``after`` snapshots and swaps them each cycle."""

    def __init__(self) -> None:
        self._before = Snapshot()
        self._after = Snapshot()

    @property
    def before(self) -> Snapshot:
        """The baseline snapshot of the current cycle."""
        return self._before

    @property
    def after(self) -> Snapshot:
        """The snapshot refilled by the next read."""
        return self._after

    def swap(self) -> None:
        """Make ``after`` the new ``before``; the old ``before`` is refilled next."""
        self._before, self._after = self._after, self._before


class CpuMonitor:
    """
    Single-threaded sampler: read, diff, rank, report, sleep.

    Any SourceUnavailable or MalformedRecord raised by the reader ends the
    run; there are no retries.
    """

    def __init__(
        self,
        reader: SnapshotReader,
        interval: float = POLL_INTERVAL,
        top_n: int = TOP_N,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the CpuMonitor.

        Args:
            reader: Source of snapshots.
            interval: Seconds between samples. Default 5.0s.
            top_n: Number of processes kept in each ranking.
            sleep: Sleep function, replaceable in tests.
        """
        self._reader = reader
        self._interval = interval
        self._top_n = top_n
        self._sleep = sleep
        self._buffer = SnapshotBuffer()
        self._primed = False

    @property
    def reader(self) -> SnapshotReader:
        """Get the snapshot reader."""
        return self._reader

    @property
    def interval(self) -> float:
        """Get the seconds between samples."""
        return self._interval

    @property
    def buffer(self) -> SnapshotBuffer:
        """Get the before/after double buffer."""
        return self._buffer

    def prime(self) -> None:
        """Take the baseline sample."""
        self._reader.read_into(self._buffer.before)
        self._primed = True

    def cycle(self) -> CycleReport:
        """Take the next sample, report against the previous one and swap."""
        if not self._primed:
            self.prime()
        self._reader.read_into(self._buffer.after)
        report = evaluate(self._buffer.before, self._buffer.after, self._top_n)
        self._buffer.swap()
        return report

    def run(
        self,
        emit: Callable[[CycleReport], None],
        cycles: int | None = None,
    ) -> None:
        """
        Poll until killed, or for a fixed number of cycles.

        Args:
            emit: Called with each cycle's report.
            cycles: Stop after this many reports. None runs forever.
        """
        self.prime()
        count = 0
        while cycles is None or count < cycles:
            self._sleep(self._interval)
            emit(self.cycle())
            count += 1


class BackgroundMonitor:
    """
    Runs a CpuMonitor in a separate daemon thread.

    Pushes each CycleReport to a thread-safe Queue. Any exception raised while
    sampling stops the thread and is kept in ``error``.
    """

    def __init__(
        self,
        update_queue: Queue[CycleReport],
        monitor: CpuMonitor,
    ) -> None:
        """
        Initialize the BackgroundMonitor.

        Args:
            update_queue: Thread-safe queue to push reports to.
            monitor: The sampler to drive.
        """
        self._queue = update_queue
        self._monitor = monitor
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    @property
    def monitor(self) -> CpuMonitor:
        """Get the sampler driven by the thread."""
        return self._monitor

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self.error = None
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="CpuMonitor",
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
        """Main polling loop running in the background thread."""
        try:
            self._monitor.prime()
            while not self._stop_event.wait(timeout=self._monitor.interval):
                self._queue.put(self._monitor.cycle())
        except CputopError as exc:
            logger.error("Counter source failed: %s", exc)
            self.error = exc
        except Exception as exc:
            logger.exception("Monitor thread crashed")
            self.error = exc
