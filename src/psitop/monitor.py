"""Pressure sampling engine for psitop."""

import logging
import threading
from collections import deque
from itertools import islice
from queue import Queue

from psitop.config import FETCH_PERIOD, MAX_DATA_LENGTH
from psitop.models import AllPressures
from psitop.pressure import PressureError, PressureReader, SampleError, read_all_pressures

logger = logging.getLogger(__name__)


class HistoryBuffer:
    """
    Bounded, thread-safe history of pressure samples, oldest first.

    The poller thread pushes and the UI reads copies, so the lock is only
    held for a single append or copy.
    """

    def __init__(self, capacity: int = MAX_DATA_LENGTH) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._lock = threading.Lock()
        self._samples: deque[AllPressures] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of samples retained."""
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def push(self, sample: AllPressures) -> None:
        """Append a sample, evicting the oldest one when full."""
        with self._lock:
            self._samples.append(sample)

    def snapshot_tail(self, n: int) -> list[AllPressures]:
        """Copy out the last n samples, oldest first."""
        if n <= 0:
            return []
        with self._lock:
            start = max(len(self._samples) - n, 0)
            return list(islice(self._samples, start, None))


class PressureMonitor:
    """
    Pressure monitor that samples /proc/pressure on a fixed period.

    Runs in a separate daemon thread and pushes samples into a HistoryBuffer.
    A failed sample is logged, put on the error queue and ends polling.
    """

    def __init__(
        self,
        history: HistoryBuffer,
        error_queue: Queue[PressureError],
        reader: PressureReader = read_all_pressures,
        fetch_period: float = FETCH_PERIOD,
    ) -> None:
        """
        Initialize the PressureMonitor.

        Args:
            history: Buffer the samples are pushed into.
            error_queue: Thread-safe queue fatal sampling errors are delivered on.
            reader: Callable producing one sample.
            fetch_period: How often to sample (in seconds).
        """
        self._history = history
        self._errors = error_queue
        self._reader = reader
        self._fetch_period = fetch_period
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def fetch_period(self) -> float:
        """Get the current fetch period."""
        return self._fetch_period

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> AllPressures:
        """
        Take one sample and push it into the history.

        Raises:
            PressureError: If the sample could not be taken.
        """
        sample = self._reader()
        self._history.push(sample)
        return sample

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="PressureMonitor",
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
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.wait(timeout=self._fetch_period):
            try:
                self.poll_once()
            except PressureError as e:
                logger.error("Failed to fetch pressures: %s", e)
                self._errors.put(e)
                return
            except Exception as e:
                logger.exception("Unexpected error while fetching pressures")
                error = SampleError(f"failed to fetch pressures: {e}")
                error.__cause__ = e
                self._errors.put(error)
                return
