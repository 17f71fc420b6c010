"""Background worker that periodically removes expired sessions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

THREAD_NAME = "sqlitestore-cleanup"


class CleanupWorker:
    """Runs a sweep callable on a fixed interval in a daemon thread.

    The worker is started once and stopped once. Stopping is idempotent and
    never blocks on a worker that has already exited.
    """

    def __init__(
        self,
        sweep: Callable[[], int],
        interval: float,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            sweep: Callable that deletes expired rows and returns how many
                were removed.
            interval: Seconds between sweeps. Must be positive.
            logger: Sink for lifecycle and sweep messages. Defaults to this module's logger.
        """
        if interval <= 0:
            raise ValueError(f"Cleanup interval must be positive, got {interval}")

        self._sweep = sweep
        self._interval = interval
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        """True while the thread is alive and no stop was requested."""
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread.

        Raises:
            RuntimeError: If the worker was already stopped.
        """
        with self._start_lock:
            if self._stop_event.is_set():
                raise RuntimeError("Cleanup worker has been stopped and cannot be restarted")
            if self._thread is not None:
                return

            self._thread = threading.Thread(target=self._run, name=THREAD_NAME, daemon=True)
            self._thread.start()
        self._logger.debug("Cleanup worker started (interval=%ss)", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to exit and wait for it.

        Safe to call repeatedly, before start, or from the worker thread.

        Args:
            timeout: Maximum seconds to wait for the thread to finish.
        """
        already_stopped = self._stop_event.is_set()
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

        if not already_stopped:
            self._logger.debug("Cleanup worker stopped")

    def run_once(self) -> int:
        """Run a single sweep, logging instead of raising on failure.

        Returns:
            Number of rows removed, or 0 if the sweep failed.
        """
        try:
            removed = self._sweep()
        except Exception:
            self._logger.exception("Failed to delete expired sessions")
            return 0

        if removed:
            self._logger.debug("Deleted %d expired session(s)", removed)
        return removed

    def _run(self) -> None:
        # wait() returns True once stop is requested
        while not self._stop_event.wait(self._interval):
            self.run_once()
