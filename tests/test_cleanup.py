"""Tests for the background cleanup worker."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from sqlitestore.storage import CleanupWorker
from sqlitestore.storage.cleanup import THREAD_NAME


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_worker_runs_sweep_periodically():
    calls = []
    worker = CleanupWorker(lambda: calls.append(1) or 0, interval=0.05)
    worker.start()
    try:
        assert _wait_for(lambda: len(calls) >= 3)
    finally:
        worker.stop()


def test_worker_thread_is_named_daemon():
    worker = CleanupWorker(lambda: 0, interval=10)
    worker.start()
    try:
        threads = [t for t in threading.enumerate() if t.name == THREAD_NAME]
        assert threads
        assert all(t.daemon for t in threads)
    finally:
        worker.stop()


def test_sweep_errors_are_logged_and_worker_continues():
    """A failing sweep is reported to the logger and retried next tick."""
    calls = []

    def failing_sweep():
        calls.append(1)
        raise RuntimeError("database is locked")

    sink = MagicMock()
    worker = CleanupWorker(failing_sweep, interval=0.05, logger=sink)
    worker.start()
    try:
        assert _wait_for(lambda: len(calls) >= 2)
        assert worker.running is True
    finally:
        worker.stop()

    assert sink.exception.call_count >= 2


def test_run_once_returns_removed_count():
    worker = CleanupWorker(lambda: 4, interval=1)

    assert worker.run_once() == 4


def test_run_once_swallows_errors():
    sink = MagicMock()

    def failing_sweep():
        raise ValueError("boom")

    worker = CleanupWorker(failing_sweep, interval=1, logger=sink)

    assert worker.run_once() == 0
    sink.exception.assert_called_once()


def test_stop_is_idempotent():
    worker = CleanupWorker(lambda: 0, interval=0.05)
    worker.start()

    worker.stop()
    worker.stop()

    assert worker.running is False
    assert worker.stopped is True


def test_stop_before_start():
    worker = CleanupWorker(lambda: 0, interval=1)

    worker.stop()

    assert worker.running is False


def test_stop_wakes_worker_before_interval():
    """Stop does not wait for the next tick."""
    worker = CleanupWorker(lambda: 0, interval=60)
    worker.start()

    started = time.monotonic()
    worker.stop()

    assert time.monotonic() - started < 5


def test_start_twice_is_noop():
    worker = CleanupWorker(lambda: 0, interval=10)
    worker.start()
    try:
        worker.start()
        threads = [t for t in threading.enumerate() if t.name == THREAD_NAME and t.is_alive()]
        assert len(threads) == 1
    finally:
        worker.stop()


def test_restart_after_stop_raises():
    worker = CleanupWorker(lambda: 0, interval=1)
    worker.start()
    worker.stop()

    with pytest.raises(RuntimeError):
        worker.start()


@pytest.mark.parametrize("interval", [0, -1])
def test_non_positive_interval_rejected(interval):
    with pytest.raises(ValueError):
        CleanupWorker(lambda: 0, interval=interval)


def test_lifecycle_messages_use_injected_logger():
    sink = MagicMock()
    worker = CleanupWorker(lambda: 2, interval=0.05, logger=sink)
    worker.start()
    try:
        assert _wait_for(lambda: any(
            "Deleted" in call.args[0] for call in sink.debug.call_args_list
        ))
    finally:
        worker.stop()

    messages = [call.args[0] for call in sink.debug.call_args_list]
    assert any("started" in message for message in messages)
    assert any("stopped" in message for message in messages)
