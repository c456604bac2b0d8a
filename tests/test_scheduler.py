"""Tests for the rotation runner and scheduler."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from pxnote.errors import PublishError, RetireError
from pxnote.scheduler import RotationRunner, RotationScheduler


def wait_for_condition(condition_fn, timeout: float = 3.0, interval: float = 0.1) -> bool:
    """Wait for a condition to become true, polling at interval.

    Returns:
        True if condition was met, False if timeout was reached.
    """
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition_fn():
            return True
        time.sleep(interval)
    return False


def ok_result() -> MagicMock:
    result = MagicMock()
    result.retire_errors = []
    return result


class TestRotationRunner:
    def test_runs_with_fresh_directory(self):
        publisher = MagicMock()
        directories = []

        def factory():
            directories.append(MagicMock())
            return directories[-1]

        runner = RotationRunner(publisher, factory)
        runner()
        runner()

        assert len(directories) == 2
        assert publisher.index_all.call_args_list[0].args[0] is directories[0]
        assert publisher.index_all.call_args_list[1].args[0] is directories[1]

    def test_passes_cancel_event(self):
        publisher = MagicMock()
        cancel = threading.Event()

        RotationRunner(publisher, MagicMock)(cancel)

        assert publisher.index_all.call_args.kwargs["cancel"] is cancel

    def test_rejects_concurrent_cycle(self):
        publisher = MagicMock()
        publisher.logical_name = "note_index"
        runner = RotationRunner(publisher, MagicMock)
        entered = threading.Event()
        release = threading.Event()
        errors = []

        def slow_cycle(directory, cancel=None):
            entered.set()
            release.wait(timeout=5)
            return ok_result()

        publisher.index_all.side_effect = slow_cycle
        thread = threading.Thread(target=runner)
        thread.start()
        try:
            assert entered.wait(timeout=5)
            try:
                runner()
            except PublishError as e:
                errors.append(e)
        finally:
            release.set()
            thread.join(timeout=5)

        assert len(errors) == 1
        assert "already running" in str(errors[0])
        assert publisher.index_all.call_count == 1

    def test_lock_released_after_failure(self):
        publisher = MagicMock()
        publisher.index_all.side_effect = [PublishError("boom"), ok_result()]
        runner = RotationRunner(publisher, MagicMock)

        with pytest.raises(PublishError, match="boom"):
            runner()
        runner()

        assert publisher.index_all.call_count == 2


class TestRotationScheduler:
    def test_init_requires_positive_interval(self):
        with pytest.raises(ValueError, match="Rotation interval must be positive"):
            RotationScheduler(MagicMock(), 0)
        with pytest.raises(ValueError, match="Rotation interval must be positive"):
            RotationScheduler(MagicMock(), -1)

    def test_start_creates_daemon_thread(self):
        scheduler = RotationScheduler(MagicMock(return_value=ok_result()), 1)

        scheduler.start()
        try:
            assert scheduler._thread is not None
            assert scheduler._thread.is_alive()
            assert scheduler._thread.daemon is True
            assert scheduler._thread.name == "pxnote-rotation"
        finally:
            scheduler.stop()

    def test_start_idempotent(self):
        scheduler = RotationScheduler(MagicMock(return_value=ok_result()), 1)

        scheduler.start()
        thread1 = scheduler._thread
        scheduler.start()
        thread2 = scheduler._thread

        try:
            assert thread1 is thread2
        finally:
            scheduler.stop()

    def test_stop_terminates_thread(self):
        scheduler = RotationScheduler(MagicMock(return_value=ok_result()), 1)

        scheduler.start()
        thread = scheduler._thread
        scheduler.stop()

        assert scheduler._thread is None
        assert not thread.is_alive()

    def test_stop_idempotent(self):
        RotationScheduler(MagicMock(), 1).stop()

    def test_stop_before_first_interval_skips_cycle(self):
        run_cycle = MagicMock(return_value=ok_result())
        scheduler = RotationScheduler(run_cycle, 60)

        scheduler.start()
        scheduler.stop(timeout=2)

        run_cycle.assert_not_called()

    def test_cycle_called_with_stop_event(self):
        run_cycle = MagicMock(return_value=ok_result())
        scheduler = RotationScheduler(run_cycle, 1)

        scheduler.start()
        try:
            assert wait_for_condition(lambda: run_cycle.call_count >= 1), "cycle was not run within timeout"
            assert run_cycle.call_args.args[0] is scheduler._stop_event
        finally:
            scheduler.stop()

    def test_failed_cycle_doesnt_stop_thread(self):
        calls = 0

        def run_cycle(cancel):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise PublishError("Simulated failure")
            if calls == 2:
                raise RuntimeError("Simulated error")
            return ok_result()

        scheduler = RotationScheduler(run_cycle, 1)

        scheduler.start()
        try:
            assert wait_for_condition(lambda: calls >= 3, timeout=6.0), "cycle was not retried within timeout"
        finally:
            scheduler.stop()

    def test_retire_errors_logged(self, caplog):
        result = MagicMock()
        result.index_name = "note_index_4"
        result.retire_errors = [RetireError("delete refused", "note_index_3")]
        run_cycle = MagicMock(return_value=result)
        scheduler = RotationScheduler(run_cycle, 1)

        scheduler.start()
        try:
            assert wait_for_condition(lambda: run_cycle.call_count >= 1)
            assert wait_for_condition(
                lambda: any("1 retire errors" in r.getMessage() for r in caplog.records)
            )
        finally:
            scheduler.stop()
