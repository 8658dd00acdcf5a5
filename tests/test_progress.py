"""Tests for the progress counters and the periodic progress log."""

import logging
import multiprocessing
import time

from wccommon.progress import ProcessProgress, ProgressMonitor, ThreadProgress


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def bump(progress, n):
    progress.add(n)


def test_thread_progress_adds():
    progress = ThreadProgress()
    progress.add(3)
    progress.add(4)
    assert progress.value == 7


def test_process_progress_is_shared_with_children():
    ctx = multiprocessing.get_context("fork")
    progress = ProcessProgress(ctx)
    procs = [ctx.Process(target=bump, args=(progress, 10)) for _ in range(3)]
    for p in procs:
        p.start()
    for p in procs:
        p.join()
    assert progress.value == 30


def test_monitor_logs_progress_periodically(caplog):
    """While running, the monitor logs the current counter value every interval."""
    caplog.set_level(logging.INFO, logger="gridwc-coordinator")
    progress = ThreadProgress()
    progress.add(42)
    with ProgressMonitor(progress, interval=0.02, label="threads"):
        assert wait_for(lambda: "words=42" in caplog.text)
    pulses = [r.getMessage() for r in caplog.records if r.getMessage().startswith("progress threads")]
    assert pulses
    assert all("words=42" in m and "elapsed=" in m for m in pulses)


def test_monitor_stops_on_exit(caplog):
    caplog.set_level(logging.INFO, logger="gridwc-coordinator")
    monitor = ProgressMonitor(ThreadProgress(), interval=0.02, label="x")
    with monitor:
        assert wait_for(lambda: "progress x" in caplog.text)
    assert not monitor._thread.is_alive()
    seen = len(caplog.records)
    time.sleep(0.1)
    assert len(caplog.records) == seen


def test_monitor_disabled_with_zero_interval(caplog):
    caplog.set_level(logging.INFO, logger="gridwc-coordinator")
    with ProgressMonitor(ThreadProgress(), interval=0) as monitor:
        time.sleep(0.05)
    assert monitor._thread is None
    assert "progress" not in caplog.text
