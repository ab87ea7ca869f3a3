"""
Tests for the periodic sweep runner.
"""

from __future__ import annotations

import threading

import pytest

from app.infrastructure.scheduling.sweep_runner import PeriodicSweepRunner


def test_runner_ticks_until_stopped():
    ticks = threading.Event()
    calls: list[int] = []

    def job() -> None:
        calls.append(1)
        if len(calls) >= 2:
            ticks.set()

    runner = PeriodicSweepRunner(job, interval_seconds=0.01)
    runner.start()
    assert ticks.wait(timeout=5)
    runner.stop()

    assert not runner.running
    assert len(calls) >= 2


def test_failing_tick_does_not_kill_the_loop():
    ticks = threading.Event()
    calls: list[int] = []

    def job() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        ticks.set()

    runner = PeriodicSweepRunner(job, interval_seconds=0.01)
    runner.start()
    assert ticks.wait(timeout=5)
    runner.stop()


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        PeriodicSweepRunner(lambda: None, interval_seconds=0)
