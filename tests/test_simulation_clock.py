"""Tests for simulation_clock.SimulationClock."""

from __future__ import annotations

import pytest

from simulation_clock import SimulationClock


def test_not_running_until_started():
    clock = SimulationClock()
    assert clock.is_running() is False
    assert clock.update_host_time_seconds(12.0) == 0.0


def test_elapsed_tracks_host_time():
    clock = SimulationClock()
    clock.start(100.0)
    assert clock.update_host_time_seconds(100.25) == pytest.approx(0.25)
    assert clock.update_host_time_seconds(103.0) == pytest.approx(3.0)


def test_elapsed_never_negative_or_backwards():
    clock = SimulationClock()
    clock.start(50.0)
    assert clock.update_host_time_seconds(49.0) == 0.0
    clock.update_host_time_seconds(52.0)
    assert clock.update_host_time_seconds(51.0) == pytest.approx(2.0)


def test_stop_freezes_and_start_restarts():
    clock = SimulationClock()
    clock.start(0.0)
    clock.update_host_time_seconds(4.0)
    clock.stop()
    assert clock.update_host_time_seconds(9.0) == pytest.approx(4.0)

    snapshot = clock.snapshot()
    assert snapshot.is_running is False
    assert snapshot.host_time_seconds == 9.0
    assert snapshot.elapsed_seconds == pytest.approx(4.0)

    clock.start(9.0)
    assert clock.elapsed_seconds() == 0.0
    assert clock.is_running() is True
