# -*- coding: utf-8 -*-
########################
# simulation_clock.py
########################
# Purpose:
# - Single source of truth for elapsed chart time during play.
# - Converts a host clock reading (seconds) into elapsed seconds since chart start.
#
# Design notes:
# - Gameplay code must use SimulationClock.elapsed_seconds.
# - No Qt usage. Keep this module pure and deterministic.
# - Elapsed time is clamped to non-negative and never moves backwards until restart.
#
########################
# Interfaces:
# Public dataclasses:
# - ClockSnapshot(host_time_seconds: float, start_time_seconds: float, elapsed_seconds: float, is_running: bool)
#
# Public classes:
# - class SimulationClock
#   - start(host_time_seconds: float) -> None
#   - stop() -> None
#   - is_running() -> bool
#   - update_host_time_seconds(host_time_seconds: float) -> float
#   - elapsed_seconds() -> float
#   - snapshot() -> ClockSnapshot
#
# Inputs:
# - host_time_seconds from the runtime loop (time.monotonic in PlayfieldDriver).
#
# Outputs:
# - elapsed_seconds used by ScrollEngine and JudgeEngine.
#
########################

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ClockSnapshot:
    host_time_seconds: float
    start_time_seconds: float
    elapsed_seconds: float
    is_running: bool


class SimulationClock:
    def __init__(self) -> None:
        self._host_time_seconds = 0.0
        self._start_time_seconds = 0.0
        self._elapsed_seconds = 0.0
        self._is_running = False

    def start(self, host_time_seconds: float) -> None:
        self._start_time_seconds = float(host_time_seconds)
        self._host_time_seconds = float(host_time_seconds)
        self._elapsed_seconds = 0.0
        self._is_running = True

    def stop(self) -> None:
        self._is_running = False

    def is_running(self) -> bool:
        return bool(self._is_running)

    def update_host_time_seconds(self, host_time_seconds: float) -> float:
        self._host_time_seconds = float(host_time_seconds)
        if not self._is_running:
            return self.elapsed_seconds()

        # Contract choice:
        # - elapsed is clamped to non-negative
        # - a host reading earlier than the previous one leaves elapsed unchanged
        value = self._host_time_seconds - self._start_time_seconds
        if value < 0.0:
            value = 0.0
        if value > self._elapsed_seconds:
            self._elapsed_seconds = value
        return self.elapsed_seconds()

    def elapsed_seconds(self) -> float:
        return float(self._elapsed_seconds)

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot(
            host_time_seconds=float(self._host_time_seconds),
            start_time_seconds=float(self._start_time_seconds),
            elapsed_seconds=self.elapsed_seconds(),
            is_running=self.is_running(),
        )


def _run_unit_tests() -> None:
    clock = SimulationClock()
    assert clock.update_host_time_seconds(5.0) == 0.0

    clock.start(10.0)
    assert clock.update_host_time_seconds(9.0) == 0.0
    assert abs(clock.update_host_time_seconds(11.5) - 1.5) < 1e-9
    assert abs(clock.update_host_time_seconds(11.0) - 1.5) < 1e-9

    clock.stop()
    assert abs(clock.update_host_time_seconds(20.0) - 1.5) < 1e-9

    snap = clock.snapshot()
    assert abs(snap.elapsed_seconds - clock.elapsed_seconds()) < 1e-9
    assert snap.is_running is False


if __name__ == "__main__":
    _run_unit_tests()
    print("simulation_clock.py: ok")
