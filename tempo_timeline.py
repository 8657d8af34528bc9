# -*- coding: utf-8 -*-
########################
# tempo_timeline.py
########################
# Purpose:
# - Piecewise-constant tempo function over the beat axis.
# - Forward mapping beat -> elapsed seconds, inverse mapping elapsed seconds -> beat,
#   and the rate-weighted scroll distance between two instants.
#
# Design notes:
# - No Qt usage. Immutable after construction, safe to share.
# - Intervals are contiguous, sorted by start, and only the last one is unbounded.
# - A query exactly on an interval boundary is resolved by the earlier interval.
# - Queries at or below zero return 0.
# - Construction rejects non-physical timelines (rate <= 0, decreasing change beats).
#
########################
# Interfaces:
# Public exceptions:
# - class TimelineError(ValueError)
#
# Public dataclasses:
# - Interval(start: float, end: float, value: float)
#
# Public classes:
# - class TempoTimeline
#   - __init__(intervals: Sequence[Interval])
#   - from_changes(initial_rate: float, changes: Iterable[tuple[float, float]]) -> TempoTimeline
#   - intervals -> tuple[Interval, ...]
#   - time_at(beat: float) -> float
#   - beat_at(time: float) -> float
#   - distance(time_a: float, time_b: float) -> float
#   - beat_distance(beat_a: float, beat_b: float) -> float
#   - rate_at_beat(beat: float) -> float
#   - rate_at_time(time: float) -> float
#   - change_times() -> list[float]
#
# Inputs:
# - Initial rate (beats per minute) and (beat, rate) tempo changes mapped by MeasureBeatMapper.
#
# Outputs:
# - Note target times for ScrollEngine and scroll distances for per-tick offsets.
#
########################

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
import logging
import math
from typing import Iterable, List, Sequence, Tuple

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0


class TimelineError(ValueError):
    """Raised when tempo changes do not describe a physical, ordered timeline."""


@dataclass(frozen=True)
class Interval:
    start: float
    end: float
    value: float


def _validate_rate(rate: float, *, where: str) -> float:
    rate_value = float(rate)
    if not math.isfinite(rate_value) or rate_value <= 0.0:
        raise TimelineError(f"Tempo {where} must be a positive finite number, got {rate_value!r}")
    return rate_value


class TempoTimeline:
    def __init__(self, intervals: Sequence[Interval]) -> None:
        interval_list = list(intervals)
        if not interval_list:
            raise TimelineError("Tempo timeline needs at least one interval")
        if interval_list[0].start != 0.0:
            raise TimelineError(f"First interval must start at beat 0, got {interval_list[0].start!r}")

        for index, interval in enumerate(interval_list):
            _validate_rate(interval.value, where=f"of interval {index}")
            is_last = index == len(interval_list) - 1
            if is_last:
                if not math.isinf(interval.end):
                    raise TimelineError("Last interval must be unbounded")
                continue
            if math.isinf(interval.end):
                raise TimelineError(f"Only the last interval may be unbounded, interval {index} is not last")
            if not interval.end > interval.start:
                raise TimelineError(f"Interval {index} is empty: [{interval.start}, {interval.end})")
            if interval.end != interval_list[index + 1].start:
                raise TimelineError(
                    f"Intervals {index} and {index + 1} are not contiguous: "
                    f"{interval.end} != {interval_list[index + 1].start}"
                )

        self._intervals: Tuple[Interval, ...] = tuple(interval_list)
        self._starts: List[float] = [interval.start for interval in self._intervals]

        self._start_times: List[float] = [0.0]
        for interval in self._intervals[:-1]:
            length = interval.end - interval.start
            self._start_times.append(self._start_times[-1] + SECONDS_PER_MINUTE * length / interval.value)

        self._beat_bounds: List[Tuple[float, float]] = [(item.start, item.end) for item in self._intervals]
        self._time_bounds: List[Tuple[float, float]] = [
            (self._start_times[index], self._start_times[index + 1] if index + 1 < len(self._intervals) else math.inf)
            for index in range(len(self._intervals))
        ]
        self._beat_ends: List[float] = [end for _start, end in self._beat_bounds]
        self._time_ends: List[float] = [end for _start, end in self._time_bounds]

    @classmethod
    def from_changes(cls, initial_rate: float, changes: Iterable[Tuple[float, float]]) -> "TempoTimeline":
        """Build the interval sequence from an initial rate and ordered (beat, rate) changes.

        A change at the same beat as the previous one replaces it, so a change at
        beat 0 overrides the initial rate.
        """
        points: List[List[float]] = [[0.0, _validate_rate(initial_rate, where="initial rate")]]

        for change_index, (beat, rate) in enumerate(changes):
            beat_value = float(beat)
            rate_value = _validate_rate(rate, where=f"change {change_index}")
            if not math.isfinite(beat_value) or beat_value < 0.0:
                raise TimelineError(f"Tempo change {change_index} has invalid beat {beat_value!r}")

            previous_beat = points[-1][0]
            if beat_value < previous_beat:
                raise TimelineError(
                    f"Tempo change {change_index} at beat {beat_value} precedes the previous change at beat {previous_beat}"
                )
            if beat_value == previous_beat:
                logger.debug("Tempo change at beat %s replaces rate %s with %s", beat_value, points[-1][1], rate_value)
                points[-1][1] = rate_value
                continue
            points.append([beat_value, rate_value])

        intervals = [
            Interval(
                start=start_beat,
                end=points[index + 1][0] if index + 1 < len(points) else math.inf,
                value=rate_value,
            )
            for index, (start_beat, rate_value) in enumerate(points)
        ]
        return cls(intervals)

    @property
    def intervals(self) -> Tuple[Interval, ...]:
        return self._intervals

    def time_at(self, beat: float) -> float:
        beat_value = float(beat)
        if beat_value <= 0.0:
            return 0.0
        # Last interval whose start is strictly below the beat, so boundaries close the earlier one.
        index = bisect_left(self._starts, beat_value) - 1
        interval = self._intervals[index]
        return self._start_times[index] + SECONDS_PER_MINUTE * (beat_value - interval.start) / interval.value

    def beat_at(self, time: float) -> float:
        time_value = float(time)
        if time_value <= 0.0:
            return 0.0
        index = bisect_left(self._start_times, time_value) - 1
        interval = self._intervals[index]
        needed_seconds = time_value - self._start_times[index]
        return interval.start + needed_seconds * interval.value / SECONDS_PER_MINUTE

    def distance(self, time_a: float, time_b: float) -> float:
        """Integral of the raw tempo value between two elapsed-time coordinates.

        Segments are clipped on the time axis, so the result is the tempo-weighted
        scroll travel between two instants. Always non-negative; unbounded only when
        the upper bound is.
        """
        return self._integrate_rate(float(time_a), float(time_b), self._time_bounds, self._time_ends)

    def beat_distance(self, beat_a: float, beat_b: float) -> float:
        return self._integrate_rate(float(beat_a), float(beat_b), self._beat_bounds, self._beat_ends)

    def _integrate_rate(
        self,
        a: float,
        b: float,
        bounds: Sequence[Tuple[float, float]],
        ends: Sequence[float],
    ) -> float:
        left = min(a, b)
        right = max(a, b)
        if left == right:
            return 0.0

        # First segment whose end lies past the lower bound.
        first_index = bisect_right(ends, left)
        result = 0.0
        for index in range(first_index, len(self._intervals)):
            interval = self._intervals[index]
            segment_start, segment_end = bounds[index]
            clipped_start = max(segment_start, left)
            clipped_end = min(segment_end, right)
            if clipped_end > clipped_start:
                result += (clipped_end - clipped_start) * interval.value
            if segment_end >= right:
                break
        return result

    def rate_at_beat(self, beat: float) -> float:
        index = max(0, bisect_right(self._starts, float(beat)) - 1)
        return self._intervals[index].value

    def rate_at_time(self, time: float) -> float:
        index = max(0, bisect_right(self._start_times, float(time)) - 1)
        return self._intervals[index].value

    def change_times(self) -> List[float]:
        return list(self._start_times[1:])


def _run_unit_tests() -> None:
    timeline = TempoTimeline(
        [
            Interval(start=0.0, end=100.0, value=100.0),
            Interval(start=100.0, end=200.0, value=200.0),
            Interval(start=200.0, end=math.inf, value=200.0),
        ]
    )
    assert abs(timeline.time_at(50.0) - 30.0) < 1e-9
    assert abs(timeline.time_at(150.0) - 75.0) < 1e-9
    assert abs(timeline.time_at(250.0) - 105.0) < 1e-9
    assert timeline.time_at(0.0) == 0.0
    assert timeline.beat_at(0.0) == 0.0
    assert abs(timeline.beat_at(timeline.time_at(175.0)) - 175.0) < 1e-9
    assert timeline.distance(12.5, 12.5) == 0.0
    assert abs(timeline.distance(0.0, 90.0) - (60.0 * 100.0 + 30.0 * 200.0)) < 1e-9

    rebuilt = TempoTimeline.from_changes(100.0, [(100.0, 200.0), (200.0, 200.0)])
    assert rebuilt.intervals == timeline.intervals

    try:
        TempoTimeline.from_changes(120.0, [(8.0, 0.0)])
    except TimelineError:
        pass
    else:
        raise AssertionError("Expected TimelineError for a zero tempo")


if __name__ == "__main__":
    _run_unit_tests()
    print("tempo_timeline.py: ok")
