# -*- coding: utf-8 -*-
########################
# measure_map.py
########################
# Purpose:
# - Convert chart coordinates (measure index, fraction within measure) into a cumulative beat.
# - Honor sparse per-measure beat-count overrides (time signature changes).
#
# Design notes:
# - No Qt usage. Pure and deterministic.
# - Measures without an override are 4 beats long.
# - Lookups use a sorted override list with prefix sums, so cost does not grow with measure index.
# - fraction_in_measure is not validated. Callers pass values in [0, 1).
#
########################
# Interfaces:
# Public constants:
# - DEFAULT_BEATS_PER_MEASURE = 4.0
#
# Public exceptions:
# - class MeasureTableError(ValueError)
#
# Public classes:
# - class MeasureBeatMapper
#   - __init__(beats_by_measure: Mapping[int, float])
#   - from_changes(changes: Iterable[TimeSignatureChange]) -> MeasureBeatMapper
#   - beats_in_measure(measure_index: int) -> float
#   - measure_start_beat(measure_index: int) -> float
#   - cumulative_beat(measure_index: int, fraction_in_measure: float) -> float
#
# Inputs:
# - Time signature changes from chart_data (measure index, beats in measure).
#
# Outputs:
# - Beat coordinates consumed by TempoTimeline and ScrollEngine.
#
########################

from __future__ import annotations

from bisect import bisect_left
import math
from typing import Dict, Iterable, List, Mapping

import gameplay_models


DEFAULT_BEATS_PER_MEASURE = 4.0


class MeasureTableError(ValueError):
    """Raised when a beat-count override table cannot describe a valid measure layout."""


class MeasureBeatMapper:
    def __init__(self, beats_by_measure: Mapping[int, float]) -> None:
        table: Dict[int, float] = {}
        for measure_index, beats in beats_by_measure.items():
            index_value = int(measure_index)
            beats_value = float(beats)
            if index_value < 0:
                raise MeasureTableError(f"Measure index must be >= 0, got {index_value}")
            if not math.isfinite(beats_value) or beats_value <= 0.0:
                raise MeasureTableError(
                    f"Beats in measure {index_value} must be a positive number, got {beats_value!r}"
                )
            table[index_value] = beats_value

        self._beats_by_measure = table
        self._override_measures: List[int] = sorted(table.keys())

        # _extra_beats_before[i] is the total deviation from the default length
        # contributed by the first i overridden measures.
        self._extra_beats_before: List[float] = [0.0]
        for measure_index in self._override_measures:
            extra = table[measure_index] - DEFAULT_BEATS_PER_MEASURE
            self._extra_beats_before.append(self._extra_beats_before[-1] + extra)

    @classmethod
    def from_changes(cls, changes: Iterable[gameplay_models.TimeSignatureChange]) -> "MeasureBeatMapper":
        table: Dict[int, float] = {}
        for change in changes:
            measure_index = int(change.measure)
            if measure_index in table:
                raise MeasureTableError(f"Duplicate time signature change for measure {measure_index}")
            table[measure_index] = float(change.beats)
        return cls(table)

    def beats_in_measure(self, measure_index: int) -> float:
        return float(self._beats_by_measure.get(int(measure_index), DEFAULT_BEATS_PER_MEASURE))

    def measure_start_beat(self, measure_index: int) -> float:
        index_value = int(measure_index)
        if index_value <= 0:
            return 0.0
        overrides_before = bisect_left(self._override_measures, index_value)
        return DEFAULT_BEATS_PER_MEASURE * index_value + self._extra_beats_before[overrides_before]

    def cumulative_beat(self, measure_index: int, fraction_in_measure: float) -> float:
        start_beat = self.measure_start_beat(measure_index)
        return start_beat + float(fraction_in_measure) * self.beats_in_measure(measure_index)


def _run_unit_tests() -> None:
    plain = MeasureBeatMapper({})
    assert plain.cumulative_beat(0, 0.0) == 0.0
    assert abs(plain.cumulative_beat(2, 0.5) - 10.0) < 1e-9

    mapper = MeasureBeatMapper.from_changes([gameplay_models.TimeSignatureChange(measure=1, beats=3.0)])
    assert abs(mapper.cumulative_beat(1, 0.5) - 5.5) < 1e-9
    assert abs(mapper.cumulative_beat(2, 0.0) - 7.0) < 1e-9

    try:
        MeasureBeatMapper({3: 0.0})
    except MeasureTableError:
        pass
    else:
        raise AssertionError("Expected MeasureTableError for a zero-length measure")


if __name__ == "__main__":
    _run_unit_tests()
    print("measure_map.py: ok")
