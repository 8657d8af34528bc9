# -*- coding: utf-8 -*-
########################
# scroll_engine.py
########################
# Purpose:
# - Place every chart note on the timeline once at load (target beat, target time).
# - Retire notes whose time has passed (retire_due, cheap enough for the fixed simulation tick).
# - Compute scroll offsets from the judgement line for the notes on screen (frame_offsets,
#   once per rendered frame).
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Note order is deterministic: sort by (target_time, lane order, audio_ref).
# - This module owns the live note list; retirement is the only mutation it performs.
# - Offsets use TempoTimeline.distance between elapsed time and the note's target time,
#   positive while approaching and negative once the note has passed the line.
# - Retirement rule: a playable note stays live while elapsed < target_time + tolerance and retires
#   (MISSED) on the first tick where elapsed >= target_time + tolerance.
#   Exception: background (BGM) notes retire (BGM) as soon as elapsed >= target_time, with no
#   tolerance, so their audio fires on the line.
# - retire_due only looks at the time-ordered prefix of live notes with target_time <= elapsed.
#
########################
# Interfaces:
# Public dataclasses:
# - TickResult(offsets: list[NoteOffset], retired: list[RetiredNote])
#
# Public classes:
# - class ScrollEngine
#   - __init__(mapper: MeasureBeatMapper, timeline: TempoTimeline, notes: Iterable[ChartNote])
#   - place_note(chart_note: ChartNote, lane: Lane) -> NoteEvent
#   - notes() -> list[NoteEvent]
#   - live_notes() -> list[NoteEvent]
#   - note_count() -> int
#   - duration_seconds() -> float
#   - reset() -> None
#   - offset_for(note: NoteEvent, *, elapsed: float, scale: float) -> NoteOffset
#   - live_count() -> int
#   - retire_due(elapsed: float, *, retire_after_seconds: float) -> list[RetiredNote]
#   - frame_offsets(*, elapsed: float, scale: float, lookahead_seconds: float, lookback_seconds: float, max_offset: float) -> list[NoteOffset]
#   - tick(elapsed: float, *, scale: float, retire_after_seconds: float) -> TickResult
#   - retire(note: NoteEvent, *, reason: RetireReason, elapsed: float) -> RetiredNote
#   - visible_notes(*, elapsed: float, lookahead_seconds: float, lookback_seconds: float) -> list[NoteEvent]
#   - find_nearest_live_note(*, lane: Lane, time_seconds: float, max_window_seconds: float) -> Optional[NoteEvent]
#
# Inputs:
# - Parsed chart notes, the chart's MeasureBeatMapper and TempoTimeline.
# - elapsed seconds from SimulationClock, presentation scale, retirement tolerance.
#
# Outputs:
# - RetiredNote on retirement (carries audio_ref); NoteOffset per visible note per frame.
# - tick() combines both steps for every live note; the runtime loops call them separately.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Dict, Iterable, List, Optional

import gameplay_models
from gameplay_models import Lane, NoteEvent, NoteOffset, RetiredNote, RetireReason
from measure_map import MeasureBeatMapper
from tempo_timeline import TempoTimeline

logger = logging.getLogger(__name__)

_LANE_ORDER: Dict[Lane, int] = {lane: index for index, lane in enumerate(Lane)}


@dataclass(frozen=True)
class TickResult:
    offsets: List[NoteOffset]
    retired: List[RetiredNote]


def _note_sort_key(note: NoteEvent):
    return (float(note.target_time), _LANE_ORDER[note.lane], str(note.audio_ref))


class ScrollEngine:
    def __init__(
        self,
        mapper: MeasureBeatMapper,
        timeline: TempoTimeline,
        notes: Iterable[gameplay_models.ChartNote],
    ) -> None:
        self._mapper = mapper
        self._timeline = timeline

        placed: List[NoteEvent] = []
        skipped_channels: Dict[str, int] = {}
        for chart_note in notes:
            lane = gameplay_models.lane_for_channel(chart_note.channel)
            if lane is None:
                channel_key = str(chart_note.channel)
                skipped_channels[channel_key] = skipped_channels.get(channel_key, 0) + 1
                continue
            placed.append(self.place_note(chart_note, lane))

        for channel, count in sorted(skipped_channels.items()):
            logger.debug("Skipped %d notes on unsupported channel %r", count, channel)

        placed.sort(key=_note_sort_key)
        self._notes: List[NoteEvent] = placed
        self._live: List[NoteEvent] = list(placed)

    def place_note(self, chart_note: gameplay_models.ChartNote, lane: Lane) -> NoteEvent:
        target_beat = self._mapper.cumulative_beat(int(chart_note.measure), float(chart_note.fraction))
        target_time = self._timeline.time_at(target_beat)
        return NoteEvent(
            lane=lane,
            target_beat=float(target_beat),
            target_time=float(target_time),
            audio_ref=str(chart_note.audio_ref),
            measure=int(chart_note.measure),
            fraction=float(chart_note.fraction),
            channel=str(chart_note.channel),
        )

    @property
    def timeline(self) -> TempoTimeline:
        return self._timeline

    @property
    def mapper(self) -> MeasureBeatMapper:
        return self._mapper

    def notes(self) -> List[NoteEvent]:
        return list(self._notes)

    def live_notes(self) -> List[NoteEvent]:
        return list(self._live)

    def note_count(self) -> int:
        return len(self._notes)

    def duration_seconds(self) -> float:
        if not self._notes:
            return 0.0
        return float(self._notes[-1].target_time)

    def reset(self) -> None:
        self._live = list(self._notes)

    def offset_for(self, note: NoteEvent, *, elapsed: float, scale: float) -> NoteOffset:
        elapsed_value = float(elapsed)
        target_time = float(note.target_time)
        distance = self._timeline.distance(elapsed_value, target_time)
        has_passed = target_time <= elapsed_value
        offset = -float(scale) * distance if has_passed else float(scale) * distance
        return NoteOffset(note=note, offset=offset, has_passed=has_passed)

    def live_count(self) -> int:
        return len(self._live)

    def retire_due(self, elapsed: float, *, retire_after_seconds: float) -> List[RetiredNote]:
        elapsed_value = float(elapsed)
        tolerance = float(retire_after_seconds)

        retired: List[RetiredNote] = []
        kept: List[NoteEvent] = []
        due_count = 0
        for note in self._live:
            # Live notes are time ordered; nothing past this point can retire yet.
            if note.target_time > elapsed_value:
                break
            due_count += 1
            if note.lane is Lane.BGM:
                retired.append(RetiredNote(note=note, reason=RetireReason.BGM, elapsed=elapsed_value))
            elif elapsed_value >= note.target_time + tolerance:
                retired.append(RetiredNote(note=note, reason=RetireReason.MISSED, elapsed=elapsed_value))
            else:
                kept.append(note)

        if retired:
            self._live = kept + self._live[due_count:]
        return retired

    def frame_offsets(
        self,
        *,
        elapsed: float,
        scale: float,
        lookahead_seconds: float,
        lookback_seconds: float = 0.0,
        max_offset: float = math.inf,
    ) -> List[NoteOffset]:
        """Offsets of the playable notes on screen at ``elapsed``.

        Notes further up the lane than ``max_offset`` (the lane height) are dropped.
        """
        offsets: List[NoteOffset] = []
        for note in self.visible_notes(
            elapsed=elapsed,
            lookahead_seconds=lookahead_seconds,
            lookback_seconds=lookback_seconds,
        ):
            note_offset = self.offset_for(note, elapsed=elapsed, scale=scale)
            if note_offset.offset <= float(max_offset):
                offsets.append(note_offset)
        return offsets

    def tick(self, elapsed: float, *, scale: float, retire_after_seconds: float) -> TickResult:
        retired = self.retire_due(elapsed, retire_after_seconds=retire_after_seconds)
        offsets = [self.offset_for(note, elapsed=elapsed, scale=scale) for note in self._live]
        return TickResult(offsets=offsets, retired=retired)

    def retire(self, note: NoteEvent, *, reason: RetireReason, elapsed: float) -> RetiredNote:
        for index, candidate in enumerate(self._live):
            if candidate is note:
                del self._live[index]
                return RetiredNote(note=note, reason=reason, elapsed=float(elapsed))
        raise ValueError(f"Note is not live: {note!r}")

    def visible_notes(
        self,
        *,
        elapsed: float,
        lookahead_seconds: float,
        lookback_seconds: float = 0.0,
    ) -> List[NoteEvent]:
        start_time = float(elapsed) - float(lookback_seconds)
        end_time = float(elapsed) + float(lookahead_seconds)
        visible: List[NoteEvent] = []
        for note in self._live:
            if note.target_time > end_time:
                break
            if note.lane.is_playable and note.target_time >= start_time:
                visible.append(note)
        return visible

    def find_nearest_live_note(
        self,
        *,
        lane: Lane,
        time_seconds: float,
        max_window_seconds: float,
    ) -> Optional[NoteEvent]:
        if not lane.is_playable:
            return None

        target = float(time_seconds)
        window = float(max_window_seconds)
        start = target - window
        end = target + window

        best_note: Optional[NoteEvent] = None
        best_abs_delta = 0.0

        for candidate in self._live:
            note_time = float(candidate.target_time)
            if note_time > end:
                break
            if candidate.lane is not lane or note_time < start:
                continue
            abs_delta = abs(target - note_time)
            # Live notes are time ordered, so strict comparison keeps the earlier note on ties.
            if best_note is None or abs_delta < best_abs_delta:
                best_note = candidate
                best_abs_delta = abs_delta

        return best_note


def _run_unit_tests() -> None:
    mapper = MeasureBeatMapper({})
    timeline = TempoTimeline.from_changes(120.0, [])
    notes = [
        gameplay_models.ChartNote(measure=1, fraction=0.0, channel="11", audio_ref="01"),
        gameplay_models.ChartNote(measure=0, fraction=0.5, channel="01", audio_ref="02"),
        gameplay_models.ChartNote(measure=0, fraction=0.0, channel="99", audio_ref="03"),
    ]
    engine = ScrollEngine(mapper, timeline, notes)
    assert engine.note_count() == 2
    assert [note.target_time for note in engine.notes()] == [1.0, 2.0]

    result = engine.tick(1.0, scale=2.5, retire_after_seconds=0.12)
    assert [item.reason for item in result.retired] == [RetireReason.BGM]
    assert len(result.offsets) == 1
    assert result.offsets[0].offset > 0.0

    result = engine.tick(2.2, scale=2.5, retire_after_seconds=0.12)
    assert [item.reason for item in result.retired] == [RetireReason.MISSED]
    assert engine.live_notes() == []

    engine.reset()
    assert [item.reason for item in engine.retire_due(2.2, retire_after_seconds=0.12)] == [
        RetireReason.BGM,
        RetireReason.MISSED,
    ]
    assert engine.live_count() == 0
    assert engine.frame_offsets(elapsed=0.0, scale=2.5, lookahead_seconds=5.0) == []


if __name__ == "__main__":
    _run_unit_tests()
    print("scroll_engine.py: ok")
