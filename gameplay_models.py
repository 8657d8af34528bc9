# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models shared by the timing engine, judge and runtime driver.
# - Defines lanes, chart-coordinate inputs, placed notes and per-tick outputs.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - No Qt usage. These are plain dataclasses.
#
########################
# Interfaces:
# Public enums:
# - class Lane(enum.Enum): SCRATCH | KEY1 .. KEY7 | BGM
# - class RetireReason(enum.Enum): BGM | HIT | MISSED
#
# Public functions:
# - lane_for_channel(channel: str) -> Optional[Lane]
#
# Public dataclasses:
# - TempoChange(measure: int, fraction: float, bpm: float)
# - TimeSignatureChange(measure: int, beats: float)
# - ChartNote(measure: int, fraction: float, channel: str, audio_ref: str)
# - NoteEvent(lane: Lane, target_beat: float, target_time: float, audio_ref: str, measure: int, fraction: float, channel: str)
# - NoteOffset(note: NoteEvent, offset: float, has_passed: bool)
# - RetiredNote(note: NoteEvent, reason: RetireReason, elapsed: float)
# - InputEvent(time_seconds: float, lane: Lane)
# - JudgementEvent(time_seconds: float, lane: Lane, note_time_seconds: float, delta_seconds: float, judgement: str, audio_ref: str)
#
# Inputs/Outputs:
# - These types are exchanged between chart_data, MeasureBeatMapper, TempoTimeline, ScrollEngine,
#   JudgeEngine and PlayfieldDriver.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Dict, Optional


class Lane(enum.Enum):
    SCRATCH = "scratch"
    KEY1 = "key1"
    KEY2 = "key2"
    KEY3 = "key3"
    KEY4 = "key4"
    KEY5 = "key5"
    KEY6 = "key6"
    KEY7 = "key7"
    BGM = "bgm"

    @property
    def is_playable(self) -> bool:
        return self is not Lane.BGM


class RetireReason(enum.Enum):
    BGM = "bgm"
    HIT = "hit"
    MISSED = "missed"


# BMS 1P side channel layout.
_CHANNEL_TO_LANE: Dict[str, Lane] = {
    "01": Lane.BGM,
    "16": Lane.SCRATCH,
    "11": Lane.KEY1,
    "12": Lane.KEY2,
    "13": Lane.KEY3,
    "14": Lane.KEY4,
    "15": Lane.KEY5,
    "18": Lane.KEY6,
    "19": Lane.KEY7,
}


def lane_for_channel(channel: str) -> Optional[Lane]:
    channel_text = str(channel or "").strip().upper()
    if len(channel_text) == 1:
        channel_text = "0" + channel_text
    return _CHANNEL_TO_LANE.get(channel_text)


@dataclass(frozen=True)
class TempoChange:
    measure: int
    fraction: float
    bpm: float


@dataclass(frozen=True)
class TimeSignatureChange:
    measure: int
    beats: float


@dataclass(frozen=True)
class ChartNote:
    measure: int
    fraction: float
    channel: str
    audio_ref: str


@dataclass(frozen=True)
class NoteEvent:
    lane: Lane
    target_beat: float
    target_time: float
    audio_ref: str
    measure: int = 0
    fraction: float = 0.0
    channel: str = ""


@dataclass(frozen=True)
class NoteOffset:
    note: NoteEvent
    offset: float
    has_passed: bool


@dataclass(frozen=True)
class RetiredNote:
    note: NoteEvent
    reason: RetireReason
    elapsed: float


@dataclass(frozen=True)
class InputEvent:
    time_seconds: float
    lane: Lane


@dataclass(frozen=True)
class JudgementEvent:
    time_seconds: float
    lane: Lane
    note_time_seconds: float
    delta_seconds: float
    judgement: str
    audio_ref: str
