# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Hit judgement engine.
# - Matches InputEvent to the nearest live playable note in the pressed lane within the match window.
# - Generates JudgementEvent for both hits and misses, and tracks combo and judgement counts.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Strict inputs: consume only InputEvent and RetiredNote lists produced by ScrollEngine.retire_due.
# - ScrollEngine owns the live note list; JudgeEngine retires hit notes via ScrollEngine.retire.
# - The match window equals the ScrollEngine retirement tolerance, so a note is either hittable or retired.
# - Presses are only judged inside the match window. With the default retire window (the GOOD window,
#   120 ms) every hit lands in PGREAT, GREAT or GOOD; BAD and POOR are produced only when
#   timing.retire_window_ms is raised past good_ms (up to bad_ms for BAD, poor_ms for POOR).
#
########################
# Interfaces:
# Public constants:
# - PGREAT | GREAT | GOOD | BAD | POOR | MISS judgement names
#
# Public dataclasses:
# - JudgementWindows(pgreat_seconds, great_seconds, good_seconds, bad_seconds, poor_seconds)
#   - classify_delta(delta_seconds: float) -> Optional[str]
# - ScoreState(combo, max_combo, ex_score, pgreat_count, great_count, good_count, bad_count, poor_count, miss_count)
#   - apply_judgement(judgement: str) -> None
#
# Public classes:
# - class JudgeEngine
#   - __init__(scroll_engine: ScrollEngine, judgement_windows: JudgementWindows, *, match_window_seconds: float)
#   - score_state() -> ScoreState
#   - judgement_windows() -> JudgementWindows
#   - recent_judgements() -> list[JudgementEvent]
#   - clear_recent_judgements() -> None
#   - reset() -> None
#   - on_input_event(input_event: InputEvent) -> Optional[JudgementEvent]
#   - record_retirements(retired: Iterable[RetiredNote]) -> list[JudgementEvent]
#
# Inputs:
# - InputEvent(time_seconds: float, lane: Lane) with elapsed chart time.
# - RetiredNote lists from ScrollEngine.retire_due (or ScrollEngine.tick).
#
# Outputs:
# - JudgementEvent objects for UI and keysound playback (audio_ref).
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import gameplay_models
from gameplay_models import RetireReason
import scroll_engine

PGREAT = "pgreat"
GREAT = "great"
GOOD = "good"
BAD = "bad"
POOR = "poor"
MISS = "miss"


@dataclass(frozen=True)
class JudgementWindows:
    pgreat_seconds: float
    great_seconds: float
    good_seconds: float
    bad_seconds: float
    poor_seconds: float

    def classify_delta(self, delta_seconds: float) -> Optional[str]:
        abs_delta = abs(float(delta_seconds))
        if abs_delta <= float(self.pgreat_seconds):
            return PGREAT
        if abs_delta <= float(self.great_seconds):
            return GREAT
        if abs_delta <= float(self.good_seconds):
            return GOOD
        if abs_delta <= float(self.bad_seconds):
            return BAD
        if abs_delta <= float(self.poor_seconds):
            return POOR
        return None


@dataclass
class ScoreState:
    combo: int = 0
    max_combo: int = 0
    ex_score: int = 0
    pgreat_count: int = 0
    great_count: int = 0
    good_count: int = 0
    bad_count: int = 0
    poor_count: int = 0
    miss_count: int = 0

    def apply_judgement(self, judgement: str) -> None:
        text = str(judgement).strip().lower()

        if text == PGREAT:
            self.ex_score += 2
            self.combo += 1
            self.pgreat_count += 1
        elif text == GREAT:
            self.ex_score += 1
            self.combo += 1
            self.great_count += 1
        elif text == GOOD:
            self.combo += 1
            self.good_count += 1
        elif text == BAD:
            self.combo = 0
            self.bad_count += 1
        elif text == POOR:
            self.combo = 0
            self.poor_count += 1
        elif text == MISS:
            self.combo = 0
            self.miss_count += 1
        else:
            # Unknown judgements do not mutate score state.
            return

        if self.combo > self.max_combo:
            self.max_combo = self.combo


class JudgeEngine:
    def __init__(
        self,
        scroll_engine_obj: scroll_engine.ScrollEngine,
        judgement_windows: JudgementWindows,
        *,
        match_window_seconds: float,
    ) -> None:
        self._scroll_engine = scroll_engine_obj
        self._judgement_windows = judgement_windows
        self._match_window_seconds = float(match_window_seconds)
        self._score_state = ScoreState()
        self._recent_judgements: List[gameplay_models.JudgementEvent] = []

    def score_state(self) -> ScoreState:
        return self._score_state

    def judgement_windows(self) -> JudgementWindows:
        return self._judgement_windows

    def match_window_seconds(self) -> float:
        return float(self._match_window_seconds)

    def clear_recent_judgements(self) -> None:
        self._recent_judgements.clear()

    def recent_judgements(self) -> List[gameplay_models.JudgementEvent]:
        return list(self._recent_judgements)

    def reset(self) -> None:
        self._score_state = ScoreState()
        self._recent_judgements.clear()

    def on_input_event(self, input_event: gameplay_models.InputEvent) -> Optional[gameplay_models.JudgementEvent]:
        note = self._scroll_engine.find_nearest_live_note(
            lane=input_event.lane,
            time_seconds=float(input_event.time_seconds),
            max_window_seconds=self._match_window_seconds,
        )
        if note is None:
            return None

        note_time = float(note.target_time)
        delta = float(input_event.time_seconds) - note_time
        judgement = self._judgement_windows.classify_delta(delta)
        if judgement is None:
            return None

        self._scroll_engine.retire(note, reason=RetireReason.HIT, elapsed=float(input_event.time_seconds))
        self._score_state.apply_judgement(judgement)

        event = gameplay_models.JudgementEvent(
            time_seconds=float(input_event.time_seconds),
            lane=input_event.lane,
            note_time_seconds=note_time,
            delta_seconds=delta,
            judgement=judgement,
            audio_ref=str(note.audio_ref),
        )
        self._recent_judgements.append(event)
        return event

    def record_retirements(self, retired: Iterable[gameplay_models.RetiredNote]) -> List[gameplay_models.JudgementEvent]:
        misses: List[gameplay_models.JudgementEvent] = []
        for retired_note in retired:
            if retired_note.reason is not RetireReason.MISSED:
                continue
            note = retired_note.note
            note_time = float(note.target_time)
            delta = float(retired_note.elapsed) - note_time
            self._score_state.apply_judgement(MISS)

            event = gameplay_models.JudgementEvent(
                time_seconds=float(retired_note.elapsed),
                lane=note.lane,
                note_time_seconds=note_time,
                delta_seconds=delta,
                judgement=MISS,
                audio_ref=str(note.audio_ref),
            )
            self._recent_judgements.append(event)
            misses.append(event)
        return misses


def _run_unit_tests() -> None:
    from measure_map import MeasureBeatMapper
    from tempo_timeline import TempoTimeline

    Lane = gameplay_models.Lane
    notes = [gameplay_models.ChartNote(measure=0, fraction=0.5, channel="11", audio_ref="0A")]
    engine = scroll_engine.ScrollEngine(MeasureBeatMapper({}), TempoTimeline.from_changes(120.0, []), notes)
    windows = JudgementWindows(
        pgreat_seconds=0.021, great_seconds=0.06, good_seconds=0.12, bad_seconds=0.2, poor_seconds=1.0
    )
    judge_engine = JudgeEngine(engine, windows, match_window_seconds=0.12)

    stray = judge_engine.on_input_event(gameplay_models.InputEvent(time_seconds=1.0, lane=Lane.KEY2))
    assert stray is None

    hit = judge_engine.on_input_event(gameplay_models.InputEvent(time_seconds=1.0, lane=Lane.KEY1))
    assert hit is not None
    assert hit.judgement == PGREAT
    assert hit.audio_ref == "0A"
    assert judge_engine.score_state().ex_score == 2
    assert engine.live_notes() == []

    engine.reset()
    judge_engine.reset()
    result = engine.tick(2.0, scale=1.0, retire_after_seconds=0.12)
    misses = judge_engine.record_retirements(result.retired)
    assert len(misses) == 1
    assert judge_engine.score_state().miss_count == 1


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
