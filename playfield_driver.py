# -*- coding: utf-8 -*-
########################
# playfield_driver.py
########################
# Purpose:
# - Fixed-rate runtime loop for one ChartSession.
# - Each tick (tick_hz, 1000 by default) reads the host clock, advances SimulationClock, retires
#   due notes, converts missed retirements into judgements and publishes them as Qt signals.
# - Each frame (frame_hz, 60 by default) computes scroll offsets for the notes on screen only.
#
# Design notes:
# - Rendering, audio playback and keyboard polling subscribe to signals; none of them live here.
# - Uses SimulationClock as the single source of truth for elapsed chart time.
# - The time source is injected (time.monotonic by default) so ticks are deterministic in tests.
# - tick(), frame() and press_lane() are plain methods; the two QTimers call tick() and frame().
# - tick() never computes offsets; frame() never retires notes.
#
########################
# Interfaces:
# Public dataclasses:
# - DriverSnapshot(elapsed_seconds: float, bpm: float, live_notes: int, combo: int, ex_score: int, is_running: bool)
#
# Public classes:
# - class PlayfieldDriver(PyQt6.QtCore.QObject)
#   - Signals:
#     - frameUpdated(list[NoteOffset])
#     - audioTriggered(str)                 # audio_ref of a BGM event or a hit note's keysound
#     - judgementMade(JudgementEvent)
#     - strayPress(InputEvent)
#     - playbackEnded()
#   - Methods:
#     - session() -> ChartSession
#     - clock() -> SimulationClock
#     - start() -> None
#     - stop() -> None
#     - restart() -> None
#     - is_running() -> bool
#     - tick() -> list[RetiredNote]
#     - frame() -> list[NoteOffset]
#     - press_lane(lane: Lane) -> Optional[JudgementEvent]
#     - snapshot() -> DriverSnapshot
#
# Inputs:
# - ChartSession from chart_session.load_session; tick and frame rates, scroll scale, lookahead
#   (green number) and lane height from config.
# - Lane presses from the (external) keyboard layer.
#
# Outputs:
# - Qt signals consumed by rendering, audio and UI collaborators.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import time
from typing import Callable, List, Optional

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal

import chart_session
import gameplay_models
from gameplay_models import RetireReason
from simulation_clock import SimulationClock

logger = logging.getLogger(__name__)


def _interval_ms(rate_hz: int) -> int:
    return max(1, int(round(1000.0 / float(max(1, int(rate_hz))))))


@dataclass(frozen=True)
class DriverSnapshot:
    elapsed_seconds: float
    bpm: float
    live_notes: int
    combo: int
    ex_score: int
    is_running: bool


class PlayfieldDriver(QObject):
    frameUpdated = pyqtSignal(object)
    audioTriggered = pyqtSignal(str)
    judgementMade = pyqtSignal(object)
    strayPress = pyqtSignal(object)
    playbackEnded = pyqtSignal()

    def __init__(
        self,
        session: chart_session.ChartSession,
        *,
        tick_hz: int = 1000,
        frame_hz: int = 60,
        scale: float = 2.5,
        lookahead_seconds: float = 500.0 / 10.0 / 60.0,
        lane_height: float = math.inf,
        time_source: Callable[[], float] = time.monotonic,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._scale = float(scale)
        self._lookahead_seconds = float(lookahead_seconds)
        self._lane_height = float(lane_height)
        self._time_source = time_source
        self._clock = SimulationClock()

        self._tick_timer = QTimer(self)
        self._tick_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._tick_timer.setInterval(_interval_ms(tick_hz))
        self._tick_timer.timeout.connect(self.tick)

        self._frame_timer = QTimer(self)
        self._frame_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._frame_timer.setInterval(_interval_ms(frame_hz))
        self._frame_timer.timeout.connect(self.frame)

    def session(self) -> chart_session.ChartSession:
        return self._session

    def clock(self) -> SimulationClock:
        return self._clock

    def is_running(self) -> bool:
        return self._clock.is_running()

    def start(self) -> None:
        self._clock.start(float(self._time_source()))
        self._tick_timer.start()
        self._frame_timer.start()
        logger.info("Playback started for %r", self._session.chart.header.title)

    def stop(self) -> None:
        self._tick_timer.stop()
        self._frame_timer.stop()
        self._clock.stop()

    def restart(self) -> None:
        self.stop()
        self._session.reset()
        self.start()

    def _elapsed_now(self) -> float:
        return self._clock.update_host_time_seconds(float(self._time_source()))

    def tick(self) -> List[gameplay_models.RetiredNote]:
        elapsed = self._elapsed_now()
        engine = self._session.scroll_engine
        retired = engine.retire_due(elapsed, retire_after_seconds=self._session.retire_window_seconds)

        for retired_note in retired:
            if retired_note.reason is RetireReason.BGM and retired_note.note.audio_ref:
                self.audioTriggered.emit(retired_note.note.audio_ref)

        for judgement_event in self._session.judge_engine.record_retirements(retired):
            self.judgementMade.emit(judgement_event)

        if self._clock.is_running() and engine.live_count() == 0:
            self.stop()
            logger.info("Playback ended at %.3fs", elapsed)
            self.playbackEnded.emit()

        return retired

    def frame(self) -> List[gameplay_models.NoteOffset]:
        elapsed = self._elapsed_now()
        offsets = self._session.scroll_engine.frame_offsets(
            elapsed=elapsed,
            scale=self._scale,
            lookahead_seconds=self._lookahead_seconds,
            lookback_seconds=self._session.retire_window_seconds,
            max_offset=self._lane_height,
        )
        self.frameUpdated.emit(offsets)
        return offsets

    def press_lane(self, lane: gameplay_models.Lane) -> Optional[gameplay_models.JudgementEvent]:
        input_event = gameplay_models.InputEvent(time_seconds=self._elapsed_now(), lane=lane)
        if not self._clock.is_running():
            self.strayPress.emit(input_event)
            return None

        judgement_event = self._session.judge_engine.on_input_event(input_event)
        if judgement_event is None:
            self.strayPress.emit(input_event)
            return None

        if judgement_event.audio_ref:
            self.audioTriggered.emit(judgement_event.audio_ref)
        self.judgementMade.emit(judgement_event)
        return judgement_event

    def snapshot(self) -> DriverSnapshot:
        elapsed = self._clock.elapsed_seconds()
        score_state = self._session.judge_engine.score_state()
        return DriverSnapshot(
            elapsed_seconds=elapsed,
            bpm=float(self._session.timeline.rate_at_time(elapsed)),
            live_notes=self._session.scroll_engine.live_count(),
            combo=int(score_state.combo),
            ex_score=int(score_state.ex_score),
            is_running=self._clock.is_running(),
        )
