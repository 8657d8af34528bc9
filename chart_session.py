# -*- coding: utf-8 -*-
########################
# chart_session.py
########################
# Purpose:
# - Compose the per-chart gameplay pipeline from one ParsedChart:
#   MeasureBeatMapper -> TempoTimeline -> ScrollEngine -> JudgeEngine.
# - Report malformed charts as a single ChartLoadError before play starts.
#
########################
# Key Logic:
# - Tempo changes are mapped to beats with the chart's own MeasureBeatMapper before the
#   TempoTimeline is built, so time signature changes shift tempo change positions too.
# - Strict contract:
#   - Everything is built up front. A failure leaves no partially built session behind.
#   - A reload builds a new ChartSession; the old one is simply dropped.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartLoadError(Exception)
#
# Public dataclasses:
# - @dataclass(frozen=True) class ChartSession
#   - chart: chart_data.ParsedChart
#   - mapper: MeasureBeatMapper
#   - timeline: TempoTimeline
#   - scroll_engine: ScrollEngine
#   - judge_engine: JudgeEngine
#   - retire_window_seconds: float
#
# Public functions:
# - judgement_windows_from_config(timing_config: config.TimingConfig) -> judge.JudgementWindows
# - build_timeline(chart: ParsedChart, mapper: MeasureBeatMapper) -> TempoTimeline
# - load_session(chart: ParsedChart, *, app_config: Optional[AppConfig] = None) -> ChartSession
# - load_session_from_path(chart_path: pathlib.Path, *, app_config: Optional[AppConfig] = None) -> ChartSession
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional

import chart_data
import config as config_module
import judge
from measure_map import MeasureBeatMapper, MeasureTableError
from scroll_engine import ScrollEngine
from tempo_timeline import TempoTimeline, TimelineError

logger = logging.getLogger(__name__)


class ChartLoadError(Exception):
    """Raised when a chart cannot be turned into a playable session."""


@dataclass(frozen=True)
class ChartSession:
    chart: chart_data.ParsedChart
    mapper: MeasureBeatMapper
    timeline: TempoTimeline
    scroll_engine: ScrollEngine
    judge_engine: judge.JudgeEngine
    retire_window_seconds: float

    def reset(self) -> None:
        self.scroll_engine.reset()
        self.judge_engine.reset()


def judgement_windows_from_config(timing_config: config_module.TimingConfig) -> judge.JudgementWindows:
    return judge.JudgementWindows(
        pgreat_seconds=float(timing_config.pgreat_ms) / 1000.0,
        great_seconds=float(timing_config.great_ms) / 1000.0,
        good_seconds=float(timing_config.good_ms) / 1000.0,
        bad_seconds=float(timing_config.bad_ms) / 1000.0,
        poor_seconds=float(timing_config.poor_ms) / 1000.0,
    )


def build_timeline(chart: chart_data.ParsedChart, mapper: MeasureBeatMapper) -> TempoTimeline:
    changes = [
        (mapper.cumulative_beat(change.measure, change.fraction), change.bpm)
        for change in chart.tempo_changes
    ]
    return TempoTimeline.from_changes(chart.header.initial_bpm, changes)


def load_session(
    chart: chart_data.ParsedChart,
    *,
    app_config: Optional[config_module.AppConfig] = None,
) -> ChartSession:
    resolved_config = app_config if app_config is not None else config_module.AppConfig()

    try:
        mapper = MeasureBeatMapper.from_changes(chart.time_signature_changes)
        timeline = build_timeline(chart, mapper)
    except (MeasureTableError, TimelineError) as exc:
        raise ChartLoadError(f"Malformed timing data in {chart.source}: {exc}") from exc

    engine = ScrollEngine(mapper, timeline, chart.notes)
    retire_window_seconds = resolved_config.timing.retire_window_seconds()
    judge_engine = judge.JudgeEngine(
        engine,
        judgement_windows_from_config(resolved_config.timing),
        match_window_seconds=retire_window_seconds,
    )

    logger.info(
        "Loaded chart %r from %s: %d notes, %d tempo segments, last note at %.3fs",
        chart.header.title,
        chart.source,
        engine.note_count(),
        len(timeline.intervals),
        engine.duration_seconds(),
    )

    return ChartSession(
        chart=chart,
        mapper=mapper,
        timeline=timeline,
        scroll_engine=engine,
        judge_engine=judge_engine,
        retire_window_seconds=retire_window_seconds,
    )


def load_session_from_path(
    chart_path: Path,
    *,
    app_config: Optional[config_module.AppConfig] = None,
) -> ChartSession:
    try:
        chart = chart_data.load_parsed_chart(Path(chart_path))
    except chart_data.ChartDataError as exc:
        raise ChartLoadError(str(exc)) from exc
    return load_session(chart, app_config=app_config)
