"""
beatlane.py

Command line entrypoint for the Beatlane chart timing engine.

Commands
- summary CHART            Print the tempo segments, note count and timing of a parsed chart.
- offsets CHART --at T     Print the scroll offsets of the notes visible at elapsed time T.
- simulate CHART           Step the chart at the configured tick rate without input and print
                           every BGM trigger and miss as one JSON line.
- play CHART               Run the Qt fixed-rate driver in real time (headless, no input)
                           and print the same events as they happen.

Integration
- Loads config (config.get_config or --config)
- Configures logging from config or --log-level
- Loads the parsed chart through chart_session
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import chart_session
import config as config_module
import gameplay_models

logger = logging.getLogger(__name__)


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def _note_payload(note: gameplay_models.NoteEvent) -> Dict[str, Any]:
    return {
        "lane": note.lane.value,
        "measure": note.measure,
        "fraction": round(note.fraction, 6),
        "beat": round(note.target_beat, 6),
        "time": round(note.target_time, 6),
        "audio_ref": note.audio_ref,
    }


def summarize_session(session: chart_session.ChartSession) -> Dict[str, Any]:
    timeline = session.timeline
    engine = session.scroll_engine
    segment_start_times = [0.0] + timeline.change_times()

    segments: List[Dict[str, Any]] = []
    for interval, start_time in zip(timeline.intervals, segment_start_times):
        segments.append(
            {
                "start_beat": interval.start,
                "end_beat": None if interval.end == float("inf") else interval.end,
                "bpm": interval.value,
                "start_time": round(start_time, 6),
            }
        )

    lane_counts: Dict[str, int] = {}
    for note in engine.notes():
        lane_counts[note.lane.value] = lane_counts.get(note.lane.value, 0) + 1

    header = session.chart.header
    return {
        "title": header.title,
        "artist": header.artist,
        "genre": header.genre,
        "notes": engine.note_count(),
        "lanes": lane_counts,
        "tempo_segments": segments,
        "last_note_seconds": round(engine.duration_seconds(), 6),
    }


def _command_summary(session: chart_session.ChartSession, app_config: config_module.AppConfig, args: argparse.Namespace) -> int:
    _print_json({"ok": True, **summarize_session(session)})
    return 0


def _command_offsets(session: chart_session.ChartSession, app_config: config_module.AppConfig, args: argparse.Namespace) -> int:
    elapsed = max(0.0, float(args.at))
    offsets = [
        {
            **_note_payload(note_offset.note),
            "offset": round(note_offset.offset, 6),
            "has_passed": note_offset.has_passed,
        }
        for note_offset in session.scroll_engine.frame_offsets(
            elapsed=elapsed,
            scale=app_config.scroll.scale,
            lookahead_seconds=app_config.scroll.lookahead_seconds(),
            lookback_seconds=session.retire_window_seconds,
            max_offset=app_config.scroll.lane_height,
        )
    ]
    _print_json(
        {
            "ok": True,
            "elapsed": elapsed,
            "bpm": session.timeline.rate_at_time(elapsed),
            "offsets": offsets,
        }
    )
    return 0


def _command_simulate(session: chart_session.ChartSession, app_config: config_module.AppConfig, args: argparse.Namespace) -> int:
    engine = session.scroll_engine
    step_seconds = 1.0 / float(app_config.timing.tick_hz)
    end_seconds = engine.duration_seconds() + session.retire_window_seconds + step_seconds

    tick_index = 0
    elapsed = 0.0
    while engine.live_count() and elapsed <= end_seconds:
        elapsed = tick_index * step_seconds
        retired = engine.retire_due(elapsed, retire_after_seconds=session.retire_window_seconds)
        for retired_note in retired:
            if retired_note.reason is gameplay_models.RetireReason.BGM:
                _print_json({"event": "audio", "elapsed": round(elapsed, 6), **_note_payload(retired_note.note)})
        for judgement_event in session.judge_engine.record_retirements(retired):
            _print_json(
                {
                    "event": "judgement",
                    "elapsed": round(elapsed, 6),
                    "lane": judgement_event.lane.value,
                    "judgement": judgement_event.judgement,
                    "note_time": round(judgement_event.note_time_seconds, 6),
                }
            )
        tick_index += 1

    score_state = session.judge_engine.score_state()
    _print_json({"event": "end", "elapsed": round(elapsed, 6), "miss_count": score_state.miss_count})
    return 0


def _command_play(session: chart_session.ChartSession, app_config: config_module.AppConfig, args: argparse.Namespace) -> int:
    from PyQt6.QtCore import QCoreApplication

    import playfield_driver

    qt_application = QCoreApplication(sys.argv[:1])
    driver = playfield_driver.PlayfieldDriver(
        session,
        tick_hz=app_config.timing.tick_hz,
        frame_hz=app_config.timing.frame_hz,
        scale=app_config.scroll.scale,
        lookahead_seconds=app_config.scroll.lookahead_seconds(),
        lane_height=app_config.scroll.lane_height,
    )

    def on_audio(audio_ref: str) -> None:
        _print_json({"event": "audio", "elapsed": round(driver.clock().elapsed_seconds(), 6), "audio_ref": audio_ref})

    def on_judgement(judgement_event: gameplay_models.JudgementEvent) -> None:
        _print_json(
            {
                "event": "judgement",
                "elapsed": round(judgement_event.time_seconds, 6),
                "lane": judgement_event.lane.value,
                "judgement": judgement_event.judgement,
            }
        )

    driver.audioTriggered.connect(on_audio)
    driver.judgementMade.connect(on_judgement)
    driver.playbackEnded.connect(qt_application.quit)
    driver.start()
    return int(qt_application.exec())


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Beatlane chart timing engine")
    parser.add_argument("--config", type=Path, default=None, help="Path to a beatlane_config.json file.")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    summary_parser = subparsers.add_parser("summary", help="Print chart timing summary.")
    summary_parser.add_argument("chart", type=Path)
    summary_parser.set_defaults(handler=_command_summary)

    offsets_parser = subparsers.add_parser("offsets", help="Print scroll offsets at an elapsed time.")
    offsets_parser.add_argument("chart", type=Path)
    offsets_parser.add_argument("--at", type=float, required=True, help="Elapsed seconds since chart start.")
    offsets_parser.set_defaults(handler=_command_offsets)

    simulate_parser = subparsers.add_parser("simulate", help="Step the chart without input.")
    simulate_parser.add_argument("chart", type=Path)
    simulate_parser.set_defaults(handler=_command_simulate)

    play_parser = subparsers.add_parser("play", help="Run the real-time driver headless.")
    play_parser.add_argument("chart", type=Path)
    play_parser.set_defaults(handler=_command_play)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argument_parser().parse_args(argv)

    try:
        if args.config is not None:
            app_config, _config_path = config_module.load_config(args.config)
        else:
            app_config, _config_path = config_module.get_config()
    except (OSError, ValueError) as exception:
        _print_json({"ok": False, "error": str(exception)})
        return 2

    log_level = str(args.log_level or app_config.logging.level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")

    try:
        session = chart_session.load_session_from_path(args.chart, app_config=app_config)
    except chart_session.ChartLoadError as exception:
        logger.error("Chart load failed: %s", exception)
        _print_json({"ok": False, "error": str(exception)})
        return 2

    return int(args.handler(session, app_config, args))


if __name__ == "__main__":
    raise SystemExit(main())
