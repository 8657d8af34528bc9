"""Tests for chart_session.load_session."""

from __future__ import annotations

import pytest

import chart_data
import chart_session
import config as config_module
from gameplay_models import ChartNote, InputEvent, Lane, TempoChange, TimeSignatureChange


def _chart(**overrides) -> chart_data.ParsedChart:
    values = dict(
        header=chart_data.ChartHeader(title="Test", artist="", genre="", initial_bpm=120.0),
        time_signature_changes=[],
        tempo_changes=[],
        notes=[],
        source="test",
    )
    values.update(overrides)
    return chart_data.ParsedChart(**values)


def test_tempo_changes_follow_time_signatures():
    # Measure 0 has 4 beats, measure 1 has 2, so measure 2 starts on beat 6.
    chart = _chart(
        time_signature_changes=[TimeSignatureChange(measure=1, beats=2.0)],
        tempo_changes=[TempoChange(measure=2, fraction=0.0, bpm=240.0)],
        notes=[ChartNote(measure=3, fraction=0.0, channel="11", audio_ref="0A")],
    )
    session = chart_session.load_session(chart)

    assert [interval.start for interval in session.timeline.intervals] == [0.0, 6.0]
    (note,) = session.scroll_engine.notes()
    assert note.target_beat == pytest.approx(10.0)
    assert note.target_time == pytest.approx(3.0 + 1.0)


def test_retire_window_comes_from_config():
    app_config = config_module.AppConfig.model_validate({"timing": {"retire_window_ms": 80}})
    session = chart_session.load_session(_chart(), app_config=app_config)
    assert session.retire_window_seconds == pytest.approx(0.08)
    assert session.judge_engine.match_window_seconds() == pytest.approx(0.08)

    default_session = chart_session.load_session(_chart())
    assert default_session.retire_window_seconds == pytest.approx(0.12)


def test_judgement_windows_from_config():
    windows = chart_session.judgement_windows_from_config(config_module.TimingConfig())
    assert windows.pgreat_seconds == pytest.approx(0.021)
    assert windows.poor_seconds == pytest.approx(1.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"header": chart_data.ChartHeader(title="Bad", artist="", genre="", initial_bpm=0.0)},
        {"tempo_changes": [TempoChange(measure=1, fraction=0.0, bpm=-10.0)]},
        {
            "tempo_changes": [
                TempoChange(measure=3, fraction=0.0, bpm=150.0),
                TempoChange(measure=1, fraction=0.0, bpm=160.0),
            ]
        },
        {"time_signature_changes": [TimeSignatureChange(measure=1, beats=0.0)]},
    ],
)
def test_malformed_timing_raises_chart_load_error(overrides):
    with pytest.raises(chart_session.ChartLoadError):
        chart_session.load_session(_chart(**overrides))


def test_load_from_missing_path(tmp_path):
    with pytest.raises(chart_session.ChartLoadError):
        chart_session.load_session_from_path(tmp_path / "nope.json")


def test_reset_restores_notes_and_score():
    session = chart_session.load_session(
        _chart(notes=[ChartNote(measure=0, fraction=0.5, channel="11", audio_ref="0A")])
    )
    session.judge_engine.on_input_event(InputEvent(time_seconds=1.0, lane=Lane.KEY1))
    assert session.scroll_engine.live_notes() == []

    session.reset()
    assert len(session.scroll_engine.live_notes()) == 1
    assert session.judge_engine.score_state().ex_score == 0
