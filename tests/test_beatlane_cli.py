"""Tests for the beatlane command line entrypoint."""

from __future__ import annotations

import json

import pytest

import beatlane
from scroll_engine import ScrollEngine

CHART = {
    "header": {"title": "Cli", "artist": "Tester", "genre": "Test", "initial_bpm": 120},
    "tempo_changes": [{"measure": 1, "fraction": 0.0, "bpm": 240}],
    "notes": [
        {"measure": 0, "fraction": 0.25, "channel": "01", "audio_ref": "BG"},
        {"measure": 0, "fraction": 0.5, "channel": "11", "audio_ref": "0A"},
        {"measure": 1, "fraction": 0.5, "channel": "16", "audio_ref": "0B"},
    ],
}


@pytest.fixture
def paths(tmp_path, monkeypatch):
    for env_name in (
        "BEATLANE_TICK_HZ",
        "BEATLANE_FRAME_HZ",
        "BEATLANE_LOG_LEVEL",
        "BEATLANE_SCROLL_SCALE",
        "BEATLANE_GREEN_NUMBER",
        "BEATLANE_RETIRE_WINDOW_MS",
    ):
        monkeypatch.delenv(env_name, raising=False)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"timing": {"tick_hz": 100}}), encoding="utf-8")
    chart_path = tmp_path / "chart.json"
    chart_path.write_text(json.dumps(CHART), encoding="utf-8")
    return config_path, chart_path


def _json_lines(capsys):
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]


def test_summary(paths, capsys):
    config_path, chart_path = paths
    assert beatlane.main(["--config", str(config_path), "summary", str(chart_path)]) == 0
    (payload,) = _json_lines(capsys)
    assert payload["ok"] is True
    assert payload["title"] == "Cli"
    assert payload["notes"] == 3
    assert payload["lanes"] == {"bgm": 1, "key1": 1, "scratch": 1}
    assert [segment["bpm"] for segment in payload["tempo_segments"]] == [120.0, 240.0]
    assert payload["tempo_segments"][1]["start_time"] == pytest.approx(2.0)
    assert payload["tempo_segments"][1]["end_beat"] is None
    assert payload["last_note_seconds"] == pytest.approx(2.5)


def test_offsets(paths, capsys):
    config_path, chart_path = paths
    assert beatlane.main(["--config", str(config_path), "offsets", str(chart_path), "--at", "0.5"]) == 0
    (payload,) = _json_lines(capsys)
    assert payload["bpm"] == 120.0
    assert [item["audio_ref"] for item in payload["offsets"]] == ["0A"]
    assert payload["offsets"][0]["offset"] == pytest.approx(2.5 * 120.0 * 0.5)
    assert payload["offsets"][0]["has_passed"] is False


def test_simulate_reports_audio_and_misses(paths, capsys):
    config_path, chart_path = paths
    assert beatlane.main(["--config", str(config_path), "simulate", str(chart_path)]) == 0
    lines = _json_lines(capsys)

    assert [line["event"] for line in lines] == ["audio", "judgement", "judgement", "end"]
    assert lines[0]["audio_ref"] == "BG"
    assert lines[0]["elapsed"] == pytest.approx(0.5, abs=0.011)
    assert [line["judgement"] for line in lines[1:3]] == ["miss", "miss"]
    assert [line["lane"] for line in lines[1:3]] == ["key1", "scratch"]
    assert lines[-1]["miss_count"] == 2


def test_missing_chart_exits_with_error(paths, tmp_path, capsys):
    config_path, _chart_path = paths
    assert beatlane.main(["--config", str(config_path), "summary", str(tmp_path / "missing.json")]) == 2
    (payload,) = _json_lines(capsys)
    assert payload["ok"] is False


def test_invalid_config_exits_with_error(paths, tmp_path, capsys):
    _config_path, chart_path = paths
    bad_config = tmp_path / "bad.json"
    bad_config.write_text(json.dumps({"timing": {"tick_hz": -5}}), encoding="utf-8")
    assert beatlane.main(["--config", str(bad_config), "summary", str(chart_path)]) == 2
    assert _json_lines(capsys)[0]["ok"] is False


def test_simulate_only_runs_retirement(paths, capsys, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("simulate must not compute scroll offsets")

    monkeypatch.setattr(ScrollEngine, "offset_for", fail)
    monkeypatch.setattr(ScrollEngine, "tick", fail)
    config_path, chart_path = paths
    assert beatlane.main(["--config", str(config_path), "simulate", str(chart_path)]) == 0
    assert _json_lines(capsys)[-1]["miss_count"] == 2


def test_offsets_drop_notes_above_the_lane(paths, tmp_path, capsys):
    _config_path, chart_path = paths
    short_lane_config = tmp_path / "short_lane.json"
    short_lane_config.write_text(json.dumps({"scroll": {"lane_height": 100}}), encoding="utf-8")
    assert beatlane.main(["--config", str(short_lane_config), "offsets", str(chart_path), "--at", "0.5"]) == 0
    (payload,) = _json_lines(capsys)
    assert payload["offsets"] == []
