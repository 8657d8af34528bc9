"""Tests for chart_data parsing and validation."""

from __future__ import annotations

import json

import pytest

import chart_data
from gameplay_models import ChartNote, TempoChange, TimeSignatureChange


def test_parse_full_document():
    chart = chart_data.parse_chart_dict(
        {
            "header": {"title": "  Song  ", "artist": "Someone", "genre": "Trance", "initial_bpm": 150},
            "time_signature_changes": [{"measure": 3, "beats": 3}],
            "tempo_changes": [{"measure": 8, "fraction": 0.5, "bpm": 180}],
            "notes": [{"measure": 1, "numerator": 1, "denominator": 4, "channel": "1a", "audio_ref": "0a"}],
        },
        source="song.json",
    )
    assert chart.header.title == "Song"
    assert chart.header.initial_bpm == 150.0
    assert chart.time_signature_changes == [TimeSignatureChange(measure=3, beats=3.0)]
    assert chart.tempo_changes == [TempoChange(measure=8, fraction=0.5, bpm=180.0)]
    assert chart.notes == [ChartNote(measure=1, fraction=0.25, channel="1A", audio_ref="0A")]
    assert chart.source == "song.json"


def test_defaults_for_empty_document():
    chart = chart_data.parse_chart_dict({})
    assert chart.header.title == "Untitled"
    assert chart.header.initial_bpm == 130.0
    assert chart.notes == []
    assert chart.tempo_changes == []


def test_position_defaults_to_measure_start():
    chart = chart_data.parse_chart_dict({"notes": [{"measure": 2, "channel": 11}]})
    assert chart.notes[0].fraction == 0.0
    assert chart.notes[0].channel == "11"
    assert chart.notes[0].audio_ref == ""


@pytest.mark.parametrize(
    "note",
    [
        {"measure": -1, "channel": "11"},
        {"measure": 0, "numerator": 1, "channel": "11"},
        {"measure": 0, "numerator": 1, "denominator": 0, "channel": "11"},
        {"measure": 0},
    ],
)
def test_invalid_notes_raise(note):
    with pytest.raises(chart_data.ChartDataError):
        chart_data.parse_chart_dict({"notes": [note]})


def test_load_from_file(tmp_path):
    chart_path = tmp_path / "chart.json"
    chart_path.write_text(json.dumps({"header": {"title": "File"}}), encoding="utf-8")
    chart = chart_data.load_parsed_chart(chart_path)
    assert chart.header.title == "File"
    assert chart.source == str(chart_path)


def test_load_errors(tmp_path):
    with pytest.raises(chart_data.ChartDataError):
        chart_data.load_parsed_chart(tmp_path / "missing.json")

    broken_path = tmp_path / "broken.json"
    broken_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(chart_data.ChartDataError):
        chart_data.load_parsed_chart(broken_path)

    list_path = tmp_path / "list.json"
    list_path.write_text("[]", encoding="utf-8")
    with pytest.raises(chart_data.ChartDataError):
        chart_data.load_parsed_chart(list_path)


@pytest.mark.parametrize(
    "payload",
    [
        {"notes": [{"measure": 0, "fraction": float("nan"), "channel": "11"}]},
        {"notes": [{"measure": 0, "fraction": float("inf"), "channel": "11"}]},
        {"tempo_changes": [{"measure": 1, "bpm": float("nan")}]},
        {"time_signature_changes": [{"measure": 1, "beats": float("inf")}]},
        {"header": {"initial_bpm": float("nan")}},
    ],
)
def test_non_finite_numbers_are_rejected(payload):
    with pytest.raises(chart_data.ChartDataError):
        chart_data.parse_chart_dict(payload)


def test_nan_literal_in_file_is_rejected(tmp_path):
    chart_path = tmp_path / "nan.json"
    chart_path.write_text('{"notes": [{"measure": 0, "fraction": NaN, "channel": "11"}]}', encoding="utf-8")
    with pytest.raises(chart_data.ChartDataError):
        chart_data.load_parsed_chart(chart_path)
