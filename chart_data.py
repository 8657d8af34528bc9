# -*- coding: utf-8 -*-
########################
# chart_data.py
########################
# Purpose:
# - Input boundary for already-parsed charts.
# - Reads a UTF-8 JSON document produced by an external chart decoder (header, time signature
#   changes, tempo changes, notes) and converts it into gameplay_models values.
#
# Design notes:
# - No Qt usage. Pure reading and validation.
# - Validate structure with pydantic. Timing semantics (positive tempo, ordering) are checked by
#   TempoTimeline and MeasureBeatMapper so that every caller gets the same rules.
# - Positions accept either "fraction" or the decoder's "numerator"/"denominator" pair.
# - NaN and infinity are rejected for every number.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartDataError(Exception)
#
# Public dataclasses:
# - ChartHeader(title: str, artist: str, genre: str, initial_bpm: float)
# - ParsedChart(header, time_signature_changes, tempo_changes, notes, source: str)
#
# Public functions:
# - parse_chart_dict(payload: dict, *, source: str = "<memory>") -> ParsedChart
# - load_parsed_chart(chart_path: pathlib.Path) -> ParsedChart
#
# Inputs:
# - JSON document:
#   {
#     "header": {"title": "...", "artist": "...", "genre": "...", "initial_bpm": 150.0},
#     "time_signature_changes": [{"measure": 3, "beats": 3.0}],
#     "tempo_changes": [{"measure": 8, "fraction": 0.5, "bpm": 180.0}],
#     "notes": [{"measure": 1, "numerator": 1, "denominator": 4, "channel": "11", "audio_ref": "0A"}]
#   }
#
# Outputs:
# - ParsedChart consumed by chart_session.load_session.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, FiniteFloat, ValidationError, field_validator, model_validator

import gameplay_models


class ChartDataError(Exception):
    """Raised when a parsed-chart document cannot be read or does not match the expected structure."""


class ChartHeaderModel(BaseModel):
    title: str = Field(default="Untitled", description="Chart title.")
    artist: str = Field(default="", description="Chart artist.")
    genre: str = Field(default="", description="Chart genre.")
    initial_bpm: FiniteFloat = Field(default=130.0, description="Tempo at beat 0 in beats per minute.")

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return (value or "").strip() or "Untitled"


class ChartPositionModel(BaseModel):
    measure: int = Field(ge=0, description="Measure index, starting at 0.")
    fraction: Optional[FiniteFloat] = Field(default=None, description="Position within the measure in [0, 1).")
    numerator: Optional[int] = Field(default=None, ge=0)
    denominator: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def resolve_fraction(self) -> "ChartPositionModel":
        if self.fraction is not None:
            return self
        if self.numerator is None and self.denominator is None:
            self.fraction = 0.0
            return self
        if self.numerator is None or self.denominator is None:
            raise ValueError("numerator and denominator must be given together")
        self.fraction = float(self.numerator) / float(self.denominator)
        return self


class TimeSignatureChangeModel(BaseModel):
    measure: int = Field(ge=0)
    beats: FiniteFloat = Field(description="Beats in this measure (4.0 for 4/4).")


class TempoChangeModel(ChartPositionModel):
    bpm: FiniteFloat


class NoteModel(ChartPositionModel):
    channel: str = Field(description="Decoder channel id, for example '11' for key 1 or '01' for BGM.")
    audio_ref: str = Field(default="", description="Opaque audio object id.")

    @field_validator("channel", "audio_ref", mode="before")
    @classmethod
    def normalize_ids(cls, value: Any) -> str:
        return str(value if value is not None else "").strip().upper()


class ParsedChartModel(BaseModel):
    header: ChartHeaderModel = Field(default_factory=ChartHeaderModel)
    time_signature_changes: List[TimeSignatureChangeModel] = Field(default_factory=list)
    tempo_changes: List[TempoChangeModel] = Field(default_factory=list)
    notes: List[NoteModel] = Field(default_factory=list)


@dataclass(frozen=True)
class ChartHeader:
    title: str
    artist: str
    genre: str
    initial_bpm: float


@dataclass(frozen=True)
class ParsedChart:
    header: ChartHeader
    time_signature_changes: List[gameplay_models.TimeSignatureChange]
    tempo_changes: List[gameplay_models.TempoChange]
    notes: List[gameplay_models.ChartNote]
    source: str = "<memory>"


def _read_json_file_utf8(chart_path: Path) -> Dict[str, Any]:
    try:
        raw_text = chart_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ChartDataError(f"Chart file is not valid UTF-8: {chart_path}") from exc
    except OSError as exc:
        raise ChartDataError(f"Failed to read chart file: {chart_path}. Error: {exc}") from exc

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ChartDataError(f"Chart file is not valid JSON: {chart_path}. Error: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ChartDataError(f"Chart file root must be a JSON object: {chart_path}")

    return parsed


def parse_chart_dict(payload: Dict[str, Any], *, source: str = "<memory>") -> ParsedChart:
    try:
        model = ParsedChartModel.model_validate(payload)
    except ValidationError as exc:
        raise ChartDataError(f"Chart validation failed for {source}:\n{exc}") from exc

    header = ChartHeader(
        title=model.header.title,
        artist=model.header.artist,
        genre=model.header.genre,
        initial_bpm=float(model.header.initial_bpm),
    )
    time_signature_changes = [
        gameplay_models.TimeSignatureChange(measure=int(item.measure), beats=float(item.beats))
        for item in model.time_signature_changes
    ]
    tempo_changes = [
        gameplay_models.TempoChange(measure=int(item.measure), fraction=float(item.fraction or 0.0), bpm=float(item.bpm))
        for item in model.tempo_changes
    ]
    notes = [
        gameplay_models.ChartNote(
            measure=int(item.measure),
            fraction=float(item.fraction or 0.0),
            channel=item.channel,
            audio_ref=item.audio_ref,
        )
        for item in model.notes
    ]

    return ParsedChart(
        header=header,
        time_signature_changes=time_signature_changes,
        tempo_changes=tempo_changes,
        notes=notes,
        source=str(source),
    )


def load_parsed_chart(chart_path: Path) -> ParsedChart:
    resolved_path = Path(chart_path)
    payload = _read_json_file_utf8(resolved_path)
    return parse_chart_dict(payload, source=str(resolved_path))
