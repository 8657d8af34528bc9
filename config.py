"""
config.py

Typed configuration loading and validation for Beatlane.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If BEATLANE_CONFIG_PATH is set, that file is used.
- Otherwise Beatlane searches these paths in order and uses the first one that exists:
  1) ./beatlane_config.json (current working directory)
  2) <user config dir>/Beatlane/Beatlane/beatlane_config.json
  3) <user config dir>/Beatlane/Beatlane/config.json
- If none exists, built-in defaults are used.

Example config file (beatlane_config.json)
{
  "timing": {
    "tick_hz": 1000,
    "frame_hz": 60,
    "pgreat_ms": 21,
    "great_ms": 60,
    "good_ms": 120,
    "bad_ms": 200,
    "poor_ms": 1000,
    "retire_window_ms": null
  },
  "scroll": {
    "scale": 2.5,
    "green_number": 500,
    "lane_height": 722
  },
  "logging": {
    "level": "WARNING"
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class TimingConfig(BaseModel):
    tick_hz: int = Field(default=1000, ge=1, le=10000, description="Fixed simulation tick rate.")
    frame_hz: int = Field(default=60, ge=1, le=1000, description="Scroll offset refresh rate.")
    pgreat_ms: float = Field(default=21.0, gt=0, description="PGREAT judgement window (+/- ms).")
    great_ms: float = Field(default=60.0, gt=0, description="GREAT judgement window (+/- ms).")
    good_ms: float = Field(default=120.0, gt=0, description="GOOD judgement window (+/- ms).")
    bad_ms: float = Field(default=200.0, gt=0, description="BAD judgement window (+/- ms).")
    poor_ms: float = Field(default=1000.0, gt=0, description="POOR judgement window (+/- ms).")
    retire_window_ms: Optional[float] = Field(
        default=None,
        ge=0,
        description=(
            "How long an unhit note stays live after its time. Defaults to the GOOD window. "
            "Presses are judged only inside it, so BAD and POOR need a larger value."
        ),
    )

    @model_validator(mode="after")
    def validate_window_order(self) -> "TimingConfig":
        windows = [self.pgreat_ms, self.great_ms, self.good_ms, self.bad_ms, self.poor_ms]
        if windows != sorted(windows):
            raise ValueError("judgement windows must be non-decreasing: pgreat <= great <= good <= bad <= poor")
        return self

    def retire_window_seconds(self) -> float:
        window_ms = self.good_ms if self.retire_window_ms is None else self.retire_window_ms
        return float(window_ms) / 1000.0


class ScrollConfig(BaseModel):
    scale: float = Field(default=2.5, gt=0, description="Pixels per unit of scroll distance.")
    green_number: int = Field(default=500, ge=1, description="Visible window in tenths of a 60 Hz frame.")
    lane_height: float = Field(default=722.0, gt=0, description="Lane height in pixels. Notes further up are not drawn.")

    def lookahead_seconds(self) -> float:
        return float(self.green_number) / 10.0 / 60.0


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING", description="DEBUG, INFO, WARNING, or ERROR")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR")
        return normalized


class AppConfig(BaseModel):
    timing: TimingConfig = Field(default_factory=TimingConfig)
    scroll: ScrollConfig = Field(default_factory=ScrollConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir("Beatlane", "Beatlane"))
    return [
        Path.cwd() / "beatlane_config.json",
        config_directory / "beatlane_config.json",
        config_directory / "config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("BEATLANE_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - BEATLANE_TICK_HZ
    - BEATLANE_FRAME_HZ
    - BEATLANE_RETIRE_WINDOW_MS
    - BEATLANE_SCROLL_SCALE
    - BEATLANE_GREEN_NUMBER
    - BEATLANE_LOG_LEVEL
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    timing_section = ensure_nested(updated_config, "timing")
    scroll_section = ensure_nested(updated_config, "scroll")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    override_int("BEATLANE_TICK_HZ", timing_section, "tick_hz")
    override_int("BEATLANE_FRAME_HZ", timing_section, "frame_hz")
    override_float("BEATLANE_RETIRE_WINDOW_MS", timing_section, "retire_window_ms")

    override_float("BEATLANE_SCROLL_SCALE", scroll_section, "scale")
    override_int("BEATLANE_GREEN_NUMBER", scroll_section, "green_number")

    override_string("BEATLANE_LOG_LEVEL", logging_section, "level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict = _read_json_file_utf8(resolved_path) if resolved_path is not None else {}
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "built-in defaults"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
