"""
Run configuration for press-report.

Configuration lives in a JSON object whose keys mirror ``ReportConfig``.
Every key is optional; unknown keys are rejected so typos do not pass
silently.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from press_report.errors import ConfigError
from press_report.sources.spreadsheet import (
    AD_EQ_RATIO,
    EXPECTED_HEADERS,
    AnchorCellLocator,
    ExpectedSequenceLocator,
    HeaderLocator,
)
from press_report.urls import TRACKING_HOSTS
from press_report.workbook.assembler import AUTOFIT_COLUMNS, AUTOFIT_OVERRIDES, BuildOptions
from press_report.workbook.reconstruct import AGGREGATE_SHEET_NAME
from press_report.workbook.template import DATA_START_ROW, DEFAULT_SHEET_NAME, TEMPLATE_TIMEOUT

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}


@dataclass
class ReportConfig:
    ad_eq_ratio: float = AD_EQ_RATIO
    data_start_row: int = DATA_START_ROW
    sheet_name: str = DEFAULT_SHEET_NAME
    aggregate_sheet_name: str = AGGREGATE_SHEET_NAME
    template: str | None = None
    template_timeout: float = TEMPLATE_TIMEOUT
    write_totals: bool = True
    autofit: bool = True
    autofit_columns: list[int] = field(default_factory=lambda: list(AUTOFIT_COLUMNS))
    autofit_min: float = 10
    autofit_max: float = 60
    autofit_pad: float = 2
    autofit_overrides: dict[int, dict[str, float]] = field(
        default_factory=lambda: {col: dict(limits) for col, limits in AUTOFIT_OVERRIDES.items()}
    )
    secondary_headers: list[str] = field(default_factory=lambda: list(EXPECTED_HEADERS))
    tracking_hosts: list[str] = field(default_factory=lambda: list(TRACKING_HOSTS))
    summary_link: str | None = None

    def __post_init__(self) -> None:
        if self.ad_eq_ratio <= 0:
            raise ConfigError("ad_eq_ratio must be greater than zero")
        if self.data_start_row < 2:
            raise ConfigError("data_start_row must be 2 or greater")
        if self.autofit_min > self.autofit_max:
            raise ConfigError("autofit_min cannot exceed autofit_max")
        self.autofit_overrides = _int_keys(self.autofit_overrides)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["autofit_overrides"] = {str(col): limits for col, limits in self.autofit_overrides.items()}
        return payload

    def locators(self) -> tuple[HeaderLocator, ...]:
        return (ExpectedSequenceLocator(expected=tuple(self.secondary_headers)), AnchorCellLocator())

    def build_options(self, **overrides: Any) -> BuildOptions:
        options = BuildOptions(
            sheet_name=self.sheet_name,
            start_row=self.data_start_row,
            write_totals=self.write_totals,
            autofit=self.autofit,
            template=self.template,
            template_timeout=self.template_timeout,
            autofit_columns=tuple(self.autofit_columns),
            autofit_min=self.autofit_min,
            autofit_max=self.autofit_max,
            autofit_pad=self.autofit_pad,
            autofit_overrides={col: dict(limits) for col, limits in self.autofit_overrides.items()},
            summary_link=self.summary_link,
            tracking_hosts=tuple(self.tracking_hosts),
        )
        for name, value in overrides.items():
            setattr(options, name, value)
        return options


def _int_keys(overrides: dict) -> dict[int, dict[str, float]]:
    result: dict[int, dict[str, float]] = {}
    for key, limits in (overrides or {}).items():
        try:
            column = int(key)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"autofit_overrides keys must be column numbers, got {key!r}") from exc
        if not isinstance(limits, dict):
            raise ConfigError(f"autofit_overrides[{key!r}] must be an object")
        result[column] = dict(limits)
    return result


def config_from_dict(payload: dict[str, Any]) -> ReportConfig:
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a JSON object.")
    known = {f.name for f in fields(ReportConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    try:
        return ReportConfig(**payload)
    except TypeError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc


def load_config(path: str | Path | None) -> ReportConfig:
    if path is None:
        return ReportConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ConfigError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not read config: {exc}") from exc
    return config_from_dict(payload)


def default_config_text() -> str:
    return json.dumps(ReportConfig().to_dict(), indent=2, ensure_ascii=False) + "\n"
