# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for KPI Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating and normalizing its values,
- exposing typed dataclasses used by the rest of the application.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

from .alerts import MetricAlert

DEFAULT_CONFIG_FILE = "kpi_ledger_config.toml"

DISPLAY_MODES: tuple[str, ...] = ("table", "json", "csv")


@dataclass(frozen=True)
class DisplayConfig:
    """Display options for the CLI."""

    mode: str = "table"
    decimals: int = 2
    output_dir: Path = Path("data/output")


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for KPI Ledger.

    This aggregates:
    - the records file used to build the record source,
    - the default period and comparison period for metric lookups,
    - display options,
    - the logging level,
    - the configured metric alerts.
    """

    records_file: Optional[Path]
    default_period: str
    default_compare_period: str
    display: DisplayConfig
    log_level: str
    alerts: tuple[MetricAlert, ...]


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if absent or invalid."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_display(raw: Mapping[str, Any], base_dir: Path) -> DisplayConfig:
    display_section = _section(raw, "display")

    mode = str(display_section.get("mode", "table")).lower()
    if mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )

    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'display.decimals' in the configuration. "
            "Expected an integer."
        ) from exc
    if decimals < 0:
        raise ValueError("'display.decimals' cannot be negative.")

    output_raw = display_section.get("output_dir") or "data/output"
    output_dir = (base_dir / str(output_raw)).resolve()

    return DisplayConfig(mode=mode, decimals=decimals, output_dir=output_dir)


def _parse_log_level(raw: Mapping[str, Any]) -> str:
    level = str(_section(raw, "logging").get("level", "WARNING")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Invalid value for 'logging.level': {level!r}.")
    return level


def _parse_alerts(raw: Mapping[str, Any]) -> tuple[MetricAlert, ...]:
    alerts_raw = raw.get("alerts") or []
    if not isinstance(alerts_raw, list):
        raise ValueError("'alerts' must be an array of tables ([[alerts]]).")

    alerts: list[MetricAlert] = []
    for idx, item in enumerate(alerts_raw, start=1):
        if not isinstance(item, Mapping):
            raise ValueError(f"Alert #{idx} is not a table.")
        try:
            alerts.append(MetricAlert.from_mapping(item))
        except ValueError as exc:
            raise ValueError(f"Invalid alert #{idx}: {exc}") from exc
    return tuple(alerts)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the KPI Ledger application configuration from a TOML file.

    Expected top-level sections in the TOML file (all optional)
    -----------------------------------------------------------
    [data]
        records_file: CSV file holding the period records.

    [metrics]
        default_period: period used when none is given on the command line.
        default_compare_period: "none", "previous" or an explicit label.

    [display]
        mode ("table" | "json" | "csv"), decimals, output_dir.

    [logging]
        level: standard logging level name (default "WARNING").

    [[alerts]]
        company_id, metric, threshold, condition ("above" | "below"),
        enabled (default true).

    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path :
        Path to the TOML configuration file. Defaults to
        'kpi_ledger_config.toml' in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    config_file = Path(config_path or DEFAULT_CONFIG_FILE).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Data section
    records_raw = _section(raw, "data").get("records_file")
    records_file = (base_dir / str(records_raw)).resolve() if records_raw else None

    # 2) Metrics defaults
    metrics_section = _section(raw, "metrics")
    default_period = str(metrics_section.get("default_period") or "2024")
    default_compare = str(metrics_section.get("default_compare_period") or "none")

    return AppConfig(
        records_file=records_file,
        default_period=default_period,
        default_compare_period=default_compare,
        display=_parse_display(raw, base_dir),
        log_level=_parse_log_level(raw),
        alerts=_parse_alerts(raw),
    )


def default_app_config() -> AppConfig:
    """Configuration used when no TOML file is available."""
    return AppConfig(
        records_file=None,
        default_period="2024",
        default_compare_period="none",
        display=DisplayConfig(),
        log_level="WARNING",
        alerts=(),
    )
