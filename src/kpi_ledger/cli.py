# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for KPI Ledger.

This module wires together the main building blocks of KPI Ledger:

- application configuration (records file, defaults, display, alerts),
- the CSV reader and in-memory record source,
- the metrics engine, history and alerts,
- view helpers (tables and formatting).

The CLI is intentionally thin: it does not implement financial logic
itself. It loads records, calls the service layer and renders the results.


Commands
--------

``metrics COMPANY``
    Metrics of one company for one period, optionally compared with
    another period:

        python -m kpi_ledger.cli metrics acme --period 2024 --compare-period 2023
        python -m kpi_ledger.cli metrics acme --period 2024-Q2 --compare-period previous

    ``--compare-period previous`` compares with the period immediately
    before ``--period`` (2024 -> 2023, 2024-Q1 -> 2023-Q4, 2024-03 ->
    2024-02). ``none`` disables the comparison.

``history COMPANY``
    Metrics for every stored period of a company, oldest first:

        python -m kpi_ledger.cli history acme
        python -m kpi_ledger.cli history acme --metric roe --metric currentRatio

``alerts COMPANY``
    Evaluate the alerts configured for a company on one period:

        python -m kpi_ledger.cli alerts acme --period 2024
        python -m kpi_ledger.cli alerts acme --period 2024 --compare-period 2023

    Growth alerts (revenueGrowth, customerGrowth, profitGrowth) need a
    comparison period; without one their value is 0.


Configuration and overrides
---------------------------

By default the CLI reads ``kpi_ledger_config.toml`` from the current
directory when it exists. ``--config PATH`` points to another file.
``--records``, ``--display-mode``, ``--decimals``, ``--output`` and
``--log-level`` override the corresponding configuration values for the
current run only.


Display modes
-------------

- ``table``: print a text table to stdout (pandas.DataFrame.to_string).
- ``json``: print the JSON body of the historical metrics endpoints
  (camelCase keys, ``changes`` only when a comparison was made).
- ``csv``: write a timestamped CSV file into the output directory
  (``--output`` or ``display.output_dir``).
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, default_app_config, load_app_config
from .history import history_to_dataframe
from .io import load_record_source
from .periods import previous_period
from .service import (
    InMemoryRecordSource,
    RecordNotFoundError,
    check_company_alerts,
    get_company_history,
    get_company_metrics,
)
from .views import alerts_to_dataframe, metrics_to_dataframe

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m kpi_ledger.cli",
        description=(
            "KPI Ledger - Financial metrics toolkit. Reads period records, "
            "derives profitability, liquidity, efficiency, leverage and growth "
            "KPIs and renders them as tables, JSON or CSV."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of kpi_ledger and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when present."
        ),
    )
    ap.add_argument(
        "--records",
        dest="records_path",
        metavar="CSV_PATH",
        help="Override the period records CSV defined in the configuration.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "json", "csv"],
        help="Override the display.mode setting from the configuration file.",
    )
    ap.add_argument(
        "--decimals",
        type=int,
        help="Override the number of decimals used in tables and CSV files.",
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV files (display mode 'csv').",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the logging level from the configuration file.",
    )

    sub = ap.add_subparsers(dest="command")

    metrics_p = sub.add_parser("metrics", help="Metrics of a company for one period.")
    metrics_p.add_argument("company_id", help="Company identifier.")
    metrics_p.add_argument(
        "--period",
        help="Period to analyse (default: metrics.default_period).",
    )
    metrics_p.add_argument(
        "--compare-period",
        dest="compare_period",
        help=(
            "Comparison period label, 'previous' for the preceding period, "
            "or 'none' (default: metrics.default_compare_period)."
        ),
    )

    history_p = sub.add_parser("history", help="Metrics for every stored period.")
    history_p.add_argument("company_id", help="Company identifier.")
    history_p.add_argument(
        "--metric",
        dest="metrics",
        action="append",
        help="Metric to include (repeatable). Defaults to the trend-chart set.",
    )
    history_p.add_argument(
        "--chronological",
        action="store_true",
        help="Order mixed yearly/quarterly/monthly periods chronologically.",
    )

    alerts_p = sub.add_parser("alerts", help="Evaluate configured alerts.")
    alerts_p.add_argument("company_id", help="Company identifier.")
    alerts_p.add_argument(
        "--period",
        help="Period to evaluate (default: metrics.default_period).",
    )
    alerts_p.add_argument(
        "--compare-period",
        dest="compare_period",
        help=(
            "Comparison period used by growth alerts, 'previous' or 'none' "
            "(default: metrics.default_compare_period)."
        ),
    )

    return ap


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config_path:
        return load_app_config(args.config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return default_app_config()


def _resolve_compare_period(period: str, compare_period: Optional[str]) -> Optional[str]:
    """Translate 'previous' into an explicit label; pass other values through."""
    if compare_period is None:
        return None
    if compare_period.strip().lower() == "previous":
        return previous_period(period)
    return compare_period


def _resolve_periods(
    args: argparse.Namespace,
    config: AppConfig,
    source: InMemoryRecordSource,
) -> tuple[str, Optional[str]]:
    """
    Return (period, compare_period) for a metrics or alerts command.

    The current record is looked up first, so an unknown period is reported
    as not found before 'previous' is resolved.
    """
    period = args.period or config.default_period
    if source.get_record(args.company_id, period) is None:
        raise RecordNotFoundError(args.company_id, period)
    compare_raw = args.compare_period or config.default_compare_period
    return period, _resolve_compare_period(period, compare_raw)


def _emit_table(df: pd.DataFrame, title: str) -> None:
    print()
    print(f"=== {title} ===")
    if df.empty:
        print("(no rows)")
    else:
        print(df.to_string(index=False))


def _emit_csv(df: pd.DataFrame, output_dir: Path, stem: str) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    path = output_dir / f"{stem}_{timestamp}.csv"
    df.to_csv(path, index=False)
    print(f"Wrote {path} ({len(df)} rows)")


def _handle_metrics(
    args: argparse.Namespace,
    config: AppConfig,
    source: InMemoryRecordSource,
    mode: str,
    decimals: int,
    output_dir: Path,
) -> None:
    period, compare_period = _resolve_periods(args, config, source)
    metrics = get_company_metrics(source, args.company_id, period, compare_period)

    if mode == "json":
        print(json.dumps(metrics.to_dict(), indent=2))
        return

    df = metrics_to_dataframe(metrics, decimals=decimals)
    if mode == "csv":
        _emit_csv(df, output_dir, f"metrics_{args.company_id}_{period}")
        return

    title = f"Metrics for {args.company_id} - {period}"
    if metrics.changes is not None:
        title += f" (vs {compare_period})"
    _emit_table(df, title)


def _handle_history(
    args: argparse.Namespace,
    source: InMemoryRecordSource,
    mode: str,
    decimals: int,
    output_dir: Path,
) -> None:
    points = get_company_history(
        source, args.company_id, chronological=args.chronological
    )

    if mode == "json":
        print(json.dumps([p.to_dict() for p in points], indent=2))
        return

    df = history_to_dataframe(points, metrics=args.metrics, decimals=decimals)
    if mode == "csv":
        _emit_csv(df, output_dir, f"history_{args.company_id}")
        return

    # Wide layout reads better on a console: one column per period.
    if not df.empty:
        df = df.pivot_table(
            index=["metric_key", "label", "unit"],
            columns="period",
            values="value",
            sort=False,
        ).reset_index()
        df.columns.name = None
    _emit_table(df, f"History for {args.company_id}")


def _handle_alerts(
    args: argparse.Namespace,
    config: AppConfig,
    source: InMemoryRecordSource,
    mode: str,
    decimals: int,
    output_dir: Path,
) -> None:
    period, compare_period = _resolve_periods(args, config, source)
    results = check_company_alerts(
        source, args.company_id, period, config.alerts, compare_period
    )

    if mode == "json":
        body = [
            {
                "companyId": r.alert.company_id,
                "metricName": r.alert.metric_name,
                "condition": r.alert.condition,
                "threshold": r.alert.threshold,
                "value": r.value,
                "triggered": r.triggered,
            }
            for r in results
        ]
        print(json.dumps(body, indent=2))
        return

    df = alerts_to_dataframe(results, decimals=decimals)
    if mode == "csv":
        _emit_csv(df, output_dir, f"alerts_{args.company_id}_{period}")
        return

    _emit_table(df, f"Alerts for {args.company_id} - {period}")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the KPI Ledger CLI.

    This function parses command-line arguments, loads the configuration,
    configures logging, reads the period records into an in-memory record
    source and dispatches to the requested command. Lookup and input errors
    are reported through the argument parser (exit status 2).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"kpi_ledger version {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    # 1) Configuration and logging
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    # 2) Resolve display options: config values overridden by CLI if provided.
    mode = args.display_mode or config.display.mode
    decimals = args.decimals if args.decimals is not None else config.display.decimals
    output_dir = Path(args.output_dir) if args.output_dir else config.display.output_dir

    # 3) Record source
    records_path = Path(args.records_path) if args.records_path else config.records_file
    if records_path is None:
        parser.error(
            "No records file configured. Either set data.records_file in the "
            "configuration or provide --records."
        )
    if not records_path.is_file():
        parser.error(f"Records file not found: {records_path}")

    logger.debug("Using records file %s", records_path)
    try:
        source = load_record_source(records_path)
    except ValueError as exc:
        parser.error(f"Invalid records file {records_path}: {exc}")

    # 4) Dispatch
    try:
        if args.command == "metrics":
            _handle_metrics(args, config, source, mode, decimals, output_dir)
        elif args.command == "history":
            _handle_history(args, source, mode, decimals, output_dir)
        elif args.command == "alerts":
            _handle_alerts(args, config, source, mode, decimals, output_dir)
    except RecordNotFoundError as exc:
        parser.error(str(exc))
    except (KeyError, ValueError) as exc:
        # unknown metric keys (KeyError), unparsable period labels (ValueError)
        parser.error(str(exc))


if __name__ == "__main__":
    main()
