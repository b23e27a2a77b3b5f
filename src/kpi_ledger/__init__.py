# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
KPI Ledger
----------

A Python toolkit that turns periodic financial statements into the KPIs
shown on a multi-company financial dashboard.

Main capabilities:
- a typed period record (income statement, balance sheet, cash flow and
  customer counters) with boundary normalization of raw stored values,
- a pure metric derivation engine (profitability, liquidity, efficiency,
  leverage and growth KPIs) with an optional period-over-period change set,
- historical metric series for trend charts,
- threshold alerts on any metric,
- a CSV-backed in-memory record source and a small lookup service,
- a command-line interface rendering metrics as tables, JSON or CSV.

KPI Ledger keeps computation (metrics), data access (io, service),
configuration (TOML) and presentation (views, CLI) apart, so the engine
can be embedded in any request handler without carrying I/O along.


Version: 0.2.0

Usage:
    python -m kpi_ledger.cli --help
"""

__all__ = ["records", "metrics", "history", "alerts", "service", "views"]

__version__ = "0.2.0"
