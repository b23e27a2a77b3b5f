# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View helpers for KPI Ledger.

This module prepares metric results for display:

- ``metrics_to_dataframe()`` turns a MetricSet into a table (one row per
  metric, grouped by dashboard category), used by the CLI for console
  tables and CSV exports.
- ``alerts_to_dataframe()`` does the same for evaluated alerts.
- ``format_currency()``, ``format_percentage()`` and ``format_number()``
  render single values the way dashboard cards show them.
- ``metric_status()`` and ``trend_direction()`` classify a value against a
  target and a change against zero.

The helpers only rely on MetricSet / MetricMeta and stay agnostic of how
the records were obtained.
"""

import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Literal, Optional

import pandas as pd

from .alerts import AlertResult
from .metrics import CATEGORY_ORDER, CHANGE_DEFINITIONS, METRIC_DEFINITIONS, MetricSet

METRIC_COLUMNS: list[str] = ["category", "key", "label", "value", "unit"]

ALERT_COLUMNS: list[str] = [
    "company_id",
    "metric",
    "condition",
    "threshold",
    "value",
    "triggered",
]

MetricStatus = Literal["good", "warning", "danger"]
TrendDirection = Literal["up", "down", "neutral"]


# wide enough for every finite float
_FORMAT_CONTEXT = Context(prec=400)


def _fixed(value: float, decimals: int) -> Decimal:
    """Round to ``decimals`` places, halves away from zero."""
    number = Decimal(value)
    if not number.is_finite():
        return number
    return number.quantize(
        Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP, context=_FORMAT_CONTEXT
    )


def metrics_to_dataframe(metrics: MetricSet, decimals: int) -> pd.DataFrame:
    """
    Convert a MetricSet into a pandas DataFrame.

    The resulting DataFrame has the following columns:
        - category: Dashboard section ("overview", "profitability", ...).
        - key:      Metric identifier (e.g. "gross_profit_margin").
        - label:    Human-readable label.
        - value:    Value rounded to ``decimals``.
        - unit:     Unit hint ("amount", "percent", "ratio", "days").

    Rows are ordered by category (CATEGORY_ORDER) and then by registry
    order. When the MetricSet carries a change set, its four deltas are
    appended with category "changes".
    """
    category_rank = {name: idx for idx, name in enumerate(CATEGORY_ORDER)}
    ordered = sorted(
        enumerate(METRIC_DEFINITIONS),
        key=lambda item: (category_rank.get(item[1].category, 99), item[0]),
    )

    rows: list[dict[str, object]] = []
    for _, meta in ordered:
        rows.append(
            {
                "category": meta.category,
                "key": meta.key,
                "label": meta.label,
                "value": round(getattr(metrics, meta.key), decimals),
                "unit": meta.unit,
            }
        )

    if metrics.changes is not None:
        for meta in CHANGE_DEFINITIONS:
            rows.append(
                {
                    "category": meta.category,
                    "key": meta.key,
                    "label": meta.label,
                    "value": round(getattr(metrics.changes, meta.key), decimals),
                    "unit": meta.unit,
                }
            )

    return pd.DataFrame(rows, columns=METRIC_COLUMNS)


def alerts_to_dataframe(results: list[AlertResult], decimals: int) -> pd.DataFrame:
    """Convert evaluated alerts into a DataFrame, triggered alerts first."""
    if not results:
        return pd.DataFrame(columns=ALERT_COLUMNS)

    rows = [
        {
            "company_id": r.alert.company_id,
            "metric": r.alert.metric_name,
            "condition": r.alert.condition,
            "threshold": r.alert.threshold,
            "value": round(r.value, decimals),
            "triggered": r.triggered,
        }
        for r in results
    ]
    df = pd.DataFrame(rows, columns=ALERT_COLUMNS)
    return df.sort_values("triggered", ascending=False, kind="stable").reset_index(
        drop=True
    )


def format_currency(value: float, compact: bool = False) -> str:
    """
    Format an amount in dollars without decimals.

    With ``compact=True``, amounts of 1,000 or more are shortened:
    1,500 -> "$2K", 2,500,000 -> "$2.5M". Halves round away from zero
    (2,500 -> "$3K").
    """
    if value == 0:
        return "$0"

    sign = "-" if value < 0 else ""
    magnitude = abs(value)

    if compact and magnitude >= 1000:
        if magnitude >= 1_000_000:
            return f"{sign}${_fixed(magnitude / 1_000_000, 1)}M"
        return f"{sign}${_fixed(magnitude / 1000, 0)}K"

    return f"{sign}${_fixed(magnitude, 0):,}"


def format_percentage(value: float, decimals: int = 1) -> str:
    if value == 0:
        return "0%"
    return f"{_fixed(value, decimals)}%"


def format_number(value: float, decimals: int = 0) -> str:
    if value == 0:
        return "0"
    return str(_fixed(value, decimals))


def format_metric_value(value: float, unit: str, decimals: int = 1) -> str:
    """Format a value according to its unit hint."""
    if unit == "amount":
        return format_currency(value)
    if unit == "percent":
        return format_percentage(value, decimals)
    if unit == "points":
        return f"{format_number(value, decimals)} pts"
    if unit == "days":
        return f"{format_number(value, decimals)} days"
    return format_number(value, decimals)


def metric_status(
    value: float,
    target: float,
    direction: Literal["higher", "lower"] = "higher",
) -> MetricStatus:
    """
    Classify a value against a target.

    For metrics where higher is better, value/target >= 1.1 is "good",
    >= 0.9 is "warning", anything lower is "danger". The bands are
    mirrored when lower is better.

    Raises:
        ValueError: if target is not strictly positive or direction is
            unknown.
    """
    if target <= 0:
        raise ValueError(f"Target must be strictly positive, got {target!r}.")
    if direction not in ("higher", "lower"):
        raise ValueError(f"Unknown direction: {direction!r}")

    ratio = value / target

    if direction == "higher":
        if ratio >= 1.1:
            return "good"
        if ratio >= 0.9:
            return "warning"
        return "danger"

    if ratio <= 0.9:
        return "good"
    if ratio <= 1.1:
        return "warning"
    return "danger"


def trend_direction(change: Optional[float]) -> TrendDirection:
    """Return "up", "down" or "neutral" for a period-over-period change."""
    if change is None or change == 0 or math.isnan(change):
        return "neutral"
    return "up" if change > 0 else "down"
