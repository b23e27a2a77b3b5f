# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Historical metric series for trend charts.

``compute_history()`` runs the metrics engine once per stored period of a
company, without any comparison (so no change set and zero growth), and
returns the results ordered by period.

``history_to_dataframe()`` flattens a history into a long-format DataFrame,
one row per (period, metric), which is the shape expected by charting
layers and CSV exports:

    period | period_type | metric_key | label | unit | value

Ordering
--------
By default periods are ordered by their raw label, ascending. This keeps
yearly series ("2022", "2023", "2024") and same-type series in the right
order. Mixed series can be ordered chronologically with
``chronological=True`` (see ``periods.period_sort_key``).
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .metrics import MetricSet, compute_metrics, get_metric_meta
from .periods import period_sort_key
from .records import RawPeriodRecord

# Metrics plotted on the dashboard trend charts.
HISTORY_METRICS: tuple[str, ...] = (
    "revenue",
    "net_profit_margin",
    "operating_cash_flow",
    "gross_profit_margin",
    "current_ratio",
    "roe",
    "roa",
    "debt_to_equity",
)

HISTORY_COLUMNS: list[str] = [
    "period",
    "period_type",
    "metric_key",
    "label",
    "unit",
    "value",
]


@dataclass(frozen=True)
class HistoryPoint:
    """Metrics of one stored period."""

    period: str
    period_type: Optional[str]
    metrics: MetricSet

    def to_dict(self) -> dict:
        out = {"period": self.period, "periodType": self.period_type}
        out.update(self.metrics.to_dict())
        return out


def compute_history(
    records: Iterable[RawPeriodRecord],
    chronological: bool = False,
) -> list[HistoryPoint]:
    """
    Compute one MetricSet per record, ordered by period ascending.

    Args:
        records:
            Records of a single company. Records without a period label
            are rejected.
        chronological:
            If True, order by ``period_sort_key`` instead of the raw label.

    Returns:
        A list of HistoryPoint, one per record.

    Raises:
        ValueError: if a record has no period label.
    """
    points: list[HistoryPoint] = []
    for record in records:
        if not record.period:
            raise ValueError("Every record in a history must carry a period label.")
        points.append(
            HistoryPoint(
                period=record.period,
                period_type=record.period_type,
                metrics=compute_metrics(record),
            )
        )

    if chronological:
        points.sort(key=lambda p: period_sort_key(p.period))
    else:
        points.sort(key=lambda p: p.period)

    return points


def history_to_dataframe(
    points: Sequence[HistoryPoint],
    metrics: Optional[Sequence[str]] = None,
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """
    Convert a history into a long-format DataFrame.

    Args:
        points: History as returned by ``compute_history()``.
        metrics: Metric keys to include (snake_case or camelCase). Defaults
            to ``HISTORY_METRICS``.
        decimals: Optional rounding applied to the value column.

    Returns:
        A DataFrame with HISTORY_COLUMNS, ordered like ``points`` and, within
        a period, like ``metrics``.

    Raises:
        KeyError: if an unknown metric key is requested.
    """
    keys = list(metrics) if metrics else list(HISTORY_METRICS)
    metas = [get_metric_meta(key) for key in keys]

    rows: list[dict[str, object]] = []
    for point in points:
        values = point.metrics.values()
        for meta in metas:
            value = values[meta.key]
            if decimals is not None:
                value = round(value, decimals)
            rows.append(
                {
                    "period": point.period,
                    "period_type": point.period_type,
                    "metric_key": meta.key,
                    "label": meta.label,
                    "unit": meta.unit,
                    "value": value,
                }
            )

    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)
