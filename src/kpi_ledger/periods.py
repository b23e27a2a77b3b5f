# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for KPI Ledger.

Records are keyed by a period label. Three label shapes are recognised:

    "2024"     yearly
    "2024-Q1"  quarterly
    "2024-01"  monthly

This module defines a Period value object and helpers to infer the period
type of a label, order labels chronologically and derive the label of the
preceding period (used as the default comparison period).
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

PERIOD_TYPES: tuple[str, ...] = ("yearly", "quarterly", "monthly")

_YEARLY_RE = re.compile(r"^(\d{4})$")
_QUARTERLY_RE = re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE)
_MONTHLY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class Period:
    """A reporting period label and its type."""

    label: str
    period_type: str

    @classmethod
    def parse(cls, label: str) -> "Period":
        """Build a Period from a label, inferring its type."""
        return cls(label=label.strip(), period_type=infer_period_type(label))


def _parse(label: str) -> Optional[tuple[str, int, int]]:
    """
    Return (period_type, year, start_month) for a label, or None.

    start_month is 0 for yearly labels so that a year sorts before its
    quarters and months.
    """
    text = label.strip()

    m = _YEARLY_RE.match(text)
    if m:
        return "yearly", int(m.group(1)), 0

    m = _QUARTERLY_RE.match(text)
    if m:
        quarter = int(m.group(2))
        return "quarterly", int(m.group(1)), (quarter - 1) * 3 + 1

    m = _MONTHLY_RE.match(text)
    if m:
        return "monthly", int(m.group(1)), int(m.group(2))

    return None


def infer_period_type(label: str) -> str:
    """
    Infer the period type ('yearly', 'quarterly', 'monthly') from a label.

    Raises:
        ValueError: if the label matches none of the supported shapes.
    """
    parsed = _parse(label)
    if parsed is None:
        raise ValueError(
            f"Unrecognised period label: {label!r}. "
            "Expected 'YYYY', 'YYYY-Qn' or 'YYYY-MM'."
        )
    return parsed[0]


def period_sort_key(label: str) -> tuple:
    """
    Chronological sort key for a period label.

    Parsable labels sort by (year, start month), a yearly label before the
    quarters and months of the same year, and a quarter before the month
    it starts with. Unparsable labels sort last, by plain string order.
    """
    parsed = _parse(label)
    if parsed is None:
        return (1, 0, 0, 0, label)
    period_type, year, month = parsed
    # quarterly before monthly when both start on the same month
    type_rank = 0 if period_type == "quarterly" else 1
    return (0, year, month, type_rank, label)


def sort_periods(labels: Iterable[str]) -> list[str]:
    """Return the labels in chronological order."""
    return sorted(labels, key=period_sort_key)


def previous_period(label: str) -> str:
    """
    Return the label of the period immediately before ``label``.

    Examples:
        "2024"    -> "2023"
        "2024-Q1" -> "2023-Q4"
        "2024-07" -> "2024-06"

    Raises:
        ValueError: if the label cannot be parsed.
    """
    parsed = _parse(label)
    if parsed is None:
        raise ValueError(f"Cannot derive the previous period of {label!r}.")

    period_type, year, month = parsed

    if period_type == "yearly":
        return f"{year - 1}"

    if period_type == "quarterly":
        quarter = (month - 1) // 3 + 1
        if quarter == 1:
            return f"{year - 1}-Q4"
        return f"{year}-Q{quarter - 1}"

    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"
