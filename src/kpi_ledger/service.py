# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
High-level lookups for KPI Ledger.

This module sits between a record source and the presentation layers (CLI,
request handlers). It fetches the records a request needs, hands them to
the metrics engine and returns the results; it owns no computation of its
own.

Record sources
--------------
``RecordSource`` is the minimal interface expected from a storage layer:

    get_record(company_id, period) -> RawPeriodRecord | None
    list_records(company_id)       -> list[RawPeriodRecord]

``InMemoryRecordSource`` implements it with a dict keyed by
(company_id, period). ``upsert`` creates or replaces the record for that
key, mirroring the unique (company, period) constraint of the storage
layer. Each source is an explicit object passed to the functions below;
there is no module-level default instance.

Lookups
-------
- ``get_company_metrics``: metrics for one period, optionally compared to
  another period.
- ``get_company_history``: metrics for every stored period.
- ``check_company_alerts``: alerts evaluated on one period, optionally
  against a comparison period for the growth metrics.
"""

import logging
from collections.abc import Iterable
from typing import Optional, Protocol

from .alerts import AlertResult, MetricAlert, alerts_for_company, evaluate_alerts
from .history import HistoryPoint, compute_history
from .metrics import MetricSet, compute_metrics, get_metric_meta
from .records import RawPeriodRecord

logger = logging.getLogger(__name__)

# Values of compare_period meaning "no comparison".
NO_COMPARISON: frozenset[str] = frozenset({"", "none"})


class RecordNotFoundError(LookupError):
    """Raised when no record exists for the requested company and period."""

    def __init__(self, company_id: str, period: str) -> None:
        super().__init__(
            f"Financial data not found for company {company_id!r}, "
            f"period {period!r}."
        )
        self.company_id = company_id
        self.period = period


class RecordSource(Protocol):
    """Read access to period records, keyed by (company_id, period)."""

    def get_record(self, company_id: str, period: str) -> Optional[RawPeriodRecord]:
        ...

    def list_records(self, company_id: str) -> list[RawPeriodRecord]:
        ...


class InMemoryRecordSource:
    """Record source backed by a dict, keyed by (company_id, period)."""

    def __init__(self, records: Iterable[RawPeriodRecord] = ()) -> None:
        self._records: dict[tuple[str, str], RawPeriodRecord] = {}
        for record in records:
            self.upsert(record)

    def __len__(self) -> int:
        return len(self._records)

    def upsert(self, record: RawPeriodRecord) -> RawPeriodRecord:
        """
        Create or replace the record for (record.company_id, record.period).

        Raises:
            ValueError: if the record has no company_id or period.
        """
        if not record.company_id or not record.period:
            raise ValueError("A stored record requires a company_id and a period.")
        self._records[(record.company_id, record.period)] = record
        return record

    def get_record(self, company_id: str, period: str) -> Optional[RawPeriodRecord]:
        return self._records.get((company_id, period))

    def list_records(self, company_id: str) -> list[RawPeriodRecord]:
        return [r for (cid, _), r in self._records.items() if cid == company_id]

    def companies(self) -> list[str]:
        return sorted({cid for cid, _ in self._records})


def get_company_metrics(
    source: RecordSource,
    company_id: str,
    period: str,
    compare_period: Optional[str] = None,
) -> MetricSet:
    """
    Compute the metrics of one company for one period.

    Args:
        source: Record source to read from.
        company_id: Company identifier.
        period: Period to analyse.
        compare_period: Optional comparison period, stripped of surrounding
            whitespace. None, "" and "none" disable the comparison. A comparison period with no stored
            record is logged and treated as no comparison.

    Returns:
        The MetricSet for ``period``.

    Raises:
        RecordNotFoundError: if no record exists for ``period``.
    """
    current = source.get_record(company_id, period)
    if current is None:
        raise RecordNotFoundError(company_id, period)

    previous: Optional[RawPeriodRecord] = None
    compare_label = (compare_period or "").strip()
    if compare_label.lower() not in NO_COMPARISON:
        previous = source.get_record(company_id, compare_label)
        if previous is None:
            logger.warning(
                "No record for company %r, comparison period %r; "
                "computing metrics without comparison.",
                company_id,
                compare_label,
            )

    return compute_metrics(current, previous)


def get_company_history(
    source: RecordSource,
    company_id: str,
    chronological: bool = False,
) -> list[HistoryPoint]:
    """Compute metrics for every stored period of a company, oldest first."""
    records = source.list_records(company_id)
    logger.debug("Computing history for %r over %d period(s)", company_id, len(records))
    return compute_history(records, chronological=chronological)


def check_company_alerts(
    source: RecordSource,
    company_id: str,
    period: str,
    alerts: Iterable[MetricAlert],
    compare_period: Optional[str] = None,
) -> list[AlertResult]:
    """
    Evaluate the company's enabled alerts on one period.

    Alerts belonging to other companies are ignored. Growth metrics are
    only non-zero when ``compare_period`` names a stored period (see
    ``get_company_metrics``).

    Raises:
        RecordNotFoundError: if no record exists for ``period``.
    """
    metrics = get_company_metrics(source, company_id, period, compare_period)
    company_alerts = alerts_for_company(alerts, company_id)
    if metrics.changes is None:
        growth = [
            a.metric_name
            for a in company_alerts
            if a.is_enabled and get_metric_meta(a.metric_name).category == "growth"
        ]
        if growth:
            logger.warning(
                "Growth alert(s) %s for %r evaluated without a comparison "
                "period; growth metrics are 0.",
                ", ".join(growth),
                company_id,
            )
    results = evaluate_alerts(metrics, company_alerts)
    fired = [r for r in results if r.triggered]
    if fired:
        logger.info(
            "%d alert(s) triggered for %r in period %r",
            len(fired),
            company_id,
            period,
        )
    return results
