# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for KPI Ledger.

This module reads period records from a CSV file and normalizes them into
RawPeriodRecord objects suitable for the metrics engine.

Expected input format
---------------------

One row per (company, period). Column names are case-insensitive and may
use snake_case or the camelCase storage names:

    company_id, period, [period_type], total_revenue, gross_profit, ...

- ``company_id`` (or ``companyId``): company identifier, required.
- ``period``: period label ("2024", "2024-Q1", "2024-01"), required.
- ``period_type`` (or ``periodType``): optional; inferred from the label
  when absent or empty.
- every other record field is optional and defaults to 0 when the column
  is missing or the cell is empty.

Columns that are not record fields (ids, timestamps, notes...) are ignored.

All cells are read as text and parsed by ``RawPeriodRecord.from_mapping``,
so "1234.50" and 1234.5 are handled the same way as values read back from a
DECIMAL column.

If the CSV structure is invalid, a clear ValueError is raised.
"""

import logging
import os
from typing import Union

import pandas as pd

from .periods import infer_period_type
from .records import (
    IDENTITY_FIELDS,
    NUMERIC_FIELDS,
    InvalidRecordError,
    RawPeriodRecord,
    snake_to_camel,
)
from .service import InMemoryRecordSource

logger = logging.getLogger(__name__)

# lowercase column name -> record field name
_COLUMN_ALIASES: dict[str, str] = {}
for _name in NUMERIC_FIELDS + IDENTITY_FIELDS:
    _COLUMN_ALIASES[_name] = _name
    _COLUMN_ALIASES[snake_to_camel(_name).lower()] = _name


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known columns to record field names and drop the others."""
    renamed: dict[str, str] = {}
    for col in df.columns:
        key = str(col).strip().lower()
        field = _COLUMN_ALIASES.get(key)
        if field is None:
            continue
        if field in renamed.values():
            raise ValueError(f"Column {col!r} duplicates field {field!r}.")
        renamed[col] = field

    return df[list(renamed)].rename(columns=renamed)


def read_period_records(
    path: Union[str, "os.PathLike[str]"],
) -> list[RawPeriodRecord]:
    """
    Read period records from a CSV file.

    Parameters
    ----------
    path:
        Path to the CSV file.

    Returns
    -------
    list[RawPeriodRecord]
        One record per CSV row, in file order, with company_id, period and
        period_type always set.

    Raises
    ------
    ValueError
        If identity columns are missing, a row has an empty company_id or
        period, a period label cannot be typed, a numeric cell cannot be
        parsed, or a (company_id, period) pair appears twice.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df = _normalize_columns(df)

    missing = {"company_id", "period"} - set(df.columns)
    if missing:
        raise ValueError(
            "Invalid period records structure, missing column(s): "
            + ", ".join(sorted(missing))
        )

    records: list[RawPeriodRecord] = []
    seen: set[tuple[str, str]] = set()

    # Row numbers in messages are 1-based data rows (header excluded).
    for row_number, row in enumerate(df.to_dict(orient="records"), start=1):
        try:
            record = RawPeriodRecord.from_mapping(row)
        except InvalidRecordError as exc:
            raise ValueError(f"Row {row_number}: {exc}") from exc

        if not record.company_id or not record.period:
            raise ValueError(f"Row {row_number}: company_id and period are required.")

        key = (record.company_id, record.period)
        if key in seen:
            raise ValueError(
                f"Row {row_number}: duplicate record for company "
                f"{record.company_id!r} and period {record.period!r}."
            )
        seen.add(key)

        if not record.period_type:
            try:
                period_type = infer_period_type(record.period)
            except ValueError as exc:
                raise ValueError(f"Row {row_number}: {exc}") from exc
            record = RawPeriodRecord.from_mapping(
                {**row, "period_type": period_type}
            )

        records.append(record)

    logger.debug("Read %d period record(s) from %s", len(records), path)
    return records


def load_record_source(
    path: Union[str, "os.PathLike[str]"],
) -> InMemoryRecordSource:
    """Read a CSV of period records into an in-memory record source."""
    source = InMemoryRecordSource()
    for record in read_period_records(path):
        source.upsert(record)
    logger.info(
        "Loaded %d record(s) for %d company(ies) from %s",
        len(source),
        len(source.companies()),
        path,
    )
    return source
