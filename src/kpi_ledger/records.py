# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period records for KPI Ledger.

A period record holds the raw figures a company reports for one period
(for example "2024" or "2024-Q1"):

- income statement: revenue, gross profit, net income, operating income,
  cost of goods sold, operating expenses,
- balance sheet: assets, inventory, receivables, liabilities, payables,
  equity,
- cash flow: operating, investing and financing cash flows,
- business counters: marketing spend, new customers, total customers.

Stored records usually come back with decimal columns encoded as strings
and with missing values left as NULL. ``RawPeriodRecord.from_mapping()``
is the single place where those raw values are normalized:

- missing keys, ``None``, empty strings and NaN become 0,
- decimal strings are parsed to ``float`` and rounded to cents,
- amounts must fit the storage precision (15 digits, 2 decimals),
- customer counters are converted to ``int``,
- anything else raises ``InvalidRecordError``.

Once built, a RawPeriodRecord is total: every field is a finite number,
which lets the metrics engine skip any further checks.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Optional

# Monetary fields, grouped as they appear on the statements.
INCOME_STATEMENT_FIELDS: tuple[str, ...] = (
    "total_revenue",
    "gross_profit",
    "net_income",
    "operating_income",
    "cost_of_goods_sold",
    "operating_expenses",
)

BALANCE_SHEET_FIELDS: tuple[str, ...] = (
    "total_assets",
    "current_assets",
    "inventory",
    "accounts_receivable",
    "total_liabilities",
    "current_liabilities",
    "accounts_payable",
    "total_equity",
)

CASH_FLOW_FIELDS: tuple[str, ...] = (
    "operating_cash_flow",
    "investing_cash_flow",
    "financing_cash_flow",
)

MONETARY_FIELDS: tuple[str, ...] = (
    INCOME_STATEMENT_FIELDS
    + BALANCE_SHEET_FIELDS
    + CASH_FLOW_FIELDS
    + ("marketing_spend",)
)

COUNT_FIELDS: tuple[str, ...] = ("new_customers", "total_customers")

NUMERIC_FIELDS: tuple[str, ...] = MONETARY_FIELDS + COUNT_FIELDS

IDENTITY_FIELDS: tuple[str, ...] = ("company_id", "period", "period_type")

# DECIMAL(15, 2) storage columns
AMOUNT_DECIMALS = 2
MAX_ABS_AMOUNT = 1e13


class InvalidRecordError(ValueError):
    """Raised when a raw record value cannot be normalized to a number."""


def snake_to_camel(name: str) -> str:
    """Convert 'total_revenue' to 'totalRevenue'."""
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


# camelCase storage key -> record field name
_CAMEL_ALIASES: dict[str, str] = {
    snake_to_camel(name): name for name in NUMERIC_FIELDS + IDENTITY_FIELDS
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def parse_decimal(value: Any, field_name: str = "value") -> float:
    """
    Normalize a raw monetary value to a finite float.

    Accepts ints, floats and decimal strings (as returned for DECIMAL
    columns). Blank values (None, "", NaN) normalize to 0.0. The result is
    rounded to AMOUNT_DECIMALS places, so sub-cent values become 0.0.

    Raises:
        InvalidRecordError: if the value is not numeric, not finite, or its
            magnitude is MAX_ABS_AMOUNT or more.
    """
    if _is_blank(value):
        return 0.0

    # bool is an int subclass, but True/False is never a valid amount.
    if isinstance(value, bool):
        raise InvalidRecordError(f"Invalid boolean value for {field_name!r}.")

    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError as exc:
            raise InvalidRecordError(
                f"Invalid decimal string for {field_name!r}: {value!r}"
            ) from exc
    else:
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidRecordError(
                f"Invalid numeric value for {field_name!r}: {value!r}"
            ) from exc

    if math.isnan(number):
        return 0.0
    if math.isinf(number):
        raise InvalidRecordError(f"Non-finite value for {field_name!r}: {value!r}")
    if abs(number) >= MAX_ABS_AMOUNT:
        raise InvalidRecordError(
            f"Value out of range for {field_name!r}: {value!r} "
            f"(magnitude must be below {MAX_ABS_AMOUNT:.0e})"
        )

    # + 0.0 folds -0.0 into 0.0
    return round(number, AMOUNT_DECIMALS) + 0.0


def parse_count(value: Any, field_name: str = "value") -> int:
    """
    Normalize a raw customer counter to an int.

    "10", 10 and 10.0 are all accepted; fractional counts are rejected.
    """
    number = parse_decimal(value, field_name)
    if not number.is_integer():
        raise InvalidRecordError(
            f"Expected a whole number for {field_name!r}, got {value!r}"
        )
    return int(number)


@dataclass(frozen=True)
class RawPeriodRecord:
    """
    Financial figures reported by one company for one period.

    All monetary fields share the same currency unit. The identity fields
    (company_id, period, period_type) are carried along for history and
    reporting and are never read by the metrics engine.
    """

    # Income statement
    total_revenue: float = 0.0
    gross_profit: float = 0.0
    net_income: float = 0.0
    operating_income: float = 0.0
    cost_of_goods_sold: float = 0.0
    operating_expenses: float = 0.0

    # Balance sheet
    total_assets: float = 0.0
    current_assets: float = 0.0
    inventory: float = 0.0
    accounts_receivable: float = 0.0
    total_liabilities: float = 0.0
    current_liabilities: float = 0.0
    accounts_payable: float = 0.0
    total_equity: float = 0.0

    # Cash flow
    operating_cash_flow: float = 0.0
    investing_cash_flow: float = 0.0
    financing_cash_flow: float = 0.0

    # Business
    marketing_spend: float = 0.0
    new_customers: int = 0
    total_customers: int = 0

    # Identity
    company_id: Optional[str] = None
    period: Optional[str] = None
    period_type: Optional[str] = None

    def __post_init__(self) -> None:
        # frozen dataclass: normalize through object.__setattr__
        for name in MONETARY_FIELDS:
            object.__setattr__(self, name, parse_decimal(getattr(self, name), name))
        for name in COUNT_FIELDS:
            object.__setattr__(self, name, parse_count(getattr(self, name), name))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawPeriodRecord":
        """
        Build a record from a raw mapping (storage row, CSV row, JSON body).

        Keys may be snake_case ('total_revenue') or the camelCase storage
        keys ('totalRevenue'). Unknown keys (ids, timestamps...) are ignored.
        When both spellings of the same field are present, the snake_case
        one wins.

        Raises:
            InvalidRecordError: if a numeric field holds a non-numeric or
                out-of-range value.
        """
        raw: dict[str, Any] = {}
        for key, value in data.items():
            key_str = str(key)
            name = _CAMEL_ALIASES.get(key_str)
            if name is not None and name not in raw:
                raw[name] = value
        for key, value in data.items():
            key_str = str(key)
            if key_str in NUMERIC_FIELDS or key_str in IDENTITY_FIELDS:
                raw[key_str] = value

        # numeric values are parsed by __post_init__
        kwargs: dict[str, Any] = {name: raw.get(name) for name in NUMERIC_FIELDS}
        for name in IDENTITY_FIELDS:
            value = raw.get(name)
            kwargs[name] = None if _is_blank(value) else str(value).strip()

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase storage representation of the record."""
        return {snake_to_camel(f.name): getattr(self, f.name) for f in fields(self)}
