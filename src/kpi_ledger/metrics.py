# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Metric derivation engine for KPI Ledger.

This module turns one period record (and optionally the record of a
comparison period) into the flat set of KPIs displayed on the dashboard.

1. Derived metrics
   ---------------
   ``compute_metrics(current, previous=None)`` returns a MetricSet with:

   - overview amounts: revenue, operating cash flow,
   - profitability: gross / net / operating / EBITDA margins, ROE, ROA, CAC,
   - liquidity: current and quick ratios, working capital, DSO, cash
     conversion cycle,
   - efficiency: inventory / receivables / payables / asset turnover, LTV,
   - leverage: debt-to-equity, debt ratio, free cash flow, operating cash
     flow ratio,
   - growth: revenue, customer and profit growth against ``previous``.

2. Guard policy
   ------------
   Every ratio whose denominator is zero or negative evaluates to 0.0.
   There is no error and no None: the output is always a set of finite
   numbers that can be displayed as-is. The cash conversion cycle is the
   plain sum ``dio + dso - dpo`` of already guarded components and may be
   negative.

3. Change set
   ----------
   When ``previous`` is supplied, a ChangeSet holds four period-over-period
   deltas: revenue and operating cash flow as percentage changes, net profit
   margin and ROE as percentage-point differences. Without ``previous`` the
   change set is None and is left out of the serialized output.

4. Metadata
   --------
   ``METRIC_DEFINITIONS`` describes every MetricSet field (label, unit,
   category, notes). It drives tabular rendering, history exports and
   alert validation.

The engine performs no I/O, keeps no state and never logs; it can be
called concurrently from any number of request handlers.
"""

from dataclasses import dataclass, fields
from typing import Any, Optional

from .records import RawPeriodRecord, snake_to_camel

DAYS_PER_YEAR = 365

# Lifetime value is approximated as 1.5x the revenue per new customer.
LTV_MULTIPLIER = 1.5


@dataclass(frozen=True)
class MetricMeta:
    """
    Metadata associated with a metric.

    Attributes:
        key: Field name on MetricSet (e.g. 'gross_profit_margin').
        label: Human-readable label (e.g. 'Gross Profit Margin').
        unit: Unit hint ('amount', 'percent', 'ratio', 'days').
        category: Dashboard section ('profitability', 'liquidity', ...).
        notes: Short definition shown as a tooltip or in exports.
    """

    key: str
    label: str
    unit: str
    category: str
    notes: str = ""

    @property
    def json_key(self) -> str:
        return snake_to_camel(self.key)


CATEGORY_ORDER: tuple[str, ...] = (
    "overview",
    "profitability",
    "liquidity",
    "efficiency",
    "leverage",
    "growth",
)

METRIC_DEFINITIONS: tuple[MetricMeta, ...] = (
    MetricMeta(
        "revenue",
        "Total Revenue",
        "amount",
        "overview",
        "Total income generated from sales before any expenses are deducted.",
    ),
    MetricMeta(
        "operating_cash_flow",
        "Operating Cash Flow",
        "amount",
        "overview",
        "Cash generated from normal business operations.",
    ),
    MetricMeta(
        "gross_profit_margin",
        "Gross Profit Margin",
        "percent",
        "profitability",
        "Gross profit divided by revenue.",
    ),
    MetricMeta(
        "net_profit_margin",
        "Net Profit Margin",
        "percent",
        "profitability",
        "Share of revenue left after all expenses, interest and taxes.",
    ),
    MetricMeta(
        "operating_margin",
        "Operating Margin",
        "percent",
        "profitability",
        "Operating income divided by revenue.",
    ),
    MetricMeta(
        "roe",
        "Return on Equity",
        "percent",
        "profitability",
        "Net income divided by shareholders' equity.",
    ),
    MetricMeta(
        "roa",
        "Return on Assets",
        "percent",
        "profitability",
        "Net income divided by total assets.",
    ),
    MetricMeta(
        "cac",
        "Customer Acquisition Cost",
        "amount",
        "profitability",
        "Marketing spend per new customer.",
    ),
    MetricMeta(
        "ebitda_margin",
        "EBITDA Margin",
        "percent",
        "profitability",
        "Approximated by operating income over revenue (no D&A add-back).",
    ),
    MetricMeta(
        "current_ratio",
        "Current Ratio",
        "ratio",
        "liquidity",
        "Current assets divided by current liabilities.",
    ),
    MetricMeta(
        "quick_ratio",
        "Quick Ratio",
        "ratio",
        "liquidity",
        "Current assets excluding inventory, divided by current liabilities.",
    ),
    MetricMeta(
        "working_capital",
        "Working Capital",
        "amount",
        "liquidity",
        "Current assets minus current liabilities.",
    ),
    MetricMeta(
        "dso",
        "Days Sales Outstanding",
        "days",
        "liquidity",
        "Average number of days to collect payment after a sale.",
    ),
    MetricMeta(
        "ccc",
        "Cash Conversion Cycle",
        "days",
        "liquidity",
        "Days inventory outstanding + DSO - days payable outstanding.",
    ),
    MetricMeta(
        "inventory_turnover",
        "Inventory Turnover",
        "ratio",
        "efficiency",
        "Cost of goods sold divided by inventory.",
    ),
    MetricMeta(
        "ar_turnover",
        "AR Turnover",
        "ratio",
        "efficiency",
        "Revenue divided by accounts receivable.",
    ),
    MetricMeta(
        "ap_turnover",
        "AP Turnover",
        "ratio",
        "efficiency",
        "Cost of goods sold divided by accounts payable.",
    ),
    MetricMeta(
        "asset_turnover",
        "Asset Turnover",
        "ratio",
        "efficiency",
        "Revenue divided by total assets.",
    ),
    MetricMeta(
        "ltv",
        "Customer Lifetime Value",
        "amount",
        "efficiency",
        "Revenue per new customer times a fixed 1.5 multiplier.",
    ),
    MetricMeta(
        "debt_to_equity",
        "Debt to Equity",
        "ratio",
        "leverage",
        "Total liabilities divided by shareholders' equity.",
    ),
    MetricMeta(
        "debt_ratio",
        "Debt Ratio",
        "ratio",
        "leverage",
        "Total liabilities divided by total assets.",
    ),
    MetricMeta(
        "free_cash_flow",
        "Free Cash Flow",
        "amount",
        "leverage",
        "Operating cash flow plus investing cash flow.",
    ),
    MetricMeta(
        "operating_cash_flow_ratio",
        "Operating CF Ratio",
        "ratio",
        "leverage",
        "Operating cash flow divided by current liabilities.",
    ),
    MetricMeta(
        "revenue_growth",
        "Revenue Growth",
        "percent",
        "growth",
        "Revenue change against the comparison period.",
    ),
    MetricMeta(
        "customer_growth",
        "Customer Growth",
        "percent",
        "growth",
        "Customer count change against the comparison period.",
    ),
    MetricMeta(
        "profit_growth",
        "Profit Growth",
        "percent",
        "growth",
        "Net income change against the comparison period.",
    ),
)

CHANGE_DEFINITIONS: tuple[MetricMeta, ...] = (
    MetricMeta("revenue_change", "Revenue Change", "percent", "changes"),
    MetricMeta(
        "net_profit_margin_change",
        "Net Profit Margin Change",
        "points",
        "changes",
    ),
    MetricMeta(
        "operating_cash_flow_change",
        "Operating Cash Flow Change",
        "percent",
        "changes",
    ),
    MetricMeta("roe_change", "ROE Change", "points", "changes"),
)

_META_BY_KEY: dict[str, MetricMeta] = {}
for _meta in METRIC_DEFINITIONS:
    _META_BY_KEY[_meta.key] = _meta
    _META_BY_KEY[_meta.json_key] = _meta


def get_metric_meta(key: str) -> MetricMeta:
    """
    Return the metadata of a metric given its snake_case or camelCase key.

    Raises:
        KeyError: if the metric is unknown.
    """
    try:
        return _META_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown metric: {key!r}") from None


@dataclass(frozen=True)
class ChangeSet:
    """Period-over-period deltas, present only when a comparison is made."""

    revenue_change: float
    net_profit_margin_change: float
    operating_cash_flow_change: float
    roe_change: float

    def to_dict(self) -> dict[str, float]:
        return {snake_to_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class MetricSet:
    """
    KPIs derived from one period record.

    Margins and growth rates are percentages (40.0 means 40 %), ratios are
    plain floats, dso/ccc are days and amounts are in the record's currency.
    """

    # Overview
    revenue: float
    operating_cash_flow: float

    # Profitability
    gross_profit_margin: float
    net_profit_margin: float
    operating_margin: float
    roe: float
    roa: float
    cac: float
    ebitda_margin: float

    # Liquidity
    current_ratio: float
    quick_ratio: float
    working_capital: float
    dso: float
    ccc: float

    # Efficiency
    inventory_turnover: float
    ar_turnover: float
    ap_turnover: float
    asset_turnover: float
    ltv: float

    # Leverage
    debt_to_equity: float
    debt_ratio: float
    free_cash_flow: float
    operating_cash_flow_ratio: float

    # Growth
    revenue_growth: float
    customer_growth: float
    profit_growth: float

    changes: Optional[ChangeSet] = None

    def values(self) -> dict[str, float]:
        """Return {metric_key -> value} for every metric, without changes."""
        return {meta.key: getattr(self, meta.key) for meta in METRIC_DEFINITIONS}

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the camelCase JSON shape of the metrics endpoint.

        The 'changes' key is only present when a comparison was made.
        """
        out: dict[str, Any] = {
            meta.json_key: getattr(self, meta.key) for meta in METRIC_DEFINITIONS
        }
        if self.changes is not None:
            out["changes"] = self.changes.to_dict()
        return out


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """Return numerator / denominator * scale, or 0.0 if denominator <= 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * scale


def percent_change(current: float, previous: float) -> float:
    """Percentage change from previous to current, 0.0 if previous <= 0."""
    return safe_ratio(current - previous, previous, 100.0)


def days_inventory_outstanding(record: RawPeriodRecord) -> float:
    return safe_ratio(record.inventory, record.cost_of_goods_sold, DAYS_PER_YEAR)


def days_sales_outstanding(record: RawPeriodRecord) -> float:
    return safe_ratio(record.accounts_receivable, record.total_revenue, DAYS_PER_YEAR)


def days_payable_outstanding(record: RawPeriodRecord) -> float:
    return safe_ratio(record.accounts_payable, record.cost_of_goods_sold, DAYS_PER_YEAR)


def _net_profit_margin(record: RawPeriodRecord) -> float:
    return safe_ratio(record.net_income, record.total_revenue, 100.0)


def _roe(record: RawPeriodRecord) -> float:
    return safe_ratio(record.net_income, record.total_equity, 100.0)


def compute_changes(current: RawPeriodRecord, previous: RawPeriodRecord) -> ChangeSet:
    """Compute the period-over-period change set between two records."""
    return ChangeSet(
        revenue_change=percent_change(current.total_revenue, previous.total_revenue),
        net_profit_margin_change=(
            _net_profit_margin(current) - _net_profit_margin(previous)
        ),
        operating_cash_flow_change=percent_change(
            current.operating_cash_flow, previous.operating_cash_flow
        ),
        roe_change=_roe(current) - _roe(previous),
    )


def compute_metrics(
    current: RawPeriodRecord,
    previous: Optional[RawPeriodRecord] = None,
) -> MetricSet:
    """
    Derive all KPIs for ``current``, compared against ``previous`` if given.

    Args:
        current:
            Normalized record of the period to analyse.
        previous:
            Normalized record of the comparison period, or None for no
            comparison. Growth metrics are 0.0 and ``changes`` is None
            when it is omitted.

    Returns:
        A MetricSet whose fields are all finite numbers.
    """
    revenue = current.total_revenue
    cogs = current.cost_of_goods_sold

    dio = days_inventory_outstanding(current)
    dso = days_sales_outstanding(current)
    dpo = days_payable_outstanding(current)

    if previous is not None:
        revenue_growth = percent_change(revenue, previous.total_revenue)
        customer_growth = percent_change(
            current.total_customers, previous.total_customers
        )
        profit_growth = percent_change(current.net_income, previous.net_income)
        changes: Optional[ChangeSet] = compute_changes(current, previous)
    else:
        revenue_growth = customer_growth = profit_growth = 0.0
        changes = None

    return MetricSet(
        revenue=revenue,
        operating_cash_flow=current.operating_cash_flow,
        gross_profit_margin=safe_ratio(current.gross_profit, revenue, 100.0),
        net_profit_margin=_net_profit_margin(current),
        operating_margin=safe_ratio(current.operating_income, revenue, 100.0),
        roe=_roe(current),
        roa=safe_ratio(current.net_income, current.total_assets, 100.0),
        cac=safe_ratio(current.marketing_spend, current.new_customers),
        ebitda_margin=safe_ratio(current.operating_income, revenue, 100.0),
        current_ratio=safe_ratio(current.current_assets, current.current_liabilities),
        quick_ratio=safe_ratio(
            current.current_assets - current.inventory, current.current_liabilities
        ),
        working_capital=current.current_assets - current.current_liabilities,
        dso=dso,
        ccc=dio + dso - dpo,
        inventory_turnover=safe_ratio(cogs, current.inventory),
        ar_turnover=safe_ratio(revenue, current.accounts_receivable),
        ap_turnover=safe_ratio(cogs, current.accounts_payable),
        asset_turnover=safe_ratio(revenue, current.total_assets),
        ltv=safe_ratio(revenue, current.new_customers, LTV_MULTIPLIER),
        debt_to_equity=safe_ratio(current.total_liabilities, current.total_equity),
        debt_ratio=safe_ratio(current.total_liabilities, current.total_assets),
        free_cash_flow=current.operating_cash_flow + current.investing_cash_flow,
        operating_cash_flow_ratio=safe_ratio(
            current.operating_cash_flow, current.current_liabilities
        ),
        revenue_growth=revenue_growth,
        customer_growth=customer_growth,
        profit_growth=profit_growth,
        changes=changes,
    )
