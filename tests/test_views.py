import pytest

from kpi_ledger.alerts import AlertResult, MetricAlert
from kpi_ledger.metrics import CATEGORY_ORDER, METRIC_DEFINITIONS, compute_metrics
from kpi_ledger.records import RawPeriodRecord
from kpi_ledger.views import (
    ALERT_COLUMNS,
    METRIC_COLUMNS,
    alerts_to_dataframe,
    format_currency,
    format_metric_value,
    format_number,
    format_percentage,
    metric_status,
    metrics_to_dataframe,
    trend_direction,
)

CURRENT = RawPeriodRecord(total_revenue=3000.0, gross_profit=1000.0, net_income=100.0)
PREVIOUS = RawPeriodRecord(total_revenue=2000.0, net_income=100.0)


def test_metrics_to_dataframe_groups_by_category() -> None:
    df = metrics_to_dataframe(compute_metrics(CURRENT), decimals=2)

    assert list(df.columns) == METRIC_COLUMNS
    assert len(df) == len(METRIC_DEFINITIONS)

    ranks = [CATEGORY_ORDER.index(c) for c in df["category"]]
    assert ranks == sorted(ranks)

    gpm = df.loc[df["key"] == "gross_profit_margin", "value"].iloc[0]
    assert gpm == 33.33


def test_metrics_to_dataframe_appends_changes() -> None:
    df = metrics_to_dataframe(compute_metrics(CURRENT, PREVIOUS), decimals=1)

    changes = df[df["category"] == "changes"]
    assert len(df) == len(METRIC_DEFINITIONS) + 4
    assert list(changes["key"]) == [
        "revenue_change",
        "net_profit_margin_change",
        "operating_cash_flow_change",
        "roe_change",
    ]
    assert changes["value"].iloc[0] == 50.0
    assert list(df["category"].tail(4)) == ["changes"] * 4


def test_alerts_to_dataframe_puts_triggered_first() -> None:
    quiet = AlertResult(MetricAlert("acme", "roe", 50.0, "above"), 10.0, False)
    fired = AlertResult(MetricAlert("acme", "current_ratio", 2.0, "below"), 1.234, True)

    df = alerts_to_dataframe([quiet, fired], decimals=1)

    assert list(df.columns) == ALERT_COLUMNS
    assert list(df["metric"]) == ["current_ratio", "roe"]
    assert df["value"].iloc[0] == 1.2


def test_alerts_to_dataframe_empty() -> None:
    df = alerts_to_dataframe([], decimals=2)
    assert df.empty
    assert list(df.columns) == ALERT_COLUMNS


@pytest.mark.parametrize(
    "value, compact, expected",
    [
        (0, False, "$0"),
        (1234567, False, "$1,234,567"),
        (-2500, False, "-$2,500"),
        (999, True, "$999"),
        (12000, True, "$12K"),
        (2_500_000, True, "$2.5M"),
        (1500, True, "$2K"),
        (2500, True, "$3K"),
        (-2500, True, "-$3K"),
        (2_250_000, True, "$2.3M"),
        (1234.5, False, "$1,235"),
        (-3_200_000, True, "-$3.2M"),
    ],
)
def test_format_currency(value, compact, expected) -> None:
    assert format_currency(value, compact=compact) == expected


def test_format_percentage_and_number() -> None:
    assert format_percentage(0) == "0%"
    assert format_percentage(12.345) == "12.3%"
    assert format_percentage(-4.0, decimals=0) == "-4%"
    assert format_number(0, decimals=2) == "0"
    assert format_number(1.76, decimals=1) == "1.8"


@pytest.mark.parametrize(
    "value, unit, expected",
    [
        (1500.0, "amount", "$1,500"),
        (12.5, "percent", "12.5%"),
        (1.24, "points", "1.2 pts"),
        (36.5, "days", "36.5 days"),
        (2.0, "ratio", "2.0"),
    ],
)
def test_format_metric_value(value, unit, expected) -> None:
    assert format_metric_value(value, unit) == expected


@pytest.mark.parametrize(
    "value, target, direction, expected",
    [
        (115.0, 100.0, "higher", "good"),
        (110.0, 100.0, "higher", "good"),
        (95.0, 100.0, "higher", "warning"),
        (80.0, 100.0, "higher", "danger"),
        (0.8, 1.0, "lower", "good"),
        (1.0, 1.0, "lower", "warning"),
        (1.5, 1.0, "lower", "danger"),
    ],
)
def test_metric_status(value, target, direction, expected) -> None:
    assert metric_status(value, target, direction) == expected


def test_metric_status_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        metric_status(1.0, 0.0)
    with pytest.raises(ValueError):
        metric_status(1.0, 1.0, "sideways")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "change, expected",
    [(5.0, "up"), (-0.1, "down"), (0.0, "neutral"), (None, "neutral"), (float("nan"), "neutral")],
)
def test_trend_direction(change, expected) -> None:
    assert trend_direction(change) == expected


def test_formatting_rounds_halves_away_from_zero() -> None:
    assert format_percentage(0.25) == "0.3%"
    assert format_percentage(-0.25) == "-0.3%"
    assert format_number(2.5) == "3"
    assert format_number(-2.5) == "-3"
    # 1.005 is stored slightly below the half
    assert format_number(1.005, decimals=2) == "1.00"
