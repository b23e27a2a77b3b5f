import logging

import pytest

from kpi_ledger.alerts import MetricAlert
from kpi_ledger.records import RawPeriodRecord
from kpi_ledger.service import (
    InMemoryRecordSource,
    RecordNotFoundError,
    check_company_alerts,
    get_company_history,
    get_company_metrics,
)


@pytest.fixture
def source() -> InMemoryRecordSource:
    return InMemoryRecordSource(
        [
            RawPeriodRecord(
                company_id="acme",
                period="2024",
                total_revenue=1000.0,
                net_income=100.0,
                total_equity=1000.0,
                current_assets=500.0,
                current_liabilities=250.0,
            ),
            RawPeriodRecord(
                company_id="acme",
                period="2023",
                total_revenue=800.0,
                net_income=80.0,
                total_equity=900.0,
            ),
            RawPeriodRecord(company_id="globex", period="2024", total_revenue=50.0),
        ]
    )


def test_upsert_replaces_existing_record(source: InMemoryRecordSource) -> None:
    source.upsert(RawPeriodRecord(company_id="acme", period="2024", total_revenue=1.0))
    assert len(source) == 3
    assert source.get_record("acme", "2024").total_revenue == 1.0


def test_upsert_requires_identity() -> None:
    with pytest.raises(ValueError):
        InMemoryRecordSource().upsert(RawPeriodRecord(period="2024"))


def test_list_records_filters_by_company(source: InMemoryRecordSource) -> None:
    assert {r.period for r in source.list_records("acme")} == {"2023", "2024"}
    assert source.list_records("initech") == []


def test_get_company_metrics_without_comparison(source: InMemoryRecordSource) -> None:
    metrics = get_company_metrics(source, "acme", "2024")
    assert metrics.net_profit_margin == pytest.approx(10.0)
    assert metrics.changes is None


def test_get_company_metrics_with_comparison(source: InMemoryRecordSource) -> None:
    metrics = get_company_metrics(source, "acme", "2024", compare_period="2023")
    assert metrics.revenue_growth == pytest.approx(25.0)
    assert metrics.changes is not None
    assert metrics.changes.roe_change == pytest.approx(1.11, abs=0.01)


@pytest.mark.parametrize("compare_period", [None, "", "none", "None", " NONE "])
def test_compare_period_none_values(source, compare_period) -> None:
    metrics = get_company_metrics(source, "acme", "2024", compare_period=compare_period)
    assert metrics.changes is None


def test_missing_comparison_record_is_logged(source, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="kpi_ledger.service"):
        metrics = get_company_metrics(source, "acme", "2024", compare_period="2019")

    assert metrics.changes is None
    assert "2019" in caplog.text


def test_missing_current_record(source: InMemoryRecordSource) -> None:
    with pytest.raises(RecordNotFoundError) as excinfo:
        get_company_metrics(source, "acme", "2020")

    assert excinfo.value.company_id == "acme"
    assert excinfo.value.period == "2020"
    assert "not found" in str(excinfo.value)


def test_get_company_history(source: InMemoryRecordSource) -> None:
    points = get_company_history(source, "acme")
    assert [p.period for p in points] == ["2023", "2024"]
    assert get_company_history(source, "initech") == []


def test_check_company_alerts_ignores_other_companies(source, caplog) -> None:
    alerts = [
        MetricAlert("acme", "current_ratio", 2.5, "below"),
        MetricAlert("acme", "roe", 50.0, "above"),
        MetricAlert("globex", "revenue", 0.0, "above"),
    ]
    with caplog.at_level(logging.INFO, logger="kpi_ledger.service"):
        results = check_company_alerts(source, "acme", "2024", alerts)

    assert [r.alert.metric_name for r in results] == ["current_ratio", "roe"]
    assert [r.triggered for r in results] == [True, False]
    assert "1 alert(s) triggered" in caplog.text


def test_check_company_alerts_missing_period(source: InMemoryRecordSource) -> None:
    with pytest.raises(RecordNotFoundError):
        check_company_alerts(source, "acme", "2030", [])


def test_comparison_label_is_stripped(source: InMemoryRecordSource) -> None:
    metrics = get_company_metrics(source, "acme", "2024", compare_period=" 2023 ")
    assert metrics.changes is not None
    assert metrics.revenue_growth == pytest.approx(25.0)


@pytest.fixture
def growth_source() -> InMemoryRecordSource:
    return InMemoryRecordSource(
        [
            RawPeriodRecord(company_id="acme", period="2023", total_revenue=1000.0),
            RawPeriodRecord(company_id="acme", period="2024", total_revenue=2000.0),
        ]
    )


def test_growth_alerts_use_comparison_period(growth_source) -> None:
    alerts = [
        MetricAlert("acme", "revenueGrowth", 5.0, "below"),
        MetricAlert("acme", "revenueGrowth", 50.0, "above"),
    ]
    results = check_company_alerts(
        growth_source, "acme", "2024", alerts, compare_period="2023"
    )

    assert [r.value for r in results] == pytest.approx([100.0, 100.0])
    assert [r.triggered for r in results] == [False, True]


def test_growth_alerts_without_comparison_are_logged(growth_source, caplog) -> None:
    alerts = [MetricAlert("acme", "revenue_growth", 5.0, "below")]
    with caplog.at_level(logging.WARNING, logger="kpi_ledger.service"):
        results = check_company_alerts(growth_source, "acme", "2024", alerts)

    assert results[0].value == 0.0
    assert "revenue_growth" in caplog.text
    assert "without a comparison" in caplog.text
