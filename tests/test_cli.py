import json
from pathlib import Path

import pytest

from kpi_ledger import __version__
from kpi_ledger.cli import main

RECORDS_CSV = (
    "company_id,period,total_revenue,gross_profit,net_income,total_assets,"
    "total_equity,total_liabilities,current_assets,current_liabilities\n"
    "acme,2023,800,300,80,1800,900,900,400,200\n"
    "acme,2024,1000,400,100,2000,1000,1000,500,250\n"
    "acme,2024-Q1,250,100,20,1900,950,950,450,240\n"
)


@pytest.fixture
def records_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    # run from an empty directory so no default config file is picked up
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "records.csv"
    path.write_text(RECORDS_CSV, encoding="utf-8")
    return path


def test_version(capsys) -> None:
    main(["--version"])
    assert capsys.readouterr().out.strip() == f"kpi_ledger version {__version__}"


def test_no_command_prints_help(records_path, capsys) -> None:
    main([])
    assert "usage:" in capsys.readouterr().out


def test_metrics_json_with_previous_period(records_path, capsys) -> None:
    main(
        [
            "--records", str(records_path),
            "--display-mode", "json",
            "metrics", "acme",
            "--period", "2024",
            "--compare-period", "previous",
        ]
    )
    body = json.loads(capsys.readouterr().out)

    assert body["netProfitMargin"] == pytest.approx(10.0)
    assert body["revenueGrowth"] == pytest.approx(25.0)
    assert body["changes"]["revenueChange"] == pytest.approx(25.0)


def test_metrics_json_without_comparison(records_path, capsys) -> None:
    main(["--records", str(records_path), "--display-mode", "json", "metrics", "acme"])
    body = json.loads(capsys.readouterr().out)

    assert "changes" not in body
    assert body["currentRatio"] == pytest.approx(2.0)


def test_metrics_table(records_path, capsys) -> None:
    main(["--records", str(records_path), "metrics", "acme", "--compare-period", "2023"])
    out = capsys.readouterr().out

    assert "=== Metrics for acme - 2024 (vs 2023) ===" in out
    assert "gross_profit_margin" in out
    assert "roe_change" in out


def test_metrics_csv(records_path, tmp_path, capsys) -> None:
    out_dir = tmp_path / "out"
    main(
        [
            "--records", str(records_path),
            "--display-mode", "csv",
            "--output", str(out_dir),
            "metrics", "acme",
        ]
    )
    files = list(out_dir.glob("metrics_acme_2024_*.csv"))
    assert len(files) == 1
    assert "Wrote" in capsys.readouterr().out


def test_history_json(records_path, capsys) -> None:
    main(["--records", str(records_path), "--display-mode", "json", "history", "acme"])
    body = json.loads(capsys.readouterr().out)

    assert [p["period"] for p in body] == ["2023", "2024", "2024-Q1"]
    assert body[1]["periodType"] == "yearly"


def test_history_table_is_wide(records_path, capsys) -> None:
    main(["--records", str(records_path), "history", "acme", "--metric", "roe"])
    out = capsys.readouterr().out

    assert "=== History for acme ===" in out
    assert "2024-Q1" in out
    assert "roe" in out


def test_alerts_from_config(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "records.csv").write_text(RECORDS_CSV, encoding="utf-8")
    config = tmp_path / "custom.toml"
    config.write_text(
        """
[data]
records_file = "records.csv"

[[alerts]]
company_id = "acme"
metric = "debtToEquity"
threshold = 0.8
condition = "above"
""",
        encoding="utf-8",
    )
    main(["--config", str(config), "--display-mode", "json", "alerts", "acme"])
    body = json.loads(capsys.readouterr().out)

    assert len(body) == 1
    assert body[0]["metricName"] == "debt_to_equity"
    assert body[0]["triggered"] is True


@pytest.mark.parametrize(
    "argv",
    [
        ["metrics", "initech"],
        ["metrics", "acme", "--period", "2019"],
        ["metrics", "acme", "--period", "FY24", "--compare-period", "previous"],
        ["history", "acme", "--metric", "burn_rate"],
    ],
)
def test_lookup_errors_exit_with_status_2(records_path, argv) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--records", str(records_path), *argv])
    assert excinfo.value.code == 2


def test_missing_records_file(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        main(["metrics", "acme"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit):
        main(["--records", str(tmp_path / "missing.csv"), "metrics", "acme"])


def test_invalid_records_file(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "bad.csv"
    path.write_text("company_id,total_revenue\nacme,1\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        main(["--records", str(path), "metrics", "acme"])
    assert excinfo.value.code == 2


def test_unknown_period_is_reported_before_previous_is_resolved(records_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "--records", str(records_path),
                "metrics", "acme",
                "--period", "budget",
                "--compare-period", "previous",
            ]
        )
    err = capsys.readouterr().err

    assert excinfo.value.code == 2
    assert "Financial data not found" in err
    assert "previous period" not in err


def test_growth_alerts_with_compare_period(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "records.csv").write_text(RECORDS_CSV, encoding="utf-8")
    config = tmp_path / "custom.toml"
    config.write_text(
        """
[data]
records_file = "records.csv"

[[alerts]]
company_id = "acme"
metric = "revenueGrowth"
threshold = 5
condition = "below"
""",
        encoding="utf-8",
    )
    main(
        [
            "--config", str(config),
            "--display-mode", "json",
            "alerts", "acme",
            "--compare-period", "previous",
        ]
    )
    body = json.loads(capsys.readouterr().out)

    assert body[0]["value"] == pytest.approx(25.0)
    assert body[0]["triggered"] is False
