# KPI Ledger - Financial metrics toolkit for multi-company dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Threshold alerts on metrics.

A company can attach at most one alert per metric. An alert fires when the
metric value is strictly above (condition "above") or strictly below
(condition "below") its threshold. Disabled alerts are kept but never
evaluated.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from .metrics import MetricSet, get_metric_meta

AlertCondition = Literal["above", "below"]

ALERT_CONDITIONS: tuple[str, ...] = ("above", "below")

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def _parse_enabled(value: Any) -> bool:
    """
    Normalize an is_enabled flag.

    Accepts booleans, the 1/0 integers of the storage column and the usual
    true/false strings. Anything else raises ValueError.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid alert enabled flag: {value!r}")


@dataclass(frozen=True)
class MetricAlert:
    """
    Alert definition for one metric of one company.

    ``metric_name`` is normalized to the snake_case metric key on creation,
    so 'currentRatio' and 'current_ratio' designate the same alert.
    """

    company_id: str
    metric_name: str
    threshold: float
    condition: AlertCondition
    is_enabled: bool = True

    def __post_init__(self) -> None:
        try:
            meta = get_metric_meta(self.metric_name)
        except KeyError as exc:
            raise ValueError(f"Unknown metric for alert: {self.metric_name!r}") from exc

        if self.condition not in ALERT_CONDITIONS:
            raise ValueError(
                f"Invalid alert condition {self.condition!r}, "
                "expected 'above' or 'below'."
            )

        try:
            threshold = float(self.threshold)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid alert threshold for {self.metric_name!r}: "
                f"{self.threshold!r}"
            ) from exc

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "metric_name", meta.key)
        object.__setattr__(self, "threshold", threshold)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MetricAlert":
        """
        Build an alert from a TOML table or JSON body.

        Accepted keys: company_id / companyId, metric / metric_name /
        metricName, threshold, condition, is_enabled / isEnabled / enabled.
        """
        company_id = data.get("company_id", data.get("companyId"))
        metric = data.get("metric", data.get("metric_name", data.get("metricName")))
        if not company_id or not metric:
            raise ValueError("Alert definition requires a company_id and a metric.")
        if "threshold" not in data:
            raise ValueError(f"Alert on {metric!r} is missing a threshold.")

        enabled_raw = data.get(
            "is_enabled", data.get("isEnabled", data.get("enabled", True))
        )

        return cls(
            company_id=str(company_id),
            metric_name=str(metric),
            threshold=data["threshold"],
            condition=str(data.get("condition", "")).strip().lower(),  # type: ignore[arg-type]
            is_enabled=_parse_enabled(enabled_raw),
        )


@dataclass(frozen=True)
class AlertResult:
    """Outcome of evaluating one alert against a MetricSet."""

    alert: MetricAlert
    value: float
    triggered: bool


def is_triggered(alert: MetricAlert, value: float) -> bool:
    if alert.condition == "above":
        return value > alert.threshold
    return value < alert.threshold


def evaluate_alerts(
    metrics: MetricSet,
    alerts: Iterable[MetricAlert],
) -> list[AlertResult]:
    """
    Evaluate enabled alerts against a MetricSet.

    Returns one AlertResult per enabled alert, in input order. Callers
    filter on ``triggered`` to keep only the alerts that fired.
    """
    values = metrics.values()
    results: list[AlertResult] = []
    for alert in alerts:
        if not alert.is_enabled:
            continue
        value = values[alert.metric_name]
        results.append(
            AlertResult(alert=alert, value=value, triggered=is_triggered(alert, value))
        )
    return results


def upsert_alert(alerts: list[MetricAlert], alert: MetricAlert) -> list[MetricAlert]:
    """
    Return a new list where ``alert`` replaces any alert on the same
    (company_id, metric_name), or is appended if there is none.
    """
    out: list[MetricAlert] = []
    replaced = False
    for existing in alerts:
        if (existing.company_id, existing.metric_name) == (
            alert.company_id,
            alert.metric_name,
        ):
            out.append(alert)
            replaced = True
        else:
            out.append(existing)
    if not replaced:
        out.append(alert)
    return out


def alerts_for_company(
    alerts: Iterable[MetricAlert], company_id: str
) -> list[MetricAlert]:
    return [a for a in alerts if a.company_id == company_id]
