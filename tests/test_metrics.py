from __future__ import annotations

import math
from types import SimpleNamespace

import pytest

from report_engine.engine.metrics import MetricMeta, RecordWindow, compute_metric, compute_metrics

META = MetricMeta("m", "Metric", "units", "number", "platform", "test metric")


@pytest.mark.parametrize(
    ("value", "previous"),
    [
        (0, 0),
        (5, 0),
        (-5, 0),
        (10, 10),
        (0, 10),
        (10, -10),
        (math.nan, 3),
        (3, math.inf),
        (None, "abc"),
    ],
)
def test_compute_metric_is_total_and_change_non_negative(value: object, previous: object) -> None:
    metric = compute_metric(value, previous, META)

    assert metric.change >= 0
    assert metric.change_type in {"increase", "decrease", "stable"}


def test_zero_previous_value_rules() -> None:
    grown = compute_metric(12, 0, META)
    flat = compute_metric(0, 0, META)

    assert (grown.change, grown.change_type) == (100.0, "increase")
    assert (flat.change, flat.change_type) == (0.0, "stable")


def test_stable_band_is_one_percent_inclusive() -> None:
    assert compute_metric(101, 100, META).change_type == "stable"
    assert compute_metric(99, 100, META).change_type == "stable"
    assert compute_metric(102, 100, META).change_type == "increase"

    dropped = compute_metric(50, 100, META)
    assert dropped.change_type == "decrease"
    assert dropped.change == 50.0


def test_negative_previous_uses_absolute_denominator() -> None:
    metric = compute_metric(-5, -10, META)

    assert metric.change_type == "increase"
    assert metric.change == 50.0


def _project(status: str, co2: float) -> SimpleNamespace:
    return SimpleNamespace(status=SimpleNamespace(value=status), estimated_co2_reduction=co2)


def _transaction(total: float, credits: float, state: str = "completed") -> SimpleNamespace:
    return SimpleNamespace(total_amount=total, credit_amount=credits, payment_status=SimpleNamespace(value=state))


def test_compute_metrics_window_and_cumulative_scopes() -> None:
    old_project = _project("active", 100)
    new_project = _project("draft", 50)
    current = RecordWindow(
        projects=[new_project],
        transactions=[_transaction(200, 2), _transaction(999, 9, state="failed")],
        users=[object()],
    )
    previous = RecordWindow(transactions=[_transaction(100, 1)])
    everything = RecordWindow(
        projects=[old_project, new_project],
        transactions=[*previous.transactions, *current.transactions],
        users=[object(), *current.users],
    )

    metrics = {metric.id: metric for metric in compute_metrics(current, previous, everything)}

    assert metrics["total_projects"].value == 2
    assert metrics["total_projects"].previous_value == 1
    assert metrics["active_projects"].value == 1
    assert metrics["total_revenue"].value == 200
    assert metrics["total_revenue"].previous_value == 100
    assert metrics["total_revenue"].change_type == "increase"
    assert metrics["carbon_offset"].value == 2
    assert metrics["co2_reduction_pipeline"].value == 150
    assert metrics["new_users"].value == 1
    assert metrics["total_users"].value == 2


def test_compute_metrics_category_filter() -> None:
    metrics = compute_metrics(RecordWindow(), RecordWindow(), RecordWindow(), "financial")

    assert {metric.category for metric in metrics} == {"financial"}
    assert all(metric.change_type == "stable" for metric in metrics)
