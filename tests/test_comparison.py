from __future__ import annotations

from datetime import datetime, timedelta

from report_engine.engine.comparison import (
    INSIGHT_IMPACT,
    INSIGHT_VELOCITY,
    PeriodMetrics,
    compare,
    gather_period_metrics,
)

START = datetime(2026, 1, 1)


def _period(index: int, progress: float, carbon: float) -> PeriodMetrics:
    start = START + timedelta(days=30 * index)
    return PeriodMetrics(
        label=f"P{index}",
        start=start,
        end=start + timedelta(days=30),
        progress_change=progress,
        carbon_impact_change=carbon,
        updates_submitted=2,
        average_progress=50.0,
    )


def test_fewer_than_two_periods_yield_empty_results() -> None:
    assert compare([]) == {"trends": [], "insights": []}
    assert compare([_period(0, 10, 10)]) == {"trends": [], "insights": []}


def test_accelerating_periods_produce_insights() -> None:
    result = compare([_period(0, 10, 100), _period(1, 15, 300)])

    progress = result["trends"][0]
    assert progress == {"metric": "Progress Rate", "trend": "increasing", "change_percent": 50.0}
    assert result["trends"][1]["metric"] == "Impact Rate"
    assert result["trends"][1]["change_percent"] == 200.0
    assert result["insights"] == [INSIGHT_VELOCITY, INSIGHT_IMPACT]


def test_latest_period_is_chosen_by_start_date() -> None:
    result = compare([_period(2, 5, 50), _period(0, 100, 100), _period(1, 10, 100)])

    assert result["trends"][0]["trend"] == "decreasing"
    assert result["trends"][0]["change_percent"] == -50.0
    assert result["insights"] == []


def test_zero_prior_delta_is_reported_as_stable() -> None:
    result = compare([_period(0, 0, 0), _period(1, 12, 0)])

    assert result["trends"][0] == {"metric": "Progress Rate", "trend": "stable", "change_percent": 0.0}
    assert result["insights"] == [INSIGHT_VELOCITY]


def test_gather_period_metrics_from_updates() -> None:
    updates = [
        {"progress_percentage": 20.0, "carbon_impact_to_date": 100.0},
        {"progress_percentage": 30.0, "carbon_impact_to_date": None},
        {"progress_percentage": 40.0, "carbon_impact_to_date": 400.0},
    ]

    summary = gather_period_metrics("Jan", START, START + timedelta(days=31), updates)

    assert summary.progress_change == 20.0
    assert summary.carbon_impact_change == 300.0
    assert summary.updates_submitted == 3
    assert summary.average_progress == 30.0
    assert summary.as_dict()["metrics"]["updates_submitted"] == 3


def test_gather_period_metrics_without_updates() -> None:
    summary = gather_period_metrics("Empty", START, START, [])

    assert summary.progress_change == 0.0
    assert summary.average_progress == 0.0
