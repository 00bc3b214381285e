from __future__ import annotations

import logging
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from report_engine.engine.composer import (
    RECOMMEND_ADDRESS_CHALLENGES,
    RECOMMEND_MORE_RESOURCES,
    RECOMMEND_REVISE_TIMELINE,
    ComposeOptions,
    ReportPeriod,
    compose_report,
    metric_trend,
    status_summary,
)

NOW = datetime(2026, 4, 1, 12, 0)
PERIOD = ReportPeriod(start=NOW - timedelta(days=30), end=NOW, label="March 2026")


def _project(**overrides: object) -> SimpleNamespace:
    values: dict[str, object] = {
        "id": "project-1",
        "title": "Mangrove Restoration",
        "budget": 50000.0,
        "target_carbon_impact": 10000.0,
        "target_trees_planted": 500.0,
        "target_energy_generated": None,
        "target_waste_processed": None,
        "target_area_restored": 20.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _update(day: int, progress: float, carbon: float | None, **extra: object) -> dict[str, object]:
    values: dict[str, object] = {
        "id": f"u{day}",
        "reported_by": "creator-1",
        "reporting_date": PERIOD.start + timedelta(days=day),
        "progress_percentage": progress,
        "carbon_impact_to_date": carbon,
        "trees_planted": None,
        "energy_generated": None,
        "waste_processed": None,
        "area_restored": None,
        "photos": [],
        "achievements": [],
        "challenges": [],
    }
    values.update(extra)
    return values


def _milestone(index: int, status: str, *, days: int = 10, impact: str = "medium") -> dict[str, object]:
    return {
        "id": f"m{index}",
        "title": f"Phase {index}",
        "description": f"Phase {index} work",
        "milestone_type": "progress",
        "planned_date": NOW + timedelta(days=days + index),
        "actual_date": NOW - timedelta(days=3) if status == "completed" else None,
        "status": status,
        "impact": impact,
        "delay_reason": None,
    }


def _alert(alert_type: str, *, resolved: bool = False) -> dict[str, object]:
    return {
        "id": f"a-{alert_type}",
        "alert_type": alert_type,
        "severity": "high",
        "message": f"{alert_type} raised",
        "description": None,
        "is_resolved": resolved,
        "resolved_at": NOW if resolved else None,
        "created_at": NOW - timedelta(days=1),
    }


def _compose(updates=(), milestones=(), alerts=(), options=ComposeOptions(), project=None, transactions=()):
    return compose_report(
        project or _project(),
        list(updates),
        list(milestones),
        list(alerts),
        PERIOD,
        options,
        now=NOW,
        generated_by="user-1",
        transactions=list(transactions),
    )


def test_compose_report_for_mixed_milestones_without_alerts() -> None:
    milestones = [
        _milestone(0, "completed", days=-20),
        _milestone(1, "in_progress"),
        _milestone(2, "pending"),
        _milestone(3, "pending"),
        _milestone(4, "pending"),
    ]

    report = _compose(updates=[_update(1, 20, 1000), _update(10, 35, 2500)], milestones=milestones)

    assert report["challenges"] == []
    assert len(report["achievements"]) == 1
    assert report["achievements"][0]["title"] == "Milestone Completed: Phase 0"
    assert len(report["next_period_plan"]) <= 3
    assert report["status"] == "final"
    assert report["title"] == "Mangrove Restoration - Progress Report (March 2026)"


def test_environmental_metrics_use_latest_minus_earliest() -> None:
    updates = [
        _update(1, 10, 1000, trees_planted=100),
        _update(5, 30, 1800, trees_planted=160),
        _update(9, 45, 2600, trees_planted=250),
    ]

    metrics = _compose(updates=updates)["metrics"]

    assert metrics["period"]["carbon_impact"] == 1600
    assert metrics["cumulative"]["carbon_impact"] == 2600
    assert metrics["targets"]["carbon_impact"] == 10000
    assert metrics["variance"]["carbon_impact"] == -7400
    assert metrics["period"]["trees_planted"] == 150
    assert metrics["variance"]["trees_planted"] == -250
    assert metrics["targets"]["energy_generated"] == 0
    trends = {trend["metric"]: trend for trend in metrics["trends"]}
    assert trends["carbon_impact"]["trend"] == "increasing"
    assert "energy_generated" not in trends


def test_unsorted_updates_are_rejected() -> None:
    with pytest.raises(ValueError):
        _compose(updates=[_update(5, 30, 10), _update(1, 10, 5)])


def test_sparse_project_yields_zero_valued_report(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="report_engine.engine.composer"):
        report = _compose()

    assert report["summary"]["overall_progress"] == 0
    assert report["summary"]["timeline_status"] == "on_track"
    assert report["timeline"]["current_phase"] == "Unknown"
    assert report["metrics"]["period"]["carbon_impact"] == 0
    assert report["milestones"] == []
    assert report["next_period_plan"] == []
    assert report["recommendations"] == [RECOMMEND_MORE_RESOURCES]
    assert "without timeline data" in caplog.text


def test_challenges_come_from_quality_concern_alerts_only() -> None:
    alerts = [_alert("quality_concern", resolved=True), _alert("deadline_missed")]

    report = _compose(alerts=alerts, updates=[_update(1, 80, 100)])

    assert len(report["challenges"]) == 1
    challenge = report["challenges"][0]
    assert challenge["category"] == "technical"
    assert challenge["status"] == "resolved"
    assert challenge["severity"] == "high"
    assert challenge["description"] == "quality_concern raised"
    assert report["recommendations"] == [RECOMMEND_ADDRESS_CHALLENGES]


def test_recommendation_rules_fire_independently() -> None:
    report = _compose(
        updates=[_update(1, 10, 0)],
        milestones=[_milestone(0, "delayed"), _milestone(1, "pending")],
        alerts=[_alert("quality_concern")],
    )

    assert report["recommendations"] == [
        RECOMMEND_MORE_RESOURCES,
        RECOMMEND_ADDRESS_CHALLENGES,
        RECOMMEND_REVISE_TIMELINE,
    ]


def test_next_period_plan_lists_three_future_pending_milestones() -> None:
    milestones = [_milestone(index, "pending") for index in range(5)] + [_milestone(9, "pending", days=-40)]

    plan = _compose(milestones=milestones)["next_period_plan"]

    assert len(plan) == 3
    planned = (NOW + timedelta(days=10)).strftime("%Y-%m-%d")
    assert plan[0] == f"Complete Phase 0 by {planned}"


def test_photos_default_thumbnail_and_respect_option() -> None:
    updates = [_update(2, 50, 10, photos=[{"url": "https://cdn.test/a.jpg"}, {"url": "b.jpg", "thumbnail": "b_t.jpg"}])]

    with_photos = _compose(updates=updates)
    without_photos = _compose(updates=updates, options=ComposeOptions(include_photos=False))

    photos = with_photos["photos"]
    assert [photo["thumbnail"] for photo in photos] == ["https://cdn.test/a.jpg", "b_t.jpg"]
    assert photos[0]["id"] == "u2_0"
    assert photos[0]["metadata"]["width"] == 800
    assert without_photos["photos"] == []


def test_financials_follow_option_and_completed_transactions() -> None:
    transactions = [
        SimpleNamespace(total_amount=300.0, credit_amount=3.0, payment_status=SimpleNamespace(value="completed")),
        SimpleNamespace(total_amount=900.0, credit_amount=9.0, payment_status=SimpleNamespace(value="failed")),
    ]

    report = _compose(transactions=transactions)
    hidden = _compose(transactions=transactions, options=ComposeOptions(include_financials=False))

    financials = report["financials"]
    assert financials["budget_allocated"] == 50000
    assert financials["revenue_sources"] == [
        {"source": "carbon_credit_sales", "amount": 300.0, "credits_sold": 3.0, "transactions": 1}
    ]
    assert hidden["financials"] is None


def test_summary_highlights_concerns_and_credits() -> None:
    updates = [
        _update(1, 60, 1500, achievements=["first"], challenges=["rain"]),
        _update(2, 75, 2999, achievements=["second", "extra"], trees_planted=40),
    ]

    summary = _compose(updates=updates)["summary"]

    assert summary["overall_progress"] == 75
    assert summary["status_summary"] == "Project progressing well and on track"
    assert summary["key_highlights"] == ["second", "first"]
    assert summary["concerns_raised"] == ["rain"]
    assert summary["impact_to_date"]["carbon_credits_generated"] == 2
    assert summary["impact_to_date"]["additional_benefits"] == {"Trees Planted": 40}
    assert summary["budget_status"] == "on_budget"


@pytest.mark.parametrize(
    ("progress", "expected"),
    [
        (95, "Project nearing completion with excellent progress"),
        (70, "Project progressing well and on track"),
        (50, "Project making steady progress"),
        (25, "Project in early stages with initial progress"),
        (5, "Project recently started with limited progress"),
    ],
)
def test_status_summary_thresholds(progress: float, expected: str) -> None:
    assert status_summary(progress) == expected


def test_metric_trend_classification() -> None:
    start = datetime(2026, 1, 1)
    rising = [(start + timedelta(days=day), float(day * 10)) for day in range(5)]
    flat = [(start + timedelta(days=day), 100.0) for day in range(5)]
    noisy = [(start + timedelta(days=day), value) for day, value in enumerate([10.0, 200.0, 5.0, 190.0, 12.0])]

    assert metric_trend("x", rising[:1]) is None
    assert metric_trend("x", rising)["trend"] == "increasing"
    assert metric_trend("x", [(moment, -value) for moment, value in rising])["trend"] == "decreasing"
    assert metric_trend("x", flat)["trend"] == "stable"
    assert metric_trend("x", noisy)["trend"] == "volatile"


def test_each_composition_gets_a_new_id() -> None:
    assert _compose()["id"] != _compose()["id"]
