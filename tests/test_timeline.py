from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from report_engine.core.errors import MissingTimelineData
from report_engine.engine.timeline import (
    empty_timeline,
    synthesize_timeline,
    timeline_health,
    timeline_visualization,
)

NOW = datetime(2026, 5, 1, 9, 0)


def _milestone(index: int, status: str, *, impact: str = "medium", days: int = 10) -> dict[str, object]:
    return {
        "id": f"m{index}",
        "title": f"Milestone {index}",
        "description": "",
        "planned_date": NOW + timedelta(days=days + index),
        "actual_date": None,
        "status": status,
        "impact": impact,
        "delay_reason": None,
        "milestone_type": "progress",
    }


def _milestones(**counts: int) -> list[dict[str, object]]:
    items: list[dict[str, object]] = []
    for status, count in counts.items():
        for _ in range(count):
            items.append(_milestone(len(items), status))
    return items


def test_synthesize_timeline_derives_sets() -> None:
    milestones = [
        _milestone(0, "completed", days=-30),
        _milestone(1, "in_progress", impact="critical", days=-5),
        _milestone(2, "pending"),
        _milestone(3, "pending", days=-20),
        _milestone(4, "delayed"),
    ]

    timeline = synthesize_timeline(milestones, [], now=NOW)

    assert timeline.current_phase == "Milestone 1"
    assert timeline.phases_completed == 1
    assert timeline.total_phases == 5
    assert [item["id"] for item in timeline.critical_path] == ["m1"]
    assert [item["id"] for item in timeline.upcoming_milestones] == ["m2"]
    assert [item["id"] for item in timeline.delayed_items] == ["m4"]
    assert timeline.project_start_date == NOW - timedelta(days=30)
    assert timeline.expected_completion_date == NOW + timedelta(days=14)
    assert timeline.critical_path[0]["dependencies"] == []


def test_current_phase_is_unknown_without_in_progress_milestone() -> None:
    timeline = synthesize_timeline(_milestones(pending=2), [], now=NOW)

    assert timeline.current_phase == "Unknown"


def test_empty_milestones_raise_missing_timeline_data() -> None:
    with pytest.raises(MissingTimelineData):
        synthesize_timeline([], [], now=NOW)


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ({"delayed": 4, "pending": 6}, "critical"),
        ({"delayed": 1, "pending": 9}, "delayed"),
        ({"completed": 9, "pending": 1}, "ahead"),
        ({"completed": 8, "pending": 2}, "on_track"),
        ({"delayed": 3, "completed": 7}, "delayed"),
    ],
)
def test_timeline_health_rules(counts: dict[str, int], expected: str) -> None:
    timeline = synthesize_timeline(_milestones(**counts), [], now=NOW)

    assert timeline_health(timeline) == expected


def test_empty_timeline_is_on_track() -> None:
    timeline = empty_timeline()

    assert timeline_health(timeline) == "on_track"
    assert timeline.as_dict()["project_start_date"] is None


def test_timeline_visualization_lists_progress_points() -> None:
    updates = [
        {"reporting_date": NOW, "progress_percentage": 40.0, "carbon_impact_to_date": 1200.0, "achievements": ["a"]},
    ]

    payload = timeline_visualization([_milestone(0, "pending", impact="critical")], updates)

    assert payload["progress_points"] == [
        {"date": NOW.isoformat(), "progress": 40.0, "carbon_impact": 1200.0, "highlights": ["a"]}
    ]
    assert [item["id"] for item in payload["critical_path"]] == ["m0"]
