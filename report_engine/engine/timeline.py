"""Milestone timeline synthesis and timeline health."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from report_engine.core.errors import MissingTimelineData
from report_engine.engine.time_buckets import naive_utc, record_value

TIMELINE_ON_TRACK = "on_track"
TIMELINE_DELAYED = "delayed"
TIMELINE_AHEAD = "ahead"
TIMELINE_CRITICAL = "critical"

CRITICAL_DELAY_SHARE = 0.3
AHEAD_COMPLETION_SHARE = 0.8


def _value(record: object, name: str) -> object:
    raw = record_value(record, name)
    return getattr(raw, "value", raw)


def _iso(value: object) -> str | None:
    if isinstance(value, datetime):
        return naive_utc(value).isoformat()
    return None


def timeline_item(milestone: object) -> dict[str, object]:
    """Render one milestone as a timeline item."""

    return {
        "id": str(_value(milestone, "id")),
        "title": _value(milestone, "title"),
        "description": _value(milestone, "description") or "",
        "planned_date": _iso(_value(milestone, "planned_date")),
        "actual_date": _iso(_value(milestone, "actual_date")),
        "status": _value(milestone, "status"),
        # Milestone dependencies are not tracked by the record store.
        "dependencies": [],
        "impact": _value(milestone, "impact") or "medium",
        "delay_reason": _value(milestone, "delay_reason"),
    }


@dataclass(slots=True)
class TimelineData:
    project_start_date: datetime | None
    expected_completion_date: datetime | None
    current_phase: str
    phases_completed: int
    total_phases: int
    critical_path: list[dict[str, object]] = field(default_factory=list)
    upcoming_milestones: list[dict[str, object]] = field(default_factory=list)
    delayed_items: list[dict[str, object]] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "project_start_date": _iso(self.project_start_date),
            "expected_completion_date": _iso(self.expected_completion_date),
            "current_phase": self.current_phase,
            "phases_completed": self.phases_completed,
            "total_phases": self.total_phases,
            "critical_path": list(self.critical_path),
            "upcoming_milestones": list(self.upcoming_milestones),
            "delayed_items": list(self.delayed_items),
        }


def empty_timeline() -> TimelineData:
    """Neutral timeline used when a project has no milestones yet."""

    return TimelineData(
        project_start_date=None,
        expected_completion_date=None,
        current_phase="Unknown",
        phases_completed=0,
        total_phases=0,
    )


def synthesize_timeline(
    milestones: Sequence[object],
    progress_updates: Sequence[object],
    *,
    now: datetime,
) -> TimelineData:
    """Build the timeline from milestone records.

    Raises ``MissingTimelineData`` for an empty milestone set; callers fall back
    to ``empty_timeline()``. ``progress_updates`` is accepted for symmetry with
    the visualization and does not influence the result.
    """

    if not milestones:
        raise MissingTimelineData("No milestones recorded for project.")

    reference = naive_utc(now)
    planned = [naive_utc(_value(item, "planned_date")) for item in milestones]
    current = next((item for item in milestones if _value(item, "status") == "in_progress"), None)

    return TimelineData(
        project_start_date=min(planned),
        expected_completion_date=max(planned),
        current_phase=str(_value(current, "title")) if current is not None else "Unknown",
        phases_completed=sum(1 for item in milestones if _value(item, "status") == "completed"),
        total_phases=len(milestones),
        critical_path=[timeline_item(item) for item in milestones if _value(item, "impact") == "critical"],
        upcoming_milestones=[
            timeline_item(item)
            for item in milestones
            if _value(item, "status") == "pending" and naive_utc(_value(item, "planned_date")) > reference
        ],
        delayed_items=[timeline_item(item) for item in milestones if _value(item, "status") == "delayed"],
    )


def timeline_health(timeline: TimelineData) -> str:
    """First matching rule wins: critical, delayed, ahead, on_track."""

    delayed = len(timeline.delayed_items)
    if delayed > timeline.total_phases * CRITICAL_DELAY_SHARE:
        return TIMELINE_CRITICAL
    if delayed > 0:
        return TIMELINE_DELAYED
    if timeline.phases_completed > timeline.total_phases * AHEAD_COMPLETION_SHARE:
        return TIMELINE_AHEAD
    return TIMELINE_ON_TRACK


def timeline_visualization(milestones: Sequence[object], progress_updates: Sequence[object]) -> dict[str, object]:
    """Milestones, progress points and critical path for charting."""

    return {
        "milestones": [timeline_item(item) for item in milestones],
        "progress_points": [
            {
                "date": _iso(_value(update, "reporting_date")),
                "progress": _value(update, "progress_percentage") or 0,
                "carbon_impact": _value(update, "carbon_impact_to_date"),
                "highlights": list(_value(update, "achievements") or []),
            }
            for update in progress_updates
        ],
        "critical_path": [timeline_item(item) for item in milestones if _value(item, "impact") == "critical"],
    }
