"""Project progress report composition."""

from __future__ import annotations

import logging
import math
import statistics
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from report_engine.core.errors import MissingTimelineData
from report_engine.engine.metrics import finite
from report_engine.engine.time_buckets import naive_utc, record_value
from report_engine.engine.timeline import (
    TimelineData,
    empty_timeline,
    synthesize_timeline,
    timeline_health,
)

logger = logging.getLogger(__name__)

REPORT_STATUS_FINAL = "final"

# Report key -> (progress update field, project target field).
ENVIRONMENTAL_FIELDS: dict[str, tuple[str, str]] = {
    "carbon_impact": ("carbon_impact_to_date", "target_carbon_impact"),
    "trees_planted": ("trees_planted", "target_trees_planted"),
    "energy_generated": ("energy_generated", "target_energy_generated"),
    "waste_processed": ("waste_processed", "target_waste_processed"),
    "area_restored": ("area_restored", "target_area_restored"),
}

ADDITIONAL_BENEFITS: tuple[tuple[str, str], ...] = (
    ("trees_planted", "Trees Planted"),
    ("energy_generated", "Energy Generated (kWh)"),
    ("waste_processed", "Waste Processed (tons)"),
)

# Kilograms of CO2 per carbon credit.
KG_PER_CREDIT = 1000

STATUS_SUMMARIES: tuple[tuple[float, str], ...] = (
    (90, "Project nearing completion with excellent progress"),
    (70, "Project progressing well and on track"),
    (50, "Project making steady progress"),
    (25, "Project in early stages with initial progress"),
)
STATUS_SUMMARY_FALLBACK = "Project recently started with limited progress"

RECOMMEND_MORE_RESOURCES = "Consider increasing resource allocation to accelerate progress"
RECOMMEND_ADDRESS_CHALLENGES = "Address critical challenges to prevent further delays"
RECOMMEND_REVISE_TIMELINE = "Review and update project timeline to account for delays"

MAX_KEY_HIGHLIGHTS = 5
MAX_CONCERNS = 3
MAX_NEXT_PERIOD_ITEMS = 3

TREND_CORRELATION_THRESHOLD = 0.3
VOLATILITY_THRESHOLD = 0.5


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    start: datetime
    end: datetime
    label: str

    def as_dict(self) -> dict[str, object]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "label": self.label}


@dataclass(frozen=True, slots=True)
class ComposeOptions:
    include_photos: bool = True
    include_financials: bool = True


def _value(record: object, name: str) -> object:
    raw = record_value(record, name)
    return getattr(raw, "value", raw)


def _iso(value: object) -> str | None:
    if isinstance(value, datetime):
        return naive_utc(value).isoformat()
    return None


def _ensure_ascending(progress_updates: Sequence[object]) -> None:
    stamps = [naive_utc(_value(update, "reporting_date")) for update in progress_updates]
    if any(later < earlier for earlier, later in zip(stamps, stamps[1:])):
        raise ValueError("progress_updates must be ordered by reporting_date ascending.")


# ---------- Environmental metrics ----------
def metric_trend(metric: str, points: Sequence[tuple[datetime, float]]) -> dict[str, object] | None:
    """Classify a metric series by the correlation of value with time."""

    if len(points) < 2:
        return None

    xs = [naive_utc(moment).timestamp() for moment, _ in points]
    ys = [value for _, value in points]
    try:
        correlation = statistics.correlation(xs, ys)
    except statistics.StatisticsError:
        # Constant series on either axis.
        correlation = 0.0

    if abs(correlation) < TREND_CORRELATION_THRESHOLD:
        mean = statistics.fmean(ys)
        variation = statistics.pstdev(ys) / abs(mean) if mean else 0.0
        trend = "volatile" if variation > VOLATILITY_THRESHOLD else "stable"
    else:
        trend = "increasing" if correlation > 0 else "decreasing"

    first, last = ys[0], ys[-1]
    change_percent = (last - first) / abs(first) * 100 if first else 0.0
    return {
        "metric": metric,
        "trend": trend,
        "change_percent": round(change_percent, 2),
        "confidence": round(abs(correlation), 2),
    }


def environmental_metrics(project: object, progress_updates: Sequence[object]) -> dict[str, object]:
    """Period deltas, cumulative values, targets, variance and trends.

    ``progress_updates`` must be ordered oldest first.
    """

    earliest = progress_updates[0] if progress_updates else None
    latest = progress_updates[-1] if progress_updates else None

    period: dict[str, float] = {}
    cumulative: dict[str, float] = {}
    targets: dict[str, float] = {}
    variance: dict[str, float] = {}
    trends: list[dict[str, object]] = []
    for key, (update_field, target_field) in ENVIRONMENTAL_FIELDS.items():
        latest_value = finite(_value(latest, update_field)) if latest is not None else 0.0
        earliest_value = finite(_value(earliest, update_field)) if earliest is not None else 0.0
        period[key] = latest_value - earliest_value
        cumulative[key] = latest_value
        targets[key] = finite(_value(project, target_field))
        variance[key] = cumulative[key] - targets[key]

        points = [
            (_value(update, "reporting_date"), finite(_value(update, update_field)))
            for update in progress_updates
            if _value(update, update_field) is not None
        ]
        trend = metric_trend(key, points)
        if trend is not None:
            trends.append(trend)

    return {
        "period": period,
        "cumulative": cumulative,
        "targets": targets,
        "variance": variance,
        "trends": trends,
    }


# ---------- Summary ----------
def status_summary(progress: float) -> str:
    for threshold, text in STATUS_SUMMARIES:
        if progress >= threshold:
            return text
    return STATUS_SUMMARY_FALLBACK


def _first_entries(progress_updates: Sequence[object], name: str, limit: int) -> list[str]:
    entries: list[str] = []
    for update in reversed(progress_updates):
        values = _value(update, name) or []
        if values:
            entries.append(str(values[0]))
        if len(entries) == limit:
            break
    return entries


def project_summary(
    progress_updates: Sequence[object],
    metrics: dict[str, object],
    timeline: TimelineData,
) -> dict[str, object]:
    latest = progress_updates[-1] if progress_updates else None
    progress = finite(_value(latest, "progress_percentage")) if latest is not None else 0.0
    cumulative = metrics["cumulative"]
    carbon = cumulative["carbon_impact"]

    return {
        "overall_progress": progress,
        "status_summary": status_summary(progress),
        "key_highlights": _first_entries(progress_updates, "achievements", MAX_KEY_HIGHLIGHTS),
        "concerns_raised": _first_entries(progress_updates, "challenges", MAX_CONCERNS),
        "impact_to_date": {
            "carbon_credits_generated": math.floor(carbon / KG_PER_CREDIT),
            "carbon_impact_to_date": carbon,
            "additional_benefits": {label: cumulative[key] for key, label in ADDITIONAL_BENEFITS if cumulative[key]},
        },
        "timeline_status": timeline_health(timeline),
        # Spend is not tracked by the record store.
        "budget_status": "on_budget",
    }


# ---------- Sections ----------
def milestone_progress(milestones: Sequence[object]) -> list[dict[str, object]]:
    progress_by_status = {"completed": 100, "in_progress": 50}
    return [
        {
            "id": str(_value(milestone, "id")),
            "title": _value(milestone, "title"),
            "description": _value(milestone, "description") or "",
            "category": _value(milestone, "milestone_type"),
            "planned_date": _iso(_value(milestone, "planned_date")),
            "actual_date": _iso(_value(milestone, "actual_date")),
            "status": _value(milestone, "status"),
            "progress_percentage": progress_by_status.get(_value(milestone, "status"), 0),
            "deliverables": [],
            "challenges": [],
            "success_factors": [],
        }
        for milestone in milestones
    ]


def extract_challenges(alerts: Sequence[object]) -> list[dict[str, object]]:
    """Quality-concern alerts as challenges.

    Alerts carry no challenge category, so every challenge is ``technical``.
    """

    challenges: list[dict[str, object]] = []
    for alert in alerts:
        if _value(alert, "alert_type") != "quality_concern":
            continue
        message = _value(alert, "message")
        challenges.append(
            {
                "id": str(_value(alert, "id")),
                "title": message,
                "description": _value(alert, "description") or message,
                "category": "technical",
                "severity": _value(alert, "severity"),
                "impact": "May delay project timeline",
                "mitigation": "Working with technical team to resolve",
                "status": "resolved" if _value(alert, "is_resolved") else "addressing",
                "identified_date": _iso(_value(alert, "created_at")),
                "resolved_date": _iso(_value(alert, "resolved_at")),
                "lessons": [],
            }
        )
    return challenges


def extract_achievements(milestones: Sequence[object], *, now: datetime) -> list[dict[str, object]]:
    return [
        {
            "id": str(_value(milestone, "id")),
            "title": f"Milestone Completed: {_value(milestone, 'title')}",
            "description": _value(milestone, "description") or "",
            "category": "milestone",
            "significance": "moderate",
            "achieved_date": _iso(_value(milestone, "actual_date") or now),
            "metrics": {},
            "media": [],
        }
        for milestone in milestones
        if _value(milestone, "status") == "completed"
    ]


def extract_photos(progress_updates: Sequence[object]) -> list[dict[str, object]]:
    photos: list[dict[str, object]] = []
    for update in progress_updates:
        taken = _value(update, "reporting_date")
        for index, photo in enumerate(_value(update, "photos") or []):
            url = photo.get("url")
            photos.append(
                {
                    "id": f"{_value(update, 'id')}_{index}",
                    "url": url,
                    "thumbnail": photo.get("thumbnail") or url,
                    "caption": photo.get("caption") or f"Progress photo from {naive_utc(taken):%Y-%m-%d}",
                    "category": "progress",
                    "taken_date": _iso(taken),
                    "taken_by": str(_value(update, "reported_by")),
                    "metadata": {
                        "width": photo.get("width") or 800,
                        "height": photo.get("height") or 600,
                        "file_size": photo.get("file_size") or 0,
                        "format": photo.get("format") or "jpg",
                    },
                }
            )
    return photos


def financial_summary(project: object, transactions: Sequence[object]) -> dict[str, object]:
    budget = finite(_value(project, "budget"))
    completed = [item for item in transactions if _value(item, "payment_status") == "completed"]
    revenue_sources: list[dict[str, object]] = []
    if completed:
        revenue_sources.append(
            {
                "source": "carbon_credit_sales",
                "amount": round(sum(finite(_value(item, "total_amount")) for item in completed), 2),
                "credits_sold": sum(finite(_value(item, "credit_amount")) for item in completed),
                "transactions": len(completed),
            }
        )
    return {
        "budget_allocated": budget,
        "budget_spent": 0.0,
        "budget_remaining": budget,
        "burn_rate": 0.0,
        "projected_completion": budget,
        "cost_efficiency": 1.0,
        "major_expenditures": [],
        "revenue_sources": revenue_sources,
    }


def recommendations(summary: dict[str, object], challenges: list, timeline: TimelineData) -> list[str]:
    items: list[str] = []
    if summary["overall_progress"] < 50:
        items.append(RECOMMEND_MORE_RESOURCES)
    if challenges:
        items.append(RECOMMEND_ADDRESS_CHALLENGES)
    if timeline.delayed_items:
        items.append(RECOMMEND_REVISE_TIMELINE)
    return items


def next_period_plan(milestones: Sequence[object], *, now: datetime) -> list[str]:
    reference = naive_utc(now)
    upcoming = [
        milestone
        for milestone in milestones
        if _value(milestone, "status") == "pending" and naive_utc(_value(milestone, "planned_date")) > reference
    ]
    return [
        f"Complete {_value(milestone, 'title')} by {naive_utc(_value(milestone, 'planned_date')):%Y-%m-%d}"
        for milestone in upcoming[:MAX_NEXT_PERIOD_ITEMS]
    ]


# ---------- Composition ----------
def compose_report(
    project: object,
    progress_updates: Sequence[object],
    milestones: Sequence[object],
    alerts: Sequence[object],
    period: ReportPeriod,
    options: ComposeOptions,
    *,
    now: datetime,
    generated_by: str,
    transactions: Sequence[object] = (),
) -> dict[str, object]:
    """Assemble a final progress report from already-fetched records.

    ``progress_updates`` must be sorted by ``reporting_date`` ascending. An empty
    milestone set yields a neutral timeline instead of failing.
    """

    _ensure_ascending(progress_updates)

    metrics = environmental_metrics(project, progress_updates)
    try:
        timeline = synthesize_timeline(milestones, progress_updates, now=now)
    except MissingTimelineData:
        logger.warning(
            "Composing report without timeline data.",
            extra={"project_id": _value(project, "id")},
        )
        timeline = empty_timeline()

    summary = project_summary(progress_updates, metrics, timeline)
    challenges = extract_challenges(alerts)

    return {
        "id": str(uuid.uuid4()),
        "project_id": str(_value(project, "id")),
        "title": f"{_value(project, 'title')} - Progress Report ({period.label})",
        "report_period": period.as_dict(),
        "summary": summary,
        "timeline": timeline.as_dict(),
        "metrics": metrics,
        "milestones": milestone_progress(milestones),
        "challenges": challenges,
        "achievements": extract_achievements(milestones, now=now),
        "financials": financial_summary(project, transactions) if options.include_financials else None,
        "photos": extract_photos(progress_updates) if options.include_photos else [],
        "recommendations": recommendations(summary, challenges, timeline),
        "next_period_plan": next_period_plan(milestones, now=now),
        "generated_at": naive_utc(now).isoformat(),
        "generated_by": generated_by,
        "status": REPORT_STATUS_FINAL,
    }
