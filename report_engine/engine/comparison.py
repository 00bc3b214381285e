"""Period-over-period comparison with trend directions and insights."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from report_engine.core.errors import ComputationDegenerate
from report_engine.engine.metrics import finite
from report_engine.engine.time_buckets import naive_utc, record_value

logger = logging.getLogger(__name__)

INSIGHT_VELOCITY = "Project velocity is increasing compared to previous period"
INSIGHT_IMPACT = "Environmental impact generation is accelerating"

# Trend label -> PeriodMetrics attribute.
TRACKED_DELTAS: tuple[tuple[str, str], ...] = (
    ("Progress Rate", "progress_change"),
    ("Impact Rate", "carbon_impact_change"),
)


@dataclass(frozen=True, slots=True)
class PeriodMetrics:
    label: str
    start: datetime
    end: datetime
    progress_change: float
    carbon_impact_change: float
    updates_submitted: int
    average_progress: float

    def as_dict(self) -> dict[str, object]:
        return {
            "period": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "metrics": {
                "progress_change": self.progress_change,
                "carbon_impact_change": self.carbon_impact_change,
                "updates_submitted": self.updates_submitted,
                "average_progress": self.average_progress,
            },
        }


def gather_period_metrics(
    label: str,
    start: datetime,
    end: datetime,
    progress_updates: Sequence[object],
) -> PeriodMetrics:
    """Summarize one period from its updates, ordered oldest first."""

    def field_value(update: object, name: str) -> float:
        return finite(record_value(update, name))

    earliest = progress_updates[0] if progress_updates else None
    latest = progress_updates[-1] if progress_updates else None
    progress_values = [field_value(update, "progress_percentage") for update in progress_updates]
    return PeriodMetrics(
        label=label,
        start=naive_utc(start),
        end=naive_utc(end),
        progress_change=(field_value(latest, "progress_percentage") - field_value(earliest, "progress_percentage"))
        if latest is not None
        else 0.0,
        carbon_impact_change=(
            field_value(latest, "carbon_impact_to_date") - field_value(earliest, "carbon_impact_to_date")
        )
        if latest is not None
        else 0.0,
        updates_submitted=len(progress_updates),
        average_progress=round(sum(progress_values) / len(progress_values), 2) if progress_values else 0.0,
    )


def percent_change(latest: float, prior: float) -> float:
    if prior == 0:
        raise ComputationDegenerate("Prior period delta is zero.")
    return (latest - prior) / prior * 100


def _trend(metric: str, latest: float, prior: float) -> dict[str, object]:
    try:
        change = round(percent_change(latest, prior), 2)
    except ComputationDegenerate:
        logger.warning("Trend for %s is indeterminate; prior period delta is zero.", metric)
        return {"metric": metric, "trend": "stable", "change_percent": 0.0}
    return {
        "metric": metric,
        "trend": "increasing" if latest > prior else "decreasing",
        "change_percent": change,
    }


def compare(periods: Sequence[PeriodMetrics]) -> dict[str, list]:
    """Trends and insights for the latest period against the one before it.

    Fewer than two periods yields empty results.
    """

    if len(periods) < 2:
        return {"trends": [], "insights": []}

    ordered = sorted(periods, key=lambda item: item.start)
    latest, prior = ordered[-1], ordered[-2]

    trends = [
        _trend(metric, getattr(latest, name), getattr(prior, name)) for metric, name in TRACKED_DELTAS
    ]

    insights: list[str] = []
    if latest.progress_change > prior.progress_change:
        insights.append(INSIGHT_VELOCITY)
    if latest.carbon_impact_change > prior.carbon_impact_change:
        insights.append(INSIGHT_IMPACT)
    return {"trends": trends, "insights": insights}
