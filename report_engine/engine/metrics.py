"""Period-over-period analytics metrics."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from report_engine.engine.time_buckets import record_value

CHANGE_INCREASE = "increase"
CHANGE_DECREASE = "decrease"
CHANGE_STABLE = "stable"

# Changes within this many percent either way count as stable.
STABLE_THRESHOLD_PERCENT = 1.0

METRIC_CATEGORIES = ("platform", "environmental", "financial", "user")


@dataclass(frozen=True, slots=True)
class MetricMeta:
    id: str
    name: str
    unit: str
    format: str
    category: str
    description: str


@dataclass(frozen=True, slots=True)
class AnalyticsMetric:
    id: str
    name: str
    value: float
    previous_value: float
    change: float
    change_type: str
    unit: str
    format: str
    category: str
    description: str

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "previous_value": self.previous_value,
            "change": self.change,
            "change_type": self.change_type,
            "unit": self.unit,
            "format": self.format,
            "category": self.category,
            "description": self.description,
        }


@dataclass(slots=True)
class RecordWindow:
    """Records for one comparison window, grouped by collection."""

    projects: Sequence[object] = field(default_factory=list)
    users: Sequence[object] = field(default_factory=list)
    transactions: Sequence[object] = field(default_factory=list)
    progress_updates: Sequence[object] = field(default_factory=list)

    def collection(self, name: str) -> Sequence[object]:
        return getattr(self, name)


def finite(value: object) -> float:
    """Coerce to a finite float; anything else becomes 0."""

    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def compute_metric(current_value: object, previous_value: object, meta: MetricMeta) -> AnalyticsMetric:
    """Compare two scalars. Never raises; non-numeric inputs count as 0."""

    value = finite(current_value)
    previous = finite(previous_value)

    if previous == 0:
        if value > 0:
            change, change_type = 100.0, CHANGE_INCREASE
        else:
            change, change_type = 0.0, CHANGE_STABLE
    else:
        raw_change = (value - previous) / abs(previous) * 100
        if abs(raw_change) <= STABLE_THRESHOLD_PERCENT:
            change_type = CHANGE_STABLE
        elif raw_change > 0:
            change_type = CHANGE_INCREASE
        else:
            change_type = CHANGE_DECREASE
        change = round(abs(raw_change), 2)

    return AnalyticsMetric(
        id=meta.id,
        name=meta.name,
        value=round(value, 2),
        previous_value=round(previous, 2),
        change=change,
        change_type=change_type,
        unit=meta.unit,
        format=meta.format,
        category=meta.category,
        description=meta.description,
    )


# ---------- Aggregators ----------
def _count(records: Sequence[object]) -> float:
    return float(len(records))


def _count_where(name: str, expected: str) -> Callable[[Sequence[object]], float]:
    def aggregate(records: Sequence[object]) -> float:
        return float(sum(1 for record in records if _enum_value(record_value(record, name)) == expected))

    return aggregate


def _sum_of(name: str, *, completed_only: bool = False) -> Callable[[Sequence[object]], float]:
    def aggregate(records: Sequence[object]) -> float:
        return sum(finite(record_value(record, name)) for record in _maybe_completed(records, completed_only))

    return aggregate


def _average_of(name: str, *, completed_only: bool = False) -> Callable[[Sequence[object]], float]:
    def aggregate(records: Sequence[object]) -> float:
        selected = _maybe_completed(records, completed_only)
        if not selected:
            return 0.0
        return sum(finite(record_value(record, name)) for record in selected) / len(selected)

    return aggregate


def _maybe_completed(records: Sequence[object], completed_only: bool) -> list[object]:
    if not completed_only:
        return list(records)
    return [record for record in records if _enum_value(record_value(record, "payment_status")) == "completed"]


def _enum_value(value: object) -> object:
    return getattr(value, "value", value)


@dataclass(frozen=True, slots=True)
class MetricDefinition:
    meta: MetricMeta
    source: str
    aggregate: Callable[[Sequence[object]], float]
    # "window": compare current window with previous window.
    # "cumulative": compare the all-time total with the total before the current window.
    scope: str = "window"


METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        meta=MetricMeta("total_projects", "Total Projects", "projects", "number", "platform", "All registered projects"),
        source="projects",
        aggregate=_count,
        scope="cumulative",
    ),
    MetricDefinition(
        meta=MetricMeta("active_projects", "Active Projects", "projects", "number", "platform", "Projects currently active"),
        source="projects",
        aggregate=_count_where("status", "active"),
        scope="cumulative",
    ),
    MetricDefinition(
        meta=MetricMeta(
            "progress_updates", "Progress Updates", "updates", "number", "platform", "Progress reports submitted"
        ),
        source="progress_updates",
        aggregate=_count,
    ),
    MetricDefinition(
        meta=MetricMeta("total_users", "Total Users", "users", "number", "user", "All registered users"),
        source="users",
        aggregate=_count,
        scope="cumulative",
    ),
    MetricDefinition(
        meta=MetricMeta("new_users", "New Users", "users", "number", "user", "Users registered in the period"),
        source="users",
        aggregate=_count,
    ),
    MetricDefinition(
        meta=MetricMeta(
            "total_revenue", "Total Revenue", "USD", "currency", "financial", "Completed credit sales in the period"
        ),
        source="transactions",
        aggregate=_sum_of("total_amount", completed_only=True),
    ),
    MetricDefinition(
        meta=MetricMeta(
            "average_transaction_value",
            "Average Transaction Value",
            "USD",
            "currency",
            "financial",
            "Mean value of completed transactions",
        ),
        source="transactions",
        aggregate=_average_of("total_amount", completed_only=True),
    ),
    MetricDefinition(
        meta=MetricMeta(
            "carbon_offset", "Carbon Offset", "tCO2", "number", "environmental", "Credits retired through purchases"
        ),
        source="transactions",
        aggregate=_sum_of("credit_amount", completed_only=True),
    ),
    MetricDefinition(
        meta=MetricMeta(
            "co2_reduction_pipeline",
            "CO2 Reduction Pipeline",
            "tCO2",
            "number",
            "environmental",
            "Estimated reduction across all projects",
        ),
        source="projects",
        aggregate=_sum_of("estimated_co2_reduction"),
        scope="cumulative",
    ),
)


def compute_metrics(
    current: RecordWindow,
    previous: RecordWindow,
    all_records: RecordWindow,
    category: str = "all",
) -> list[AnalyticsMetric]:
    """Evaluate every metric definition, optionally filtered to one category."""

    results: list[AnalyticsMetric] = []
    for definition in METRIC_DEFINITIONS:
        if category != "all" and definition.meta.category != category:
            continue

        current_records = current.collection(definition.source)
        if definition.scope == "cumulative":
            everything = all_records.collection(definition.source)
            in_window = {id(record) for record in current_records}
            current_value = definition.aggregate(everything)
            previous_value = definition.aggregate([record for record in everything if id(record) not in in_window])
        else:
            current_value = definition.aggregate(current_records)
            previous_value = definition.aggregate(previous.collection(definition.source))

        results.append(compute_metric(current_value, previous_value, definition.meta))
    return results
