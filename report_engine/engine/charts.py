"""Chart series for the external renderer."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from report_engine.engine.time_buckets import Period

CHART_TYPES = ("line", "bar", "pie", "area")


@dataclass(frozen=True, slots=True)
class ChartMeta:
    id: str
    title: str
    type: str
    timeframe: str
    category: str
    metrics: tuple[str, ...] = ()


@dataclass(slots=True)
class ChartDataPoint:
    label: str
    value: float
    timestamp: str | None = None
    metadata: dict[str, object] | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"label": self.label, "value": self.value, "timestamp": self.timestamp}
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


@dataclass(slots=True)
class AnalyticsChart:
    id: str
    title: str
    type: str
    timeframe: str
    category: str
    metrics: list[str] = field(default_factory=list)
    data: list[ChartDataPoint] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "data": [point.as_dict() for point in self.data],
            "metrics": list(self.metrics),
            "timeframe": self.timeframe,
            "category": self.category,
        }


def _chart(meta: ChartMeta) -> AnalyticsChart:
    if meta.type not in CHART_TYPES:
        raise ValueError(f"Unsupported chart type '{meta.type}'.")
    return AnalyticsChart(
        id=meta.id,
        title=meta.title,
        type=meta.type,
        timeframe=meta.timeframe,
        category=meta.category,
        metrics=list(meta.metrics),
    )


def build_time_series_chart(
    periods: Sequence[Period],
    value_fn: Callable[[list], float],
    meta: ChartMeta,
) -> AnalyticsChart:
    """One point per period, oldest first."""

    chart = _chart(meta)
    for period in sorted(periods, key=lambda item: item.start):
        chart.data.append(
            ChartDataPoint(
                label=period.label,
                value=round(float(value_fn(period.items)), 2),
                timestamp=period.start.isoformat(),
            )
        )
    return chart


def _percent(count: int, total: int) -> int:
    ratio = Decimal(count) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_distribution_chart(
    records: Iterable[object],
    group_by_fn: Callable[[object], str],
    meta: ChartMeta,
) -> AnalyticsChart:
    """Share of records per group in first-seen order.

    Each share is rounded on its own, so the total may drift from 100 by up to
    one point per group.
    """

    counts: dict[str, int] = {}
    for record in records:
        key = group_by_fn(record)
        counts[key] = counts.get(key, 0) + 1

    chart = _chart(meta)
    total = sum(counts.values())
    for key, count in counts.items():
        chart.data.append(ChartDataPoint(label=key, value=_percent(count, total), metadata={"count": count}))
    return chart
