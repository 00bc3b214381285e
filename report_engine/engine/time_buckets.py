"""Uniform time periods and record partitioning."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

# timeframe -> (period length in days, number of periods)
TIMEFRAME_PRESETS: dict[str, tuple[int, int]] = {
    "7d": (1, 7),
    "30d": (7, 5),
    "90d": (7, 13),
    "1y": (30, 12),
}

# Length of the current/previous comparison windows per timeframe.
TIMEFRAME_WINDOW_DAYS: dict[str, int] = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}


@dataclass(slots=True)
class Period:
    """Half-open window ``[start, end)`` and the records that fall in it."""

    start: datetime
    end: datetime
    label: str
    items: list = field(default_factory=list)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def record_value(record: object, name: str) -> object:
    """Read a field from a mapping or an attribute-style record."""

    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def period_label(start: datetime) -> str:
    return f"{start:%b} {start.day}"


def resolve_timeframe(timeframe: str) -> tuple[int, int]:
    try:
        return TIMEFRAME_PRESETS[timeframe]
    except KeyError as exc:
        raise ValueError(f"Unsupported timeframe '{timeframe}'.") from exc


def bucket(
    records: Iterable[object],
    time_field: str,
    range_end: datetime,
    period_length_days: int,
    period_count: int,
) -> list[Period]:
    """Split the range ending at ``range_end`` into periods and partition records.

    Periods are built walking backward from ``range_end`` and returned oldest
    first. Records without a timestamp, or outside every period, are ignored.
    """

    if period_length_days < 1 or period_count < 1:
        raise ValueError("period_length_days and period_count must be positive.")

    end = naive_utc(range_end)
    step = timedelta(days=period_length_days)
    periods: list[Period] = []
    for index in range(period_count - 1, -1, -1):
        period_end = end - step * index
        period_start = period_end - step
        periods.append(Period(start=period_start, end=period_end, label=period_label(period_start)))

    first_start = periods[0].start
    for record in records:
        stamp = record_value(record, time_field)
        if not isinstance(stamp, datetime):
            continue
        stamp = naive_utc(stamp)
        if stamp < first_start or stamp >= end:
            continue
        index = int((stamp - first_start) // step)
        periods[index].items.append(record)
    return periods


def bucket_timeframe(records: Iterable[object], time_field: str, range_end: datetime, timeframe: str) -> list[Period]:
    period_length_days, period_count = resolve_timeframe(timeframe)
    return bucket(records, time_field, range_end, period_length_days, period_count)
