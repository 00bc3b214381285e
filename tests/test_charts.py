from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from report_engine.engine.charts import ChartMeta, build_distribution_chart, build_time_series_chart
from report_engine.engine.time_buckets import bucket


def test_time_series_chart_is_ordered_by_time() -> None:
    end = datetime(2026, 2, 1)
    records = [{"created_at": end - timedelta(days=offset, hours=1), "amount": 10.0} for offset in (0, 0, 2)]
    periods = bucket(records, "created_at", end, 1, 3)

    chart = build_time_series_chart(
        list(reversed(periods)),
        lambda items: sum(item["amount"] for item in items),
        ChartMeta("revenue", "Revenue", "area", "7d", "financial", ("total_revenue",)),
    )

    payload = chart.as_dict()
    assert payload["type"] == "area"
    assert [point["value"] for point in payload["data"]] == [10.0, 0.0, 20.0]
    timestamps = [point["timestamp"] for point in payload["data"]]
    assert timestamps == sorted(timestamps)
    assert payload["metrics"] == ["total_revenue"]


def test_distribution_chart_keeps_insertion_order_and_counts() -> None:
    records = ["solar", "forest", "solar", "wind", "solar", "forest"]

    chart = build_distribution_chart(records, lambda item: item, ChartMeta("types", "Types", "pie", "30d", "platform"))

    assert [point.label for point in chart.data] == ["solar", "forest", "wind"]
    assert [point.value for point in chart.data] == [50, 33, 17]
    assert [point.metadata["count"] for point in chart.data] == [3, 2, 1]


@pytest.mark.parametrize("groups", [1, 3, 6, 7, 11])
def test_distribution_percentages_sum_within_rounding_tolerance(groups: int) -> None:
    records = [f"group-{index % groups}" for index in range(groups * 3 + 1)]

    chart = build_distribution_chart(records, lambda item: item, ChartMeta("d", "D", "pie", "30d", "platform"))

    total = sum(point.value for point in chart.data)
    assert abs(total - 100) <= max(len(chart.data) - 1, 0)


def test_distribution_rounds_half_up() -> None:
    # 1 of 8 is 12.5% and must round to 13.
    records = ["a"] + ["b"] * 7

    chart = build_distribution_chart(records, lambda item: item, ChartMeta("d", "D", "pie", "30d", "platform"))

    assert chart.data[0].value == 13


def test_empty_distribution_has_no_points() -> None:
    chart = build_distribution_chart([], lambda item: item, ChartMeta("d", "D", "pie", "30d", "platform"))

    assert chart.data == []


def test_unknown_chart_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_distribution_chart([], str, ChartMeta("d", "D", "radar", "30d", "platform"))
