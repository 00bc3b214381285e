"""Platform analytics dashboard service."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext
from report_engine.core.config import get_settings
from report_engine.core.errors import ForbiddenError
from report_engine.db.base import utcnow
from report_engine.engine.charts import ChartMeta, build_distribution_chart, build_time_series_chart
from report_engine.engine.metrics import METRIC_CATEGORIES, RecordWindow, compute_metrics, finite
from report_engine.engine.time_buckets import TIMEFRAME_WINDOW_DAYS, bucket_timeframe, naive_utc
from report_engine.models.entities import PaymentStatus, Transaction
from report_engine.repositories.record_repository import RecordRepository

logger = logging.getLogger(__name__)

DASHBOARD_CATEGORIES = ("all", *METRIC_CATEGORIES)


def _completed(transactions: list[Transaction]) -> list[Transaction]:
    return [item for item in transactions if item.payment_status == PaymentStatus.COMPLETED]


class AnalyticsService:
    """Dashboard metrics and charts computed on every call."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RecordRepository(db)
        self.settings = get_settings()

    def _ensure_elevated(self, context: RequestUserContext) -> None:
        if not context.is_elevated:
            logger.warning("Analytics access denied.", extra={"user_id": context.user_id})
            raise ForbiddenError("Platform analytics require an elevated role.")

    def _window(self, *, start: datetime | None, end: datetime | None) -> RecordWindow:
        return RecordWindow(
            projects=self.repo.list_projects(created_from=start, created_to=end),
            users=self.repo.list_users(created_from=start, created_to=end),
            transactions=self.repo.list_transactions(created_from=start, created_to=end),
            progress_updates=self.repo.list_progress_updates_between(created_from=start, created_to=end),
        )

    def dashboard(
        self,
        *,
        context: RequestUserContext,
        timeframe: str = "30d",
        category: str = "all",
        now: datetime | None = None,
    ) -> dict[str, object]:
        self._ensure_elevated(context)
        if timeframe not in TIMEFRAME_WINDOW_DAYS:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported timeframe '{timeframe}'.")
        if category not in DASHBOARD_CATEGORIES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported category '{category}'.")

        range_end = naive_utc(now) if now is not None else utcnow()
        window = timedelta(days=TIMEFRAME_WINDOW_DAYS[timeframe])
        current_start = range_end - window
        previous_start = current_start - window

        current = self._window(start=current_start, end=range_end)
        previous = self._window(start=previous_start, end=current_start)
        everything = self._window(start=None, end=range_end)

        metrics = compute_metrics(current, previous, everything, category)
        charts = self._charts(everything, range_end=range_end, timeframe=timeframe, category=category)

        logger.info(
            "Analytics dashboard computed.",
            extra={"timeframe": timeframe, "user_id": context.user_id},
        )
        return {
            "metrics": [metric.as_dict() for metric in metrics],
            "charts": [chart.as_dict() for chart in charts],
            "timeframe": timeframe,
            "category": category,
            "last_updated": range_end.isoformat(),
        }

    def _charts(self, records: RecordWindow, *, range_end: datetime, timeframe: str, category: str) -> list:
        charts = []
        if category in ("all", "platform"):
            charts.append(
                build_time_series_chart(
                    bucket_timeframe(records.projects, "created_at", range_end, timeframe),
                    len,
                    ChartMeta("project_growth", "Project Growth", "line", timeframe, "platform", ("total_projects",)),
                )
            )
            charts.append(
                build_distribution_chart(
                    records.projects,
                    lambda project: project.project_type,
                    ChartMeta("project_types", "Project Type Distribution", "pie", timeframe, "platform"),
                )
            )
        if category in ("all", "financial"):
            charts.append(
                build_time_series_chart(
                    bucket_timeframe(_completed(records.transactions), "created_at", range_end, timeframe),
                    lambda items: sum(finite(item.total_amount) for item in items),
                    ChartMeta("revenue_trend", "Revenue Trend", "area", timeframe, "financial", ("total_revenue",)),
                )
            )
        if category in ("all", "environmental"):
            charts.append(
                build_time_series_chart(
                    bucket_timeframe(_completed(records.transactions), "created_at", range_end, timeframe),
                    lambda items: sum(finite(item.credit_amount) for item in items),
                    ChartMeta(
                        "carbon_offset_trend", "Carbon Offset Trend", "bar", timeframe, "environmental", ("carbon_offset",)
                    ),
                )
            )
        if category in ("all", "user"):
            charts.append(
                build_distribution_chart(
                    records.users,
                    lambda user: user.role.value,
                    ChartMeta("user_roles", "User Role Distribution", "pie", timeframe, "user"),
                )
            )
        return charts
