"""Project progress report generation, retrieval and comparison."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext, has_project_access
from report_engine.core.config import get_settings
from report_engine.core.errors import ForbiddenError, MissingTimelineData, NotFoundError
from report_engine.db.base import utcnow
from report_engine.engine.comparison import compare, gather_period_metrics
from report_engine.engine.composer import ComposeOptions, ReportPeriod, compose_report
from report_engine.engine.templates import count_by_type, ensure_valid, resolve_sections, resolve_variables
from report_engine.engine.time_buckets import naive_utc
from report_engine.engine.timeline import empty_timeline, synthesize_timeline, timeline_health, timeline_visualization
from report_engine.models.entities import GeneratedReport, Project
from report_engine.repositories.record_repository import RecordRepository
from report_engine.services.template_service import TemplateService

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATE_ID = "builtin_project_progress"

# Report keys that count as sections when no template layout is used.
BUILTIN_SECTIONS = (
    "summary",
    "timeline",
    "metrics",
    "milestones",
    "challenges",
    "achievements",
    "financials",
    "photos",
    "recommendations",
    "next_period_plan",
)


@dataclass(slots=True)
class ReportRequestData:
    period_start: datetime
    period_end: datetime
    period_label: str | None = None
    template_id: str | None = None
    format: str = "pdf"
    include_photos: bool = True
    include_financials: bool = True
    variables: dict[str, object] = field(default_factory=dict)
    exclude_sections: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ComparisonPeriodData:
    label: str
    start: datetime
    end: datetime


def _validate_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = naive_utc(start), naive_utc(end)
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Period start must not be after period end.",
        )
    return start, end


class ReportService:
    """Service implementing the project report workflow."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RecordRepository(db)
        self.settings = get_settings()

    # ---------- Access ----------
    def _ensure_project_access(self, *, context: RequestUserContext, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        purchases = self.repo.count_completed_purchases(buyer_id=context.user_id, project_id=project.id)
        if not has_project_access(context, project, completed_purchases=purchases):
            logger.warning(
                "Project access denied.",
                extra={"project_id": project.id, "user_id": context.user_id},
            )
            raise ForbiddenError("Not authorized to access this project.")
        return project

    # ---------- Serialization ----------
    @staticmethod
    def serialize_report_summary(row: GeneratedReport) -> dict[str, object]:
        return {
            "report_id": row.report_id,
            "project_id": str(row.project_id),
            "template_id": row.template_id,
            "title": row.title,
            "format": row.format,
            "status": row.status,
            "generated_at": row.generated_at.isoformat(),
            "expires_at": row.expires_at.isoformat(),
            "metadata": row.report_metadata,
        }

    @classmethod
    def serialize_report(cls, row: GeneratedReport) -> dict[str, object]:
        payload = cls.serialize_report_summary(row)
        payload["report"] = row.report_data
        payload["layout"] = row.layout
        return payload

    # ---------- Generation ----------
    def _resolve_layout(
        self,
        *,
        template_id: str,
        project: Project,
        report: dict[str, object],
        data: ReportRequestData,
        period_label: str,
    ) -> list[dict[str, object]]:
        template = TemplateService(self.db).get_template_document(template_id)
        ensure_valid(template)
        supplied = {"project_name": project.title, "report_period": period_label, **data.variables}
        variables = resolve_variables(template, supplied)
        context = {**report, "variables": variables}
        return resolve_sections(template, context, variables, data.exclude_sections)

    def generate_report(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        data: ReportRequestData,
    ) -> dict[str, object]:
        started = time.perf_counter()
        project = self._ensure_project_access(context=context, project_id=project_id)
        start, end = _validate_range(data.period_start, data.period_end)
        label = data.period_label or self.settings.default_report_period_label

        progress_updates = self.repo.list_progress_updates(project.id, start=start, end=end)
        milestones = self.repo.list_milestones(project.id)
        alerts = self.repo.list_alerts(project.id, start=start, end=end)
        transactions = self.repo.list_transactions(
            project_id=project.id,
            created_from=start,
            created_to=end + timedelta(microseconds=1),
        )

        now = utcnow()
        report = compose_report(
            project,
            progress_updates,
            milestones,
            alerts,
            ReportPeriod(start=start, end=end, label=label),
            ComposeOptions(include_photos=data.include_photos, include_financials=data.include_financials),
            now=now,
            generated_by=str(context.user_id),
            transactions=transactions,
        )

        layout: list[dict[str, object]] | None = None
        if data.template_id:
            layout = self._resolve_layout(
                template_id=data.template_id,
                project=project,
                report=report,
                data=data,
                period_label=label,
            )

        if layout is not None:
            sections_included = [str(section["id"]) for section in layout]
            chart_count = count_by_type(layout, "chart")
            table_count = count_by_type(layout, "table")
        else:
            sections_included = [key for key in BUILTIN_SECTIONS if report.get(key)]
            chart_count = 0
            table_count = 0

        metadata = {
            "generation_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "data_points": len(progress_updates) + len(milestones) + len(alerts) + len(transactions),
            "sections_included": sections_included,
            "chart_count": chart_count,
            "table_count": table_count,
        }

        row = self.repo.add_generated_report(
            GeneratedReport(
                report_id=str(report["id"]),
                project_id=project.id,
                user_id=context.user_id,
                template_id=data.template_id or BUILTIN_TEMPLATE_ID,
                title=str(report["title"]),
                format=data.format,
                status=str(report["status"]),
                generated_at=now,
                expires_at=now + timedelta(days=self.settings.report_ttl_days),
                report_metadata=metadata,
                report_data=report,
                layout=layout,
            )
        )
        self.db.commit()
        self.db.refresh(row)

        logger.info(
            "Progress report generated.",
            extra={"project_id": project.id, "report_id": row.report_id, "user_id": context.user_id},
        )
        return self.serialize_report(row)

    # ---------- Retrieval ----------
    def get_report(self, *, context: RequestUserContext, report_id: str) -> dict[str, object]:
        row = self.repo.get_generated_report(report_id)
        if row is None:
            raise NotFoundError("Report not found.")
        if row.user_id != context.user_id:
            self._ensure_project_access(context=context, project_id=row.project_id)
        if naive_utc(row.expires_at) <= utcnow():
            logger.info("Expired report requested.", extra={"report_id": report_id})
            raise NotFoundError("Report has expired; regenerate it.")
        return self.serialize_report(row)

    def list_project_reports(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        limit: int | None = None,
    ) -> list[dict[str, object]]:
        project = self._ensure_project_access(context=context, project_id=project_id)
        rows = self.repo.list_generated_reports(
            project.id,
            limit=limit or self.settings.report_list_default_limit,
            unexpired_at=utcnow(),
        )
        return [self.serialize_report_summary(row) for row in rows]

    # ---------- Timeline ----------
    def timeline_visualization(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, object]:
        project = self._ensure_project_access(context=context, project_id=project_id)
        if start is not None and end is not None:
            start, end = _validate_range(start, end)
        progress_updates = self.repo.list_progress_updates(
            project.id,
            start=naive_utc(start) if start is not None else None,
            end=naive_utc(end) if end is not None else None,
        )
        milestones = self.repo.list_milestones(project.id)

        try:
            timeline = synthesize_timeline(milestones, progress_updates, now=utcnow())
        except MissingTimelineData:
            logger.warning("Project has no milestones; timeline is empty.", extra={"project_id": project.id})
            timeline = empty_timeline()

        payload = timeline_visualization(milestones, progress_updates)
        payload["project_id"] = str(project.id)
        payload["timeline"] = timeline.as_dict()
        payload["timeline_status"] = timeline_health(timeline)
        return payload

    # ---------- Comparison ----------
    def progress_comparison(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        periods: list[ComparisonPeriodData],
    ) -> dict[str, object]:
        project = self._ensure_project_access(context=context, project_id=project_id)

        summaries = []
        for period in periods:
            start, end = _validate_range(period.start, period.end)
            updates = self.repo.list_progress_updates(project.id, start=start, end=end)
            summaries.append(gather_period_metrics(period.label, start, end, updates))

        result = compare(summaries)
        return {
            "project_id": str(project.id),
            "comparisons": [summary.as_dict() for summary in summaries],
            "trends": result["trends"],
            "insights": result["insights"],
        }
