"""Project progress report endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext, get_current_user_context
from report_engine.db.dependencies import get_db_session
from report_engine.services.report_service import ComparisonPeriodData, ReportRequestData, ReportService

router = APIRouter(tags=["reports"])


class ReportPeriodPayload(BaseModel):
    start: datetime
    end: datetime
    label: str | None = Field(default=None, max_length=255)


class ReportGeneratePayload(BaseModel):
    period: ReportPeriodPayload
    template_id: str | None = Field(default=None, max_length=64)
    format: Literal["pdf", "html", "csv", "xlsx"] = "pdf"
    include_photos: bool = True
    include_financials: bool = True
    variables: dict[str, Any] = Field(default_factory=dict)
    exclude_sections: list[str] = Field(default_factory=list)


class ComparisonPeriodPayload(BaseModel):
    label: str = Field(min_length=1, max_length=255)
    start: datetime
    end: datetime


class ProgressComparisonPayload(BaseModel):
    periods: list[ComparisonPeriodPayload] = Field(default_factory=list)


def _service(db: Session) -> ReportService:
    return ReportService(db)


@router.post("/projects/{project_id}/reports", status_code=status.HTTP_201_CREATED)
def generate_project_report(
    project_id: UUID,
    payload: ReportGeneratePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.generate_report(
        context=context,
        project_id=project_id,
        data=ReportRequestData(
            period_start=payload.period.start,
            period_end=payload.period.end,
            period_label=payload.period.label,
            template_id=payload.template_id,
            format=payload.format,
            include_photos=payload.include_photos,
            include_financials=payload.include_financials,
            variables=payload.variables,
            exclude_sections=payload.exclude_sections,
        ),
    )


@router.get("/projects/{project_id}/reports")
def list_project_reports(
    project_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=200),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": service.list_project_reports(context=context, project_id=project_id, limit=limit)}


@router.get("/reports/{report_id}")
def get_report(
    report_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.get_report(context=context, report_id=report_id)


@router.get("/projects/{project_id}/timeline")
def project_timeline(
    project_id: UUID,
    start: datetime | None = None,
    end: datetime | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.timeline_visualization(context=context, project_id=project_id, start=start, end=end)


@router.post("/projects/{project_id}/progress-comparison")
def project_progress_comparison(
    project_id: UUID,
    payload: ProgressComparisonPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.progress_comparison(
        context=context,
        project_id=project_id,
        periods=[ComparisonPeriodData(label=item.label, start=item.start, end=item.end) for item in payload.periods],
    )
