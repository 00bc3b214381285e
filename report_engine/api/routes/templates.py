"""Report template registry endpoints."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext, get_current_user_context
from report_engine.db.dependencies import get_db_session
from report_engine.services.template_service import TemplateService

router = APIRouter(prefix="/templates", tags=["templates"])

TemplateType = Literal[
    "project_progress",
    "buyer_impact",
    "portfolio_overview",
    "analytics_dashboard",
    "compliance",
    "custom",
]
TemplateFormat = Literal["pdf", "html", "csv", "xlsx"]


# Sections and variables stay loosely typed so structural problems are
# reported by the template validator as a list of field-level messages.
class TemplatePayload(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    template_type: TemplateType | None = None
    format: TemplateFormat | None = None
    sections: list[dict[str, Any]] | None = None
    variables: list[dict[str, Any]] | None = None
    styling: dict[str, Any] | None = None


class TemplateClonePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)


def _service(db: Session) -> TemplateService:
    return TemplateService(db)


@router.get("")
def list_templates(
    template_type: TemplateType | None = None,
    format: TemplateFormat | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": service.list_templates(context=context, template_type=template_type, format_name=format)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.create_template(context=context, payload=payload.model_dump())


@router.post("/validate")
def validate_template(
    payload: dict[str, Any],
    context: RequestUserContext = Depends(get_current_user_context),
) -> dict[str, object]:
    return TemplateService.validate_template(payload)


@router.post("/defaults")
def bootstrap_default_templates(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.bootstrap_defaults(context=context)


@router.get("/{template_id}")
def get_template(
    template_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.get_template(context=context, template_id=template_id)


@router.patch("/{template_id}")
def update_template(
    template_id: str,
    payload: TemplatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.update_template(
        context=context,
        template_id=template_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    service.delete_template(context=context, template_id=template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/clone", status_code=status.HTTP_201_CREATED)
def clone_template(
    template_id: str,
    payload: TemplateClonePayload | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.clone_template(
        context=context,
        template_id=template_id,
        name=payload.name if payload is not None else None,
    )
