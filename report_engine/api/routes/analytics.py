"""Platform analytics endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext, get_current_user_context
from report_engine.db.dependencies import get_db_session
from report_engine.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard")
def analytics_dashboard(
    timeframe: Literal["7d", "30d", "90d", "1y"] = "30d",
    category: Literal["all", "platform", "environmental", "financial", "user"] = "all",
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = AnalyticsService(db)
    return service.dashboard(context=context, timeframe=timeframe, category=category)
