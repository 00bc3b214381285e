"""Top-level API router."""

from fastapi import APIRouter

from report_engine.api.routes.analytics import router as analytics_router
from report_engine.api.routes.health import router as health_router
from report_engine.api.routes.reports import router as reports_router
from report_engine.api.routes.templates import router as templates_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(analytics_router)
api_router.include_router(reports_router)
api_router.include_router(templates_router)
