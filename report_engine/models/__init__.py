"""ORM model package."""

from report_engine.models.entities import (
    GeneratedReport,
    ProgressUpdate,
    Project,
    ProjectMilestone,
    ReportTemplateRecord,
    SystemAlert,
    Transaction,
    User,
)

__all__ = [
    "GeneratedReport",
    "ProgressUpdate",
    "Project",
    "ProjectMilestone",
    "ReportTemplateRecord",
    "SystemAlert",
    "Transaction",
    "User",
]
