"""Repository helpers for the monitoring record store and report artifacts."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from report_engine.models.entities import (
    GeneratedReport,
    PaymentStatus,
    ProgressUpdate,
    Project,
    ProjectMilestone,
    ReportTemplateRecord,
    SystemAlert,
    Transaction,
    User,
)


class RecordRepository:
    """Read access to monitoring records plus the report/template sink."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def get_user_by_external_id(self, external_id: str) -> User | None:
        return self.db.scalar(select(User).where(User.external_id == external_id))

    def list_users(self, *, created_from: datetime | None = None, created_to: datetime | None = None) -> list[User]:
        conditions = []
        if created_from is not None:
            conditions.append(User.created_at >= created_from)
        if created_to is not None:
            conditions.append(User.created_at < created_to)
        return self.db.scalars(select(User).where(*conditions).order_by(User.created_at.asc())).all()

    # ---------- Projects ----------
    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def list_projects(
        self,
        *,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[Project]:
        conditions = []
        if created_from is not None:
            conditions.append(Project.created_at >= created_from)
        if created_to is not None:
            conditions.append(Project.created_at < created_to)
        return self.db.scalars(
            select(Project).where(*conditions).order_by(Project.created_at.asc())
        ).all()

    # ---------- Progress updates ----------
    def list_progress_updates(
        self,
        project_id: UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ProgressUpdate]:
        """Updates ordered oldest first; ``start``/``end`` are inclusive."""

        conditions = [ProgressUpdate.project_id == project_id]
        if start is not None:
            conditions.append(ProgressUpdate.reporting_date >= start)
        if end is not None:
            conditions.append(ProgressUpdate.reporting_date <= end)
        return self.db.scalars(
            select(ProgressUpdate)
            .where(and_(*conditions))
            .order_by(ProgressUpdate.reporting_date.asc(), ProgressUpdate.id.asc())
        ).all()

    def list_progress_updates_between(
        self,
        *,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[ProgressUpdate]:
        """Updates across all projects in ``[created_from, created_to)``."""

        conditions = []
        if created_from is not None:
            conditions.append(ProgressUpdate.reporting_date >= created_from)
        if created_to is not None:
            conditions.append(ProgressUpdate.reporting_date < created_to)
        return self.db.scalars(
            select(ProgressUpdate).where(*conditions).order_by(ProgressUpdate.reporting_date.asc())
        ).all()

    # ---------- Milestones ----------
    def list_milestones(self, project_id: UUID) -> list[ProjectMilestone]:
        return self.db.scalars(
            select(ProjectMilestone)
            .where(ProjectMilestone.project_id == project_id)
            .order_by(ProjectMilestone.order_no.asc(), ProjectMilestone.planned_date.asc())
        ).all()

    # ---------- Alerts ----------
    def list_alerts(self, project_id: UUID, *, start: datetime, end: datetime) -> list[SystemAlert]:
        return self.db.scalars(
            select(SystemAlert)
            .where(
                and_(
                    SystemAlert.project_id == project_id,
                    SystemAlert.created_at >= start,
                    SystemAlert.created_at <= end,
                )
            )
            .order_by(SystemAlert.created_at.asc())
        ).all()

    # ---------- Transactions ----------
    def list_transactions(
        self,
        *,
        project_id: UUID | None = None,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> list[Transaction]:
        conditions = []
        if project_id is not None:
            conditions.append(Transaction.project_id == project_id)
        if created_from is not None:
            conditions.append(Transaction.created_at >= created_from)
        if created_to is not None:
            conditions.append(Transaction.created_at < created_to)
        if payment_status is not None:
            conditions.append(Transaction.payment_status == payment_status)
        return self.db.scalars(
            select(Transaction).where(*conditions).order_by(Transaction.created_at.asc())
        ).all()

    def count_completed_purchases(self, *, buyer_id: UUID, project_id: UUID) -> int:
        return int(
            self.db.scalar(
                select(func.count(Transaction.id)).where(
                    and_(
                        Transaction.buyer_id == buyer_id,
                        Transaction.project_id == project_id,
                        Transaction.payment_status == PaymentStatus.COMPLETED,
                    )
                )
            )
            or 0
        )

    # ---------- Generated reports ----------
    def get_generated_report(self, report_id: str) -> GeneratedReport | None:
        return self.db.scalar(select(GeneratedReport).where(GeneratedReport.report_id == report_id))

    def list_generated_reports(
        self,
        project_id: UUID,
        *,
        limit: int,
        unexpired_at: datetime | None = None,
    ) -> list[GeneratedReport]:
        conditions = [GeneratedReport.project_id == project_id]
        if unexpired_at is not None:
            conditions.append(GeneratedReport.expires_at > unexpired_at)
        return self.db.scalars(
            select(GeneratedReport)
            .where(and_(*conditions))
            .order_by(GeneratedReport.generated_at.desc())
            .limit(limit)
        ).all()

    def add_generated_report(self, report: GeneratedReport) -> GeneratedReport:
        self.db.add(report)
        self.db.flush()
        return report

    # ---------- Templates ----------
    def get_template(self, template_id: str) -> ReportTemplateRecord | None:
        return self.db.scalar(select(ReportTemplateRecord).where(ReportTemplateRecord.template_id == template_id))

    def list_templates(
        self,
        *,
        template_type: str | None = None,
        format_name: str | None = None,
    ) -> list[ReportTemplateRecord]:
        conditions = []
        if template_type:
            conditions.append(ReportTemplateRecord.template_type == template_type)
        if format_name:
            conditions.append(ReportTemplateRecord.format == format_name)
        return self.db.scalars(
            select(ReportTemplateRecord)
            .where(*conditions)
            .order_by(ReportTemplateRecord.is_default.desc(), ReportTemplateRecord.created_at.asc())
        ).all()

    def count_default_templates(self) -> int:
        return int(
            self.db.scalar(
                select(func.count(ReportTemplateRecord.id)).where(ReportTemplateRecord.is_default.is_(True))
            )
            or 0
        )

    def add_template(self, record: ReportTemplateRecord) -> ReportTemplateRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def delete_template(self, record: ReportTemplateRecord) -> None:
        self.db.delete(record)
        self.db.flush()
