"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM(
    "project_creator", "credit_buyer", "verifier", "admin", name="user_role", create_type=False
)
project_status = postgresql.ENUM(
    "draft",
    "submitted",
    "under_review",
    "approved",
    "rejected",
    "active",
    "completed",
    "suspended",
    name="project_status",
    create_type=False,
)
milestone_status = postgresql.ENUM(
    "pending", "in_progress", "completed", "delayed", "cancelled", name="milestone_status", create_type=False
)
impact_level = postgresql.ENUM("low", "medium", "high", "critical", name="impact_level", create_type=False)
payment_status = postgresql.ENUM(
    "pending", "processing", "completed", "failed", "refunded", "expired", name="payment_status", create_type=False
)


def upgrade() -> None:
    user_role.create(op.get_bind(), checkfirst=True)
    project_status.create(op.get_bind(), checkfirst=True)
    milestone_status.create(op.get_bind(), checkfirst=True)
    impact_level.create(op.get_bind(), checkfirst=True)
    payment_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("creator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=4000), nullable=False, server_default=""),
        sa.Column("project_type", sa.String(length=64), nullable=False),
        sa.Column("status", project_status, nullable=False, server_default="draft"),
        sa.Column("budget", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("estimated_co2_reduction", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("target_carbon_impact", sa.Float(), nullable=True),
        sa.Column("target_trees_planted", sa.Float(), nullable=True),
        sa.Column("target_energy_generated", sa.Float(), nullable=True),
        sa.Column("target_waste_processed", sa.Float(), nullable=True),
        sa.Column("target_area_restored", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_projects_creator_id", "projects", ["creator_id"])
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    op.create_table(
        "progress_updates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("reported_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("update_type", sa.String(length=32), nullable=False, server_default="measurement"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=4000), nullable=False, server_default=""),
        sa.Column("progress_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("carbon_impact_to_date", sa.Float(), nullable=True),
        sa.Column("trees_planted", sa.Float(), nullable=True),
        sa.Column("energy_generated", sa.Float(), nullable=True),
        sa.Column("waste_processed", sa.Float(), nullable=True),
        sa.Column("area_restored", sa.Float(), nullable=True),
        sa.Column("photos", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("achievements", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("challenges", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reporting_date", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "progress_percentage >= 0 AND progress_percentage <= 100",
            name="ck_progress_updates_percentage_range",
        ),
    )
    op.create_index("ix_progress_updates_project_date", "progress_updates", ["project_id", "reporting_date"])

    op.create_table(
        "project_milestones",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("milestone_type", sa.String(length=32), nullable=False, server_default="progress"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=4000), nullable=False, server_default=""),
        sa.Column("planned_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actual_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", milestone_status, nullable=False, server_default="pending"),
        sa.Column("impact", impact_level, nullable=False, server_default="medium"),
        sa.Column("delay_reason", sa.String(length=1000), nullable=True),
        sa.Column("order_no", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_project_milestones_project_order", "project_milestones", ["project_id", "order_no"])
    op.create_index("ix_project_milestones_status_date", "project_milestones", ["status", "planned_date"])

    op.create_table(
        "system_alerts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("alert_type", sa.String(length=64), nullable=False),
        sa.Column("severity", impact_level, nullable=False),
        sa.Column("message", sa.String(length=1000), nullable=False),
        sa.Column("description", sa.String(length=4000), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_system_alerts_project_created", "system_alerts", ["project_id", "created_at"])

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("buyer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("credit_amount", sa.Float(), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False, server_default="pending"),
        sa.Column("transaction_reference", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("credit_amount >= 0", name="ck_transactions_credit_amount_non_negative"),
    )
    op.create_index("ix_transactions_buyer_id", "transactions", ["buyer_id"])
    op.create_index("ix_transactions_project_created", "transactions", ["project_id", "created_at"])

    op.create_table(
        "generated_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("report_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("template_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("format", sa.String(length=16), nullable=False, server_default="pdf"),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("report_data", postgresql.JSONB(), nullable=False),
        sa.Column("layout", postgresql.JSONB(), nullable=True),
        sa.UniqueConstraint("report_id", name="uq_generated_reports_report_id"),
    )
    op.create_index(
        "ix_generated_reports_project_generated",
        "generated_reports",
        ["project_id", "generated_at"],
    )

    op.create_table(
        "report_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("template_id", sa.String(length=64), nullable=False),
        sa.Column("default_key", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("template_type", sa.String(length=32), nullable=False),
        sa.Column("format", sa.String(length=16), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("template_id", name="uq_report_templates_template_id"),
        sa.UniqueConstraint("default_key", name="uq_report_templates_default_key"),
    )
    op.create_index("ix_report_templates_type_format", "report_templates", ["template_type", "format"])


def downgrade() -> None:
    op.drop_index("ix_report_templates_type_format", table_name="report_templates")
    op.drop_table("report_templates")

    op.drop_index("ix_generated_reports_project_generated", table_name="generated_reports")
    op.drop_table("generated_reports")

    op.drop_index("ix_transactions_project_created", table_name="transactions")
    op.drop_index("ix_transactions_buyer_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_system_alerts_project_created", table_name="system_alerts")
    op.drop_table("system_alerts")

    op.drop_index("ix_project_milestones_status_date", table_name="project_milestones")
    op.drop_index("ix_project_milestones_project_order", table_name="project_milestones")
    op.drop_table("project_milestones")

    op.drop_index("ix_progress_updates_project_date", table_name="progress_updates")
    op.drop_table("progress_updates")

    op.drop_index("ix_projects_created_at", table_name="projects")
    op.drop_index("ix_projects_creator_id", table_name="projects")
    op.drop_table("projects")

    op.drop_table("users")

    payment_status.drop(op.get_bind(), checkfirst=True)
    impact_level.drop(op.get_bind(), checkfirst=True)
    milestone_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
