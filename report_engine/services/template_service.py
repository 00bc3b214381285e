"""Versioned report template registry."""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from report_engine.core.auth import RequestUserContext
from report_engine.core.config import get_settings
from report_engine.core.errors import ForbiddenError, NotFoundError
from report_engine.db.base import utcnow
from report_engine.engine.templates import (
    DEFAULT_TEMPLATES,
    default_styling,
    default_template_document,
    ensure_valid,
    increment_version,
    template_metadata,
    validate,
)
from report_engine.models.entities import ReportTemplateRecord
from report_engine.repositories.record_repository import RecordRepository

logger = logging.getLogger(__name__)

CREATOR_TEMPLATE_ROLES = ["admin", "verifier"]
EDITABLE_FIELDS = ("name", "description", "template_type", "format", "sections", "variables", "styling")


def new_template_id() -> str:
    return f"template_{uuid.uuid4().hex}"


class TemplateService:
    """CRUD over template documents with permission checks."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RecordRepository(db)
        self.settings = get_settings()

    # ---------- Defaults ----------
    def _seed_defaults(self, *, created_by: uuid.UUID | None) -> list[str]:
        if self.repo.count_default_templates() > 0:
            return []

        now = utcnow()
        created: list[str] = []
        for definition in DEFAULT_TEMPLATES:
            template_id = new_template_id()
            document = default_template_document(definition, now=now)
            document["id"] = template_id
            self.repo.add_template(
                ReportTemplateRecord(
                    template_id=template_id,
                    default_key=str(definition["default_key"]),
                    name=document["name"],
                    template_type=document["template_type"],
                    format=document["format"],
                    is_default=True,
                    is_public=True,
                    data=document,
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            created.append(template_id)
        return created

    def ensure_defaults(self, *, created_by: uuid.UUID | None = None) -> list[str]:
        """Seed built-in templates once. Returns ids created by this call."""

        try:
            created = self._seed_defaults(created_by=created_by)
            self.db.commit()
        except IntegrityError:
            # A concurrent request seeded them first.
            self.db.rollback()
            return []
        if created:
            logger.info("Default report templates seeded.", extra={"template_id": ",".join(created)})
        return created

    def bootstrap_defaults(self, *, context: RequestUserContext) -> dict[str, object]:
        if not context.is_elevated:
            logger.warning("Template bootstrap denied.", extra={"user_id": context.user_id})
            raise ForbiddenError("Seeding default templates requires an elevated role.")

        created = self.ensure_defaults(created_by=context.user_id)
        if not created:
            return {
                "message": "Default templates already exist",
                "count": self.repo.count_default_templates(),
                "template_ids": [],
            }
        return {
            "message": "Default templates created successfully",
            "count": len(created),
            "template_ids": created,
        }

    # ---------- Access ----------
    def _get_record(self, template_id: str) -> ReportTemplateRecord:
        self.ensure_defaults()
        record = self.repo.get_template(template_id)
        if record is None:
            raise NotFoundError("Template not found.")
        return record

    @staticmethod
    def can_edit(context: RequestUserContext, document: Mapping) -> bool:
        """Public non-editable templates are frozen; otherwise owner, role or editable flag."""

        permissions = (document.get("metadata") or {}).get("permissions") or {}
        editable = bool(permissions.get("editable"))
        if permissions.get("public") and not editable:
            return False
        if str(context.user_id) in (permissions.get("users") or []):
            return True
        if context.role_name in (permissions.get("roles") or []):
            return True
        return editable

    def _ensure_can_edit(self, context: RequestUserContext, record: ReportTemplateRecord) -> None:
        if not self.can_edit(context, record.data):
            logger.warning(
                "Template modification denied.",
                extra={"template_id": record.template_id, "user_id": context.user_id},
            )
            raise ForbiddenError("Not authorized to modify this template.")

    # ---------- Serialization ----------
    @staticmethod
    def serialize_template(record: ReportTemplateRecord) -> dict[str, object]:
        payload = copy.deepcopy(record.data)
        payload["id"] = record.template_id
        payload["is_default"] = record.is_default
        return payload

    @staticmethod
    def serialize_template_summary(record: ReportTemplateRecord) -> dict[str, object]:
        metadata = record.data.get("metadata") or {}
        return {
            "id": record.template_id,
            "name": record.name,
            "description": record.data.get("description") or "",
            "template_type": record.template_type,
            "format": record.format,
            "is_default": record.is_default,
            "is_public": record.is_public,
            "version": metadata.get("version"),
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
        }

    # ---------- Queries ----------
    def get_template_document(self, template_id: str) -> dict[str, object]:
        return self.serialize_template(self._get_record(template_id))

    def get_template(self, *, context: RequestUserContext, template_id: str) -> dict[str, object]:
        return self.get_template_document(template_id)

    def list_templates(
        self,
        *,
        context: RequestUserContext,
        template_type: str | None = None,
        format_name: str | None = None,
    ) -> list[dict[str, object]]:
        self.ensure_defaults()
        rows = self.repo.list_templates(template_type=template_type, format_name=format_name)
        return [self.serialize_template_summary(row) for row in rows]

    @staticmethod
    def validate_template(payload: Mapping) -> dict[str, object]:
        return validate(payload).as_dict()

    # ---------- Mutations ----------
    def _insert(self, *, document: dict[str, object], context: RequestUserContext) -> ReportTemplateRecord:
        now = utcnow()
        record = self.repo.add_template(
            ReportTemplateRecord(
                template_id=str(document["id"]),
                default_key=None,
                name=str(document["name"]),
                template_type=str(document["template_type"]),
                format=str(document["format"]),
                is_default=False,
                is_public=False,
                data=document,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(record)
        return record

    def create_template(self, *, context: RequestUserContext, payload: Mapping) -> dict[str, object]:
        ensure_valid(payload)

        document: dict[str, object] = {key: copy.deepcopy(payload.get(key)) for key in EDITABLE_FIELDS}
        document["id"] = new_template_id()
        document["description"] = document.get("description") or ""
        document["variables"] = document.get("variables") or []
        document["styling"] = document.get("styling") or default_styling()
        document["metadata"] = template_metadata(
            category=str(document["template_type"]),
            author=context.display_name or "Unknown",
            now=utcnow(),
            roles=CREATOR_TEMPLATE_ROLES,
            users=[str(context.user_id)],
            public=False,
            editable=True,
        )

        record = self._insert(document=document, context=context)
        logger.info("Template created.", extra={"template_id": record.template_id, "user_id": context.user_id})
        return self.serialize_template(record)

    def update_template(
        self,
        *,
        context: RequestUserContext,
        template_id: str,
        updates: Mapping,
    ) -> dict[str, object]:
        record = self._get_record(template_id)
        self._ensure_can_edit(context, record)

        document = copy.deepcopy(record.data)
        for key in EDITABLE_FIELDS:
            if key in updates and updates[key] is not None:
                document[key] = copy.deepcopy(updates[key])
        ensure_valid(document)

        now = utcnow()
        metadata = dict(document.get("metadata") or {})
        metadata["version"] = increment_version(metadata.get("version"))
        metadata["updated_at"] = now.isoformat()
        document["metadata"] = metadata

        # New dict so the JSON column is flagged dirty.
        record.data = document
        record.name = str(document["name"])
        record.template_type = str(document["template_type"])
        record.format = str(document["format"])
        record.updated_at = now
        self.db.commit()
        self.db.refresh(record)

        logger.info(
            "Template updated.",
            extra={"template_id": record.template_id, "user_id": context.user_id},
        )
        return self.serialize_template(record)

    def delete_template(self, *, context: RequestUserContext, template_id: str) -> None:
        record = self._get_record(template_id)
        self._ensure_can_edit(context, record)
        self.repo.delete_template(record)
        self.db.commit()
        logger.info("Template deleted.", extra={"template_id": template_id, "user_id": context.user_id})

    def clone_template(
        self,
        *,
        context: RequestUserContext,
        template_id: str,
        name: str | None = None,
    ) -> dict[str, object]:
        source = self._get_record(template_id)
        document = copy.deepcopy(source.data)
        document["id"] = new_template_id()
        document["name"] = name or f"{source.name} (Copy)"
        source_tags = [
            tag
            for tag in (source.data.get("metadata") or {}).get("tags") or []
            if tag not in ("default", "system")
        ]
        metadata = template_metadata(
            category=str(document["template_type"]),
            author=context.display_name or "Unknown",
            now=utcnow(),
            roles=CREATOR_TEMPLATE_ROLES,
            users=[str(context.user_id)],
            public=False,
            editable=True,
            tags=source_tags,
        )
        metadata["cloned_from"] = source.template_id
        document["metadata"] = metadata

        record = self._insert(document=document, context=context)
        logger.info(
            "Template cloned.",
            extra={"template_id": record.template_id, "user_id": context.user_id},
        )
        return self.serialize_template(record)
