"""Authentication context extraction and access predicates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from report_engine.core.config import get_settings
from report_engine.db.base import utcnow
from report_engine.db.dependencies import get_db_session
from report_engine.models.entities import Project, User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    external_id: str
    email: str
    display_name: str
    role: UserRole

    @property
    def role_name(self) -> str:
        return self.role.value

    @property
    def is_elevated(self) -> bool:
        """Whether the user holds a role that sees every project."""

        return self.role.value in get_settings().elevated_roles


def _require_identity_headers(
    x_user_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
) -> tuple[str, str, str]:
    if not x_user_id or not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity headers. Expected X-USER-ID and X-USER-EMAIL or enable development principal.",
        )

    display_name = x_user_name or x_user_email
    return x_user_id.strip(), x_user_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_user_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
    x_user_role: str | None,
) -> tuple[str, str, str, str | None]:
    settings = get_settings()
    if x_user_id and x_user_email:
        external_id, email, display_name = _require_identity_headers(x_user_id, x_user_email, x_user_name)
        return external_id, email, display_name, x_user_role

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_user_id.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
            settings.auth_dev_role,
        )

    external_id, email, display_name = _require_identity_headers(x_user_id, x_user_email, x_user_name)
    return external_id, email, display_name, x_user_role


def _parse_role(value: str | None) -> UserRole:
    if not value:
        return UserRole.CREDIT_BUYER
    try:
        return UserRole(value.strip().lower())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role '{value}'.",
        ) from exc


def ensure_user_principal(
    db: Session,
    *,
    external_id: str,
    email: str,
    display_name: str,
    role: UserRole,
) -> User:
    """Ensure user exists and return persisted row.

    The role is only applied on first sight; later role changes belong to the
    identity provider, not to request headers.
    """

    user = db.scalar(select(User).where(User.external_id == external_id))
    now = utcnow()
    if user is None:
        user = User(
            external_id=external_id,
            email=email,
            display_name=display_name or email,
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    if user.email != email or user.display_name != display_name:
        user.email = email
        user.display_name = display_name or email
        user.updated_at = now
        db.flush()
    return user


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-USER-ID"),
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    x_user_name: str | None = Header(default=None, alias="X-USER-NAME"),
    x_user_role: str | None = Header(default=None, alias="X-USER-ROLE"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user.

    Header strategy: trusted headers set by the gateway (or test clients).
    """

    external_id, email, display_name, role_name = _resolve_identity(x_user_id, x_user_email, x_user_name, x_user_role)
    user = ensure_user_principal(
        db,
        external_id=external_id,
        email=email,
        display_name=display_name,
        role=_parse_role(role_name),
    )
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        external_id=user.external_id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
    )


def has_role(context: RequestUserContext, allowed_roles: set[str]) -> bool:
    """Check whether user has any of the allowed role names."""

    return context.role_name in allowed_roles


def has_project_access(context: RequestUserContext, project: Project, *, completed_purchases: int) -> bool:
    """Creator, buyer of the project's credits, or elevated role."""

    if project.creator_id == context.user_id:
        return True
    if completed_purchases > 0:
        return True
    return context.is_elevated
