"""Error taxonomy for the report and metrics engine.

Blocking failures subclass ``HTTPException`` so services can raise them and
FastAPI renders the status code. Advisory conditions are raised by the pure
engine functions and are always caught by their callers, which fall back to
neutral values.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Referenced project, template or report is absent (or expired)."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(HTTPException):
    """Permission check failed."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class TemplateValidationError(HTTPException):
    """Template structure or variables are invalid.

    Always carries the full list of field-level messages.
    """

    def __init__(self, errors: list[str], message: str = "Template validation failed.") -> None:
        self.errors = list(errors)
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": message, "errors": self.errors},
        )


class AdvisoryCondition(Exception):
    """Non-fatal condition; callers recover with zero or neutral values."""


class MissingTimelineData(AdvisoryCondition):
    """Timeline synthesis was asked to work on an empty milestone set."""


class ComputationDegenerate(AdvisoryCondition):
    """A ratio or trend is indeterminate, e.g. a zero denominator."""
