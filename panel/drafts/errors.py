from __future__ import annotations

from panel.schemas.common import ErrorResponse


class DraftError(Exception):
    """Base class for listing-draft lifecycle failures."""

    code = "draft_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_detail(self) -> dict:
        return ErrorResponse(code=self.code, message=self.message).model_dump()


class DraftValidationError(DraftError):
    """A required field is missing or invalid. Always recoverable by fixing input."""

    code = "validation_failed"


class DraftDecodeError(DraftError):
    """The handoff payload is missing or corrupt; callers treat it as "no draft"."""

    code = "draft_unavailable"


class NotAuthenticated(DraftError):
    code = "not_authenticated"


class SubmissionInProgress(DraftError):
    code = "submission_in_progress"


class SubmissionFailed(DraftError):
    """An upload or the record write failed. Safe to retry confirm()."""

    code = "submission_failed"
