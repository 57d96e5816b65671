"""
Domain exceptions raised by the service layer.
Routers translate these into HTTP responses.
"""
from typing import List, Optional


class FieldError:
    """A single field-level validation problem."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}

    def __repr__(self) -> str:
        return f"FieldError({self.field!r}, {self.message!r})"


class IncidentAppError(Exception):
    """Base class for all domain errors."""


class ValidationFailed(IncidentAppError):
    """Input rejected before any write happened."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


class PreconditionFailed(IncidentAppError):
    """Operation blocked because a required record or state is missing."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)


class PermissionDenied(IncidentAppError):
    """Caller's role does not allow the operation."""


class ReportNotFound(IncidentAppError):
    """No report with the given id (or not visible to the caller)."""

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report {report_id} not found")


class InvalidTransition(IncidentAppError):
    """Requested status is not a legal lifecycle target."""


class DuplicateAccount(IncidentAppError):
    """An account with this email already exists."""
