"""Domain errors raised by the interview services.

Routers never build HTTP errors for these themselves; the handlers
registered in ``app.main`` translate each class to a status code.
"""
from typing import Dict, List, Optional


class InterviewError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(InterviewError):
    """Record is absent, or exists but is not owned by the caller."""

    status_code = 404


class InvalidState(InterviewError):
    """The requested lifecycle transition is not allowed."""

    status_code = 400


class ValidationFailure(InterviewError):
    """Caller input is malformed."""

    status_code = 422

    def __init__(self, message: str, fields: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.fields = fields or []


class CollaboratorFailure(InterviewError):
    """The text-generation service failed or returned something unusable."""

    status_code = 502
    retryable = False


class QuotaExceeded(CollaboratorFailure):
    status_code = 429
    retryable = True


class MalformedOutput(CollaboratorFailure):
    status_code = 502
    retryable = False


class PersistenceConflict(InterviewError):
    """A write violated a uniqueness constraint."""

    status_code = 409
