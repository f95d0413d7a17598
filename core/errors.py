"""
Domain error taxonomy.

Services raise these; the error handling middleware renders them.
"""

from typing import Any, Optional


GENERIC_NOT_FOUND = "Resource not found"


class PipelineError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    error_code: str = "PIPELINE_ERROR"

    def __init__(self, message: str = "", details: Optional[dict[str, Any]] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}

    @property
    def public_message(self) -> str:
        return self.message


class Forbidden(PipelineError):
    """Actor lacks scope for the target entity."""

    status_code = 403
    error_code = "FORBIDDEN"

    @property
    def public_message(self) -> str:
        return GENERIC_NOT_FOUND


class NotFound(PipelineError):
    """Entity absent or outside the actor's visibility."""

    status_code = 404
    error_code = "NOT_FOUND"

    @property
    def public_message(self) -> str:
        return GENERIC_NOT_FOUND


class Conflict(PipelineError):
    """Duplicate active assignment, or mutation of a closed record."""

    status_code = 409
    error_code = "CONFLICT"


class InvalidTransition(PipelineError):
    """Pipeline stage change that is backward or unreachable."""

    status_code = 422
    error_code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move candidate status from '{current}' to '{target}'",
            details={"current": current, "target": target},
        )
        self.current = current
        self.target = target


class BadRequest(PipelineError):
    """Missing or ambiguous input."""

    status_code = 400
    error_code = "BAD_REQUEST"


class UpstreamError(PipelineError):
    """Scoring oracle failure."""

    status_code = 502
    error_code = "UPSTREAM_ERROR"
