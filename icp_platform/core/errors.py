"""
Domain errors raised by the core services and mapped to HTTP responses by the API.
"""

from typing import Any, Dict, List


class PlatformError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500
    error_type = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PlatformError):
    status_code = 404
    error_type = "NOT_FOUND"


class UnauthenticatedError(PlatformError):
    status_code = 401
    error_type = "UNAUTHENTICATED"


class ForbiddenError(PlatformError):
    status_code = 403
    error_type = "FORBIDDEN"


class ConflictError(PlatformError):
    """Duplicate request or lost optimistic-concurrency race."""

    status_code = 400
    error_type = "CONFLICT"


class SchemaValidationError(PlatformError):
    """Input rejected against an entity schema, carries the list of violations."""

    status_code = 400
    error_type = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: List[Dict[str, Any]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc, message: str = "Input validation failed") -> "SchemaValidationError":
        """Convert a pydantic ValidationError into field-level violations."""
        errors = []
        for err in exc.errors():
            errors.append({
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "invalid value"),
                "value": err.get("input"),
            })
        return cls(message, errors)


class DependencyDegradedError(PlatformError):
    """An embedding, translation or chat provider call failed.

    Search and translation recover from it inside the core. Only the assistant
    chat surfaces it, when no chat model is configured or the model fails
    before replying.
    """

    status_code = 503
    error_type = "DEPENDENCY_DEGRADED"
