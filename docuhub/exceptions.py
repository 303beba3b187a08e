"""Custom exception hierarchy for DocuHub."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    NOT_FOUND = "NOT_FOUND"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"

    # Auth & rate limiting
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # Source control / AI providers
    UPSTREAM_ERROR = "UPSTREAM_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class DocuHubException(Exception):
    """
    Base exception for all DocuHub errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON error body."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(DocuHubException):
    """Entity does not exist, or does not belong to the referenced parent."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} not found: {resource_id}",
            ErrorCode.NOT_FOUND,
            status_code=404,
            details={"resource": resource, "id": str(resource_id)}
        )


class VersionNotFoundError(DocuHubException):
    """Version id does not exist for the given document or spec."""

    def __init__(self, version_id: Any, parent_id: Any = None):
        details = {"version_id": str(version_id)}
        if parent_id is not None:
            details["parent_id"] = str(parent_id)
        super().__init__(
            f"Version not found: {version_id}",
            ErrorCode.VERSION_NOT_FOUND,
            status_code=404,
            details=details
        )


class ValidationError(DocuHubException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class ConflictError(DocuHubException):
    """The request collides with existing state (duplicate code, existing operation)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class PreconditionFailedError(DocuHubException):
    """The entity is not in a state that allows the requested action."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.PRECONDITION_FAILED,
            status_code=412,
            details=details
        )


class StoredCredentialError(PreconditionFailedError):
    """A stored provider token can no longer be decrypted (the encryption key changed)."""

    def __init__(self, message: str = "Stored provider token can no longer be decrypted; reconnect the provider"):
        super().__init__(message, details={"action": "reconnect"})


class AuthenticationError(DocuHubException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(DocuHubException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class UpstreamError(DocuHubException):
    """A source-control or AI provider call failed. Local state is untouched."""

    def __init__(self, provider: str, message: str, upstream_status: Optional[int] = None):
        details: Dict[str, Any] = {"provider": provider}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            f"{provider}: {message}",
            ErrorCode.UPSTREAM_ERROR,
            status_code=502,
            details=details
        )
