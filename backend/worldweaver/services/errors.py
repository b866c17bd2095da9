"""
Typed errors raised by the service layer.

Routes let these propagate; the exception handler installed in
``worldweaver.main`` renders them as ``{"error": {"code", "message", "details"}}``
with the matching HTTP status.
"""
from typing import Any

USER_MESSAGES = {
    "NOT_FOUND": "The requested item was not found.",
    "ACCESS_DENIED": "You do not have permission to perform this action.",
    "VALIDATION_ERROR": "The provided data is invalid.",
    "CONFLICT": "This item conflicts with an existing one.",
    "RATE_LIMITED": "Too many requests. Please try again later.",
    "DATABASE_ERROR": "A database error occurred. Please try again.",
    "AI_SERVICE_ERROR": "The AI service could not complete the request. Please try again.",
}
DEFAULT_USER_MESSAGE = "An unexpected error occurred. Please try again."


class ServiceError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def user_message(self) -> str:
        return USER_MESSAGES.get(self.code, DEFAULT_USER_MESSAGE)

    def to_response(self, include_details: bool = False) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if include_details and self.details:
            error["details"] = self.details
        return {"error": error}


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, message: str | None = None):
        if message is None:
            message = (
                f"{resource} with ID {resource_id} not found"
                if resource_id is not None
                else f"{resource} not found"
            )
        super().__init__(message, {"resource": resource, "id": str(resource_id) if resource_id else None})
        self.resource = resource


class AccessDeniedError(ServiceError):
    code = "ACCESS_DENIED"
    status_code = 403

    def __init__(self, resource: str, action: str, user_id: Any = None):
        super().__init__(
            f"Access denied to {action} {resource}",
            {"resource": resource, "action": action, "user_id": str(user_id) if user_id else None},
        )


class ValidationError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field: str, reason: str, value: Any = None):
        super().__init__(
            f"Validation failed for {field}: {reason}",
            {"field": field, "reason": reason, "value": value},
        )
        self.field = field


class ConflictError(ServiceError):
    code = "CONFLICT"
    status_code = 409


class RateLimitedError(ServiceError):
    code = "RATE_LIMITED"
    status_code = 429


class DatabaseError(ServiceError):
    code = "DATABASE_ERROR"
    status_code = 500

    def __init__(self, operation: str, cause: Exception | None = None):
        super().__init__(
            f"Database error during {operation}",
            {"operation": operation, "cause": str(cause) if cause else None},
        )


class AIServiceError(ServiceError):
    code = "AI_SERVICE_ERROR"
    status_code = 502
