import pytest

from worldweaver.services.errors import (
    AccessDeniedError,
    AIServiceError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    RateLimitedError,
    ServiceError,
    ValidationError,
)


def test_not_found_message():
    assert NotFoundError("World", "w-1").message == "World with ID w-1 not found"
    assert NotFoundError("Invite").message == "Invite not found"
    assert NotFoundError("Entity", message="gone").message == "gone"


def test_response_hides_details_by_default():
    error = ValidationError("strength", "must be between 1 and 10", 11)

    assert error.to_response() == {
        "error": {"code": "VALIDATION_ERROR", "message": "Validation failed for strength: must be between 1 and 10"}
    }
    details = error.to_response(include_details=True)["error"]["details"]
    assert details == {"field": "strength", "reason": "must be between 1 and 10", "value": 11}


@pytest.mark.parametrize(
    "error, status_code, code",
    [
        (NotFoundError("World"), 404, "NOT_FOUND"),
        (AccessDeniedError("world", "delete"), 403, "ACCESS_DENIED"),
        (ValidationError("name", "required"), 400, "VALIDATION_ERROR"),
        (ConflictError("taken"), 409, "CONFLICT"),
        (RateLimitedError("slow down"), 429, "RATE_LIMITED"),
        (DatabaseError("insert"), 500, "DATABASE_ERROR"),
        (AIServiceError("model down"), 502, "AI_SERVICE_ERROR"),
        (ServiceError("boom"), 500, "INTERNAL_ERROR"),
    ],
)
def test_status_codes(error, status_code, code):
    assert error.status_code == status_code
    assert error.code == code
    assert error.user_message()


def test_access_denied_message():
    error = AccessDeniedError("world", "delete world", "u-1")
    assert error.message == "Access denied to delete world world"
    assert error.details["user_id"] == "u-1"
