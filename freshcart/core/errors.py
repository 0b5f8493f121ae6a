# freshcart/core/errors.py
"""
Domain errors for the order lifecycle.

Each error is an HTTPException with a fixed status code, so services raise
them exactly where they used to raise HTTPException and FastAPI renders them
without extra handlers.
"""
from typing import Any

from fastapi import HTTPException, status


class DomainError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: Any = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail if detail is not None else self.default_detail,
        )


class EligibilityDenied(DomainError):
    """Point outside the service area, or location unavailable."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "We do not deliver to this location yet"


class SlotUnavailable(DomainError):
    """Chosen delivery slot is full, inactive or already started."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Selected delivery slot is no longer available"


class IllegalTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid status transition"


class ValidationError(DomainError):
    status_code = 422
    default_detail = "Invalid input"


class PartialWriteFailure(DomainError):
    """
    A multi-step write failed partway and was rolled back.
    The whole operation is safe to retry.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Could not save changes, please retry"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed"


class Conflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
