"""Failure kinds raised by the booking services.

Routes never build HTTP errors for these themselves; the handler registered in
``app.main`` maps each kind to its status code and a ``{"detail": ...}`` body.
"""
from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def public_detail(self) -> str:
        return self.detail


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthError(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid or expired token"


class ForbiddenError(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Slot already booked"


class UpstreamError(BookingError):
    """Store or gateway failure. The real cause is logged, never returned."""

    @property
    def public_detail(self) -> str:
        return BookingError.default_detail
