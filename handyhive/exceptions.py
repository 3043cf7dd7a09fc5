"""
Errors raised by the booking lifecycle.

Every error here is recoverable and user-facing: the caller shows the message
and lets the user retry or navigate away. Each carries the HTTP status and a
stable ``code`` that the API exception handler renders.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class BookingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Unauthorized(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"


class InvalidTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class KycNotApproved(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "kyc_not_approved"


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ReasonRequired(BookingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "reason_required"


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )
