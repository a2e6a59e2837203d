from fastapi import HTTPException, status

from salon_booking.core.exceptions import (
    AppointmentNotFoundError,
    AvailabilityRulesNotFoundError,
    BookingRejectedError,
    InvalidSchedulingInputError,
    InvalidStatusTransitionError,
    ProviderNotFoundError,
    SchedulingError,
    ServiceNotFoundError,
    SlotLockUnavailableError,
)
from salon_booking.utils.validation import ScheduleValidationError

NOT_FOUND_ERRORS = (
    ProviderNotFoundError,
    ServiceNotFoundError,
    AppointmentNotFoundError,
    AvailabilityRulesNotFoundError,
)


SCHEDULING_ERRORS = (SchedulingError, ScheduleValidationError)


def to_http_exception(error: Exception) -> HTTPException:
    """Map a scheduling error to the matching HTTP response."""
    if isinstance(error, BookingRejectedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=error.result.model_dump(mode="json"),
        )
    if isinstance(error, InvalidStatusTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, SlotLockUnavailableError):
        return HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(error))
    if isinstance(error, NOT_FOUND_ERRORS):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ScheduleValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.errors
        )
    if isinstance(error, InvalidSchedulingInputError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error)
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
