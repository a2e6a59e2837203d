from fastapi import APIRouter, Depends, status

from salon_booking.api.deps.services import get_booking_service
from salon_booking.api.errors import SCHEDULING_ERRORS, to_http_exception
from salon_booking.schemas.appointment import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusTransition,
)
from salon_booking.services.booking import BookingService

router = APIRouter()


@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Create new appointment after availability validation.

    A rejected booking returns 409 with the full validation result, including
    alternative slots when the time was taken.
    """
    try:
        return await service.book_appointment(appointment_data)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    service: BookingService = Depends(get_booking_service),
):
    try:
        return await service.get_appointment(appointment_id)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    reschedule_data: AppointmentReschedule,
    service: BookingService = Depends(get_booking_service),
):
    """Move an appointment; the current booking never conflicts with itself."""
    try:
        return await service.reschedule_appointment(
            appointment_id,
            reschedule_data.new_scheduled_start,
            reschedule_data.new_scheduled_end,
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/status", response_model=AppointmentResponse)
async def transition_appointment_status(
    appointment_id: int,
    transition: AppointmentStatusTransition,
    service: BookingService = Depends(get_booking_service),
):
    """Transition appointment status with validation."""
    try:
        return await service.change_status(
            appointment_id, transition.new_status, transition.admin_override
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)
