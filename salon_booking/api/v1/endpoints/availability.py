from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from salon_booking.api.deps.services import get_scheduling_engine
from salon_booking.api.errors import SCHEDULING_ERRORS, to_http_exception
from salon_booking.schemas.scheduling import (
    AvailabilitySummary,
    BookingValidationRequest,
    BookingValidationResult,
    DayAvailability,
    NextAvailableSlot,
    TimeSlot,
)
from salon_booking.services.scheduling import SchedulingEngineService

router = APIRouter()


@router.post("/validate", response_model=BookingValidationResult)
async def validate_booking(
    request: BookingValidationRequest,
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
):
    """
    Check whether a booking can be made at the requested time.

    Business rule failures are returned with ``valid = false`` and a reason
    code; conflicts come with up to five alternative slots on the same day.
    """
    try:
        return await engine.validate_booking(
            request.provider_id,
            request.service_id,
            request.scheduled_start,
            request.scheduled_end,
            exclude_appointment_id=request.exclude_appointment_id,
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{provider_id}", response_model=List[DayAvailability])
async def get_provider_availability(
    provider_id: int,
    start_date: date = Query(..., description="First day of the range (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day of the range, inclusive"),
    service_id: Optional[int] = Query(None, description="Service to size slots by"),
    duration: Optional[int] = Query(None, gt=0, description="Slot length in minutes"),
    include_slots: bool = Query(False, description="Include per-day slot lists"),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
):
    """Per-day availability summary for a provider over a date range."""
    try:
        return await engine.get_availability(
            provider_id,
            start_date,
            end_date,
            service_id=service_id,
            duration_minutes=duration,
            include_slots=include_slots,
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{provider_id}/slots", response_model=List[TimeSlot])
async def get_time_slots(
    provider_id: int,
    date: date = Query(..., description="Day to list slots for (YYYY-MM-DD)"),
    service_id: Optional[int] = Query(None),
    duration: Optional[int] = Query(None, gt=0),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
):
    """Every candidate slot of the day, with the reason unavailable ones are blocked."""
    try:
        return await engine.list_slots(
            provider_id, date, service_id=service_id, duration_minutes=duration
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{provider_id}/next-available", response_model=NextAvailableSlot)
async def get_next_available_slot(
    provider_id: int,
    service_id: Optional[int] = Query(None),
    duration: Optional[int] = Query(None, gt=0),
    search_days: int = Query(30, ge=1, le=92),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
):
    try:
        return await engine.find_next_available(
            provider_id,
            service_id=service_id,
            duration_minutes=duration,
            search_days=search_days,
        )
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{provider_id}/summary", response_model=AvailabilitySummary)
async def get_availability_summary(
    provider_id: int,
    date: Optional[date] = Query(None, description="Defaults to today"),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
):
    try:
        return await engine.get_day_summary(provider_id, date)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)
