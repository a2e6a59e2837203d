from typing import List

from fastapi import APIRouter, Depends, Path, status

from salon_booking.api.deps.services import get_provider_schedule_service
from salon_booking.api.errors import SCHEDULING_ERRORS, to_http_exception
from salon_booking.schemas.provider_schedule import (
    AvailabilityRulesResponse,
    AvailabilityRulesUpdate,
    BlackoutDatesUpdate,
    CompleteSchedule,
    WeeklyScheduleUpdate,
    WorkingHoursCreate,
    WorkingHoursResponse,
)
from salon_booking.services.provider_schedule import ProviderScheduleService

router = APIRouter()


@router.get("/{provider_id}/schedule", response_model=CompleteSchedule)
async def get_provider_schedule(
    provider_id: int,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    """Working hours and availability rules of a provider."""
    try:
        return await service.get_complete_schedule(provider_id)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.post("/{provider_id}/working-hours", response_model=WorkingHoursResponse)
async def set_working_hours(
    provider_id: int,
    hours: WorkingHoursCreate,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    """Create or replace the working window for one weekday."""
    try:
        return await service.set_working_hours(provider_id, hours)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.put("/{provider_id}/weekly-schedule", response_model=List[WorkingHoursResponse])
async def set_weekly_schedule(
    provider_id: int,
    schedule: WeeklyScheduleUpdate,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    try:
        return await service.set_weekly_schedule(provider_id, schedule.days)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.delete(
    "/{provider_id}/working-hours/{day_of_week}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_working_hours(
    provider_id: int,
    day_of_week: int = Path(..., ge=0, le=6),
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    """Deactivate a weekday; bookings then follow the business hours."""
    try:
        await service.remove_working_hours(provider_id, day_of_week)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.put("/{provider_id}/availability-rules", response_model=AvailabilityRulesResponse)
async def set_availability_rules(
    provider_id: int,
    rules: AvailabilityRulesUpdate,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    try:
        return await service.set_availability_rules(provider_id, rules)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.post("/{provider_id}/blackout-dates", response_model=AvailabilityRulesResponse)
async def add_blackout_dates(
    provider_id: int,
    update: BlackoutDatesUpdate,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    try:
        return await service.add_blackout_dates(provider_id, update.dates)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.delete("/{provider_id}/blackout-dates", response_model=AvailabilityRulesResponse)
async def remove_blackout_dates(
    provider_id: int,
    update: BlackoutDatesUpdate,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    try:
        return await service.remove_blackout_dates(provider_id, update.dates)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)


@router.post(
    "/{provider_id}/setup/standard",
    response_model=AvailabilityRulesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def setup_standard_schedule(
    provider_id: int,
    service: ProviderScheduleService = Depends(get_provider_schedule_service),
):
    """Apply the default rules; working hours stay empty so business hours apply."""
    try:
        return await service.set_default_rules(provider_id)
    except SCHEDULING_ERRORS as e:
        raise to_http_exception(e)
