from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from salon_booking.models.working_hours import WeekDay
from salon_booking.schemas.scheduling import BreakPeriod


class WorkingHoursBase(BaseModel):
    """Weekly working window for one weekday (0 = Monday)."""
    day_of_week: WeekDay = Field(..., description="Weekday, 0 = Monday ... 6 = Sunday")
    start_time: time
    end_time: time
    breaks: List[BreakPeriod] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        for period in self.breaks:
            if period.end_time <= period.start_time:
                raise ValueError("Break end time must be after break start time")
            if period.start_time < self.start_time or period.end_time > self.end_time:
                raise ValueError("Breaks must fall inside the working window")
        return self


class WorkingHoursCreate(WorkingHoursBase):
    pass


class WorkingHoursResponse(WorkingHoursBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: Optional[UUID] = None
    provider_id: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WeeklyScheduleUpdate(BaseModel):
    days: List[WorkingHoursCreate] = Field(..., min_length=1)

    @field_validator("days")
    @classmethod
    def unique_weekdays(cls, v):
        weekdays = [day.day_of_week for day in v]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError("Each weekday may appear only once")
        return v


class AvailabilityRulesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""
    advance_booking_days: Optional[int] = Field(None, ge=0)
    min_lead_time_hours: Optional[float] = Field(None, ge=0)
    max_bookings_per_day: Optional[int] = Field(None, ge=1)
    buffer_minutes: Optional[int] = Field(None, ge=0)
    blackout_dates: Optional[List[date]] = None


class AvailabilityRulesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider_id: int
    advance_booking_days: Optional[int] = None
    min_lead_time_hours: Optional[float] = None
    max_bookings_per_day: Optional[int] = None
    buffer_minutes: Optional[int] = None
    blackout_dates: List[date] = Field(default_factory=list)


class BlackoutDatesUpdate(BaseModel):
    dates: List[date] = Field(..., min_length=1)


class CompleteSchedule(BaseModel):
    provider_id: int
    working_hours: List[WorkingHoursResponse] = Field(default_factory=list)
    availability_rules: Optional[AvailabilityRulesResponse] = None
