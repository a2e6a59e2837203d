from datetime import date, datetime, time, tzinfo
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from enum import Enum


class DayStatus(str, Enum):
    AVAILABLE = "available"
    PARTIALLY_BOOKED = "partially_booked"
    FULLY_BOOKED = "fully_booked"
    UNAVAILABLE = "unavailable"


class SlotUnavailableReason(str, Enum):
    PAST_TIME_SLOT = "past_time_slot"
    BREAK_TIME = "break_time"
    ALREADY_BOOKED = "already_booked"
    BUFFER_REQUIRED = "buffer_required"


class RejectionReason(str, Enum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    SERVICE_NOT_FOUND = "service_not_found"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    ALREADY_BOOKED = "already_booked"
    PROVIDER_UNAVAILABLE_DATE = "provider_unavailable_date"
    TOO_FAR_IN_ADVANCE = "too_far_in_advance"
    INSUFFICIENT_LEAD_TIME = "insufficient_lead_time"
    DAILY_LIMIT_REACHED = "daily_limit_reached"


class WorkingHoursSource(str, Enum):
    PROVIDER = "provider"
    BUSINESS = "business"
    DEFAULT = "default"


class BreakPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: time
    end_time: time


class WorkingWindow(BaseModel):
    """Effective open/close window of a provider for one calendar day."""

    model_config = ConfigDict(frozen=True)

    start_time: time
    end_time: time
    breaks: List[BreakPeriod] = Field(default_factory=list)
    source: WorkingHoursSource

    def bounds(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        return (
            datetime.combine(day, self.start_time, tzinfo=tz),
            datetime.combine(day, self.end_time, tzinfo=tz),
        )

    def break_intervals(self, day: date, tz: tzinfo) -> list[tuple[datetime, datetime]]:
        return [
            (
                datetime.combine(day, period.start_time, tzinfo=tz),
                datetime.combine(day, period.end_time, tzinfo=tz),
            )
            for period in self.breaks
        ]


class BookingConstraints(BaseModel):
    """Availability rules with every missing value resolved to unconstrained."""

    model_config = ConfigDict(frozen=True)

    provider_id: int
    advance_booking_days: Optional[int] = None
    min_lead_time_hours: float = 0
    max_bookings_per_day: Optional[int] = None
    buffer_minutes: int = 0
    blackout_dates: frozenset[date] = Field(default_factory=frozenset)
    has_rules: bool = False

    def is_blackout(self, day: date) -> bool:
        return day in self.blackout_dates


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: str
    end_time: str
    start_datetime: datetime
    end_datetime: datetime
    available: bool
    reason: Optional[SlotUnavailableReason] = None
    price: Optional[float] = None


class DayAvailability(BaseModel):
    date: date
    status: DayStatus
    total_slots: int
    available_slots: int
    time_slots: Optional[List[TimeSlot]] = None


class AppointmentConflict(BaseModel):
    appointment_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    status: str


class BookingValidationRequest(BaseModel):
    provider_id: int
    service_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    exclude_appointment_id: Optional[int] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self


class BookingValidationResult(BaseModel):
    valid: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
    conflicts: List[AppointmentConflict] = Field(default_factory=list)
    suggestions: List[TimeSlot] = Field(default_factory=list)

    @classmethod
    def accepted(cls) -> "BookingValidationResult":
        return cls(valid=True)

    @classmethod
    def rejected(
        cls, reason: RejectionReason, message: str, **extra
    ) -> "BookingValidationResult":
        return cls(valid=False, reason=reason, message=message, **extra)


class NextAvailableSlot(BaseModel):
    available: bool
    slot: Optional[TimeSlot] = None
    reason: Optional[str] = None


class AvailabilitySummary(BaseModel):
    provider_id: int
    date: date
    is_working: bool
    total_slots: int
    available_slots: int
    booked_slots: int
    utilization_rate: float
    next_available: Optional[TimeSlot] = None


class SchedulerRunSummary(BaseModel):
    """Outcome of one reminder or no-show sweep."""

    job: str
    ran_at: datetime
    found: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    skipped_reason: Optional[str] = None
