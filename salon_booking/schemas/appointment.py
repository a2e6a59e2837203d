from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, model_validator

# Import enums from the model to avoid duplication
from salon_booking.models.appointment import AppointmentStatus

BOOKABLE_INITIAL_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.BOOKED)


class AppointmentCreate(BaseModel):
    """New booking request.

    The end comes from ``scheduled_end`` when given, otherwise from
    ``duration_minutes``, otherwise from the service duration.
    """

    provider_id: int
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    status: AppointmentStatus = AppointmentStatus.BOOKED
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def validate_booking_window(self):
        if self.scheduled_end is not None and self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        if self.status not in BOOKABLE_INITIAL_STATUSES:
            raise ValueError("New appointments must start as 'pending' or 'booked'")
        return self


class AppointmentReschedule(BaseModel):
    new_scheduled_start: datetime
    new_scheduled_end: Optional[datetime] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_new_window(self):
        if (
            self.new_scheduled_end is not None
            and self.new_scheduled_end <= self.new_scheduled_start
        ):
            raise ValueError("new_scheduled_end must be after new_scheduled_start")
        return self


class AppointmentStatusTransition(BaseModel):
    new_status: AppointmentStatus
    admin_override: bool = False
    notes: Optional[str] = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    uuid: Optional[UUID] = None
    provider_id: Optional[int] = None
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    status: AppointmentStatus
    previous_status: Optional[AppointmentStatus] = None
    status_changed_at: Optional[datetime] = None
    reminder_sent: bool = False
    reminder_sent_at: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_metadata")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
