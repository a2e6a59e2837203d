import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Time,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from salon_booking.core.database import Base


class WeekDay(enum.Enum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class WorkingHours(Base):
    """Per-provider working hours for one weekday with break support."""

    __tablename__ = "provider_working_hours"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)

    # Schedule details
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Ordered list of {"start_time": "HH:MM", "end_time": "HH:MM"}
    breaks = Column(JSON, nullable=False, default=list)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("provider_id", "day_of_week", name="uq_working_hours_provider_day"),
    )

    def duration_minutes(self):
        """Calculate working duration in minutes, accounting for breaks."""
        total_minutes = _minutes(self.end_time) - _minutes(self.start_time)
        for period in self.breaks or []:
            start_hour, start_minute = map(int, period["start_time"].split(":")[:2])
            end_hour, end_minute = map(int, period["end_time"].split(":")[:2])
            total_minutes -= (end_hour * 60 + end_minute) - (start_hour * 60 + start_minute)
        return max(0, total_minutes)

    def __repr__(self):
        break_info = ""
        if self.breaks:
            break_info = ", breaks=" + ",".join(
                f"{b['start_time']}-{b['end_time']}" for b in self.breaks
            )
        weekday = WeekDay(self.day_of_week).name if self.day_of_week is not None else "?"

        return (
            f"<WorkingHours(id={self.id}, provider_id={self.provider_id}, "
            f"{weekday}: {self.start_time}-{self.end_time}"
            f"{break_info})>"
        )


def _minutes(value) -> int:
    return value.hour * 60 + value.minute
