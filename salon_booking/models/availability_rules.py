import uuid
from datetime import date

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from salon_booking.core.database import Base


class AvailabilityRules(Base):
    """Booking constraints for a single provider.

    Every column is optional; a missing value means the constraint is not
    applied.
    """

    __tablename__ = "provider_availability_rules"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    provider_id = Column(
        Integer, ForeignKey("providers.id"), nullable=False, unique=True, index=True
    )

    advance_booking_days = Column(Integer, nullable=True)
    min_lead_time_hours = Column(Numeric(6, 2), nullable=True)
    max_bookings_per_day = Column(Integer, nullable=True)
    buffer_minutes = Column(Integer, nullable=True)

    # ISO dates ("YYYY-MM-DD")
    blackout_dates = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def blackout_date_set(self) -> set[date]:
        return {date.fromisoformat(value) for value in self.blackout_dates or []}

    def __repr__(self):
        return (
            f"<AvailabilityRules(provider_id={self.provider_id}, "
            f"advance={self.advance_booking_days}d, lead={self.min_lead_time_hours}h, "
            f"buffer={self.buffer_minutes}m, blackout={len(self.blackout_dates or [])})>"
        )
