import uuid
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from salon_booking.core.database import Base
from salon_booking.utils.validation import WEEKDAY_NAMES


class Business(Base):
    """Salon owning providers and services, with generic operating hours."""

    __tablename__ = "businesses"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    name = Column(String(255), nullable=False)

    timezone = Column(String(50), nullable=False, default="UTC")

    # { "monday": {"is_open": true, "start_time": "09:00", "end_time": "18:00",
    #              "breaks": [{"start_time": "13:00", "end_time": "14:00"}]}, ... }
    operating_hours = Column(JSON, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    services = relationship("Service", back_populates="business")
    providers = relationship("Provider", back_populates="business")

    def hours_for_weekday(self, day_of_week: int) -> Optional[dict[str, Any]]:
        """Return the operating-hours entry for a weekday (Monday = 0)."""
        if not self.operating_hours:
            return None
        return self.operating_hours.get(WEEKDAY_NAMES[day_of_week])

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}')>"
