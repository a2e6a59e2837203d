from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from salon_booking.core.database import Base
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional


class AppointmentStatus(enum.Enum):
    PENDING = "pending"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses the scheduler treats as "still waiting for the customer"
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.BOOKED,
    AppointmentStatus.CONFIRMED,
)

TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)

# Appointments in these statuses never block a slot
NON_BLOCKING_STATUSES = (
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.BOOKED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.BOOKED: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.IN_PROGRESS: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.COMPLETED: [],  # Final state
    AppointmentStatus.CANCELLED: [],  # Final state
    AppointmentStatus.NO_SHOW: [],  # Final state
}


class Appointment(Base):
    """Appointment model with status transitions and reminder tracking."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )

    # Participants; provider_id is the single source of truth for assignment
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)
    customer_id = Column(Integer, nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)

    # Scheduling details
    scheduled_start = Column(DateTime(timezone=True), nullable=False, index=True)
    scheduled_end = Column(DateTime(timezone=True), nullable=False, index=True)

    # Status management
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.BOOKED.value, index=True
    )
    previous_status = Column(String(20), nullable=True)
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())

    # Reminders
    reminder_sent = Column(Boolean, default=False, nullable=False)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    # Free-form data; "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)
    notes = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "scheduled_end > scheduled_start",
            name="check_end_after_start"
        ),
        Index("ix_appointments_provider_window", "provider_id", "scheduled_start", "scheduled_end"),
        Index("ix_appointments_reminder_due", "reminder_sent", "scheduled_start"),
    )

    provider = relationship("Provider")
    service = relationship("Service")

    def can_transition_to(self, new_status: AppointmentStatus) -> bool:
        """Check if appointment can transition to the new status."""
        current = AppointmentStatus(self.status)
        return new_status in ALLOWED_TRANSITIONS.get(current, [])

    def transition_to(
        self,
        new_status: AppointmentStatus,
        admin_override: bool = False,
        at: Optional[datetime] = None,
    ) -> bool:
        """Transition appointment to new status with validation.

        Terminal statuses only change with ``admin_override``.
        """
        if not admin_override and not self.can_transition_to(new_status):
            return False

        self.previous_status = self.status
        self.status = new_status.value
        self.status_changed_at = at or datetime.now(timezone.utc)
        return True

    @property
    def is_terminal(self) -> bool:
        return AppointmentStatus(self.status) in TERMINAL_STATUSES

    @property
    def blocks_slot(self) -> bool:
        """Whether this appointment occupies its provider's time."""
        return AppointmentStatus(self.status) not in NON_BLOCKING_STATUSES

    @property
    def duration_minutes(self) -> int:
        return int((self.scheduled_end - self.scheduled_start).total_seconds() // 60)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"start='{self.scheduled_start}', end='{self.scheduled_end}', "
            f"provider_id={self.provider_id})>"
        )
