from datetime import datetime, timedelta
from typing import Any, AsyncContextManager, Callable, Mapping, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.core.exceptions import (
    AppointmentNotFoundError,
    BookingRejectedError,
    InvalidSchedulingInputError,
    InvalidStatusTransitionError,
    ServiceNotFoundError,
)
from salon_booking.core.redis import redis_client
from salon_booking.models.appointment import (
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
)
from salon_booking.repositories.appointments import AppointmentStore
from salon_booking.schemas.appointment import AppointmentCreate
from salon_booking.services.scheduling import SchedulingEngineService
from salon_booking.utils.clock import Clock, utc_now


logger = logging.getLogger(__name__)

LockFactory = Callable[[int], AsyncContextManager[None]]

RESCHEDULABLE_STATUSES = [
    status.value for status in AppointmentStatus if status not in TERMINAL_STATUSES
]


class BookingService:
    """Write path for appointments.

    Validation and the write that follows it run under the provider's booking
    lock, so two requests for the same provider cannot both pass validation
    against the same free slot.
    """

    def __init__(
        self,
        engine: SchedulingEngineService,
        appointments: AppointmentStore,
        lock_factory: Optional[LockFactory] = None,
        clock: Optional[Clock] = None,
    ):
        self.engine = engine
        self.appointments = appointments
        self.lock_factory = lock_factory or redis_client.provider_lock
        self.clock = clock or engine.clock

    @classmethod
    def for_session(cls, db: AsyncSession, clock: Clock = utc_now) -> "BookingService":
        engine = SchedulingEngineService.for_session(db, clock=clock)
        return cls(engine, engine.appointments, clock=clock)

    async def book_appointment(self, booking: AppointmentCreate) -> Appointment:
        """Validate and insert a new appointment."""
        scheduled_end = await self._resolve_end(booking)

        async with self.lock_factory(booking.provider_id):
            result = await self.engine.validate_booking(
                booking.provider_id,
                booking.service_id,
                booking.scheduled_start,
                scheduled_end,
            )
            if not result.valid:
                logger.info(
                    f"Booking for provider {booking.provider_id} at "
                    f"{booking.scheduled_start} rejected: {result.reason.value}"
                )
                raise BookingRejectedError(result)

            appointment = Appointment(
                provider_id=booking.provider_id,
                customer_id=booking.customer_id,
                service_id=booking.service_id,
                scheduled_start=booking.scheduled_start,
                scheduled_end=scheduled_end,
                status=booking.status.value,
                status_changed_at=self.clock(),
                reminder_sent=False,
                notes=booking.notes,
                extra_metadata=booking.metadata,
            )
            appointment = await self.appointments.add(appointment)

        logger.info(
            f"Booked appointment {appointment.id} for provider {booking.provider_id} "
            f"at {booking.scheduled_start}"
        )
        return appointment

    async def reschedule_appointment(
        self,
        appointment_id: int,
        new_start: datetime,
        new_end: Optional[datetime] = None,
    ) -> Appointment:
        """Move an appointment, keeping its duration unless a new end is given.

        The appointment's own current interval never conflicts with the move,
        and a pending reminder is re-armed for the new time.
        """
        appointment = await self.get_appointment(appointment_id)
        if appointment.is_terminal:
            raise InvalidStatusTransitionError(appointment.status, "rescheduled")
        if appointment.provider_id is None:
            raise InvalidSchedulingInputError(
                f"Appointment {appointment_id} has no assigned provider"
            )

        if new_end is None:
            new_end = new_start + (appointment.scheduled_end - appointment.scheduled_start)

        async with self.lock_factory(appointment.provider_id):
            result = await self.engine.validate_booking(
                appointment.provider_id,
                appointment.service_id,
                new_start,
                new_end,
                exclude_appointment_id=appointment.id,
            )
            if not result.valid:
                logger.info(
                    f"Reschedule of appointment {appointment_id} to {new_start} "
                    f"rejected: {result.reason.value}"
                )
                raise BookingRejectedError(result)

            patch = {
                "scheduled_start": new_start,
                "scheduled_end": new_end,
                "reminder_sent": False,
                "reminder_sent_at": None,
            }
            updated = await self.appointments.update(
                appointment.id, patch, expected={"status": RESCHEDULABLE_STATUSES}
            )
            if not updated:
                # Moved to a terminal status while we were validating
                raise InvalidStatusTransitionError(appointment.status, "rescheduled")

        self._apply(appointment, patch)
        logger.info(f"Rescheduled appointment {appointment_id} to {new_start}")
        return appointment

    async def change_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        admin_override: bool = False,
    ) -> Appointment:
        """Move an appointment through its lifecycle.

        Terminal statuses only change with ``admin_override``.
        """
        appointment = await self.get_appointment(appointment_id)
        current = AppointmentStatus(appointment.status)

        if not admin_override and not appointment.can_transition_to(new_status):
            raise InvalidStatusTransitionError(current.value, new_status.value)

        patch = {
            "status": new_status.value,
            "previous_status": current.value,
            "status_changed_at": self.clock(),
        }
        updated = await self.appointments.update(
            appointment.id, patch, expected={"status": current.value}
        )
        if not updated:
            raise InvalidStatusTransitionError(current.value, new_status.value)

        self._apply(appointment, patch)
        logger.info(
            f"Appointment {appointment_id} moved from {current.value} to "
            f"{new_status.value}" + (" (admin override)" if admin_override else "")
        )
        return appointment

    async def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def _resolve_end(self, booking: AppointmentCreate) -> datetime:
        if booking.scheduled_end is not None:
            return booking.scheduled_end
        if booking.duration_minutes is not None:
            return booking.scheduled_start + timedelta(minutes=booking.duration_minutes)

        duration = self.engine.default_duration_minutes
        if booking.service_id is not None:
            service = await self.engine.directory.get_service(booking.service_id)
            if service is None:
                raise ServiceNotFoundError(booking.service_id)
            duration = service.booking_duration(duration)
        return booking.scheduled_start + timedelta(minutes=duration)

    @staticmethod
    def _apply(appointment: Appointment, patch: Mapping[str, Any]) -> None:
        for column, value in patch.items():
            setattr(appointment, column, value)
