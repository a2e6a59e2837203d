from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Sequence
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.core.config import settings
from salon_booking.core.exceptions import (
    InvalidSchedulingInputError,
    ServiceNotFoundError,
)
from salon_booking.models.appointment import Appointment
from salon_booking.repositories.appointments import (
    AppointmentRepository,
    AppointmentStore,
)
from salon_booking.repositories.providers import ProviderDirectory, ProviderRepository
from salon_booking.repositories.schedules import (
    AvailabilityRulesRepository,
    WorkingHoursRepository,
)
from salon_booking.schemas.scheduling import (
    AppointmentConflict,
    AvailabilitySummary,
    BookingConstraints,
    BookingValidationResult,
    DayAvailability,
    DayStatus,
    NextAvailableSlot,
    RejectionReason,
    SlotUnavailableReason,
    TimeSlot,
    WorkingWindow,
)
from salon_booking.services.availability_rules import AvailabilityRulesProvider
from salon_booking.services.conflicts import (
    find_conflicts,
    intervals_overlap,
    is_in_break,
    overlaps,
)
from salon_booking.services.slots import generate_slots
from salon_booking.services.working_hours import WorkingHoursResolver
from salon_booking.utils.clock import Clock, load_timezone, utc_now


logger = logging.getLogger(__name__)


class SchedulingEngineService:
    """Availability and booking-conflict engine for salon providers.

    Read-only: it decides whether a booking is admissible but never writes.
    The write boundary lives in BookingService.
    """

    def __init__(
        self,
        directory: ProviderDirectory,
        appointments: AppointmentStore,
        resolver: WorkingHoursResolver,
        rules_provider: AvailabilityRulesProvider,
        tz: Optional[tzinfo] = None,
        clock: Clock = utc_now,
        granularity_minutes: Optional[int] = None,
        default_duration_minutes: Optional[int] = None,
        max_alternatives: Optional[int] = None,
        max_range_days: Optional[int] = None,
    ):
        self.directory = directory
        self.appointments = appointments
        self.resolver = resolver
        self.rules_provider = rules_provider
        self.tz = tz or load_timezone(settings.BOOKING_TIMEZONE)
        self.clock = clock
        self.granularity_minutes = granularity_minutes or settings.SLOT_GRANULARITY_MINUTES
        self.default_duration_minutes = (
            default_duration_minutes or settings.DEFAULT_SERVICE_DURATION_MINUTES
        )
        self.max_alternatives = (
            settings.MAX_ALTERNATIVE_SLOTS if max_alternatives is None else max_alternatives
        )
        self.max_range_days = max_range_days or settings.MAX_AVAILABILITY_RANGE_DAYS

    @classmethod
    def for_session(cls, db: AsyncSession, clock: Clock = utc_now) -> "SchedulingEngineService":
        """Wire the engine to SQLAlchemy-backed stores sharing one session."""
        directory = ProviderRepository(db)
        return cls(
            directory=directory,
            appointments=AppointmentRepository(db),
            resolver=WorkingHoursResolver.with_default_chain(
                WorkingHoursRepository(db),
                directory,
                settings.DEFAULT_WORKDAY_START,
                settings.DEFAULT_WORKDAY_END,
            ),
            rules_provider=AvailabilityRulesProvider(
                AvailabilityRulesRepository(db), settings.HOLIDAY_COUNTRY_CODE
            ),
            clock=clock,
        )

    async def list_slots(
        self,
        provider_id: int,
        day: date,
        service_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
    ) -> list[TimeSlot]:
        """Every candidate slot of the day, annotated with availability.

        A blackout date yields no slots at all.
        """
        duration, price = await self._resolve_service(service_id, duration_minutes)

        constraints = await self.rules_provider.get_constraints(provider_id, day, day)
        if constraints.is_blackout(day):
            logger.info(f"Provider {provider_id} is blacked out on {day}")
            return []

        window = await self.resolver.resolve(provider_id, day)
        appointments = await self._load_window_appointments(
            provider_id, day, window, constraints
        )

        return self._build_slots(
            day, window, constraints, appointments, duration, price, self.clock()
        )

    async def get_availability(
        self,
        provider_id: int,
        start_date: date,
        end_date: date,
        service_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        include_slots: bool = False,
    ) -> list[DayAvailability]:
        """Per-day availability summary for an inclusive date range."""
        if end_date < start_date:
            raise InvalidSchedulingInputError("end_date must not be before start_date")
        total_days = (end_date - start_date).days + 1
        if total_days > self.max_range_days:
            raise InvalidSchedulingInputError(
                f"Date range may span at most {self.max_range_days} days"
            )

        duration, price = await self._resolve_service(service_id, duration_minutes)
        constraints = await self.rules_provider.get_constraints(
            provider_id, start_date, end_date
        )
        padding = timedelta(minutes=constraints.buffer_minutes)
        appointments = await self.appointments.find_overlapping(
            provider_id,
            datetime.combine(start_date, time.min, tzinfo=self.tz) - padding,
            datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=self.tz) + padding,
        )
        now = self.clock()

        logger.info(
            f"Computing availability for provider {provider_id} from {start_date} "
            f"to {end_date} ({total_days} days, {len(appointments)} appointments)"
        )

        days = []
        for offset in range(total_days):
            day = start_date + timedelta(days=offset)
            if constraints.is_blackout(day):
                days.append(
                    DayAvailability(
                        date=day,
                        status=DayStatus.UNAVAILABLE,
                        total_slots=0,
                        available_slots=0,
                        time_slots=[] if include_slots else None,
                    )
                )
                continue

            window = await self.resolver.resolve(provider_id, day)
            window_start, window_end = window.bounds(day, self.tz)
            day_appointments = [
                appointment
                for appointment in appointments
                if intervals_overlap(
                    window_start - padding,
                    window_end + padding,
                    appointment.scheduled_start,
                    appointment.scheduled_end,
                )
            ]
            slots = self._build_slots(
                day, window, constraints, day_appointments, duration, price, now
            )
            days.append(self._summarize_day(day, slots, include_slots))

        return days

    async def find_next_available(
        self,
        provider_id: int,
        service_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        from_date: Optional[date] = None,
        search_days: int = 30,
    ) -> NextAvailableSlot:
        """First free slot from ``from_date`` (default today) within ``search_days``."""
        if search_days < 1:
            raise InvalidSchedulingInputError("search_days must be at least 1")
        start_date = from_date or self.clock().astimezone(self.tz).date()
        days_searched = min(search_days, self.max_range_days)
        end_date = start_date + timedelta(days=days_searched - 1)

        days = await self.get_availability(
            provider_id,
            start_date,
            end_date,
            service_id=service_id,
            duration_minutes=duration_minutes,
            include_slots=True,
        )
        for day in days:
            if day.available_slots == 0:
                continue
            slot = next(slot for slot in day.time_slots if slot.available)
            return NextAvailableSlot(available=True, slot=slot)

        return NextAvailableSlot(
            available=False,
            reason=f"No available slots found in the next {days_searched} days",
        )

    async def get_day_summary(
        self, provider_id: int, day: Optional[date] = None
    ) -> AvailabilitySummary:
        day = day or self.clock().astimezone(self.tz).date()
        (availability,) = await self.get_availability(provider_id, day, day)

        booked = availability.total_slots - availability.available_slots
        utilization = (
            booked / availability.total_slots * 100 if availability.total_slots else 0.0
        )

        next_available = None
        if availability.available_slots == 0:
            result = await self.find_next_available(
                provider_id, from_date=day + timedelta(days=1)
            )
            next_available = result.slot

        return AvailabilitySummary(
            provider_id=provider_id,
            date=day,
            is_working=availability.status != DayStatus.UNAVAILABLE,
            total_slots=availability.total_slots,
            available_slots=availability.available_slots,
            booked_slots=booked,
            utilization_rate=round(utilization, 2),
            next_available=next_available,
        )

    async def validate_booking(
        self,
        provider_id: int,
        service_id: Optional[int],
        scheduled_start: datetime,
        scheduled_end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> BookingValidationResult:
        """Decide whether a booking request is admissible.

        Checks run in a fixed order and stop at the first failure. Business
        rule failures come back as a rejected result, never as exceptions.
        """
        self._require_aware(scheduled_start, "scheduled_start")
        self._require_aware(scheduled_end, "scheduled_end")
        if scheduled_end <= scheduled_start:
            raise InvalidSchedulingInputError("scheduled_end must be after scheduled_start")

        if not await self.directory.is_active(provider_id):
            return BookingValidationResult.rejected(
                RejectionReason.PROVIDER_UNAVAILABLE,
                "Provider not found or inactive",
            )

        service = None
        if service_id is not None:
            service = await self.directory.get_service(service_id)
            if service is None:
                return BookingValidationResult.rejected(
                    RejectionReason.SERVICE_NOT_FOUND, f"Service {service_id} not found"
                )

        day = scheduled_start.astimezone(self.tz).date()
        window = await self.resolver.resolve(provider_id, day)
        window_start, window_end = window.bounds(day, self.tz)
        if scheduled_start < window_start or scheduled_end > window_end:
            return BookingValidationResult.rejected(
                RejectionReason.OUTSIDE_WORKING_HOURS,
                "Time is outside working hours "
                f"({window.start_time:%H:%M}-{window.end_time:%H:%M})",
            )

        constraints = await self.rules_provider.get_constraints(provider_id, day, day)
        appointments = await self._load_window_appointments(
            provider_id, day, window, constraints, exclude_appointment_id
        )
        conflicts = find_conflicts(
            scheduled_start, scheduled_end, appointments, constraints.buffer_minutes
        )
        now = self.clock()

        if conflicts:
            logger.info(
                f"Booking for provider {provider_id} at {scheduled_start} conflicts "
                f"with {len(conflicts)} appointment(s)"
            )
            suggestions = []
            if not constraints.is_blackout(day):
                duration = int((scheduled_end - scheduled_start).total_seconds() // 60)
                slots = self._build_slots(
                    day, window, constraints, appointments, duration,
                    self._service_price(service), now,
                )
                suggestions = [slot for slot in slots if slot.available][
                    : self.max_alternatives
                ]
            return BookingValidationResult.rejected(
                RejectionReason.ALREADY_BOOKED,
                "Time slot is already booked",
                conflicts=[self._to_conflict(appointment) for appointment in conflicts],
                suggestions=suggestions,
            )

        if constraints.is_blackout(day):
            return BookingValidationResult.rejected(
                RejectionReason.PROVIDER_UNAVAILABLE_DATE,
                "Provider is unavailable on this date",
            )

        if constraints.advance_booking_days:
            horizon = now + timedelta(days=constraints.advance_booking_days)
            if scheduled_start > horizon:
                return BookingValidationResult.rejected(
                    RejectionReason.TOO_FAR_IN_ADVANCE,
                    f"Bookings can only be made {constraints.advance_booking_days} "
                    "days in advance",
                )

        earliest = now + timedelta(hours=constraints.min_lead_time_hours)
        if scheduled_start < earliest:
            return BookingValidationResult.rejected(
                RejectionReason.INSUFFICIENT_LEAD_TIME,
                f"Bookings require at least {constraints.min_lead_time_hours:g} "
                "hour(s) advance notice",
            )

        if constraints.max_bookings_per_day:
            booked = await self._count_bookings_on(provider_id, day, exclude_appointment_id)
            if booked >= constraints.max_bookings_per_day:
                return BookingValidationResult.rejected(
                    RejectionReason.DAILY_LIMIT_REACHED,
                    f"Provider already has {booked} booking(s) on {day}",
                )

        return BookingValidationResult.accepted()

    def _build_slots(
        self,
        day: date,
        window: WorkingWindow,
        constraints: BookingConstraints,
        appointments: Sequence[Appointment],
        duration_minutes: int,
        price: Optional[float],
        now: datetime,
    ) -> list[TimeSlot]:
        window_start, window_end = window.bounds(day, self.tz)
        breaks = window.break_intervals(day, self.tz)
        earliest = now + timedelta(hours=constraints.min_lead_time_hours)

        slots = []
        for start, end in generate_slots(
            window_start, window_end, duration_minutes, self.granularity_minutes
        ):
            reason = None
            if start < earliest:
                reason = SlotUnavailableReason.PAST_TIME_SLOT
            elif is_in_break(start, end, breaks):
                reason = SlotUnavailableReason.BREAK_TIME
            elif overlaps(start, end, appointments):
                reason = SlotUnavailableReason.ALREADY_BOOKED
            elif constraints.buffer_minutes > 0 and overlaps(
                start, end, appointments, constraints.buffer_minutes
            ):
                reason = SlotUnavailableReason.BUFFER_REQUIRED

            slots.append(
                TimeSlot(
                    start_time=start.strftime("%H:%M"),
                    end_time=end.strftime("%H:%M"),
                    start_datetime=start,
                    end_datetime=end,
                    available=reason is None,
                    reason=reason,
                    price=price,
                )
            )
        return slots

    @staticmethod
    def _summarize_day(
        day: date, slots: list[TimeSlot], include_slots: bool
    ) -> DayAvailability:
        total = len(slots)
        available = sum(1 for slot in slots if slot.available)

        if available == 0:
            status = DayStatus.FULLY_BOOKED if total > 0 else DayStatus.UNAVAILABLE
        elif available < total:
            status = DayStatus.PARTIALLY_BOOKED
        else:
            status = DayStatus.AVAILABLE

        return DayAvailability(
            date=day,
            status=status,
            total_slots=total,
            available_slots=available,
            time_slots=slots if include_slots else None,
        )

    async def _load_window_appointments(
        self,
        provider_id: int,
        day: date,
        window: WorkingWindow,
        constraints: BookingConstraints,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[Appointment]:
        window_start, window_end = window.bounds(day, self.tz)
        padding = timedelta(minutes=constraints.buffer_minutes)
        return await self.appointments.find_overlapping(
            provider_id,
            window_start - padding,
            window_end + padding,
            exclude_id=exclude_appointment_id,
        )

    async def _count_bookings_on(
        self, provider_id: int, day: date, exclude_appointment_id: Optional[int]
    ) -> int:
        day_start = datetime.combine(day, time.min, tzinfo=self.tz)
        return await self.appointments.count_for_day(
            provider_id,
            day_start,
            day_start + timedelta(days=1),
            exclude_id=exclude_appointment_id,
        )

    async def _resolve_service(
        self, service_id: Optional[int], duration_minutes: Optional[int]
    ) -> tuple[int, Optional[float]]:
        """Duration and price for a listing; an explicit duration wins."""
        if duration_minutes is not None and duration_minutes <= 0:
            raise InvalidSchedulingInputError("Duration must be a positive number of minutes")

        service = None
        if service_id is not None:
            service = await self.directory.get_service(service_id)
            if service is None:
                raise ServiceNotFoundError(service_id)

        duration = duration_minutes
        if duration is None:
            duration = (
                service.booking_duration(self.default_duration_minutes)
                if service is not None
                else self.default_duration_minutes
            )
        return duration, self._service_price(service)

    @staticmethod
    def _service_price(service) -> Optional[float]:
        if service is None or service.price is None:
            return None
        return float(service.price)

    @staticmethod
    def _to_conflict(appointment: Appointment) -> AppointmentConflict:
        status = appointment.status
        return AppointmentConflict(
            appointment_id=appointment.id,
            scheduled_start=appointment.scheduled_start,
            scheduled_end=appointment.scheduled_end,
            status=getattr(status, "value", status),
        )

    @staticmethod
    def _require_aware(value: datetime, field: str) -> None:
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidSchedulingInputError(f"{field} must include a timezone offset")
