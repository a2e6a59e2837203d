from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.core.exceptions import (
    AvailabilityRulesNotFoundError,
    ProviderNotFoundError,
)
from salon_booking.models.availability_rules import AvailabilityRules
from salon_booking.models.working_hours import WorkingHours
from salon_booking.repositories.providers import ProviderDirectory, ProviderRepository
from salon_booking.repositories.schedules import (
    AvailabilityRulesRepository,
    AvailabilityRulesStore,
    WorkingHoursRepository,
    WorkingHoursStore,
)
from salon_booking.schemas.provider_schedule import (
    AvailabilityRulesResponse,
    AvailabilityRulesUpdate,
    CompleteSchedule,
    WorkingHoursCreate,
    WorkingHoursResponse,
)
from salon_booking.utils.validation import (
    format_wall_clock,
    validate_and_raise,
    validate_availability_rules,
    validate_breaks,
)


logger = logging.getLogger(__name__)

# Applied by set_default_rules when a provider is onboarded
DEFAULT_RULES = AvailabilityRulesUpdate(
    advance_booking_days=30,
    min_lead_time_hours=2,
    max_bookings_per_day=10,
    buffer_minutes=15,
    blackout_dates=[],
)


def _iso_dates(dates: Iterable[date]) -> List[str]:
    return [value.isoformat() for value in dates]


class ProviderScheduleService:
    """Manage provider working hours, availability rules and blackout dates."""

    def __init__(
        self,
        directory: ProviderDirectory,
        working_hours: WorkingHoursStore,
        rules: AvailabilityRulesStore,
    ):
        self.directory = directory
        self.working_hours = working_hours
        self.rules = rules

    @classmethod
    def for_session(cls, db: AsyncSession) -> "ProviderScheduleService":
        return cls(
            ProviderRepository(db),
            WorkingHoursRepository(db),
            AvailabilityRulesRepository(db),
        )

    # Working hours

    async def set_working_hours(
        self, provider_id: int, hours: WorkingHoursCreate
    ) -> WorkingHours:
        """Create or replace the provider's window for one weekday."""
        await self._ensure_provider(provider_id)

        breaks = [
            {
                "start_time": format_wall_clock(period.start_time),
                "end_time": format_wall_clock(period.end_time),
            }
            for period in hours.breaks
        ]
        validate_and_raise(validate_breaks(breaks, hours.start_time, hours.end_time))

        day_of_week = hours.day_of_week.value
        record = await self.working_hours.get_for_day(provider_id, day_of_week)
        if record is None:
            record = WorkingHours(provider_id=provider_id, day_of_week=day_of_week)

        record.start_time = hours.start_time
        record.end_time = hours.end_time
        record.breaks = breaks
        record.is_active = True

        saved = await self.working_hours.save(record)
        logger.info(
            f"Set working hours for provider {provider_id} on "
            f"{hours.day_of_week.name.title()}: {hours.start_time}-{hours.end_time}"
        )
        return saved

    async def set_weekly_schedule(
        self, provider_id: int, days: Sequence[WorkingHoursCreate]
    ) -> List[WorkingHours]:
        return [await self.set_working_hours(provider_id, day) for day in days]

    async def get_working_hours(self, provider_id: int) -> List[WorkingHours]:
        return await self.working_hours.list_active(provider_id)

    async def remove_working_hours(self, provider_id: int, day_of_week: int) -> bool:
        """Deactivate the rule for a weekday; the day then falls back to business hours."""
        record = await self.working_hours.get_for_day(provider_id, day_of_week)
        if record is None or not record.is_active:
            return False

        record.is_active = False
        await self.working_hours.save(record)
        logger.info(f"Removed working hours for provider {provider_id} on day {day_of_week}")
        return True

    # Availability rules

    async def get_availability_rules(self, provider_id: int) -> Optional[AvailabilityRules]:
        return await self.rules.get(provider_id)

    async def set_availability_rules(
        self, provider_id: int, update: AvailabilityRulesUpdate
    ) -> AvailabilityRules:
        """Create or partially update the provider's rules."""
        await self._ensure_provider(provider_id)

        data = update.model_dump(exclude_unset=True)
        if "blackout_dates" in data:
            data["blackout_dates"] = sorted(set(_iso_dates(data["blackout_dates"] or [])))
        validate_and_raise(validate_availability_rules(data))

        if data.get("min_lead_time_hours") is not None:
            data["min_lead_time_hours"] = Decimal(str(data["min_lead_time_hours"]))

        rules = await self.rules.get(provider_id)
        if rules is None:
            rules = AvailabilityRules(provider_id=provider_id, blackout_dates=[])

        for field, value in data.items():
            setattr(rules, field, value)

        saved = await self.rules.save(rules)
        logger.info(f"Updated availability rules for provider {provider_id}: {sorted(data)}")
        return saved

    async def set_default_rules(self, provider_id: int) -> AvailabilityRules:
        return await self.set_availability_rules(provider_id, DEFAULT_RULES)

    async def add_blackout_dates(
        self, provider_id: int, dates: Sequence[date]
    ) -> AvailabilityRules:
        rules = await self.rules.get(provider_id)
        if rules is None:
            return await self.set_availability_rules(
                provider_id, AvailabilityRulesUpdate(blackout_dates=list(dates))
            )

        # Reassign rather than mutate so the JSON column is flagged dirty
        rules.blackout_dates = sorted(set(rules.blackout_dates or []) | set(_iso_dates(dates)))
        saved = await self.rules.save(rules)
        logger.info(f"Added {len(dates)} blackout date(s) for provider {provider_id}")
        return saved

    async def remove_blackout_dates(
        self, provider_id: int, dates: Sequence[date]
    ) -> AvailabilityRules:
        rules = await self.rules.get(provider_id)
        if rules is None or not rules.blackout_dates:
            raise AvailabilityRulesNotFoundError(provider_id)

        removed = set(_iso_dates(dates))
        rules.blackout_dates = [
            value for value in rules.blackout_dates if value not in removed
        ]
        saved = await self.rules.save(rules)
        logger.info(f"Removed blackout dates {sorted(removed)} for provider {provider_id}")
        return saved

    async def get_complete_schedule(self, provider_id: int) -> CompleteSchedule:
        await self._ensure_provider(provider_id)
        working_hours = await self.get_working_hours(provider_id)
        rules = await self.get_availability_rules(provider_id)

        return CompleteSchedule(
            provider_id=provider_id,
            working_hours=[WorkingHoursResponse.model_validate(row) for row in working_hours],
            availability_rules=(
                AvailabilityRulesResponse.model_validate(rules) if rules else None
            ),
        )

    async def _ensure_provider(self, provider_id: int) -> None:
        if await self.directory.get_provider(provider_id) is None:
            raise ProviderNotFoundError(provider_id)
