from datetime import date
from typing import Optional
import logging

from salon_booking.models.availability_rules import AvailabilityRules
from salon_booking.repositories.schedules import AvailabilityRulesStore
from salon_booking.schemas.scheduling import BookingConstraints
from salon_booking.services.holidays import HolidayService


logger = logging.getLogger(__name__)


class AvailabilityRulesProvider:
    """Per-provider booking constraints.

    A provider without a rules record is unconstrained: no lead time, no
    daily cap, no buffer, no blackout dates and no booking horizon.
    """

    def __init__(
        self, rules_store: AvailabilityRulesStore, holiday_country: Optional[str] = None
    ):
        self.rules_store = rules_store
        self.holiday_country = holiday_country

    async def get_rules(self, provider_id: int) -> Optional[AvailabilityRules]:
        return await self.rules_store.get(provider_id)

    async def get_constraints(
        self,
        provider_id: int,
        start_day: Optional[date] = None,
        end_day: Optional[date] = None,
    ) -> BookingConstraints:
        """Resolve rules to constraints, merging public holidays in [start_day, end_day]."""
        rules = await self.get_rules(provider_id)

        blackout = set(rules.blackout_date_set()) if rules else set()
        if self.holiday_country and start_day:
            blackout |= HolidayService.holidays_between(
                self.holiday_country, start_day, end_day or start_day
            )

        if rules is None:
            logger.debug(
                f"No availability rules for provider {provider_id}, using defaults"
            )
            return BookingConstraints(
                provider_id=provider_id, blackout_dates=frozenset(blackout)
            )

        return BookingConstraints(
            provider_id=provider_id,
            advance_booking_days=rules.advance_booking_days or None,
            min_lead_time_hours=float(rules.min_lead_time_hours or 0),
            max_bookings_per_day=rules.max_bookings_per_day or None,
            buffer_minutes=rules.buffer_minutes or 0,
            blackout_dates=frozenset(blackout),
            has_rules=True,
        )
