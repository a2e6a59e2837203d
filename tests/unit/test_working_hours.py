from datetime import date, time
from decimal import Decimal

import pytest

from salon_booking.repositories.providers import (
    breaks_from_json,
    operating_hours_to_window,
)
from salon_booking.schemas.scheduling import BreakPeriod, WorkingHoursSource
from salon_booking.services.availability_rules import AvailabilityRulesProvider
from salon_booking.services.working_hours import (
    DefaultHoursLookup,
    WorkingHoursResolver,
)
from tests.fixtures.scheduling_fixtures import BOOKING_DAY


@pytest.mark.unit
class TestWorkingHoursResolver:
    @pytest.fixture
    def resolver(self, working_hours_store, directory):
        return WorkingHoursResolver.with_default_chain(working_hours_store, directory)

    @pytest.mark.asyncio
    async def test_provider_rule_wins(self, resolver, working_hours_store, directory):
        working_hours_store.add(
            1,
            BOOKING_DAY.weekday(),
            time(10, 0),
            time(16, 0),
            breaks=[{"start_time": "12:00", "end_time": "12:30"}],
        )
        directory.set_business_hours(BOOKING_DAY.weekday(), time(8, 0), time(20, 0))

        window = await resolver.resolve(1, BOOKING_DAY)

        assert window.source == WorkingHoursSource.PROVIDER
        assert (window.start_time, window.end_time) == (time(10, 0), time(16, 0))
        assert window.breaks == [BreakPeriod(start_time=time(12, 0), end_time=time(12, 30))]

    @pytest.mark.asyncio
    async def test_inactive_rule_falls_back_to_business_hours(
        self, resolver, working_hours_store, directory
    ):
        working_hours_store.add(
            1, BOOKING_DAY.weekday(), time(10, 0), time(16, 0), is_active=False
        )
        directory.set_business_hours(BOOKING_DAY.weekday(), time(8, 0), time(20, 0))

        window = await resolver.resolve(1, BOOKING_DAY)

        assert window.source == WorkingHoursSource.BUSINESS
        assert (window.start_time, window.end_time) == (time(8, 0), time(20, 0))

    @pytest.mark.asyncio
    async def test_rule_for_another_weekday_is_ignored(self, resolver, working_hours_store):
        working_hours_store.add(1, (BOOKING_DAY.weekday() + 1) % 7, time(10, 0), time(16, 0))

        window = await resolver.resolve(1, BOOKING_DAY)

        assert window.source == WorkingHoursSource.DEFAULT

    @pytest.mark.asyncio
    async def test_default_window_when_nothing_configured(self, resolver):
        window = await resolver.resolve(1, BOOKING_DAY)

        assert window.source == WorkingHoursSource.DEFAULT
        assert (window.start_time, window.end_time) == (time(9, 0), time(18, 0))
        assert window.breaks == []

    @pytest.mark.asyncio
    async def test_chain_always_ends_with_default(self):
        resolver = WorkingHoursResolver([])

        assert isinstance(resolver.lookups[-1], DefaultHoursLookup)
        window = await resolver.resolve(1, BOOKING_DAY)
        assert window.source == WorkingHoursSource.DEFAULT

    def test_invalid_default_window_rejected(self):
        with pytest.raises(ValueError):
            DefaultHoursLookup(time(18, 0), time(9, 0))


@pytest.mark.unit
class TestOperatingHoursParsing:
    def test_closed_day_has_no_window(self):
        assert operating_hours_to_window({"is_open": False}) is None
        assert operating_hours_to_window(None) is None

    def test_open_day_with_breaks(self):
        window = operating_hours_to_window(
            {
                "is_open": True,
                "start_time": "09:00",
                "end_time": "17:00",
                "breaks": [{"start_time": "12:00", "end_time": "13:00"}],
            }
        )

        assert window.source == WorkingHoursSource.BUSINESS
        assert window.start_time == time(9, 0)
        assert window.breaks[0].start_time == time(12, 0)

    def test_invalid_hours_are_ignored(self):
        assert (
            operating_hours_to_window(
                {"is_open": True, "start_time": "17:00", "end_time": "09:00"}
            )
            is None
        )

    def test_breaks_sorted_by_start(self):
        breaks = breaks_from_json(
            [
                {"start_time": "15:00", "end_time": "15:15"},
                {"start_time": "12:00", "end_time": "13:00"},
            ]
        )
        assert [period.start_time for period in breaks] == [time(12, 0), time(15, 0)]

    def test_invalid_breaks_raise(self):
        with pytest.raises(ValueError):
            breaks_from_json([{"start_time": "13:00", "end_time": "12:00"}])


@pytest.mark.unit
class TestAvailabilityRulesProvider:
    @pytest.mark.asyncio
    async def test_missing_rules_are_unconstrained(self, rules_store):
        constraints = await AvailabilityRulesProvider(rules_store).get_constraints(1)

        assert not constraints.has_rules
        assert constraints.advance_booking_days is None
        assert constraints.min_lead_time_hours == 0
        assert constraints.max_bookings_per_day is None
        assert constraints.buffer_minutes == 0
        assert constraints.blackout_dates == frozenset()

    @pytest.mark.asyncio
    async def test_rules_are_resolved(self, rules_store):
        rules_store.add(
            1,
            advance_booking_days=30,
            min_lead_time_hours=Decimal("1.50"),
            max_bookings_per_day=0,
            buffer_minutes=None,
            blackout_dates=["2030-01-07"],
        )

        constraints = await AvailabilityRulesProvider(rules_store).get_constraints(1)

        assert constraints.has_rules
        assert constraints.advance_booking_days == 30
        assert constraints.min_lead_time_hours == 1.5
        assert constraints.max_bookings_per_day is None
        assert constraints.buffer_minutes == 0
        assert constraints.is_blackout(date(2030, 1, 7))

    @pytest.mark.asyncio
    async def test_public_holidays_become_blackout_dates(self, rules_store):
        provider = AvailabilityRulesProvider(rules_store, holiday_country="US")

        constraints = await provider.get_constraints(1, date(2030, 1, 1), date(2030, 1, 3))

        assert constraints.is_blackout(date(2030, 1, 1))
        assert not constraints.is_blackout(date(2030, 1, 2))
