"""Working-hours resolution through an ordered chain of lookups.

The chain always ends with a fixed default window, so resolution never
fails closed: a provider with no configuration is still bookable.
"""

from datetime import date, time
from typing import Optional, Protocol, Sequence
import logging

from salon_booking.repositories.providers import ProviderDirectory, breaks_from_json
from salon_booking.repositories.schedules import WorkingHoursStore
from salon_booking.schemas.scheduling import WorkingHoursSource, WorkingWindow
from salon_booking.utils.validation import parse_wall_clock


logger = logging.getLogger(__name__)


class HoursLookup(Protocol):
    async def lookup(self, provider_id: int, day: date) -> Optional[WorkingWindow]: ...


class ProviderHoursLookup:
    """The provider's own active rule for the weekday."""

    def __init__(self, working_hours_store: WorkingHoursStore):
        self.working_hours_store = working_hours_store

    async def lookup(self, provider_id: int, day: date) -> Optional[WorkingWindow]:
        rule = await self.working_hours_store.get_active(provider_id, day.weekday())
        if rule is None:
            return None
        return WorkingWindow(
            start_time=rule.start_time,
            end_time=rule.end_time,
            breaks=breaks_from_json(rule.breaks),
            source=WorkingHoursSource.PROVIDER,
        )


class BusinessHoursLookup:
    """Operating hours of the business the provider belongs to."""

    def __init__(self, directory: ProviderDirectory):
        self.directory = directory

    async def lookup(self, provider_id: int, day: date) -> Optional[WorkingWindow]:
        return await self.directory.get_business_operating_hours(
            provider_id, day.weekday()
        )


class DefaultHoursLookup:
    def __init__(self, start_time: time = time(9, 0), end_time: time = time(18, 0)):
        if end_time <= start_time:
            raise ValueError("Default working window must end after it starts")
        self.window = WorkingWindow(
            start_time=start_time,
            end_time=end_time,
            breaks=[],
            source=WorkingHoursSource.DEFAULT,
        )

    async def lookup(self, provider_id: int, day: date) -> WorkingWindow:
        return self.window


class WorkingHoursResolver:
    """Resolve a provider's effective window for a date; first hit wins."""

    def __init__(self, lookups: Sequence[HoursLookup]):
        self.lookups = list(lookups)
        if not self.lookups or not isinstance(self.lookups[-1], DefaultHoursLookup):
            self.lookups.append(DefaultHoursLookup())

    @classmethod
    def with_default_chain(
        cls,
        working_hours_store: WorkingHoursStore,
        directory: ProviderDirectory,
        default_start: str = "09:00",
        default_end: str = "18:00",
    ) -> "WorkingHoursResolver":
        return cls(
            [
                ProviderHoursLookup(working_hours_store),
                BusinessHoursLookup(directory),
                DefaultHoursLookup(
                    parse_wall_clock(default_start), parse_wall_clock(default_end)
                ),
            ]
        )

    async def resolve(self, provider_id: int, day: date) -> WorkingWindow:
        for lookup in self.lookups:
            window = await lookup.lookup(provider_id, day)
            if window is not None:
                logger.debug(
                    f"Working hours for provider {provider_id} on {day}: "
                    f"{window.start_time}-{window.end_time} ({window.source.value})"
                )
                return window

        # Unreachable: the chain always ends with DefaultHoursLookup
        raise RuntimeError("Working hours chain produced no window")
