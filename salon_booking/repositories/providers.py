import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.models.business import Business
from salon_booking.models.provider import Provider
from salon_booking.models.service import Service
from salon_booking.schemas.scheduling import (
    BreakPeriod,
    WorkingHoursSource,
    WorkingWindow,
)
from salon_booking.utils.validation import (
    parse_wall_clock,
    validate_breaks,
    validate_operating_hours,
    WEEKDAY_NAMES,
)

logger = logging.getLogger(__name__)


class ProviderDirectory(Protocol):
    async def get_provider(self, provider_id: int) -> Optional[Provider]: ...

    async def is_active(self, provider_id: int) -> bool: ...

    async def get_business_operating_hours(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingWindow]: ...

    async def get_service(self, service_id: int) -> Optional[Service]: ...


def operating_hours_to_window(entry: Optional[dict]) -> Optional[WorkingWindow]:
    """Convert one weekday entry of Business.operating_hours to a window.

    Returns None when the day is closed or has no usable times.
    """
    if not entry or not entry.get("is_open"):
        return None
    if not entry.get("start_time") or not entry.get("end_time"):
        return None

    day_errors = validate_operating_hours({WEEKDAY_NAMES[0]: entry})
    if day_errors:
        logger.warning(f"Ignoring invalid business operating hours: {day_errors}")
        return None

    return WorkingWindow(
        start_time=parse_wall_clock(entry["start_time"]),
        end_time=parse_wall_clock(entry["end_time"]),
        breaks=breaks_from_json(entry.get("breaks")),
        source=WorkingHoursSource.BUSINESS,
    )


def breaks_from_json(breaks: Optional[list]) -> list[BreakPeriod]:
    if validate_breaks(breaks):
        raise ValueError(f"Invalid break configuration: {breaks!r}")
    return sorted(
        (
            BreakPeriod(
                start_time=parse_wall_clock(period["start_time"]),
                end_time=parse_wall_clock(period["end_time"]),
            )
            for period in breaks or []
        ),
        key=lambda period: period.start_time,
    )


class ProviderRepository:
    """SQLAlchemy implementation of ProviderDirectory."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_provider(self, provider_id: int) -> Optional[Provider]:
        result = await self.db.execute(
            select(Provider).where(Provider.id == provider_id)
        )
        return result.scalar_one_or_none()

    async def is_active(self, provider_id: int) -> bool:
        provider = await self.get_provider(provider_id)
        return provider is not None and provider.accepts_bookings

    async def get_business_operating_hours(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingWindow]:
        result = await self.db.execute(
            select(Business)
            .join(Provider, Provider.business_id == Business.id)
            .where(Provider.id == provider_id)
        )
        business = result.scalar_one_or_none()
        if not business:
            return None
        return operating_hours_to_window(business.hours_for_weekday(day_of_week))

    async def get_service(self, service_id: int) -> Optional[Service]:
        result = await self.db.execute(
            select(Service).where(Service.id == service_id)
        )
        return result.scalar_one_or_none()
