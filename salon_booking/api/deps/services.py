from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.api.deps.database import get_db
from salon_booking.services.booking import BookingService
from salon_booking.services.provider_schedule import ProviderScheduleService
from salon_booking.services.scheduling import SchedulingEngineService


async def get_scheduling_engine(
    db: AsyncSession = Depends(get_db),
) -> SchedulingEngineService:
    return SchedulingEngineService.for_session(db)


async def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService.for_session(db)


async def get_provider_schedule_service(
    db: AsyncSession = Depends(get_db),
) -> ProviderScheduleService:
    return ProviderScheduleService.for_session(db)
