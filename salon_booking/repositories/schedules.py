from typing import Optional, Protocol

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.models.availability_rules import AvailabilityRules
from salon_booking.models.working_hours import WorkingHours


class WorkingHoursStore(Protocol):
    async def get_active(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingHours]: ...

    async def get_for_day(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingHours]: ...

    async def list_active(self, provider_id: int) -> list[WorkingHours]: ...

    async def save(self, working_hours: WorkingHours) -> WorkingHours: ...


class AvailabilityRulesStore(Protocol):
    async def get(self, provider_id: int) -> Optional[AvailabilityRules]: ...

    async def save(self, rules: AvailabilityRules) -> AvailabilityRules: ...


class WorkingHoursRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingHours]:
        result = await self.db.execute(
            select(WorkingHours).where(
                and_(
                    WorkingHours.provider_id == provider_id,
                    WorkingHours.day_of_week == day_of_week,
                    WorkingHours.is_active,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_for_day(
        self, provider_id: int, day_of_week: int
    ) -> Optional[WorkingHours]:
        """Row for the day regardless of its active flag (for upserts)."""
        result = await self.db.execute(
            select(WorkingHours).where(
                and_(
                    WorkingHours.provider_id == provider_id,
                    WorkingHours.day_of_week == day_of_week,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_active(self, provider_id: int) -> list[WorkingHours]:
        result = await self.db.execute(
            select(WorkingHours)
            .where(
                and_(
                    WorkingHours.provider_id == provider_id,
                    WorkingHours.is_active,
                )
            )
            .order_by(WorkingHours.day_of_week)
        )
        return list(result.scalars().all())

    async def save(self, working_hours: WorkingHours) -> WorkingHours:
        self.db.add(working_hours)
        await self.db.commit()
        await self.db.refresh(working_hours)
        return working_hours


class AvailabilityRulesRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, provider_id: int) -> Optional[AvailabilityRules]:
        result = await self.db.execute(
            select(AvailabilityRules).where(AvailabilityRules.provider_id == provider_id)
        )
        return result.scalar_one_or_none()

    async def save(self, rules: AvailabilityRules) -> AvailabilityRules:
        self.db.add(rules)
        await self.db.commit()
        await self.db.refresh(rules)
        return rules
