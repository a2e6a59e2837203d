"""Appointment store: the single storage boundary for conflict and sweep queries."""

import enum
from contextlib import asynccontextmanager
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Iterable, Mapping, Optional, Protocol

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_booking.core.database import AsyncSessionLocal
from salon_booking.models.appointment import (
    NON_BLOCKING_STATUSES,
    Appointment,
    AppointmentStatus,
)

logger = logging.getLogger(__name__)

# Metadata keys that used to carry the assigned provider before provider_id existed
LEGACY_PROVIDER_KEYS = ("preferredEmployeeId", "preferred_provider_id")


class AppointmentStore(Protocol):
    async def get(self, appointment_id: int) -> Optional[Appointment]: ...

    async def add(self, appointment: Appointment) -> Appointment: ...

    async def find_overlapping(
        self,
        provider_id: int,
        range_start: datetime,
        range_end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = NON_BLOCKING_STATUSES,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]: ...

    async def count_for_day(
        self,
        provider_id: int,
        day_start: datetime,
        day_end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = NON_BLOCKING_STATUSES,
        exclude_id: Optional[int] = None,
    ) -> int: ...

    async def find_due_for_reminder(
        self,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[AppointmentStatus],
        limit: int,
        offset: int = 0,
    ) -> list[Appointment]: ...

    async def find_overdue(
        self,
        cutoff: datetime,
        active_statuses: Iterable[AppointmentStatus],
        limit: int,
        offset: int = 0,
    ) -> list[Appointment]: ...

    async def update(
        self,
        appointment_id: int,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool: ...


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(item) for item in value]
    return value


def _status_values(statuses: Iterable[AppointmentStatus]) -> list[str]:
    return [_plain(status) for status in statuses]


class AppointmentRepository:
    """SQLAlchemy implementation of AppointmentStore."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, appointment_id: int) -> Optional[Appointment]:
        result = await self.db.execute(
            select(Appointment).where(Appointment.id == appointment_id)
        )
        return result.scalar_one_or_none()

    async def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        await self.db.commit()
        await self.db.refresh(appointment)
        return appointment

    async def find_overlapping(
        self,
        provider_id: int,
        range_start: datetime,
        range_end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = NON_BLOCKING_STATUSES,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Appointments of a provider whose [start, end) intersects the range."""
        conditions = [
            Appointment.provider_id == provider_id,
            Appointment.scheduled_start < range_end,
            Appointment.scheduled_end > range_start,
        ]
        excluded = _status_values(exclude_statuses)
        if excluded:
            conditions.append(Appointment.status.not_in(excluded))
        if exclude_id is not None:
            conditions.append(Appointment.id != exclude_id)

        result = await self.db.execute(
            select(Appointment)
            .where(and_(*conditions))
            .order_by(Appointment.scheduled_start)
        )
        return list(result.scalars().all())

    async def count_for_day(
        self,
        provider_id: int,
        day_start: datetime,
        day_end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = NON_BLOCKING_STATUSES,
        exclude_id: Optional[int] = None,
    ) -> int:
        """Bookings of a provider starting within [day_start, day_end)."""
        conditions = [
            Appointment.provider_id == provider_id,
            Appointment.scheduled_start >= day_start,
            Appointment.scheduled_start < day_end,
        ]
        excluded = _status_values(exclude_statuses)
        if excluded:
            conditions.append(Appointment.status.not_in(excluded))
        if exclude_id is not None:
            conditions.append(Appointment.id != exclude_id)

        result = await self.db.execute(
            select(func.count(Appointment.id)).where(and_(*conditions))
        )
        return result.scalar_one()

    async def find_due_for_reminder(
        self,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[AppointmentStatus],
        limit: int,
        offset: int = 0,
    ) -> list[Appointment]:
        """Unreminded appointments with a customer starting inside the window."""
        result = await self.db.execute(
            select(Appointment)
            .where(
                and_(
                    Appointment.scheduled_start >= window_start,
                    Appointment.scheduled_start <= window_end,
                    Appointment.reminder_sent.is_(False),
                    Appointment.customer_id.is_not(None),
                    Appointment.status.in_(_status_values(statuses)),
                )
            )
            .order_by(Appointment.scheduled_start, Appointment.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def find_overdue(
        self,
        cutoff: datetime,
        active_statuses: Iterable[AppointmentStatus],
        limit: int,
        offset: int = 0,
    ) -> list[Appointment]:
        result = await self.db.execute(
            select(Appointment)
            .where(
                and_(
                    Appointment.scheduled_end < cutoff,
                    Appointment.status.in_(_status_values(active_statuses)),
                )
            )
            .order_by(Appointment.scheduled_end, Appointment.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update(
        self,
        appointment_id: int,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Apply patch if the row still matches ``expected``; True when a row changed.

        List values in ``expected`` match with IN, scalars with equality.
        """
        statement = update(Appointment).where(Appointment.id == appointment_id)
        for column, value in (expected or {}).items():
            attribute = getattr(Appointment, column)
            value = _plain(value)
            if isinstance(value, list):
                statement = statement.where(attribute.in_(value))
            else:
                statement = statement.where(attribute == value)

        statement = statement.values(
            **{column: _plain(value) for column, value in patch.items()}
        ).execution_options(synchronize_session=False)

        try:
            result = await self.db.execute(statement)
            await self.db.commit()
        except SQLAlchemyError:
            # A failed statement leaves the transaction aborted for later writes
            await self.db.rollback()
            raise
        return result.rowcount > 0

    async def backfill_provider_from_metadata(self, batch_size: int = 500) -> int:
        """Copy a legacy metadata provider reference into provider_id.

        One-time migration helper; conflict queries only ever read provider_id.
        """
        result = await self.db.execute(
            select(Appointment).where(Appointment.provider_id.is_(None))
        )
        migrated = 0
        for appointment in result.scalars().all():
            metadata = appointment.extra_metadata or {}
            raw = next(
                (metadata[key] for key in LEGACY_PROVIDER_KEYS if metadata.get(key)),
                None,
            )
            if raw is None:
                continue
            try:
                appointment.provider_id = int(raw)
            except (TypeError, ValueError):
                logger.warning(
                    f"Appointment {appointment.id} has unusable legacy provider "
                    f"reference {raw!r}"
                )
                continue

            migrated += 1
            if migrated % batch_size == 0:
                await self.db.commit()

        await self.db.commit()
        logger.info(f"Backfilled provider_id on {migrated} appointments")
        return migrated


@asynccontextmanager
async def session_store_scope() -> AsyncIterator[AppointmentRepository]:
    """Appointment store bound to a fresh session for one scheduler run."""
    async with AsyncSessionLocal() as session:
        yield AppointmentRepository(session)
