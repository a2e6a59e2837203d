"""Interval conflict checks over half-open [start, end) intervals."""

from datetime import datetime, timedelta
from typing import Iterable, Protocol, Sequence, TypeVar

from salon_booking.models.appointment import NON_BLOCKING_STATUSES, AppointmentStatus


class ScheduledItem(Protocol):
    scheduled_start: datetime
    scheduled_end: datetime
    status: str


T = TypeVar("T", bound=ScheduledItem)


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Touching intervals ([0, 30) and [30, 60)) do not overlap."""
    return a_start < b_end and a_end > b_start


def is_blocking(item: ScheduledItem) -> bool:
    status = item.status
    if not isinstance(status, AppointmentStatus):
        status = AppointmentStatus(status)
    return status not in NON_BLOCKING_STATUSES


def find_conflicts(
    start: datetime,
    end: datetime,
    appointments: Iterable[T],
    buffer_minutes: int = 0,
) -> list[T]:
    """Blocking appointments that collide with the candidate.

    Only the candidate is padded by the buffer, on both sides.
    """
    padding = timedelta(minutes=max(buffer_minutes, 0))
    padded_start, padded_end = start - padding, end + padding
    return [
        appointment
        for appointment in appointments
        if is_blocking(appointment)
        and intervals_overlap(
            padded_start,
            padded_end,
            appointment.scheduled_start,
            appointment.scheduled_end,
        )
    ]


def overlaps(
    start: datetime,
    end: datetime,
    appointments: Iterable[ScheduledItem],
    buffer_minutes: int = 0,
) -> bool:
    return bool(find_conflicts(start, end, appointments, buffer_minutes))


def is_in_break(
    start: datetime, end: datetime, breaks: Sequence[tuple[datetime, datetime]]
) -> bool:
    return any(
        intervals_overlap(start, end, break_start, break_end)
        for break_start, break_end in breaks
    )
