from datetime import datetime, timedelta
from typing import Iterator

from salon_booking.core.exceptions import InvalidSchedulingInputError


def generate_slots(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    granularity_minutes: int = 15,
) -> Iterator[tuple[datetime, datetime]]:
    """Yield candidate [start, start + duration) intervals inside a window.

    Starts advance by ``granularity_minutes`` from ``window_start``; a slot
    whose end would pass ``window_end`` is dropped and generation stops.
    """
    if duration_minutes <= 0:
        raise InvalidSchedulingInputError("Duration must be a positive number of minutes")
    if granularity_minutes <= 0:
        raise InvalidSchedulingInputError("Slot granularity must be a positive number of minutes")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=granularity_minutes)

    current = window_start
    while current + duration <= window_end:
        yield current, current + duration
        current += step
