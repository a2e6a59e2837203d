from datetime import date, time
from typing import Any, Dict, List, Optional
import re

WALL_CLOCK_PATTERN = r'^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$'
WEEKDAY_NAMES = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


def validate_wall_clock(value: str) -> bool:
    """Validate wall-clock time format (HH:MM or HH:MM:SS)."""
    if not isinstance(value, str):
        return False
    return bool(re.match(WALL_CLOCK_PATTERN, value))


def parse_wall_clock(value: Any) -> time:
    """Parse a HH:MM[:SS] string (or pass through a time) into a time."""
    if isinstance(value, time):
        return value
    if not validate_wall_clock(value):
        raise ValueError(f"Invalid wall-clock time '{value}', expected HH:MM")
    return time.fromisoformat(value)


def format_wall_clock(value: time) -> str:
    """Format a time as HH:MM."""
    return value.strftime('%H:%M')


def validate_iso_date(value: str) -> bool:
    """Validate calendar date format (YYYY-MM-DD)."""
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return len(value) == 10


def validate_breaks(
    breaks: Optional[List[Dict[str, Any]]],
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
) -> List[str]:
    """Validate a list of break periods, optionally against a day window."""
    errors = []

    if not breaks:
        return errors  # No breaks configured

    for index, period in enumerate(breaks):
        if not isinstance(period, dict):
            errors.append(f"breaks[{index}] must be an object with start_time and end_time")
            continue

        raw_start = period.get('start_time')
        raw_end = period.get('end_time')
        if not validate_wall_clock(raw_start) or not validate_wall_clock(raw_end):
            errors.append(f"breaks[{index}] start_time and end_time must be HH:MM")
            continue

        break_start = parse_wall_clock(raw_start)
        break_end = parse_wall_clock(raw_end)
        if break_end <= break_start:
            errors.append(f"breaks[{index}] end_time must be after start_time")
            continue

        if start_time and end_time and (break_start < start_time or break_end > end_time):
            errors.append(f"breaks[{index}] must fall inside the working window")

    return errors


def validate_operating_hours(operating_hours: Dict[str, Any]) -> List[str]:
    """Validate business operating hours keyed by weekday name."""
    errors = []

    if not operating_hours:
        return errors  # Allow empty/null

    for day_name, day in operating_hours.items():
        if day_name not in WEEKDAY_NAMES:
            errors.append(f"Unknown weekday '{day_name}'")
            continue

        if not isinstance(day, dict):
            errors.append(f"{day_name} must be an object")
            continue

        if not day.get('is_open'):
            continue

        if not validate_wall_clock(day.get('start_time')) or not validate_wall_clock(day.get('end_time')):
            errors.append(f"{day_name} start_time and end_time must be HH:MM")
            continue

        start_time = parse_wall_clock(day['start_time'])
        end_time = parse_wall_clock(day['end_time'])
        if end_time <= start_time:
            errors.append(f"{day_name} end_time must be after start_time")
            continue

        errors.extend(
            f"{day_name}: {error}"
            for error in validate_breaks(day.get('breaks'), start_time, end_time)
        )

    return errors


def validate_availability_rules(rules: Dict[str, Any]) -> List[str]:
    """Validate provider availability rule values."""
    errors = []

    if not rules:
        return errors

    for field in ('advance_booking_days', 'min_lead_time_hours', 'buffer_minutes'):
        value = rules.get(field)
        if value is not None and (not isinstance(value, (int, float)) or value < 0):
            errors.append(f"{field} must be a non-negative number")

    max_bookings = rules.get('max_bookings_per_day')
    if max_bookings is not None and (not isinstance(max_bookings, int) or max_bookings < 1):
        errors.append("max_bookings_per_day must be a positive integer")

    for blackout in rules.get('blackout_dates') or []:
        if not validate_iso_date(blackout):
            errors.append(f"Invalid blackout date '{blackout}', expected YYYY-MM-DD")

    return errors


class ScheduleValidationError(ValueError):
    """Raised when schedule configuration fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Schedule validation failed: {'; '.join(errors)}")


def validate_and_raise(errors: List[str]) -> None:
    """Raise ScheduleValidationError if any errors were collected."""
    if errors:
        raise ScheduleValidationError(errors)
