from datetime import date, datetime, timedelta
from functools import lru_cache

import holidays


class HolidayService:
    """Public holidays for a country, used as salon-wide blackout dates.

    Uses the `holidays` library; ``country`` is an ISO 3166 code such as
    "US", "GB" or "IL".
    """

    @staticmethod
    @lru_cache(maxsize=32)
    def _country_holidays(country: str, year: int) -> holidays.HolidayBase:
        return holidays.country_holidays(country, years=year)

    @classmethod
    def is_holiday(cls, country: str, dt: date) -> bool:
        d: date = dt.date() if isinstance(dt, datetime) else dt
        return d in cls._country_holidays(country, d.year)

    @classmethod
    def holidays_between(cls, country: str, start: date, end: date) -> set[date]:
        """All holiday dates in [start, end], inclusive."""
        found = set()
        current = start
        while current <= end:
            if cls.is_holiday(country, current):
                found.add(current)
            current += timedelta(days=1)
        return found
