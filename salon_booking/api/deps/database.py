from salon_booking.core.database import get_db

__all__ = ["get_db"]
