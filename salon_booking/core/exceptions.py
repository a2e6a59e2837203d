from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from salon_booking.schemas.scheduling import BookingValidationResult


class SchedulingError(Exception):
    """Base class for availability and booking errors."""


class InvalidSchedulingInputError(SchedulingError, ValueError):
    """Malformed date, time range or duration supplied by the caller."""


class ProviderNotFoundError(SchedulingError):
    def __init__(self, provider_id: int):
        self.provider_id = provider_id
        super().__init__(f"Provider {provider_id} not found")


class ServiceNotFoundError(SchedulingError):
    def __init__(self, service_id: int):
        self.service_id = service_id
        super().__init__(f"Service {service_id} not found")


class AppointmentNotFoundError(SchedulingError):
    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class AvailabilityRulesNotFoundError(SchedulingError):
    def __init__(self, provider_id: int):
        self.provider_id = provider_id
        super().__init__(f"No availability rules found for provider {provider_id}")


class BookingRejectedError(SchedulingError):
    """Raised by the write path when validation refuses a booking."""

    def __init__(self, result: "BookingValidationResult"):
        self.result = result
        super().__init__(
            f"Booking rejected: {result.reason.value if result.reason else 'unknown'}"
        )


class InvalidStatusTransitionError(SchedulingError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition appointment from {current} to {requested}")


class SlotLockUnavailableError(SchedulingError):
    """Another booking for the same provider holds the booking lock."""

    def __init__(self, provider_id: int, detail: Optional[str] = None):
        self.provider_id = provider_id
        message = f"Booking lock for provider {provider_id} is held by another request"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
