# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    availability_rules,
    business,
    provider,
    service,
    working_hours,
)

__all__ = [
    "appointment",
    "availability_rules",
    "business",
    "provider",
    "service",
    "working_hours",
]
