from fastapi import APIRouter

from salon_booking.api.v1.endpoints import appointments, availability, schedule

api_router = APIRouter()

# Availability and booking validation endpoints
api_router.include_router(
    availability.router, prefix="/availability", tags=["availability"]
)

# Appointment write endpoints
api_router.include_router(
    appointments.router, prefix="/appointments", tags=["appointments"]
)

# Provider schedule management endpoints
api_router.include_router(schedule.router, prefix="/providers", tags=["schedule"])
