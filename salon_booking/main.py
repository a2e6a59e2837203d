import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from salon_booking.api.v1.api import api_router
from salon_booking.core.config import settings
from salon_booking.core.database import engine, init_db
from salon_booking.core.logging import configure_logging
from salon_booking.core.redis import redis_client
from salon_booking.services.appointment_scheduler import AppointmentStateScheduler

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up", environment=settings.ENVIRONMENT)
    await init_db()

    stop_event = asyncio.Event()
    scheduler_task = None
    if settings.RUN_SCHEDULER_IN_PROCESS:
        scheduler = AppointmentStateScheduler.from_settings()
        scheduler_task = asyncio.create_task(scheduler.run_forever(stop_event))

    yield

    logger.info("Application shutting down")
    if scheduler_task is not None:
        stop_event.set()
        await scheduler_task
    await redis_client.close()
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["health"])
async def health_check():
    return {"status": "ok", "version": settings.VERSION}
