import asyncio
from typing import Awaitable, Callable

import structlog

from salon_booking.core.celery import MARK_NO_SHOWS_TASK, SEND_REMINDERS_TASK, celery_app
from salon_booking.core.database import engine
from salon_booking.schemas.scheduling import SchedulerRunSummary
from salon_booking.services.appointment_scheduler import AppointmentStateScheduler

logger = structlog.get_logger(__name__)


def _run_sweep(
    job: Callable[[AppointmentStateScheduler], Awaitable[SchedulerRunSummary]]
) -> dict:
    async def runner() -> SchedulerRunSummary:
        try:
            return await job(AppointmentStateScheduler.from_settings())
        finally:
            # Pooled connections are bound to this task's event loop
            await engine.dispose()

    summary = asyncio.run(runner())
    return summary.model_dump(mode="json")


@celery_app.task(name=SEND_REMINDERS_TASK)
def send_appointment_reminders() -> dict:
    logger.info("Running reminder sweep")
    return _run_sweep(lambda scheduler: scheduler.send_due_reminders())


@celery_app.task(name=MARK_NO_SHOWS_TASK)
def mark_missed_appointments() -> dict:
    logger.info("Running no-show sweep")
    return _run_sweep(lambda scheduler: scheduler.mark_no_shows())
