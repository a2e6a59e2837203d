import asyncio
from typing import Protocol

import structlog

from salon_booking.core.celery import REMINDER_NOTIFICATION_TASK, celery_app
from salon_booking.models.appointment import Appointment

logger = structlog.get_logger(__name__)


class ReminderSender(Protocol):
    async def send(self, appointment: Appointment) -> bool: ...


class CeleryReminderSender:
    """Hand reminders to the notification workers through the Celery broker."""

    def __init__(self, task_name: str = REMINDER_NOTIFICATION_TASK, queue: str = "notifications"):
        self.task_name = task_name
        self.queue = queue

    async def send(self, appointment: Appointment) -> bool:
        payload = {
            "appointment_id": appointment.id,
            "customer_id": appointment.customer_id,
            "provider_id": appointment.provider_id,
            "service_id": appointment.service_id,
            "scheduled_start": appointment.scheduled_start.isoformat(),
            "scheduled_end": appointment.scheduled_end.isoformat(),
        }
        # Publishing talks to the broker synchronously
        result = await asyncio.to_thread(
            celery_app.send_task, self.task_name, kwargs=payload, queue=self.queue
        )
        logger.info(
            "Reminder enqueued",
            appointment_id=appointment.id,
            task_id=result.id,
        )
        return True
