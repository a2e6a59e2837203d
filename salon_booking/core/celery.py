from datetime import timedelta

from celery import Celery

from salon_booking.core.config import settings

SEND_REMINDERS_TASK = "scheduling.send_appointment_reminders"
MARK_NO_SHOWS_TASK = "scheduling.mark_missed_appointments"
REMINDER_NOTIFICATION_TASK = "notifications.send_appointment_reminder"

# Create Celery instance
celery_app = Celery(
    "salon_booking",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["salon_booking.workers.scheduler_tasks"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    task_routes={
        "scheduling.*": {"queue": "scheduling"},
        "notifications.*": {"queue": "notifications"},
    },
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,
    beat_schedule={
        "send-appointment-reminders": {
            "task": SEND_REMINDERS_TASK,
            "schedule": timedelta(minutes=settings.REMINDER_INTERVAL_MINUTES),
        },
        "mark-missed-appointments": {
            "task": MARK_NO_SHOWS_TASK,
            "schedule": timedelta(minutes=settings.NO_SHOW_INTERVAL_MINUTES),
        },
    },
)
