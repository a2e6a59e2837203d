from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from salon_booking.core.celery import REMINDER_NOTIFICATION_TASK
from salon_booking.schemas.scheduling import SchedulerRunSummary
from salon_booking.services.reminders import CeleryReminderSender
from salon_booking.workers import scheduler_tasks
from tests.fixtures.scheduling_fixtures import at, make_appointment


@pytest.mark.unit
class TestCeleryReminderSender:
    @pytest.mark.asyncio
    @patch("salon_booking.services.reminders.celery_app")
    async def test_enqueues_notification_task(self, mock_celery):
        mock_celery.send_task.return_value = MagicMock(id="task-1")
        appointment = make_appointment(5, at(10), at(11))

        sent = await CeleryReminderSender().send(appointment)

        assert sent is True
        args, kwargs = mock_celery.send_task.call_args
        assert args == (REMINDER_NOTIFICATION_TASK,)
        assert kwargs["queue"] == "notifications"
        assert kwargs["kwargs"]["appointment_id"] == 5
        assert kwargs["kwargs"]["customer_id"] == 100
        assert kwargs["kwargs"]["scheduled_start"] == at(10).isoformat()


@pytest.mark.unit
class TestSchedulerTasks:
    @patch("salon_booking.workers.scheduler_tasks.engine")
    @patch("salon_booking.workers.scheduler_tasks.AppointmentStateScheduler")
    def test_reminder_task_returns_summary(self, mock_scheduler_cls, mock_engine):
        summary = SchedulerRunSummary(
            job="appointment_reminders", ran_at=at(8), found=2, succeeded=2
        )
        scheduler = mock_scheduler_cls.from_settings.return_value
        scheduler.send_due_reminders = AsyncMock(return_value=summary)
        mock_engine.dispose = AsyncMock()

        result = scheduler_tasks.send_appointment_reminders()

        assert result["found"] == 2
        assert result["succeeded"] == 2
        mock_engine.dispose.assert_awaited_once()

    @patch("salon_booking.workers.scheduler_tasks.engine")
    @patch("salon_booking.workers.scheduler_tasks.AppointmentStateScheduler")
    def test_engine_disposed_when_sweep_fails(self, mock_scheduler_cls, mock_engine):
        scheduler = mock_scheduler_cls.from_settings.return_value
        scheduler.mark_no_shows = AsyncMock(side_effect=RuntimeError("database down"))
        mock_engine.dispose = AsyncMock()

        with pytest.raises(RuntimeError):
            scheduler_tasks.mark_missed_appointments()

        mock_engine.dispose.assert_awaited_once()
