"""Periodic appointment state maintenance.

Two sweeps run on independent intervals:

* reminders for appointments starting roughly ``REMINDER_LEAD_MINUTES`` from now
* no-show marking for active appointments that ended more than
  ``NO_SHOW_GRACE_HOURS`` ago

Neither keeps progress in memory; ``reminder_sent`` and ``status`` are the only
record, and every write is guarded so overlapping or repeated runs are safe.
"""

import asyncio
from datetime import datetime, timedelta
from typing import AsyncContextManager, Awaitable, Callable, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from salon_booking.core.config import settings
from salon_booking.core.database import is_missing_table_error
from salon_booking.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from salon_booking.repositories.appointments import AppointmentStore, session_store_scope
from salon_booking.schemas.scheduling import SchedulerRunSummary
from salon_booking.services.reminders import CeleryReminderSender, ReminderSender
from salon_booking.utils.clock import Clock, utc_now

logger = structlog.get_logger(__name__)

StoreScope = Callable[[], AsyncContextManager[AppointmentStore]]

REMINDER_JOB = "appointment_reminders"
NO_SHOW_JOB = "no_show_sweep"

ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_STATUSES]


class AppointmentStateScheduler:
    def __init__(
        self,
        store_scope: StoreScope,
        reminder_sender: ReminderSender,
        clock: Clock = utc_now,
        batch_size: Optional[int] = None,
        reminder_interval: Optional[timedelta] = None,
        no_show_interval: Optional[timedelta] = None,
        reminder_lead: Optional[timedelta] = None,
        reminder_tolerance: Optional[timedelta] = None,
        no_show_grace: Optional[timedelta] = None,
        poll_seconds: Optional[float] = None,
    ):
        self.store_scope = store_scope
        self.reminder_sender = reminder_sender
        self.clock = clock
        self.batch_size = batch_size or settings.SCHEDULER_BATCH_SIZE
        self.reminder_interval = reminder_interval or timedelta(
            minutes=settings.REMINDER_INTERVAL_MINUTES
        )
        self.no_show_interval = no_show_interval or timedelta(
            minutes=settings.NO_SHOW_INTERVAL_MINUTES
        )
        self.reminder_lead = reminder_lead or timedelta(minutes=settings.REMINDER_LEAD_MINUTES)
        self.reminder_tolerance = reminder_tolerance or timedelta(
            minutes=settings.REMINDER_TOLERANCE_MINUTES
        )
        self.no_show_grace = no_show_grace or timedelta(hours=settings.NO_SHOW_GRACE_HOURS)
        self.poll_seconds = poll_seconds or settings.SCHEDULER_POLL_SECONDS

        self.last_reminder_run: Optional[datetime] = None
        self.last_no_show_run: Optional[datetime] = None

    @classmethod
    def from_settings(
        cls,
        store_scope: Optional[StoreScope] = None,
        reminder_sender: Optional[ReminderSender] = None,
    ) -> "AppointmentStateScheduler":
        return cls(
            store_scope=store_scope or session_store_scope,
            reminder_sender=reminder_sender or CeleryReminderSender(),
        )

    async def send_due_reminders(self) -> SchedulerRunSummary:
        """Send reminders for appointments starting around now + lead time."""
        now = self.clock()
        target = now + self.reminder_lead
        window_start = target - self.reminder_tolerance
        window_end = target + self.reminder_tolerance
        summary = SchedulerRunSummary(job=REMINDER_JOB, ran_at=now)

        async with self.store_scope() as store:
            # Rows left unmarked stay in the result set, so page past them
            offset = 0
            while True:
                try:
                    due = await store.find_due_for_reminder(
                        window_start,
                        window_end,
                        ACTIVE_STATUSES,
                        self.batch_size,
                        offset=offset,
                    )
                except SQLAlchemyError as e:
                    if not is_missing_table_error(e):
                        raise
                    return self._soft_skip(summary, e)

                summary.found += len(due)
                for appointment in due:
                    if not await self._send_reminder(store, appointment, now, summary):
                        offset += 1

                if len(due) < self.batch_size:
                    break

        self._log_summary(summary, window_start=window_start, window_end=window_end)
        return summary

    async def _send_reminder(
        self,
        store: AppointmentStore,
        appointment: Appointment,
        now: datetime,
        summary: SchedulerRunSummary,
    ) -> bool:
        """Returns False while the appointment still needs a reminder."""
        try:
            if not await self.reminder_sender.send(appointment):
                summary.failed += 1
                logger.warning("Reminder not sent", appointment_id=appointment.id)
                return False

            marked = await store.update(
                appointment.id,
                {"reminder_sent": True, "reminder_sent_at": now},
                expected={"reminder_sent": False},
            )
        except Exception as e:
            summary.failed += 1
            logger.error(
                "Failed to send appointment reminder",
                appointment_id=appointment.id,
                exc_info=e,
            )
            return False

        if marked:
            summary.succeeded += 1
        else:
            # Another run marked it between our read and write
            summary.skipped += 1
        return True

    async def mark_no_shows(self) -> SchedulerRunSummary:
        """Mark active appointments that ended before now - grace as no-shows."""
        now = self.clock()
        cutoff = now - self.no_show_grace
        summary = SchedulerRunSummary(job=NO_SHOW_JOB, ran_at=now)

        async with self.store_scope() as store:
            offset = 0
            while True:
                try:
                    overdue = await store.find_overdue(
                        cutoff, ACTIVE_STATUSES, self.batch_size, offset=offset
                    )
                except SQLAlchemyError as e:
                    if not is_missing_table_error(e):
                        raise
                    return self._soft_skip(summary, e)

                summary.found += len(overdue)
                for appointment in overdue:
                    if not await self._mark_no_show(store, appointment, now, summary):
                        offset += 1

                if len(overdue) < self.batch_size:
                    break

        self._log_summary(summary, cutoff=cutoff)
        return summary

    async def _mark_no_show(
        self,
        store: AppointmentStore,
        appointment: Appointment,
        now: datetime,
        summary: SchedulerRunSummary,
    ) -> bool:
        previous_status = AppointmentStatus(appointment.status).value
        metadata = dict(appointment.extra_metadata or {})
        metadata.update(
            auto_marked_no_show=True,
            auto_marked_at=now.isoformat(),
            previous_status=previous_status,
        )

        try:
            marked = await store.update(
                appointment.id,
                {
                    "status": AppointmentStatus.NO_SHOW.value,
                    "previous_status": previous_status,
                    "status_changed_at": now,
                    "extra_metadata": metadata,
                },
                expected={"status": ACTIVE_STATUS_VALUES},
            )
        except Exception as e:
            summary.failed += 1
            logger.error(
                "Failed to mark appointment as no-show",
                appointment_id=appointment.id,
                exc_info=e,
            )
            return False

        if marked:
            summary.succeeded += 1
        else:
            summary.skipped += 1
        return True

    async def tick(self) -> List[SchedulerRunSummary]:
        """Run every job whose interval has elapsed since its last run."""
        now = self.clock()
        summaries = []

        if self._is_due(self.last_reminder_run, self.reminder_interval, now):
            self.last_reminder_run = now
            summary = await self._run_job(REMINDER_JOB, self.send_due_reminders)
            if summary:
                summaries.append(summary)

        if self._is_due(self.last_no_show_run, self.no_show_interval, now):
            self.last_no_show_run = now
            summary = await self._run_job(NO_SHOW_JOB, self.mark_no_shows)
            if summary:
                summaries.append(summary)

        return summaries

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        stop_event = stop_event or asyncio.Event()
        logger.info(
            "Appointment scheduler started",
            reminder_interval=str(self.reminder_interval),
            no_show_interval=str(self.no_show_interval),
        )

        while not stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Appointment scheduler stopped")

    @staticmethod
    def _is_due(last_run: Optional[datetime], interval: timedelta, now: datetime) -> bool:
        return last_run is None or now - last_run >= interval

    @staticmethod
    async def _run_job(
        name: str, job: Callable[[], Awaitable[SchedulerRunSummary]]
    ) -> Optional[SchedulerRunSummary]:
        try:
            return await job()
        except Exception as e:
            # Retried on the next interval; the loop must keep running
            logger.error("Scheduler job failed", job=name, exc_info=e)
            return None

    @staticmethod
    def _soft_skip(summary: SchedulerRunSummary, error: Exception) -> SchedulerRunSummary:
        summary.skipped_reason = "missing_table"
        logger.debug("Skipping scheduler run, table not ready", job=summary.job, error=str(error))
        return summary

    @staticmethod
    def _log_summary(summary: SchedulerRunSummary, **context) -> None:
        logger.info(
            "Scheduler run finished",
            job=summary.job,
            found=summary.found,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            **{key: value.isoformat() for key, value in context.items()},
        )
