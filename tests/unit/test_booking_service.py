from datetime import timedelta

import pytest

from salon_booking.core.exceptions import (
    AppointmentNotFoundError,
    BookingRejectedError,
    InvalidStatusTransitionError,
    ServiceNotFoundError,
)
from salon_booking.models.appointment import AppointmentStatus
from salon_booking.schemas.appointment import AppointmentCreate
from salon_booking.schemas.scheduling import RejectionReason
from tests.fixtures.scheduling_fixtures import at, make_appointment


def booking_request(**overrides) -> AppointmentCreate:
    values = {
        "provider_id": 1,
        "customer_id": 100,
        "scheduled_start": at(10),
        "scheduled_end": at(11),
    }
    values.update(overrides)
    return AppointmentCreate(**values)


@pytest.mark.unit
class TestBookAppointment:
    @pytest.mark.asyncio
    async def test_books_free_slot_under_provider_lock(
        self, booking_service, appointment_store, booking_lock, clock
    ):
        appointment = await booking_service.book_appointment(booking_request())

        assert appointment.id in appointment_store.appointments
        assert appointment.status == AppointmentStatus.BOOKED.value
        assert appointment.reminder_sent is False
        assert appointment.status_changed_at == clock.now
        assert booking_lock.acquired == [1]

    @pytest.mark.asyncio
    async def test_second_booking_for_same_slot_is_rejected(
        self, booking_service, appointment_store
    ):
        await booking_service.book_appointment(booking_request())

        with pytest.raises(BookingRejectedError) as exc_info:
            await booking_service.book_appointment(
                booking_request(scheduled_start=at(10, 30), scheduled_end=at(11, 30))
            )

        assert exc_info.value.result.reason == RejectionReason.ALREADY_BOOKED
        assert len(appointment_store.appointments) == 1

    @pytest.mark.asyncio
    async def test_end_from_explicit_duration(self, booking_service):
        appointment = await booking_service.book_appointment(
            booking_request(scheduled_end=None, duration_minutes=45)
        )

        assert appointment.scheduled_end == at(10, 45)

    @pytest.mark.asyncio
    async def test_end_from_service_duration(self, booking_service, directory):
        directory.add_service(3, duration_minutes=90)

        appointment = await booking_service.book_appointment(
            booking_request(scheduled_end=None, service_id=3)
        )

        assert appointment.scheduled_end == at(11, 30)
        assert appointment.service_id == 3

    @pytest.mark.asyncio
    async def test_end_falls_back_to_default_duration(self, booking_service):
        appointment = await booking_service.book_appointment(
            booking_request(scheduled_end=None)
        )

        assert appointment.scheduled_end == at(10, 30)

    @pytest.mark.asyncio
    async def test_unknown_service_without_end(self, booking_service):
        with pytest.raises(ServiceNotFoundError):
            await booking_service.book_appointment(
                booking_request(scheduled_end=None, service_id=42)
            )

    @pytest.mark.asyncio
    async def test_rejection_carries_result(self, booking_service, rules_store):
        rules_store.add(1, min_lead_time_hours=48)

        with pytest.raises(BookingRejectedError) as exc_info:
            await booking_service.book_appointment(booking_request())

        assert exc_info.value.result.reason == RejectionReason.INSUFFICIENT_LEAD_TIME
        assert "insufficient_lead_time" in str(exc_info.value)


@pytest.mark.unit
class TestRescheduleAppointment:
    @pytest.mark.asyncio
    async def test_keeps_duration_and_ignores_own_interval(
        self, booking_service, appointment_store
    ):
        await appointment_store.add(
            make_appointment(1, at(10), at(11), reminder_sent=True)
        )

        appointment = await booking_service.reschedule_appointment(1, at(10, 30))

        assert appointment.scheduled_start == at(10, 30)
        assert appointment.scheduled_end == at(11, 30)
        assert appointment.reminder_sent is False
        assert appointment.reminder_sent_at is None

    @pytest.mark.asyncio
    async def test_conflict_with_another_appointment(
        self, booking_service, appointment_store
    ):
        await appointment_store.add(make_appointment(1, at(10), at(11)))
        await appointment_store.add(make_appointment(2, at(14), at(15)))

        with pytest.raises(BookingRejectedError) as exc_info:
            await booking_service.reschedule_appointment(1, at(14, 30))

        assert exc_info.value.result.reason == RejectionReason.ALREADY_BOOKED
        assert appointment_store.appointments[1].scheduled_start == at(10)

    @pytest.mark.asyncio
    async def test_terminal_appointment_cannot_move(
        self, booking_service, appointment_store
    ):
        await appointment_store.add(
            make_appointment(1, at(10), at(11), status="cancelled")
        )

        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.reschedule_appointment(1, at(14))

        assert appointment_store.updates == []

    @pytest.mark.asyncio
    async def test_missing_appointment(self, booking_service):
        with pytest.raises(AppointmentNotFoundError):
            await booking_service.reschedule_appointment(99, at(14))


@pytest.mark.unit
class TestChangeStatus:
    @pytest.mark.asyncio
    async def test_allowed_transition(self, booking_service, appointment_store, clock):
        await appointment_store.add(make_appointment(1, at(10), at(11)))

        appointment = await booking_service.change_status(1, AppointmentStatus.CONFIRMED)

        assert appointment.status == "confirmed"
        assert appointment.previous_status == "booked"
        assert appointment.status_changed_at == clock.now

    @pytest.mark.asyncio
    async def test_disallowed_transition(self, booking_service, appointment_store):
        await appointment_store.add(make_appointment(1, at(10), at(11), status="completed"))

        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.change_status(1, AppointmentStatus.BOOKED)

    @pytest.mark.asyncio
    async def test_admin_override_reopens_no_show(self, booking_service, appointment_store):
        await appointment_store.add(make_appointment(1, at(10), at(11), status="no_show"))

        appointment = await booking_service.change_status(
            1, AppointmentStatus.BOOKED, admin_override=True
        )

        assert appointment.status == "booked"
        assert appointment.previous_status == "no_show"

    @pytest.mark.asyncio
    async def test_lost_race_raises(self, booking_service, appointment_store):
        appointment = await appointment_store.add(make_appointment(1, at(10), at(11)))

        async def concurrent_update(appointment_id, patch, expected=None):
            return False

        appointment_store.update = concurrent_update

        with pytest.raises(InvalidStatusTransitionError):
            await booking_service.change_status(1, AppointmentStatus.CONFIRMED)
        assert appointment.status == "booked"

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_rebooked(self, booking_service, appointment_store):
        await appointment_store.add(make_appointment(1, at(10), at(11)))
        await booking_service.change_status(1, AppointmentStatus.CANCELLED)

        appointment = await booking_service.book_appointment(booking_request())

        assert appointment.id == 2
        assert appointment.scheduled_start == at(10)
        assert appointment.scheduled_end - appointment.scheduled_start == timedelta(hours=1)
