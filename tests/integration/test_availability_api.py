from datetime import time

import pytest

from tests.fixtures.scheduling_fixtures import BOOKING_DAY, at, make_appointment

pytestmark = pytest.mark.integration


def validation_payload(start, end, **extra):
    return {
        "provider_id": 1,
        "scheduled_start": start.isoformat(),
        "scheduled_end": end.isoformat(),
        **extra,
    }


class TestValidateEndpoint:
    async def test_free_slot(self, client):
        response = await client.post(
            "/api/v1/availability/validate", json=validation_payload(at(10), at(11))
        )

        assert response.status_code == 200
        assert response.json()["valid"] is True

    async def test_conflict_with_suggestions(self, client, appointment_store):
        await appointment_store.add(make_appointment(1, at(10), at(11)))

        response = await client.post(
            "/api/v1/availability/validate",
            json=validation_payload(at(10, 30), at(11, 30)),
        )

        data = response.json()
        assert response.status_code == 200
        assert data["valid"] is False
        assert data["reason"] == "already_booked"
        assert data["conflicts"][0]["appointment_id"] == 1
        assert 0 < len(data["suggestions"]) <= 5

    async def test_naive_datetime_is_unprocessable(self, client):
        response = await client.post(
            "/api/v1/availability/validate",
            json={
                "provider_id": 1,
                "scheduled_start": "2030-01-07T10:00:00",
                "scheduled_end": "2030-01-07T11:00:00",
            },
        )

        assert response.status_code == 422

    async def test_reversed_window_is_unprocessable(self, client):
        response = await client.post(
            "/api/v1/availability/validate", json=validation_payload(at(11), at(10))
        )

        assert response.status_code == 422


class TestSlotEndpoints:
    async def test_list_slots(self, client, appointment_store):
        await appointment_store.add(make_appointment(1, at(10), at(11)))

        response = await client.get(
            "/api/v1/availability/1/slots", params={"date": BOOKING_DAY.isoformat()}
        )

        slots = response.json()
        assert response.status_code == 200
        assert slots[0]["start_time"] == "09:00"
        booked = next(slot for slot in slots if slot["start_time"] == "10:00")
        assert booked["available"] is False
        assert booked["reason"] == "already_booked"

    async def test_unknown_service_is_not_found(self, client):
        response = await client.get(
            "/api/v1/availability/1/slots",
            params={"date": BOOKING_DAY.isoformat(), "service_id": 42},
        )

        assert response.status_code == 404

    async def test_corrupt_stored_breaks_are_a_server_error(self, client, working_hours_store):
        working_hours_store.add(
            1, BOOKING_DAY.weekday(), time(9), time(17), breaks=[{"start_time": "lunch"}]
        )

        with pytest.raises(ValueError, match="Invalid break configuration"):
            await client.get(
                "/api/v1/availability/1/slots", params={"date": BOOKING_DAY.isoformat()}
            )

    async def test_range_availability(self, client, rules_store):
        rules_store.add(1, blackout_dates=[BOOKING_DAY.isoformat()])

        response = await client.get(
            "/api/v1/availability/1",
            params={"start_date": "2030-01-07", "end_date": "2030-01-08"},
        )

        days = response.json()
        assert response.status_code == 200
        assert [day["status"] for day in days] == ["unavailable", "available"]

    async def test_reversed_range_is_unprocessable(self, client):
        response = await client.get(
            "/api/v1/availability/1",
            params={"start_date": "2030-01-08", "end_date": "2030-01-07"},
        )

        assert response.status_code == 422

    async def test_next_available(self, client):
        response = await client.get("/api/v1/availability/1/next-available")

        data = response.json()
        assert response.status_code == 200
        assert data["available"] is True
        assert data["slot"]["start_time"] == "09:00"

    async def test_summary(self, client, appointment_store):
        await appointment_store.add(make_appointment(1, at(9), at(18)))

        response = await client.get(
            "/api/v1/availability/1/summary", params={"date": BOOKING_DAY.isoformat()}
        )

        data = response.json()
        assert response.status_code == 200
        assert data["available_slots"] == 0
        assert data["utilization_rate"] == 100.0
        assert data["next_available"]["start_time"] == "09:00"
