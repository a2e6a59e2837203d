from datetime import time

import pytest

from salon_booking.utils.validation import (
    ScheduleValidationError,
    format_wall_clock,
    parse_wall_clock,
    validate_and_raise,
    validate_availability_rules,
    validate_breaks,
    validate_iso_date,
    validate_operating_hours,
    validate_wall_clock,
)


@pytest.mark.unit
class TestWallClock:
    @pytest.mark.parametrize("value", ["09:00", "23:59", "00:00:30"])
    def test_valid(self, value):
        assert validate_wall_clock(value)

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "", None, 900])
    def test_invalid(self, value):
        assert not validate_wall_clock(value)

    def test_parse_and_format(self):
        assert parse_wall_clock("07:45") == time(7, 45)
        assert parse_wall_clock(time(8, 0)) == time(8, 0)
        assert format_wall_clock(time(7, 5)) == "07:05"
        with pytest.raises(ValueError):
            parse_wall_clock("7.45")


@pytest.mark.unit
class TestBreaks:
    def test_no_breaks(self):
        assert validate_breaks(None) == []
        assert validate_breaks([]) == []

    def test_reversed_break(self):
        errors = validate_breaks([{"start_time": "13:00", "end_time": "12:00"}])

        assert errors == ["breaks[0] end_time must be after start_time"]

    def test_break_outside_window(self):
        errors = validate_breaks(
            [{"start_time": "08:00", "end_time": "09:30"}], time(9, 0), time(17, 0)
        )

        assert errors == ["breaks[0] must fall inside the working window"]

    def test_malformed_entries(self):
        errors = validate_breaks(["12:00-13:00", {"start_time": "noon", "end_time": "13:00"}])

        assert len(errors) == 2


@pytest.mark.unit
class TestOperatingHours:
    def test_closed_days_need_no_times(self):
        assert validate_operating_hours({"sunday": {"is_open": False}}) == []

    def test_errors_are_prefixed_with_day(self):
        errors = validate_operating_hours(
            {
                "funday": {"is_open": True},
                "monday": {"is_open": True, "start_time": "18:00", "end_time": "09:00"},
                "tuesday": {
                    "is_open": True,
                    "start_time": "09:00",
                    "end_time": "17:00",
                    "breaks": [{"start_time": "17:30", "end_time": "18:00"}],
                },
            }
        )

        assert errors == [
            "Unknown weekday 'funday'",
            "monday end_time must be after start_time",
            "tuesday: breaks[0] must fall inside the working window",
        ]


@pytest.mark.unit
class TestAvailabilityRulesValidation:
    def test_valid_rules(self):
        assert validate_availability_rules(
            {
                "advance_booking_days": 30,
                "min_lead_time_hours": 1.5,
                "max_bookings_per_day": 8,
                "buffer_minutes": 0,
                "blackout_dates": ["2030-12-25"],
            }
        ) == []

    def test_invalid_rules(self):
        errors = validate_availability_rules(
            {
                "buffer_minutes": -1,
                "max_bookings_per_day": 0,
                "blackout_dates": ["2030-13-01", "25/12/2030"],
            }
        )

        assert len(errors) == 4

    def test_iso_date(self):
        assert validate_iso_date("2030-01-07")
        assert not validate_iso_date("2030-1-7")
        assert not validate_iso_date(None)

    def test_validate_and_raise(self):
        validate_and_raise([])
        with pytest.raises(ScheduleValidationError) as exc_info:
            validate_and_raise(["broken"])
        assert exc_info.value.errors == ["broken"]
