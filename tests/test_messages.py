"""Tests for calvapi.services.messages and calvapi.services.phone."""

from datetime import datetime, timezone

import pytest

from calvapi.errors import ValidationError
from calvapi.services.messages import (
    CHOOSE_ALTERNATIVE,
    NO_ALTERNATIVES,
    format_conflict,
    format_date_adjusted,
    format_slot_long,
    format_slot_spoken,
)
from calvapi.services.phone import normalize_phone, validate_phone_number

JAN_1 = datetime(2023, 1, 1, 5, 0, tzinfo=timezone.utc)


class TestSlotFormatting:
    def test_spoken(self):
        assert format_slot_spoken(JAN_1) == "Sunday, January 1 at 5:00 AM"

    def test_long(self):
        assert format_slot_long(JAN_1, "UTC") == "Sunday, January 1, 2023 at 5:00 AM"

    def test_noon_and_midnight(self):
        assert format_slot_spoken(datetime(2023, 1, 1, 12, 5, tzinfo=timezone.utc)).endswith("12:05 PM")
        assert format_slot_spoken(datetime(2023, 1, 1, 0, 0, tzinfo=timezone.utc)).endswith("12:00 AM")

    def test_time_zone_applied(self):
        assert format_slot_spoken(JAN_1, "Asia/Tokyo") == "Sunday, January 1 at 2:00 PM"

    def test_unknown_time_zone_falls_back_to_utc(self):
        assert format_slot_spoken(JAN_1, "Not/AZone") == "Sunday, January 1 at 5:00 AM"


class TestMessages:
    def test_date_adjusted(self):
        adjusted = datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc)
        message = format_date_adjusted(JAN_1, adjusted, "UTC")
        assert "Sunday, January 1, 2023 at 5:00 AM" in message
        assert "Monday, January 1, 2024 at 5:00 AM" in message

    def test_conflict(self):
        assert format_conflict(3) == CHOOSE_ALTERNATIVE
        assert format_conflict(0) == NO_ALTERNATIVES


class TestPhone:
    def test_normalize(self):
        assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
        assert normalize_phone("+44.20.7946.0958") == "+442079460958"

    @pytest.mark.parametrize("number", ["+15551234567", "+442079460958", "+4915112345678"])
    def test_valid(self, number):
        assert validate_phone_number(number) == number

    @pytest.mark.parametrize("number", ["5551234567", "+0123456789", "+1", "+1234567890123456", "", "+1555abc4567"])
    def test_invalid(self, number):
        with pytest.raises(ValidationError) as exc_info:
            validate_phone_number(number)
        assert exc_info.value.field == "phoneNumber"
