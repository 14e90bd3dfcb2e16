"""Human-readable text for callers and for the voice agent to read aloud."""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

BOOKING_CREATED = "Booking created successfully"
BOOKING_RESCHEDULED = "Booking rescheduled successfully"
BOOKING_CANCELLED = "Booking cancelled successfully"
SLOT_UNAVAILABLE = "Requested time slot is not available"
CHOOSE_ALTERNATIVE = (
    "The requested time slot is not available. "
    "Please choose from the alternative slots provided."
)
NO_ALTERNATIVES = (
    "The requested time slot is not available and no other openings were found "
    "in the surrounding days."
)


def _zone(time_zone: str | None):
    if not time_zone:
        return timezone.utc
    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, formatting in UTC", time_zone)
        return timezone.utc


def _hour_minute(local: datetime) -> str:
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_slot_spoken(when: datetime, time_zone: str | None = None) -> str:
    """'Sunday, January 1 at 5:00 AM'"""
    local = when.astimezone(_zone(time_zone))
    return f"{local:%A}, {local:%B} {local.day} at {_hour_minute(local)}"


def format_slot_long(when: datetime, time_zone: str | None = None) -> str:
    """'Sunday, January 1, 2023 at 5:00 AM'"""
    local = when.astimezone(_zone(time_zone))
    return f"{local:%A}, {local:%B} {local.day}, {local.year} at {_hour_minute(local)}"


def format_date_adjusted(original: datetime, adjusted: datetime, time_zone: str | None = None) -> str:
    return (
        f"{BOOKING_CREATED}. Note: Your requested date ({format_slot_long(original, time_zone)}) "
        f"was in the past, so we've scheduled your appointment for "
        f"{format_slot_long(adjusted, time_zone)} instead."
    )


def format_conflict(alternatives_found: int) -> str:
    return CHOOSE_ALTERNATIVE if alternatives_found else NO_ALTERNATIVES
