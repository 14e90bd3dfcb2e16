"""Slot handling for Cal.com availability payloads.

Ranking: alternatives are ordered by absolute distance to the requested time,
earlier slot first when two are equally close.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from calvapi.schemas.booking import AvailabilitySlot
from calvapi.services.messages import format_slot_long, format_slot_spoken

logger = logging.getLogger(__name__)


def parse_instant(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _iter_raw_slots(payload: Any):
    """Yield slot entries from any of the shapes the provider returns."""
    if isinstance(payload, list):
        yield from payload
        return
    if not isinstance(payload, dict):
        return

    if "data" in payload and isinstance(payload["data"], (dict, list)):
        yield from _iter_raw_slots(payload["data"])
        return

    slots = payload.get("slots")
    if isinstance(slots, dict):
        # {"slots": {"2024-01-01": [{"time": ...}, ...]}}
        for day in sorted(slots):
            yield from slots[day] or []
    elif isinstance(slots, list):
        yield from slots


def extract_slots(payload: Any, time_zone: str = "UTC") -> list[AvailabilitySlot]:
    """Flatten a provider availability payload into slots, keeping provider order."""
    result: list[AvailabilitySlot] = []
    for raw in _iter_raw_slots(payload):
        value = (raw.get("time") or raw.get("start")) if isinstance(raw, dict) else raw
        if not value:
            continue
        try:
            when = parse_instant(value)
        except (TypeError, ValueError):
            logger.warning("Skipping unparseable slot time: %r", value)
            continue
        result.append(
            AvailabilitySlot(
                time=when,
                formatted_date_time=format_slot_long(when, time_zone),
                spoken=format_slot_spoken(when, time_zone),
            )
        )
    return result


def is_time_slot_available(slots: list[AvailabilitySlot], requested: datetime) -> bool:
    """True if ``requested`` is exactly one of the offered instants."""
    target = parse_instant(requested)
    return any(slot.time == target for slot in slots)


def find_alternative_time_slots(
    slots: list[AvailabilitySlot],
    requested: datetime,
    max_slots: int = 5,
) -> list[AvailabilitySlot]:
    """Rank slots by closeness to ``requested`` and keep the first ``max_slots``."""
    if max_slots <= 0:
        return []
    target = parse_instant(requested)
    ranked = sorted(slots, key=lambda s: (abs((s.time - target).total_seconds()), s.time))
    return ranked[:max_slots]
