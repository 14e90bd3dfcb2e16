"""Booking pipeline: validate, repair past dates, check the slot, book or offer alternatives.

    Validate -> DateRepair -> AvailabilityCheck -> Book
                                                -> Conflict -> alternatives (409)

Validation failures abort before any provider call. A conflict is detected
either up front (the exact start is not among the offered slots) or from a
provider rejection that says the slot is already taken.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic

from calvapi.config import settings
from calvapi.errors import ConflictError, IntegrationError, ProviderError, ValidationError
from calvapi.schemas.booking import AvailabilitySlot, BookingResult, BookingTimeRequest
from calvapi.services import cal_api
from calvapi.services.availability import (
    extract_slots,
    find_alternative_time_slots,
    is_time_slot_available,
    parse_instant,
)
from calvapi.services.context import RequestContext
from calvapi.services.date_policy import DateRepairPolicy, get_date_policy
from calvapi.services.messages import (
    BOOKING_CREATED,
    BOOKING_RESCHEDULED,
    SLOT_UNAVAILABLE,
    format_conflict,
    format_date_adjusted,
)

logger = logging.getLogger(__name__)

_LEGACY_REQUIRED = ("name", "email", "startTime", "timeZone")
_NATIVE_REQUIRED = ("eventTypeId", "start", "responses", "timeZone")

# Availability windows, in days around the requested date.
_CHECK_WINDOW = (1, 1)
_ALTERNATIVES_WINDOW = (3, 7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _first_missing(params: dict[str, Any], required: tuple[str, ...]) -> str | None:
    return next((key for key in required if not params.get(key)), None)


def _parse_time(value: Any, field: str) -> datetime:
    try:
        return parse_instant(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date/time: {value!r}", field)


def _check_time_zone(time_zone: str) -> str:
    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown time zone: {time_zone}", "timeZone")
    return time_zone


def _is_native_shape(params: dict[str, Any]) -> bool:
    return "start" in params or "responses" in params


# Model field -> caller-facing parameter name, per request shape.
_LEGACY_FIELDS = {
    "attendee.name": "name",
    "attendee.email": "email",
    "attendee.phone": "phone",
    "notes": "notes",
    "guests": "guests",
    "location": "location",
    "language": "language",
}
_NATIVE_FIELDS = {
    "attendee.name": "responses.name",
    "attendee.email": "responses.email",
    "attendee.phone": "responses.phone",
    "notes": "responses.notes",
    "guests": "responses.guests",
    "location": "responses.location",
    "language": "language",
}


def _build_request(fields: dict[str, Any], field_names: dict[str, str]) -> BookingTimeRequest:
    try:
        return BookingTimeRequest(**fields)
    except pydantic.ValidationError as e:
        loc = e.errors()[0]["loc"]
        key = ".".join(str(part) for part in (loc[:2] if loc[0] == "attendee" else loc[:1]))
        field = field_names.get(key, key)
        raise ValidationError(f"Invalid value for parameter: {field}", field) from e


def parse_booking_request(params: dict[str, Any], ctx: RequestContext) -> BookingTimeRequest:
    """Accept either the legacy flat shape or the Cal.com-native shape."""
    if _is_native_shape(params):
        missing = _first_missing(params, _NATIVE_REQUIRED)
        if missing:
            raise ValidationError(f"Missing required parameter: {missing}", missing)
        responses = params["responses"]
        if not isinstance(responses, dict):
            raise ValidationError("Responses must be an object", "responses")
        for key in ("name", "email"):
            if not responses.get(key):
                raise ValidationError(f"Missing required parameter: responses.{key}", f"responses.{key}")

        return _build_request(
            {
                "start_time": _parse_time(params["start"], "start"),
                "end_time": _parse_time(params["end"], "end") if params.get("end") else None,
                "time_zone": _check_time_zone(str(params["timeZone"])),
                "event_type_id": str(params["eventTypeId"]),
                "attendee": {
                    "name": str(responses["name"]),
                    "email": str(responses["email"]),
                    "phone": responses.get("phone"),
                },
                "notes": responses.get("notes"),
                "guests": responses.get("guests") or [],
                "location": responses.get("location"),
                "language": params.get("language") or "en",
            },
            _NATIVE_FIELDS,
        )

    missing = _first_missing(params, _LEGACY_REQUIRED)
    if missing:
        raise ValidationError(f"Missing required parameter: {missing}", missing)
    event_type_id = params.get("eventTypeId") or ctx.event_type_id
    if not event_type_id:
        raise ValidationError("Event type ID is required", "eventTypeId")
    guests = params.get("guests")

    return _build_request(
        {
            "start_time": _parse_time(params["startTime"], "startTime"),
            "end_time": _parse_time(params["endTime"], "endTime") if params.get("endTime") else None,
            "time_zone": _check_time_zone(str(params["timeZone"])),
            "event_type_id": str(event_type_id),
            "attendee": {"name": str(params["name"]), "email": str(params["email"]), "phone": params.get("phone")},
            "notes": params.get("notes"),
            "guests": guests if isinstance(guests, list) else [],
            "location": params.get("location"),
            "language": params.get("language") or "en",
        },
        _LEGACY_FIELDS,
    )


def _local_date(when: datetime, time_zone: str) -> date:
    return when.astimezone(ZoneInfo(time_zone)).date()


class BookingOrchestrator:
    def __init__(
        self,
        ctx: RequestContext,
        date_policy: DateRepairPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
        max_alternatives: int | None = None,
    ):
        self.ctx = ctx
        self.date_policy = date_policy or get_date_policy()
        self.clock = clock
        self.max_alternatives = settings.max_alternative_slots if max_alternatives is None else max_alternatives

    async def _slots_around(
        self,
        when: datetime,
        event_type_id: str,
        time_zone: str,
        window: tuple[int, int],
    ) -> list[AvailabilitySlot]:
        day = _local_date(when, time_zone)
        before, after = window
        start_date = (day - timedelta(days=before)).isoformat()
        end_date = (day + timedelta(days=after)).isoformat()
        logger.info(
            "[%s] Checking availability %s..%s tz=%s", self.ctx.request_id, start_date, end_date, time_zone
        )
        payload = await cal_api.get_availability(self.ctx, event_type_id, start_date, end_date, time_zone)
        return extract_slots(payload, time_zone)

    async def find_alternatives(
        self,
        requested: datetime,
        event_type_id: str,
        time_zone: str,
    ) -> list[AvailabilitySlot]:
        """Closest open slots in the wide window, excluding the requested instant."""
        slots = await self._slots_around(requested, event_type_id, time_zone, _ALTERNATIVES_WINDOW)
        slots = [s for s in slots if s.time != requested]
        return find_alternative_time_slots(slots, requested, self.max_alternatives)

    def _conflict_result(self, alternatives: list[AvailabilitySlot]) -> BookingResult:
        return BookingResult(
            success=False,
            error=SLOT_UNAVAILABLE,
            alternative_slots=alternatives,
            message=format_conflict(len(alternatives)),
        )

    async def create_booking(self, params: dict[str, Any]) -> BookingResult:
        request = parse_booking_request(params, self.ctx)
        original_start = request.start_time

        adjustment = self.date_policy.repair(original_start, self.clock())
        if adjustment:
            offset = adjustment.adjusted - original_start
            request = request.model_copy(
                update={
                    "start_time": adjustment.adjusted,
                    "end_time": request.end_time + offset if request.end_time else None,
                }
            )

        start = request.start_time
        slots = await self._slots_around(start, request.event_type_id, request.time_zone, _CHECK_WINDOW)

        if not is_time_slot_available(slots, start):
            logger.info("[%s] Requested slot %s not available, finding alternatives", self.ctx.request_id, start)
            try:
                alternatives = await self.find_alternatives(start, request.event_type_id, request.time_zone)
            except IntegrationError as e:
                logger.warning("[%s] Wide availability lookup failed, using nearby slots: %s", self.ctx.request_id, e)
                alternatives = find_alternative_time_slots(slots, start, self.max_alternatives)
            return self._conflict_result(alternatives)

        try:
            booking = await cal_api.create_booking(self.ctx, request)
        except ProviderError as e:
            if not e.booking_conflict:
                raise
            logger.info("[%s] Cal.com rejected slot %s as taken, finding alternatives", self.ctx.request_id, start)
            try:
                alternatives = await self.find_alternatives(start, request.event_type_id, request.time_zone)
            except IntegrationError as lookup_error:
                logger.error("[%s] Error getting alternative slots: %s", self.ctx.request_id, lookup_error)
                raise e from lookup_error
            return self._conflict_result(alternatives)

        if adjustment:
            return BookingResult(
                success=True,
                booking=booking,
                date_adjusted=True,
                original_date=adjustment.original,
                adjusted_date=adjustment.adjusted,
                message=format_date_adjusted(adjustment.original, adjustment.adjusted, request.time_zone),
            )
        return BookingResult(success=True, booking=booking, message=BOOKING_CREATED)

    async def reschedule_booking(self, params: dict[str, Any]) -> dict[str, Any]:
        missing = _first_missing(params, ("bookingId", "startTime", "timeZone"))
        if missing:
            raise ValidationError(f"Missing required parameter: {missing}", missing)

        time_zone = _check_time_zone(str(params["timeZone"]))
        start = _parse_time(params["startTime"], "startTime")
        if params.get("endTime"):
            end = _parse_time(params["endTime"], "endTime")
        else:
            end = start + timedelta(minutes=settings.default_duration)

        try:
            booking = await cal_api.reschedule_booking(self.ctx, str(params["bookingId"]), start, end, time_zone)
        except ProviderError as e:
            if not e.booking_conflict:
                raise
            event_type_id = str(params.get("eventTypeId") or self.ctx.event_type_id)
            try:
                alternatives = await self.find_alternatives(start, event_type_id, time_zone)
            except IntegrationError as lookup_error:
                logger.error("[%s] Error getting alternative slots: %s", self.ctx.request_id, lookup_error)
                raise e from lookup_error
            raise ConflictError(SLOT_UNAVAILABLE, [slot.to_payload() for slot in alternatives]) from e

        return {"success": True, "booking": booking, "message": BOOKING_RESCHEDULED}
