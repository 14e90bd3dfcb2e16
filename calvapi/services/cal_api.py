"""Cal.com API client.

v1 endpoints authenticate with an ``apiKey`` query parameter, v2 endpoints with
a Bearer token plus the ``cal-api-version`` header. The key always comes from
the request context, never from module state.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from calvapi.config import settings
from calvapi.errors import AuthError, NotFoundError, ProviderError, ValidationError
from calvapi.schemas.booking import BookingTimeRequest
from calvapi.services.context import RequestContext

logger = logging.getLogger(__name__)

SOURCE = "cal"

_CONFLICT_MARKERS = (
    "already has booking",
    "already booked",
    "is not available",
    "no available users",
)

_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(base_url=settings.cal_api_url, timeout=15.0)
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def _mask(key: str) -> str:
    return f"****{key[-4:]}" if key else "not set"


def _error_message(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or data.get("message") or "")
    return str(data.get("message") or error or "")


def _error_field(data: Any) -> str:
    if not isinstance(data, dict):
        return "unknown"
    error = data.get("error")
    if isinstance(error, dict) and error.get("field"):
        return str(error["field"])
    return str(data.get("field") or "unknown")


def is_booking_conflict_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _CONFLICT_MARKERS)


def _raise_for_status(resp: httpx.Response, endpoint: str) -> Any:
    try:
        data = resp.json()
    except ValueError:
        logger.error("Non-JSON response from Cal.com (%s): %s", resp.status_code, resp.text[:200])
        raise ProviderError(
            f"Cal.com API returned non-JSON response ({resp.status_code})",
            source=SOURCE,
            status_code=resp.status_code if resp.status_code >= 400 else 502,
        )

    if resp.is_success:
        return data

    message = _error_message(data)
    logger.error("Cal.com API error %s on %s: %s", resp.status_code, endpoint, message or data)

    if resp.status_code == 401:
        raise AuthError(f"Authentication failed: {message or 'Invalid API key'}")
    if resp.status_code == 404:
        raise NotFoundError(f"Resource not found: {endpoint}", "Cal.com API")
    if is_booking_conflict_message(message):
        raise ProviderError(
            f"Cal.com API error ({resp.status_code}): {message}",
            source=SOURCE,
            status_code=resp.status_code,
            details=data,
            booking_conflict=True,
        )
    if resp.status_code == 400:
        raise ValidationError(f"Invalid request: {message or 'Validation error'}", _error_field(data))
    raise ProviderError(
        f"Cal.com API error ({resp.status_code}): {message or 'Unknown error'}",
        source=SOURCE,
        status_code=resp.status_code,
        details=data,
    )


async def _request(
    ctx: RequestContext,
    method: str,
    endpoint: str,
    params: dict[str, Any] | None = None,
    json: Any = None,
) -> Any:
    headers = {"Content-Type": "application/json"}
    if endpoint.startswith("/v1/"):
        params = {"apiKey": ctx.cal_api_key, **(params or {})}
    else:
        headers["Authorization"] = f"Bearer {ctx.cal_api_key}"
        headers["cal-api-version"] = settings.cal_api_version

    client = _get_client()
    try:
        resp = await client.request(method, endpoint, params=params, json=json, headers=headers)
    except httpx.HTTPError as e:
        raise ProviderError(f"Connection error with Cal.com API: {e}", source=SOURCE) from e
    return _raise_for_status(resp, endpoint)


def _require(value: Any, message: str, field: str) -> None:
    if not value:
        raise ValidationError(message, field)


async def get_slots(
    ctx: RequestContext,
    start_time: str,
    end_time: str,
    event_type_id: str | None = None,
    time_zone: str | None = None,
) -> Any:
    """GET /v1/slots: available start instants, grouped by day."""
    event_type_id = event_type_id or ctx.event_type_id
    _require(start_time, "Start time is required", "startTime")
    _require(end_time, "End time is required", "endTime")
    _require(event_type_id, "Event type ID is required", "eventTypeId")
    _require(ctx.cal_api_key, "API key is required", "apiKey")

    params = {"eventTypeId": event_type_id, "startTime": start_time, "endTime": end_time}
    if time_zone:
        params["timeZone"] = time_zone
    logger.info(
        "[%s] Getting slots eventType=%s %s..%s tz=%s key=%s",
        ctx.request_id, event_type_id, start_time, end_time, time_zone, _mask(ctx.cal_api_key),
    )
    return await _request(ctx, "GET", "/v1/slots", params=params)


async def get_availability(
    ctx: RequestContext,
    event_type_id: str,
    start_date: str,
    end_date: str,
    time_zone: str = "UTC",
) -> Any:
    """Availability for a day range (YYYY-MM-DD bounds, inclusive)."""
    return await get_slots(ctx, start_date, end_date, event_type_id=event_type_id, time_zone=time_zone)


async def get_availability_by_id(ctx: RequestContext, availability_id: int) -> Any:
    """GET /v1/availabilities/{id}"""
    _require(availability_id, "Availability ID is required", "id")
    return await _request(ctx, "GET", f"/v1/availabilities/{availability_id}")


def _location(value: Any) -> dict[str, Any]:
    if not value:
        return {"value": "integrations:daily", "optionValue": ""}
    if isinstance(value, str):
        return {"value": value, "optionValue": ""}
    return {"optionValue": "", **value}


def build_booking_payload(
    request: BookingTimeRequest,
    username: str = "",
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    start = request.start_time
    end = request.end_time or start + timedelta(minutes=settings.cal_booking_duration)

    responses: dict[str, Any] = {
        "name": request.attendee.name,
        "email": request.attendee.email,
        "location": _location(request.location),
    }
    if request.attendee.phone:
        responses["phone"] = request.attendee.phone
    if request.notes:
        responses["notes"] = request.notes
    if request.guests:
        responses["guests"] = request.guests

    payload: dict[str, Any] = {
        "eventTypeId": int(request.event_type_id) if str(request.event_type_id).isdigit() else request.event_type_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "responses": responses,
        "timeZone": request.time_zone,
        "language": request.language,
        "metadata": metadata
        or {"source": "cal-vapi-integration", "created": datetime.now(timezone.utc).isoformat()},
    }
    if username:
        payload["username"] = username
    return payload


async def create_booking(ctx: RequestContext, request: BookingTimeRequest) -> dict[str, Any]:
    """POST /v1/bookings"""
    _require(ctx.cal_api_key, "API key is required", "apiKey")
    payload = build_booking_payload(request, username=ctx.cal_username)
    logger.info(
        "[%s] Creating Cal.com booking eventType=%s start=%s end=%s",
        ctx.request_id, payload["eventTypeId"], payload["start"], payload["end"],
    )
    return await _request(ctx, "POST", "/v1/bookings", json=payload)


async def reschedule_booking(
    ctx: RequestContext,
    booking_id: str,
    start: datetime,
    end: datetime,
    time_zone: str,
) -> Any:
    """PATCH /v2/bookings/{id}/reschedule"""
    _require(booking_id, "Booking ID is required", "bookingId")
    duration = round((end - start).total_seconds() / 60)
    payload = {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "timeZone": time_zone,
        "duration": duration or settings.default_duration,
    }
    return await _request(ctx, "PATCH", f"/v2/bookings/{booking_id}/reschedule", json=payload)


async def cancel_booking(ctx: RequestContext, booking_id: str, reason: str) -> Any:
    """DELETE /v2/bookings/{id}"""
    _require(booking_id, "Booking ID is required", "bookingId")
    return await _request(ctx, "DELETE", f"/v2/bookings/{booking_id}", json={"cancellationReason": reason})


async def get_booking(ctx: RequestContext, booking_id: str) -> Any:
    """GET /v2/bookings/{id}"""
    _require(booking_id, "Booking ID is required", "bookingId")
    return await _request(ctx, "GET", f"/v2/bookings/{booking_id}")
