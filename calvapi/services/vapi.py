"""Vapi REST client: outbound calls, assistants and live-call messages."""

import logging
from typing import Any

import httpx

from calvapi.config import settings
from calvapi.errors import AuthError, NotFoundError, ProviderError, ValidationError

logger = logging.getLogger(__name__)

SOURCE = "vapi"

_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(base_url=settings.vapi_api_url, timeout=15.0)
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def _call_vapi(method: str, endpoint: str, json: Any = None) -> Any:
    headers = {
        "Authorization": f"Bearer {settings.vapi_api_key}",
        "Content-Type": "application/json",
    }
    client = _get_client()
    try:
        resp = await client.request(method, endpoint, json=json, headers=headers)
    except httpx.HTTPError as e:
        raise ProviderError(f"Connection error with VAPI API: {e}", source=SOURCE) from e

    try:
        data = resp.json()
    except ValueError:
        data = {}

    if resp.is_success:
        return data

    if not isinstance(data, dict):
        data = {}
    message = data.get("message")
    logger.error("VAPI API error %s on %s: %s", resp.status_code, endpoint, message or resp.text[:200])
    if resp.status_code == 401:
        raise AuthError(f"Authentication failed: {message or 'Invalid API key'}")
    if resp.status_code == 404:
        raise NotFoundError(f"Resource not found: {endpoint}", "VAPI API")
    if resp.status_code == 400:
        error = data.get("error")
        field = error.get("field") if isinstance(error, dict) else None
        raise ValidationError(f"Invalid request: {message}", field or "unknown")
    raise ProviderError(
        f"VAPI API error ({resp.status_code}): {message or 'Unknown error'}",
        source=SOURCE,
        status_code=resp.status_code,
        details=data,
    )


def _call_payload(assistant_id: str, phone_number: str, metadata: dict[str, Any] | None) -> dict[str, Any]:
    if not assistant_id:
        raise ValidationError("Assistant ID is required", "assistantId")
    if not phone_number:
        raise ValidationError("Phone number is required", "phoneNumber")
    return {
        "assistantId": assistant_id,
        "phoneNumberId": settings.vapi_phone_number_id,
        "customer": {"number": phone_number},
        "metadata": metadata or {},
    }


async def create_call(assistant_id: str, phone_number: str, metadata: dict[str, Any] | None = None) -> dict:
    """Place a regular outbound phone call."""
    return await _call_vapi("POST", "/call", _call_payload(assistant_id, phone_number, metadata))


async def create_sip_call(assistant_id: str, phone_number: str, metadata: dict[str, Any] | None = None) -> dict:
    """Place an outbound call over the SIP trunk."""
    return await _call_vapi("POST", "/call/sip", _call_payload(assistant_id, phone_number, metadata))


async def send_message(call_id: str, message: dict[str, Any]) -> dict:
    """Push a message (e.g. a function response) into a live call."""
    if not call_id:
        raise ValidationError("Call ID is required", "callId")
    return await _call_vapi("POST", f"/call/{call_id}/message", message)


async def get_call(call_id: str) -> dict:
    if not call_id:
        raise ValidationError("Call ID is required", "callId")
    return await _call_vapi("GET", f"/call/{call_id}")


async def hangup_call(call_id: str) -> dict:
    if not call_id:
        raise ValidationError("Call ID is required", "callId")
    return await _call_vapi("POST", f"/call/{call_id}/hangup")


async def create_assistant(assistant_config: dict[str, Any]) -> dict:
    if not assistant_config.get("name"):
        raise ValidationError("Assistant name is required", "name")
    return await _call_vapi("POST", "/assistant", assistant_config)


def default_assistant_config() -> dict[str, Any]:
    """Scheduling assistant used when no assistant id is configured."""
    return {
        "name": "Cal.com Scheduling Assistant",
        "model": "gpt-4",
        "voice": "shimmer",
        "firstMessage": (
            "Hello, I'm your scheduling assistant. I can help you book, reschedule, "
            "or cancel appointments. How can I assist you today?"
        ),
        "serverUrl": settings.vapi_webhook_url or None,
        "tools": [
            {
                "name": "checkAvailability",
                "description": "Check availability for booking appointments",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "startDate": {"type": "string", "description": "First day to check, YYYY-MM-DD"},
                        "endDate": {"type": "string", "description": "Last day to check, YYYY-MM-DD"},
                        "timeZone": {"type": "string", "description": "Caller's IANA time zone"},
                    },
                    "required": ["startDate", "endDate"],
                },
            },
            {
                "name": "createBooking",
                "description": "Book an appointment",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Customer's full name"},
                        "email": {"type": "string", "description": "Customer's email address"},
                        "phone": {"type": "string", "description": "Customer's phone number"},
                        "startTime": {"type": "string", "description": "ISO-8601 start time"},
                        "timeZone": {"type": "string", "description": "Caller's IANA time zone"},
                    },
                    "required": ["name", "email", "startTime", "timeZone"],
                },
            },
        ],
    }
