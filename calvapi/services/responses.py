"""Render action outcomes as HTTP JSON envelopes or Vapi function responses.

Vapi requires HTTP 200 for every server-message reply, so function-call
outcomes (errors included) are wrapped in a ``function_response`` body.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi.responses import JSONResponse

from calvapi.config import settings
from calvapi.errors import ConflictError, IntegrationError, NotFoundError, ValidationError
from calvapi.schemas.booking import BookingResult
from calvapi.services.messages import format_conflict

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@dataclass
class ActionResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


def ok(body: dict[str, Any]) -> ActionResult:
    return ActionResult(200, {"success": True, **body})


def booking_response(result: BookingResult) -> ActionResult:
    return ActionResult(200 if result.success else 409, result.to_payload())


def error_response(exc: Exception) -> ActionResult:
    if isinstance(exc, IntegrationError):
        body: dict[str, Any] = {"success": False, "error": exc.message, "type": exc.error_type}
        if isinstance(exc, ValidationError):
            body["field"] = exc.field
        if isinstance(exc, NotFoundError):
            body["resource"] = exc.resource
        if isinstance(exc, ConflictError):
            body["alternativeSlots"] = exc.alternative_slots
        logger.warning("%s (%s): %s", exc.error_type, exc.status_code, exc.message)
        return ActionResult(exc.status_code, body)

    logger.exception("Unhandled error: %s", exc)
    message = str(exc) if settings.debug and str(exc) else "An unknown error occurred"
    return ActionResult(500, {"success": False, "error": message, "type": "UnclassifiedError"})


def function_response(name: str | None, outcome: ActionResult | Exception) -> ActionResult:
    """Wrap a function-call outcome in the envelope Vapi reads back to the caller."""
    inner: dict[str, Any] = {"name": name}

    if isinstance(outcome, ConflictError):
        inner["response"] = {
            "success": False,
            "error": outcome.message,
            "alternativeSlots": outcome.alternative_slots,
            "message": format_conflict(len(outcome.alternative_slots)),
        }
    elif isinstance(outcome, Exception):
        inner["error"] = outcome.message if isinstance(outcome, IntegrationError) else str(outcome)
    elif outcome.status_code == 409 and "alternativeSlots" in outcome.body:
        inner["response"] = {
            "success": False,
            "error": outcome.body.get("error"),
            "alternativeSlots": outcome.body["alternativeSlots"],
            "message": outcome.body.get("message"),
        }
    elif outcome.status_code >= 400:
        inner["error"] = outcome.body.get("error") or "Request failed"
    else:
        inner["response"] = outcome.body

    return ActionResult(200, {"response": {"type": "function_response", "function_response": inner}})


def to_http(result: ActionResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body, headers=CORS_HEADERS)
