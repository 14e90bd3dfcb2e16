"""Pick one action from an inbound request.

Callers put the intent in different places: the web front end uses
``?action=``, some integrations post to ``/createBooking``, and Vapi posts
unannotated webhooks to whatever server URL the assistant was given.
"""

import json
import logging
from typing import Any

from calvapi.errors import ValidationError
from calvapi.schemas.actions import KNOWN_ACTIONS, ActionKind, ActionRequest, InboundRequest

logger = logging.getLogger(__name__)


def parse_body(raw_body: str | None) -> dict[str, Any]:
    """Decode a JSON object body. Anything else counts as an empty body."""
    if not raw_body or not raw_body.strip():
        return {}
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed JSON body: %s", e)
        return {}
    if not isinstance(body, dict):
        logger.warning("Ignoring non-object JSON body of type %s", type(body).__name__)
        return {}
    return body


def _last_segment(path: str) -> str:
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else ""


def _pick_action(path: str, query: dict[str, str], body: dict[str, Any]) -> str:
    segment = _last_segment(path)
    normalized = "/" + "/".join(s for s in path.split("/") if s)

    if segment == ActionKind.CREATE_BOOKING or normalized == "/createBooking":
        return ActionKind.CREATE_BOOKING
    if query.get("action"):
        return query["action"]
    if segment in KNOWN_ACTIONS:
        return segment
    if segment:
        # Unknown paths are Vapi server URLs, not client mistakes.
        return ActionKind.HANDLE_VAPI_WEBHOOK
    if body.get("action"):
        return str(body["action"])
    return ActionKind.HANDLE_VAPI_WEBHOOK


def resolve(request: InboundRequest) -> ActionRequest:
    body = parse_body(request.raw_body)
    action = str(_pick_action(request.path, request.query_params, body))

    params = dict(body)
    for key, value in request.query_params.items():
        if key not in params:
            params[key] = value
    params.setdefault("action", action)

    if action not in KNOWN_ACTIONS:
        raise ValidationError("Invalid action specified", "action")

    return ActionRequest(action=ActionKind(action), params=params)
