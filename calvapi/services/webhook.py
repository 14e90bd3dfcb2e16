import json
import logging
from typing import Any

from calvapi.schemas.webhook import FunctionCall, PassthroughEvent, ToolCall, WebhookEvent

logger = logging.getLogger(__name__)

_FUNCTION_TYPES = ("function", "function-call")


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _function_parameters(payload: dict[str, Any], function_call: dict[str, Any]) -> dict[str, Any]:
    if payload.get("parameters"):
        return _as_dict(payload["parameters"])
    if function_call.get("parameters"):
        return _as_dict(function_call["parameters"])

    arguments = function_call.get("arguments")
    if isinstance(arguments, dict):
        return arguments
    if arguments:
        try:
            return _as_dict(json.loads(arguments))
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("Error parsing function arguments %r: %s", arguments, e)
    return {}


def _call_id(payload: dict[str, Any]) -> str | None:
    call_id = (
        payload.get("callId")
        or _as_dict(payload.get("call")).get("id")
        or _as_dict(_as_dict(payload.get("message")).get("call")).get("id")
    )
    return str(call_id) if call_id else None


def normalize(payload: dict[str, Any]) -> WebhookEvent:
    """Flatten a Vapi webhook body into one of the three event shapes."""
    event_type = payload.get("type")

    if event_type in _FUNCTION_TYPES:
        function_call = _as_dict(payload.get("functionCall"))
        return FunctionCall(
            name=payload.get("function") or function_call.get("name"),
            parameters=_function_parameters(payload, function_call),
            call_id=_call_id(payload),
        )

    if event_type == "tool":
        tool = _as_dict(payload.get("tool"))
        return ToolCall(name=tool.get("name"), parameters=_as_dict(tool.get("parameters")))

    if event_type not in ("transcript", "call_ended", "status-update"):
        logger.info("Unhandled webhook type: %s", event_type)
    return PassthroughEvent(event_type=event_type)
