"""Action handlers and the dispatcher that routes a resolved action to them."""

import logging
from typing import Any, assert_never

from calvapi.config import settings
from calvapi.errors import IntegrationError, UnclassifiedError, ValidationError
from calvapi.schemas.actions import ActionKind, ActionRequest
from calvapi.schemas.webhook import FunctionCall, PassthroughEvent, ToolCall
from calvapi.services import cal_api, vapi
from calvapi.services.availability import extract_slots
from calvapi.services.booking import BookingOrchestrator
from calvapi.services.context import RequestContext
from calvapi.services.messages import BOOKING_CANCELLED
from calvapi.services.phone import validate_phone_number
from calvapi.services.responses import ActionResult, booking_response, function_response, ok
from calvapi.services.webhook import normalize

logger = logging.getLogger(__name__)

# Functions a Vapi assistant may invoke through a function-call webhook.
VOICE_FUNCTIONS: frozenset[str] = frozenset(
    kind.value
    for kind in (
        ActionKind.CHECK_AVAILABILITY,
        ActionKind.GET_AVAILABLE_SLOTS,
        ActionKind.CREATE_BOOKING,
        ActionKind.RESCHEDULE_BOOKING,
        ActionKind.CANCEL_BOOKING,
        ActionKind.GET_BOOKING_DETAILS,
    )
)

BOOKING_TOOL = "booking"


def _require(params: dict[str, Any], *keys: str) -> None:
    for key in keys:
        if not params.get(key):
            raise ValidationError(f"Missing required parameter: {key}", key)


async def create_booking(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    logger.info("[%s] Creating booking", ctx.request_id)
    result = await BookingOrchestrator(ctx).create_booking(params)
    return booking_response(result)


async def reschedule_booking(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    logger.info("[%s] Rescheduling booking %s", ctx.request_id, params.get("bookingId"))
    return ActionResult(200, await BookingOrchestrator(ctx).reschedule_booking(params))


async def cancel_booking(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    _require(params, "bookingId")
    logger.info("[%s] Cancelling booking %s", ctx.request_id, params["bookingId"])
    reason = params.get("reason") or "Cancelled by user"
    booking = await cal_api.cancel_booking(ctx, str(params["bookingId"]), reason)
    return ok({"booking": booking, "message": BOOKING_CANCELLED})


async def get_booking_details(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    _require(params, "bookingId")
    booking = await cal_api.get_booking(ctx, str(params["bookingId"]))
    return ok({"booking": booking})


async def check_availability(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    """Slots between two days, rendered for the voice agent to read out."""
    _require(params, "startDate", "endDate")
    time_zone = params.get("timeZone") or ctx.time_zone
    payload = await cal_api.get_availability(
        ctx, ctx.event_type_id, str(params["startDate"]), str(params["endDate"]), time_zone
    )
    slots = extract_slots(payload, time_zone)
    logger.info("[%s] %d slots between %s and %s", ctx.request_id, len(slots), params["startDate"], params["endDate"])
    return ok({"availability": [slot.to_payload() for slot in slots]})


async def get_available_slots(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    _require(params, "startTime", "endTime")
    payload = await cal_api.get_slots(
        ctx,
        str(params["startTime"]),
        str(params["endTime"]),
        event_type_id=ctx.event_type_id,
        time_zone=params.get("timeZone"),
    )
    slots = payload.get("slots", payload) if isinstance(payload, dict) else payload
    return ok({"slots": slots})


async def find_availability(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    _require(params, "id")
    try:
        availability_id = int(params["id"])
    except (TypeError, ValueError):
        raise ValidationError("Invalid availability ID", "id")
    availability = await cal_api.get_availability_by_id(ctx, availability_id)
    return ok({"availability": availability})


async def initialize_assistant(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    assistant_id = settings.vapi_assistant_id
    if not assistant_id:
        logger.info("[%s] Creating new VAPI assistant", ctx.request_id)
        assistant = await vapi.create_assistant(vapi.default_assistant_config())
        assistant_id = assistant["id"]
        logger.info("[%s] Created VAPI assistant %s", ctx.request_id, assistant_id)

    return ok(
        {
            "assistantId": assistant_id,
            "apiKey": settings.vapi_public_key,
            "message": "VAPI assistant ready for web integration",
            "instructions": (
                "Use this assistantId and apiKey with the VAPI Web SDK to integrate "
                "voice interface on your website."
            ),
        }
    )


async def place_outbound_call(
    assistant_id: str,
    phone_number: str,
    metadata: dict[str, Any],
    request_id: str = "",
) -> dict:
    """SIP first; a plain call only if SIP fails. Each is tried once."""
    try:
        call = await vapi.create_sip_call(assistant_id, phone_number, metadata)
        logger.info("[%s] SIP outbound call placed: %s", request_id, call.get("id"))
        return call
    except IntegrationError as sip_error:
        logger.warning("[%s] SIP outbound call failed, falling back to regular call: %s", request_id, sip_error)

    call = await vapi.create_call(assistant_id, phone_number, metadata)
    logger.info("[%s] Regular outbound call placed: %s", request_id, call.get("id"))
    return call


async def trial_started(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    _require(params, "name", "email", "phoneNumber")
    phone_number = validate_phone_number(str(params["phoneNumber"]))

    assistant_id = settings.vapi_assistant_id
    if not assistant_id:
        raise UnclassifiedError("No VAPI assistant ID configured")

    metadata = {
        "userId": params["email"],
        "userName": params["name"],
        "userEmail": params["email"],
        "userPhone": phone_number,
    }
    logger.info("[%s] Calling %s with assistant %s", ctx.request_id, phone_number, assistant_id)
    call = await place_outbound_call(assistant_id, phone_number, metadata, ctx.request_id)
    return ok({"callId": call.get("id"), "message": "Call initiated successfully"})


async def _forward_to_call(call_id: str, result: ActionResult, request_id: str) -> None:
    try:
        await vapi.send_message(call_id, result.body["response"])
    except IntegrationError as e:
        logger.warning("[%s] Could not forward function response to call %s: %s", request_id, call_id, e)


async def handle_function_call(call: FunctionCall, ctx: RequestContext) -> ActionResult:
    logger.info("[%s] Handling function call %s (call=%s)", ctx.request_id, call.name, call.call_id)
    outcome: ActionResult | Exception
    try:
        if call.name not in VOICE_FUNCTIONS:
            raise ValidationError(f"Unknown function: {call.name}", "function")
        request = ActionRequest(action=ActionKind(call.name), params=call.parameters)
        outcome = await dispatch(request, ctx.with_overrides(call.parameters))
    except IntegrationError as e:
        logger.warning("[%s] Function %s failed: %s", ctx.request_id, call.name, e)
        outcome = e
    except Exception as e:
        logger.exception("[%s] Function %s crashed", ctx.request_id, call.name)
        outcome = e

    result = function_response(call.name, outcome)
    if settings.vapi_forward_function_results and call.call_id:
        await _forward_to_call(call.call_id, result, ctx.request_id)
    return result


async def handle_vapi_webhook(params: dict[str, Any], ctx: RequestContext) -> ActionResult:
    event = normalize(params)
    logger.info("[%s] Received VAPI webhook: %s", ctx.request_id, type(event).__name__)

    match event:
        case FunctionCall():
            return await handle_function_call(event, ctx)
        case ToolCall(name=name) if name == BOOKING_TOOL:
            return await create_booking(event.parameters, ctx.with_overrides(event.parameters))
        case ToolCall(name=name):
            logger.warning("[%s] Unknown tool called: %s", ctx.request_id, name)
            return ActionResult(400, {"success": False, "error": f"Unknown tool: {name}"})
        case PassthroughEvent():
            return ok({})
        case _:
            assert_never(event)


async def dispatch(request: ActionRequest, ctx: RequestContext) -> ActionResult:
    params = request.params
    match request.action:
        case ActionKind.CREATE_BOOKING:
            return await create_booking(params, ctx)
        case ActionKind.GET_AVAILABLE_SLOTS:
            return await get_available_slots(params, ctx)
        case ActionKind.RESCHEDULE_BOOKING:
            return await reschedule_booking(params, ctx)
        case ActionKind.CANCEL_BOOKING:
            return await cancel_booking(params, ctx)
        case ActionKind.GET_BOOKING_DETAILS:
            return await get_booking_details(params, ctx)
        case ActionKind.CHECK_AVAILABILITY:
            return await check_availability(params, ctx)
        case ActionKind.FIND_AVAILABILITY:
            return await find_availability(params, ctx)
        case ActionKind.HANDLE_VAPI_WEBHOOK:
            return await handle_vapi_webhook(params, ctx)
        case ActionKind.INITIALIZE_ASSISTANT:
            return await initialize_assistant(params, ctx)
        case ActionKind.TRIAL_STARTED:
            return await trial_started(params, ctx)
        case _:
            assert_never(request.action)
