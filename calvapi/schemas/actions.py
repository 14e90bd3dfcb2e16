from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ActionKind(StrEnum):
    CREATE_BOOKING = "createBooking"
    GET_AVAILABLE_SLOTS = "getAvailableSlots"
    RESCHEDULE_BOOKING = "rescheduleBooking"
    CANCEL_BOOKING = "cancelBooking"
    GET_BOOKING_DETAILS = "getBookingDetails"
    CHECK_AVAILABILITY = "checkAvailability"
    FIND_AVAILABILITY = "findAvailability"
    HANDLE_VAPI_WEBHOOK = "handleVapiWebhook"
    INITIALIZE_ASSISTANT = "initializeAssistant"
    TRIAL_STARTED = "trialStarted"


KNOWN_ACTIONS: frozenset[str] = frozenset(a.value for a in ActionKind)


class InboundRequest(BaseModel):
    method: str = "POST"
    path: str = "/"
    query_params: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    raw_body: str | None = None


class ActionRequest(BaseModel):
    action: ActionKind
    params: dict[str, Any] = Field(default_factory=dict)
