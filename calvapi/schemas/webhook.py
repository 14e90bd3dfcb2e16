"""Normalized shapes of Vapi server-message webhooks."""

from typing import Any

from pydantic import BaseModel, Field


class FunctionCall(BaseModel):
    name: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


class ToolCall(BaseModel):
    name: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class PassthroughEvent(BaseModel):
    event_type: str | None = None


WebhookEvent = FunctionCall | ToolCall | PassthroughEvent
