"""Booking pipeline models. Serialised to callers with camelCase keys."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Attendee(CamelModel):
    name: str
    email: str
    phone: str | None = None


class BookingTimeRequest(CamelModel):
    start_time: datetime
    end_time: datetime | None = None
    time_zone: str
    event_type_id: str
    attendee: Attendee
    notes: str | None = None
    guests: list[str] = Field(default_factory=list)
    location: str | dict[str, Any] | None = None
    language: str = "en"


class AvailabilitySlot(CamelModel):
    time: datetime
    formatted_date_time: str | None = None
    spoken: str | None = None


class DateAdjustment(CamelModel):
    original: datetime
    adjusted: datetime
    reason: str


class BookingResult(CamelModel):
    success: bool
    booking: dict[str, Any] | None = None
    alternative_slots: list[AvailabilitySlot] | None = None
    date_adjusted: bool = False
    original_date: datetime | None = None
    adjusted_date: datetime | None = None
    error: str | None = None
    message: str
