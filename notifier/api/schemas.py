from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict
from ..event_models import EventCategory

# Payload keys each category needs before it can be queued
REQUIRED_PAYLOAD_FIELDS: Dict[EventCategory, tuple[str, ...]] = {
    EventCategory.EMAIL: ("recipient", "message"),
    EventCategory.SMS: ("phoneNumber", "message"),
    EventCategory.PUSH: ("deviceId", "message"),
}


class EventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_type: EventCategory = Field(..., alias="eventType")
    payload: Dict[str, Any]
    callback_url: str = Field(..., alias="callbackUrl")

    @field_validator("callback_url")
    @classmethod
    def validate_callback_url(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Callback URL is required")
        return v.strip()

    @model_validator(mode="after")
    def validate_payload_fields(self) -> "EventRequest":
        required = REQUIRED_PAYLOAD_FIELDS.get(self.event_type, ())
        missing = [name for name in required if name not in self.payload]
        if missing:
            fields = " and ".join(f"'{name}'" for name in required)
            raise ValueError(f"{self.event_type.value} event payload must contain {fields} fields")
        return self


class EventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., serialization_alias="eventId")
    message: str


class QueueStatusResponse(BaseModel):
    queues: Dict[str, int]
    total: int
    in_progress: int
    pending_callbacks: int
    shutting_down: bool
    running: bool


class ErrorResponse(BaseModel):
    error: str
    message: str
