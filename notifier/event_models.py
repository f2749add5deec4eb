from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Any, Dict
from datetime import datetime, timezone
from enum import Enum
import uuid

from .errors import InvalidTransition


class EventCategory(str, Enum):
    """Notification channel types; each one gets its own queue and worker."""
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class EventState(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({EventState.COMPLETED, EventState.FAILED})

SIMULATED_FAILURE = "Simulated processing failure"
PROCESSING_INTERRUPTED = "Processing interrupted"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CategoryConfig(BaseModel):
    """Per-category processing parameters."""
    model_config = ConfigDict(frozen=True)

    delay_ms: int = Field(..., ge=0, description="Simulated processing latency")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


class Event(BaseModel):
    """
    A notification event moving through the pipeline.

    Identity (id, category, payload, callback_url, created_at) is fixed at
    intake. Lifecycle fields change only through the transition methods, which
    are called by the worker that currently owns the event.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    category: EventCategory = Field(frozen=True)
    payload: Dict[str, Any] = Field(default_factory=dict, frozen=True)
    callback_url: str | None = Field(default=None, frozen=True)
    created_at: datetime = Field(default_factory=utcnow, frozen=True)
    state: EventState = EventState.PENDING
    completed_at: datetime | None = None
    failure_reason: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def start_processing(self):
        self._move(EventState.PROCESSING, allowed={EventState.PENDING})

    def complete(self):
        self._move(EventState.COMPLETED, allowed={EventState.PROCESSING})
        self.completed_at = utcnow()

    def fail(self, reason: str):
        if not reason or not reason.strip():
            raise ValueError("failure reason must not be blank")
        self._move(EventState.FAILED, allowed={EventState.PENDING, EventState.PROCESSING})
        self.failure_reason = reason
        self.completed_at = utcnow()

    def _move(self, target: EventState, allowed: set[EventState]):
        if self.state not in allowed:
            raise InvalidTransition(self.id, self.state.value, target.value)
        self.state = target

    def to_outcome(self) -> "CallbackOutcome":
        """Build the outcome record reported to the callback target."""
        if not self.is_terminal:
            raise InvalidTransition(self.id, self.state.value, "outcome")
        return CallbackOutcome(
            event_id=self.id,
            status=self.state,
            event_type=self.category,
            error_message=self.failure_reason if self.state == EventState.FAILED else None,
            processed_at=self.completed_at,
        )


class CallbackOutcome(BaseModel):
    """Terminal status payload sent to a callback target."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    event_id: str = Field(..., alias="eventId")
    status: EventState
    event_type: EventCategory = Field(..., alias="eventType")
    error_message: str | None = Field(default=None, alias="errorMessage")
    processed_at: datetime = Field(..., alias="processedAt")

    @field_serializer("processed_at")
    def _format_processed_at(self, value: datetime) -> str:
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict; errorMessage is present only for failures."""
        return self.model_dump(by_alias=True, exclude_none=True)
