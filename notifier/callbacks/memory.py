"""In-memory callback sender."""
from collections import deque
from dataclasses import dataclass
import time
import orjson
from .base import CallbackSender
from ..errors import DeliveryFailure


@dataclass
class RecordedCallback:
    url: str
    body: dict
    sent_at: float


class InMemoryCallbackSender(CallbackSender):
    """
    Records callback requests instead of sending them.

    Responses are scripted: each call consumes the next entry of `responses`
    (an int status code, or an exception to raise). Once the script runs out
    every call answers `default_status`.
    """

    def __init__(self, responses=None, default_status: int = 200):
        self._responses = deque(responses or [])
        self.default_status = default_status
        self.requests: list[RecordedCallback] = []
        self.closed = False

    async def send(self, url: str, body: bytes) -> int:
        self.requests.append(RecordedCallback(url=url, body=orjson.loads(body), sent_at=time.monotonic()))
        response = self._responses.popleft() if self._responses else self.default_status
        if isinstance(response, Exception):
            if isinstance(response, DeliveryFailure):
                raise response
            raise DeliveryFailure(f"Failed to send callback: {response}") from response
        return response

    def for_event(self, event_id: str) -> list[RecordedCallback]:
        return [r for r in self.requests if r.body.get("eventId") == event_id]

    async def aclose(self):
        self.closed = True
