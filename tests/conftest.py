"""Shared fixtures for notifier tests."""
import pytest
from notifier.config import Settings
from notifier.event_models import Event, EventCategory


def fast_settings(**overrides) -> Settings:
    """Settings with delays short enough for tests."""
    values = dict(
        EMAIL_DELAY_MS=100,
        SMS_DELAY_MS=50,
        PUSH_DELAY_MS=20,
        FAILURE_RATE=0.0,
        CALLBACK_MAX_RETRIES=3,
        CALLBACK_BACKOFF_MS=10,
        CALLBACK_TIMEOUT_MS=1000,
        CALLBACK_WORKERS=2,
        SHUTDOWN_TIMEOUT_MS=5000,
        POLL_INTERVAL_MS=50,
        LOG_JSON=False,
    )
    values.update(overrides)
    return Settings(**values)


def make_event(category: EventCategory = EventCategory.EMAIL, callback_url: str | None = "http://client.test/callback", **payload) -> Event:
    return Event(category=category, payload=payload or {"message": "hi"}, callback_url=callback_url)


@pytest.fixture
def settings() -> Settings:
    return fast_settings()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
