"""Tests for callback delivery and retry policy."""
import asyncio
import pytest
from notifier.callbacks.base import CallbackSender
from notifier.callbacks.dispatcher import CallbackDispatcher, linear_backoff
from notifier.callbacks.memory import InMemoryCallbackSender
from notifier.errors import DeliveryFailure
from notifier.event_models import EventCategory, SIMULATED_FAILURE
from conftest import make_event


def terminal_event(callback_url="http://client.test/callback", failed=False):
    event = make_event(EventCategory.EMAIL, callback_url=callback_url)
    event.start_processing()
    if failed:
        event.fail(SIMULATED_FAILURE)
    else:
        event.complete()
    return event


def test_linear_backoff_grows_by_base_each_attempt():
    """Test backoff grows by one base unit per attempt."""
    assert [linear_backoff(n, 1.0) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]
    assert linear_backoff(2, 0.25) == 0.5


def test_linear_backoff_rejects_attempt_zero():
    """Test attempt numbers start at 1."""
    with pytest.raises(ValueError):
        linear_backoff(0, 1.0)


def test_max_retries_must_be_positive():
    """Test the dispatcher needs at least one attempt."""
    with pytest.raises(ValueError):
        CallbackDispatcher(InMemoryCallbackSender(), max_retries=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("callback_url", [None, "", "   "])
async def test_missing_callback_url_never_calls_sender(callback_url, recording_sleep):
    """Test events without a callback URL are skipped."""
    sender = InMemoryCallbackSender()
    dispatcher = CallbackDispatcher(sender, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event(callback_url=callback_url))

    assert result.skipped
    assert result.attempts == 0
    assert sender.requests == []


@pytest.mark.asyncio
async def test_first_attempt_success(recording_sleep):
    """Test a successful first attempt sends the outcome record once."""
    sender = InMemoryCallbackSender()
    dispatcher = CallbackDispatcher(sender, sleep=recording_sleep)
    event = terminal_event()

    result = await dispatcher.deliver(event)

    assert result.delivered
    assert result.attempts == 1
    assert recording_sleep.delays == []
    request = sender.requests[0]
    assert request.url == "http://client.test/callback"
    assert request.body["eventId"] == event.id
    assert request.body["status"] == "COMPLETED"
    assert request.body["eventType"] == "EMAIL"
    assert "errorMessage" not in request.body


@pytest.mark.asyncio
async def test_any_2xx_status_is_success(recording_sleep):
    """Test any 2xx status counts as delivered."""
    sender = InMemoryCallbackSender(responses=[204])
    dispatcher = CallbackDispatcher(sender, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event())

    assert result.delivered
    assert len(sender.requests) == 1


@pytest.mark.asyncio
async def test_succeeds_on_last_attempt_with_linear_backoff(recording_sleep):
    """Test delivery succeeding on the final attempt after linear waits."""
    sender = InMemoryCallbackSender(responses=[500, DeliveryFailure("connection refused"), 200])
    dispatcher = CallbackDispatcher(sender, max_retries=3, base_backoff=1.0, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event())

    assert result.delivered
    assert result.attempts == 3
    assert len(sender.requests) == 3
    assert recording_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_always_failing_target_gets_exactly_max_retries(recording_sleep):
    """Test a failing target is tried exactly max_retries times."""
    sender = InMemoryCallbackSender(default_status=503)
    dispatcher = CallbackDispatcher(sender, max_retries=4, base_backoff=0.5, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event(failed=True))

    assert not result.delivered
    assert result.attempts == 4
    assert len(sender.requests) == 4
    # No wait after the final attempt
    assert recording_sleep.delays == [0.5, 1.0, 1.5]
    assert all(r.body["errorMessage"] == SIMULATED_FAILURE for r in sender.requests)


@pytest.mark.asyncio
async def test_redirect_and_client_errors_count_as_failures(recording_sleep):
    """Test 3xx and 4xx responses are retried."""
    sender = InMemoryCallbackSender(responses=[302, 404, 201])
    dispatcher = CallbackDispatcher(sender, max_retries=3, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event())

    assert result.delivered
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_transport_errors_are_wrapped(recording_sleep):
    """Test transport errors from the sender are retried."""
    sender = InMemoryCallbackSender(responses=[ConnectionError("reset"), 200])
    dispatcher = CallbackDispatcher(sender, max_retries=2, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event())

    assert result.delivered
    assert result.attempts == 2


class RaisingSender(CallbackSender):
    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def send(self, url: str, body: bytes) -> int:
        self.calls += 1
        raise self.error


@pytest.mark.asyncio
async def test_unexpected_sender_errors_are_retried_then_exhausted(recording_sleep):
    """Test arbitrary sender exceptions count as failed attempts."""
    sender = RaisingSender(ValueError("invalid literal for int()"))
    dispatcher = CallbackDispatcher(sender, max_retries=3, base_backoff=1.0, sleep=recording_sleep)

    result = await dispatcher.deliver(terminal_event())

    assert result.delivered is False
    assert result.attempts == 3
    assert sender.calls == 3
    assert recording_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retries_are_spaced_in_real_time():
    """Test retries are spaced by real backoff waits."""
    sender = InMemoryCallbackSender(default_status=500)
    dispatcher = CallbackDispatcher(sender, max_retries=3, base_backoff=0.05)

    await dispatcher.deliver(terminal_event())

    times = [r.sent_at for r in sender.requests]
    first_gap, second_gap = times[1] - times[0], times[2] - times[1]
    assert first_gap >= 0.045
    assert second_gap >= 0.095
    assert second_gap > first_gap


@pytest.mark.asyncio
async def test_submit_runs_deliveries_concurrently_up_to_limit():
    """Test submitted deliveries respect the concurrency limit."""
    active = 0
    peak = 0
    release = asyncio.Event()

    class GatedSender(InMemoryCallbackSender):
        async def send(self, url, body):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await release.wait()
            active -= 1
            return await super().send(url, body)

    sender = GatedSender()
    dispatcher = CallbackDispatcher(sender, max_concurrency=2)
    for _ in range(5):
        dispatcher.submit(terminal_event())

    await asyncio.sleep(0.05)
    assert peak == 2
    assert dispatcher.pending == 5

    release.set()
    assert await dispatcher.drain(timeout=2) == 0
    assert len(sender.requests) == 5
    assert peak == 2


@pytest.mark.asyncio
async def test_drain_timeout_reports_pending():
    """Test drain reports deliveries still running at the timeout."""
    release = asyncio.Event()

    class StuckSender(InMemoryCallbackSender):
        async def send(self, url, body):
            await release.wait()
            return 200

    sender = StuckSender()
    dispatcher = CallbackDispatcher(sender)
    dispatcher.submit(terminal_event())

    assert await dispatcher.drain(timeout=0.05) == 1

    await dispatcher.aclose()
    assert dispatcher.pending == 0
    assert sender.closed
