"""Callback dispatcher with bounded linear-backoff retries."""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable
import orjson
import structlog
from .base import CallbackSender
from ..errors import DeliveryExhausted, DeliveryFailure
from ..event_models import Event

log = structlog.get_logger()

Sleep = Callable[[float], Awaitable[None]]


def linear_backoff(attempt: int, base_backoff: float) -> float:
    """
    Delay before the retry that follows a failed attempt.

    Attempts are numbered from 1, so the waits are base, 2*base, 3*base...
    """
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")
    return attempt * base_backoff


@dataclass
class DeliveryResult:
    event_id: str
    delivered: bool
    attempts: int
    skipped: bool = False


class CallbackDispatcher:
    """
    Reports terminal event outcomes to their callback targets.

    `deliver` runs the retry loop for one event. `submit` schedules `deliver`
    on a bounded pool of concurrent deliveries and returns immediately, so a
    slow callback target never holds up a processing worker.
    """

    def __init__(
        self,
        sender: CallbackSender,
        max_retries: int = 3,
        base_backoff: float = 1.0,
        max_concurrency: int = 5,
        sleep: Sleep = asyncio.sleep,
        metrics=None,
    ):
        """
        Initialize the dispatcher.

        Args:
            sender: Transport used for each attempt
            max_retries: Total attempts per event (at least 1)
            base_backoff: Backoff unit in seconds
            max_concurrency: Deliveries allowed in flight at once
            sleep: Awaitable sleep, injectable for tests
            metrics: Optional Metrics instance
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.sender = sender
        self.max_retries = max_retries
        self.base_backoff = base_backoff
        self.max_concurrency = max_concurrency
        self._sleep = sleep
        self._metrics = metrics
        self._slots: asyncio.Semaphore | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of deliveries scheduled but not yet finished."""
        return sum(1 for task in self._in_flight if not task.done())

    def backoff(self, attempt: int) -> float:
        return linear_backoff(attempt, self.base_backoff)

    def submit(self, event: Event) -> asyncio.Task:
        """Schedule delivery for an event without waiting for it."""
        if self._slots is None:
            self._slots = asyncio.Semaphore(self.max_concurrency)
        task = asyncio.create_task(self._run(event), name=f"callback-{event.id}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _run(self, event: Event) -> DeliveryResult:
        async with self._slots:
            return await self.deliver(event)

    async def deliver(self, event: Event) -> DeliveryResult:
        """
        Deliver an event's outcome, retrying up to max_retries times.

        Never raises for delivery problems; exhaustion is logged and reported
        in the returned result.
        """
        url = event.callback_url
        if not url or not url.strip():
            log.warning("callback.skipped", event_id=event.id, reason="no callback url")
            return DeliveryResult(event_id=event.id, delivered=False, attempts=0, skipped=True)

        body = orjson.dumps(event.to_outcome().to_wire())
        log.info("callback.sending", event_id=event.id, url=url)

        last_error: DeliveryFailure | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                status_code = await self.sender.send(url, body)
                if not 200 <= status_code < 300:
                    raise DeliveryFailure(
                        f"Callback returned non-success status: {status_code}",
                        status_code=status_code,
                    )
            except DeliveryFailure as e:
                last_error = e
            except Exception as e:
                last_error = DeliveryFailure(f"Failed to send callback: {e}")
                last_error.__cause__ = e
            else:
                self._record("success")
                log.info("callback.delivered", event_id=event.id, attempt=attempt)
                return DeliveryResult(event_id=event.id, delivered=True, attempts=attempt)

            self._record("failure")
            log.warning(
                "callback.attempt_failed",
                event_id=event.id,
                attempt=attempt,
                status_code=last_error.status_code,
                error=str(last_error),
            )
            if attempt < self.max_retries:
                await self._sleep(self.backoff(attempt))

        exhausted = DeliveryExhausted(event.id, self.max_retries, last_error)
        if self._metrics is not None:
            self._metrics.record_callback_exhausted()
        log.error("callback.exhausted", event_id=event.id, attempts=self.max_retries, error=str(exhausted))
        return DeliveryResult(event_id=event.id, delivered=False, attempts=self.max_retries)

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for in-flight deliveries to finish.

        Returns:
            Number of deliveries still pending when the wait ended
        """
        if self._in_flight:
            log.info("callback.draining", pending=len(self._in_flight))
            await asyncio.wait(set(self._in_flight), timeout=timeout)
        return self.pending

    async def aclose(self):
        """Cancel anything still in flight and close the sender."""
        for task in list(self._in_flight):
            task.cancel()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        await self.sender.aclose()

    def _record(self, result: str):
        if self._metrics is not None:
            self._metrics.record_callback_attempt(result)
