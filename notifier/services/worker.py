"""Processing workers: one sequential consumer per event category."""
import asyncio
import random
import time
from typing import Mapping
import structlog
from ..callbacks.dispatcher import CallbackDispatcher
from ..event_models import (
    CategoryConfig,
    Event,
    EventCategory,
    EventState,
    PROCESSING_INTERRUPTED,
    SIMULATED_FAILURE,
)
from ..queues.router import QueueRouter

log = structlog.get_logger()


class CategoryWorker:
    """
    Consumes one category queue in FIFO order.

    Every dequeued event is driven to a terminal state and handed to the
    dispatcher, whatever happens during processing.
    """

    def __init__(
        self,
        category: EventCategory,
        queue: asyncio.Queue,
        config: CategoryConfig,
        dispatcher: CallbackDispatcher,
        stop_signal: asyncio.Event,
        failure_rate: float = 0.1,
        poll_interval: float = 1.0,
        rng: random.Random | None = None,
        metrics=None,
    ):
        self.category = category
        self.config = config
        self.failure_rate = failure_rate
        self.poll_interval = poll_interval
        self.processed = 0
        self.current: Event | None = None
        self._queue = queue
        self._dispatcher = dispatcher
        self._stop = stop_signal
        self._rng = rng or random.Random()
        self._metrics = metrics

    async def run(self):
        log.info("worker.started", event_type=self.category.value)
        while not self._stop.is_set():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                continue
            await self._handle(event)

        await self.drain()
        log.info("worker.stopped", event_type=self.category.value, processed=self.processed)

    async def drain(self):
        """Process everything still queued without waiting for new arrivals."""
        remaining = self._queue.qsize()
        if remaining:
            log.info("worker.draining", event_type=self.category.value, remaining=remaining)
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._handle(event)

    async def _handle(self, event: Event):
        self.current = event
        try:
            await self.process(event)
        finally:
            self.current = None
            self._queue.task_done()
            self.processed += 1

    async def process(self, event: Event):
        """Run one event through PROCESSING to COMPLETED or FAILED, then dispatch."""
        log.info("event.processing", event_id=event.id, event_type=event.category.value)
        started = time.monotonic()
        try:
            event.start_processing()
            await asyncio.sleep(self.config.delay_seconds)
            if self._rng.random() < self.failure_rate:
                event.fail(SIMULATED_FAILURE)
            else:
                event.complete()
        except asyncio.CancelledError:
            log.warning("event.interrupted", event_id=event.id, event_type=event.category.value)
            if not event.is_terminal:
                event.fail(PROCESSING_INTERRUPTED)
            self._finish(event, started)
            raise
        except Exception as e:
            log.error(
                "event.processing_error",
                event_id=event.id,
                event_type=event.category.value,
                error=str(e),
                exc_info=True,
            )
            if not event.is_terminal:
                event.fail(str(e) or type(e).__name__)

        self._finish(event, started)

    def _finish(self, event: Event, started: float):
        duration_ms = round((time.monotonic() - started) * 1000, 2)
        log_method = log.info if event.state == EventState.COMPLETED else log.warning
        log_method(
            "event.processed",
            event_id=event.id,
            event_type=event.category.value,
            status=event.state.value,
            error=event.failure_reason,
            duration_ms=duration_ms,
        )
        if self._metrics is not None:
            self._metrics.record_event_processed(event.category.value, event.state.value, duration_ms / 1000)
            self._metrics.set_queue_depth(event.category.value, self._queue.qsize())
        self._dispatcher.submit(event)


class WorkerPool:
    """Starts one CategoryWorker per router category and stops them together."""

    def __init__(
        self,
        router: QueueRouter,
        dispatcher: CallbackDispatcher,
        configs: Mapping[EventCategory, CategoryConfig],
        failure_rate: float = 0.1,
        poll_interval: float = 1.0,
        rng: random.Random | None = None,
        metrics=None,
    ):
        self.stop_signal = asyncio.Event()
        self.workers: dict[EventCategory, CategoryWorker] = {}
        for category in router.categories:
            config = configs.get(category)
            if config is None:
                raise ValueError(f"No processing configuration for {category.value}")
            self.workers[category] = CategoryWorker(
                category=category,
                queue=router.queue_for(category),
                config=config,
                dispatcher=dispatcher,
                stop_signal=self.stop_signal,
                failure_rate=failure_rate,
                poll_interval=poll_interval,
                rng=rng,
                metrics=metrics,
            )
        self.tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self.tasks) and not all(task.done() for task in self.tasks)

    @property
    def in_progress(self) -> int:
        """Events dequeued but not yet through processing."""
        return sum(1 for worker in self.workers.values() if worker.current is not None)

    def start(self):
        if self.tasks:
            return
        for category, worker in self.workers.items():
            self.tasks.append(asyncio.create_task(worker.run(), name=f"worker-{category.value}"))

    def signal_stop(self):
        """Ask workers to drain their queues and exit."""
        self.stop_signal.set()

    async def cancel(self):
        """Hard-stop any worker still running."""
        for task in self.tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)
