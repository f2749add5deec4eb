"""Notification service: intake, operational status and lifecycle."""
import random
import time
from typing import Any, Dict
import structlog
from ..callbacks.base import CallbackSender
from ..callbacks.dispatcher import CallbackDispatcher
from ..callbacks.http import HttpCallbackSender
from ..config import Settings, get_settings
from ..errors import UnsupportedCategory
from ..event_models import Event, EventCategory
from ..queues.router import QueueRouter
from .shutdown import ShutdownCoordinator, ShutdownReport
from .worker import WorkerPool

log = structlog.get_logger()


class NotificationService:
    """
    Wires the pipeline together from settings.

    intake -> QueueRouter -> CategoryWorker -> CallbackDispatcher, with a
    ShutdownCoordinator that drains it all on the way out.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        sender: CallbackSender | None = None,
        rng: random.Random | None = None,
        metrics=None,
    ):
        """
        Initialize the service.

        Args:
            settings: Configuration (defaults to the cached environment settings)
            sender: Callback transport (defaults to the httpx sender)
            rng: Random source for failure injection
            metrics: Optional Metrics instance
        """
        self.settings = settings or get_settings()
        self._metrics = metrics
        configs = self.settings.category_configs()

        self.router = QueueRouter(configs.keys())
        self.dispatcher = CallbackDispatcher(
            sender=sender or HttpCallbackSender(timeout_ms=self.settings.CALLBACK_TIMEOUT_MS),
            max_retries=self.settings.CALLBACK_MAX_RETRIES,
            base_backoff=self.settings.CALLBACK_BACKOFF_MS / 1000,
            max_concurrency=self.settings.CALLBACK_WORKERS,
            metrics=metrics,
        )
        poll_interval = self.settings.POLL_INTERVAL_MS / 1000
        self.workers = WorkerPool(
            router=self.router,
            dispatcher=self.dispatcher,
            configs=configs,
            failure_rate=self.settings.FAILURE_RATE,
            poll_interval=poll_interval,
            rng=rng,
            metrics=metrics,
        )
        self.coordinator = ShutdownCoordinator(
            router=self.router,
            workers=self.workers,
            dispatcher=self.dispatcher,
            timeout=self.settings.SHUTDOWN_TIMEOUT_MS / 1000,
            poll_interval=poll_interval,
        )

    @property
    def running(self) -> bool:
        return self.workers.running

    @property
    def shutting_down(self) -> bool:
        return self.router.is_closed

    async def start(self):
        """Launch one worker per category."""
        if self.workers.tasks:
            return
        self.workers.start()
        log.info(
            "service.started",
            categories=[c.value for c in self.router.categories],
            failure_rate=self.settings.FAILURE_RATE,
        )

    async def submit(
        self,
        category: EventCategory,
        payload: Dict[str, Any],
        callback_url: str | None = None,
    ) -> str:
        """
        Accept an event for asynchronous processing.

        Returns:
            The new event's id

        Raises:
            Rejected: If shutdown is in progress
            UnsupportedCategory: If the category has no queue
        """
        start_time = time.time()
        try:
            category = EventCategory(category)
        except ValueError:
            raise UnsupportedCategory(category) from None
        event = Event(category=category, payload=payload, callback_url=callback_url)
        await self.router.enqueue(event)
        if self._metrics is not None:
            self._metrics.record_event_accepted(event.category.value, time.time() - start_time)
            self._metrics.set_queue_depth(event.category.value, self.router.size_of(event.category))
        return event.id

    def status(self) -> Dict[str, Any]:
        """Point-in-time view for health and monitoring."""
        sizes = self.router.sizes()
        if self._metrics is not None:
            for event_type, size in sizes.items():
                self._metrics.set_queue_depth(event_type, size)
        return {
            "queues": sizes,
            "total": sum(sizes.values()),
            "in_progress": self.workers.in_progress,
            "pending_callbacks": self.dispatcher.pending,
            "shutting_down": self.shutting_down,
            "running": self.running,
        }

    async def shutdown(self) -> ShutdownReport:
        return await self.coordinator.initiate()
