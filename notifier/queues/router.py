"""Queue router: one FIFO queue per event category."""
import asyncio
from typing import Iterable
import structlog
from ..errors import Rejected, UnsupportedCategory
from ..event_models import Event, EventCategory

log = structlog.get_logger()


class QueueRouter:
    """
    Owns one unbounded FIFO queue per category and gates admission.

    Each queue has exactly one consumer (the worker for that category), so
    events of one category are seen in the order they were enqueued. Nothing
    is promised across categories.
    """

    def __init__(self, categories: Iterable[EventCategory] | None = None):
        """
        Initialize the router.

        Args:
            categories: Categories to create queues for (defaults to all)
        """
        if categories is None:
            categories = list(EventCategory)
        self._queues: dict[EventCategory, asyncio.Queue[Event]] = {
            category: asyncio.Queue() for category in categories
        }
        self._closed = False
        for category in self._queues:
            log.info("queue.initialized", event_type=category.value)

    @property
    def categories(self) -> list[EventCategory]:
        return list(self._queues)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def queue_for(self, category: EventCategory) -> asyncio.Queue[Event]:
        """Return the queue serving a category."""
        try:
            return self._queues[category]
        except KeyError:
            raise UnsupportedCategory(category) from None

    async def enqueue(self, event: Event):
        """
        Append an event to its category queue.

        Raises:
            Rejected: If the router has been closed
            UnsupportedCategory: If no queue exists for the event's category
        """
        if self._closed:
            raise Rejected()
        queue = self.queue_for(event.category)
        # Unbounded queues never block; a bounded variant would wait here
        await queue.put(event)
        log.info(
            "event.enqueued",
            event_id=event.id,
            event_type=event.category.value,
            queue_size=queue.qsize(),
        )

    def close(self):
        """Stop admitting events. Already queued events are untouched."""
        if self._closed:
            return
        self._closed = True
        log.info("queue.closed", backlog=self.total_size())

    def size_of(self, category: EventCategory) -> int:
        queue = self._queues.get(category)
        return queue.qsize() if queue is not None else 0

    def total_size(self) -> int:
        return sum(queue.qsize() for queue in self._queues.values())

    def sizes(self) -> dict[str, int]:
        """Point-in-time size of every queue, keyed by category name."""
        return {category.value: queue.qsize() for category, queue in self._queues.items()}
