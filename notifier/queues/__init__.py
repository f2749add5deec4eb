"""Per-category FIFO queues and admission control."""
from .router import QueueRouter

__all__ = ["QueueRouter"]
