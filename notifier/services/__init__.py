"""Pipeline services: workers, shutdown coordination and the intake facade."""
from .notification_service import NotificationService
from .shutdown import ShutdownCoordinator, ShutdownReport
from .worker import CategoryWorker, WorkerPool

__all__ = [
    "CategoryWorker",
    "NotificationService",
    "ShutdownCoordinator",
    "ShutdownReport",
    "WorkerPool",
]
