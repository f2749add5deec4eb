"""Graceful shutdown: stop admission, drain workers, flush callbacks."""
import asyncio
import time
from dataclasses import dataclass
import structlog
from ..callbacks.dispatcher import CallbackDispatcher
from ..queues.router import QueueRouter
from .worker import WorkerPool

log = structlog.get_logger()


@dataclass
class ShutdownReport:
    forced: bool
    abandoned: int
    pending_callbacks: int
    elapsed_seconds: float

    @property
    def clean(self) -> bool:
        return not self.forced and self.abandoned == 0 and self.pending_callbacks == 0


class ShutdownCoordinator:
    """
    Orchestrates termination of the pipeline.

    The wait is driven by worker completion, bounded by `timeout`; the
    remaining backlog is logged every `poll_interval` while waiting. When the
    bound elapses the workers are cancelled and whatever is left is reported
    as abandoned.
    """

    def __init__(
        self,
        router: QueueRouter,
        workers: WorkerPool,
        dispatcher: CallbackDispatcher,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
    ):
        self.router = router
        self.workers = workers
        self.dispatcher = dispatcher
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._run_task: asyncio.Task | None = None

    @property
    def initiated(self) -> bool:
        return self._run_task is not None

    async def initiate(self) -> ShutdownReport:
        """Shut down once; later or concurrent callers get the same report."""
        if self._run_task is None:
            self._run_task = asyncio.create_task(self._run(), name="shutdown")
        return await asyncio.shield(self._run_task)

    async def _run(self) -> ShutdownReport:
        started = time.monotonic()
        deadline = started + self.timeout
        log.info("shutdown.initiated", backlog=self.router.total_size(), timeout_s=self.timeout)

        self.router.close()
        self.workers.signal_stop()

        forced = False
        abandoned = 0
        pending = {task for task in self.workers.tasks if not task.done()}
        while pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            _, pending = await asyncio.wait(pending, timeout=min(self.poll_interval, remaining))
            if pending:
                log.info(
                    "shutdown.progress",
                    backlog=self.router.total_size(),
                    in_progress=self.workers.in_progress,
                    elapsed_s=round(time.monotonic() - started, 2),
                )

        if pending:
            forced = True
            abandoned = self.router.total_size() + self.workers.in_progress
            log.warning("shutdown.forced", abandoned=abandoned, timeout_s=self.timeout)
            await self.workers.cancel()
        else:
            # Non-zero only when workers were never started
            abandoned = self.router.total_size()

        # Callbacks for every processed event still get their attempts
        pending_callbacks = await self.dispatcher.drain(timeout=max(deadline - time.monotonic(), 0))
        if pending_callbacks:
            log.warning("shutdown.callbacks_abandoned", pending=pending_callbacks)
        await self.dispatcher.aclose()

        report = ShutdownReport(
            forced=forced,
            abandoned=abandoned,
            pending_callbacks=pending_callbacks,
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        if report.clean:
            log.info("shutdown.complete", elapsed_s=report.elapsed_seconds)
        else:
            log.warning(
                "shutdown.degraded",
                abandoned=report.abandoned,
                pending_callbacks=report.pending_callbacks,
                elapsed_s=report.elapsed_seconds,
            )
        return report
