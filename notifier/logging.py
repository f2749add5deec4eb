"""
structlog configuration for the notifier.

Every entry carries the service name, an ISO timestamp under `ts`, the level,
any context bound through contextvars (the request's correlation_id) and the
call site that emitted it:

{
    "ts": "2025-11-18T04:30:00.123456Z",
    "level": "info",
    "service": "notifier",
    "correlation_id": "uuid-v4",
    "event": "callback.attempt_failed",
    "module": "dispatcher",
    "func_name": "deliver",
    "lineno": 131,
    "event_id": "...",
    "attempt": 2
}
"""
import logging
from typing import Any, Callable
import structlog

DEFAULT_SERVICE_NAME = "notifier"

Processor = Callable[[Any, str, dict], dict]


def service_name_processor(service_name: str) -> Processor:
    """Build a processor that stamps `service` on entries that lack one."""

    def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service_name


def build_processors(service_name: str, json_output: bool) -> list[Processor]:
    processors = [
        structlog.contextvars.merge_contextvars,
        service_name_processor(service_name),
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(
    json_output: bool = True,
    service_name: str = DEFAULT_SERVICE_NAME,
    level: int = logging.INFO,
):
    """
    Configure structlog for the process.

    Args:
        json_output: Render JSON lines; otherwise use the dev console renderer.
        service_name: Value stamped on every entry as `service`.
        level: Minimum level to emit.
    """
    structlog.configure(
        processors=build_processors(service_name, json_output),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=level)

    # uvicorn would otherwise print its own copy of each line
    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []


def get_logger(**initial_values):
    return structlog.get_logger(**initial_values)
