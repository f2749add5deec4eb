"""
Notifier - Event notification service.

Features:
- Per-category FIFO queues with one worker each
- Callback delivery with bounded linear-backoff retries
- Graceful shutdown that drains every queue
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
import logging
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import Settings, get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .api.errors import register_exception_handlers
from .middleware import CorrelationIdMiddleware, MetricsMiddleware, PayloadGuardMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .services.notification_service import NotificationService

SERVICE_NAME = "notifier"
VERSION = "0.1.0"

logger = get_logger()


def create_app(
    settings: Settings | None = None,
    service: NotificationService | None = None,
    metrics: Metrics | None = None,
) -> FastAPI:
    """
    Build the FastAPI application around a notification service.

    Workers start with the app and the pipeline is drained when it stops.
    """
    settings = settings or get_settings()
    metrics = metrics or Metrics(service_name=SERVICE_NAME, version=VERSION)
    service = service or NotificationService(settings=settings, metrics=metrics)
    health_checker = HealthChecker(service, service_name=SERVICE_NAME, version=VERSION)

    app = FastAPI(
        title="Notifier",
        version=VERSION,
        description="Typed notification events with per-category queues and callback reporting",
    )
    app.state.service = service
    app.state.metrics = metrics
    app.state.settings = settings

    # Added last runs first: correlation ID wraps metrics, which wraps the payload guard
    app.add_middleware(PayloadGuardMiddleware, max_size=settings.MAX_EVENT_SIZE)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)
    app.include_router(router)

    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.get("/health")
    async def health():
        """
        Liveness check - the process is up.

        Returns 200 if service is running.
        """
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness check.

        Returns:
            200: Workers are running and admission is open
            503: Service is not ready (starting up or shutting down)
        """
        logger.debug("health_check_readiness")
        metrics.update_system_metrics()
        result = health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(result, status_code=status_code)

    @app.on_event("startup")
    async def startup_event():
        logger.info("service_starting", version=VERSION, env=settings.ENV)
        await service.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("service_stopping")
        report = await service.shutdown()
        metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)
        logger.info(
            "service_stopped",
            forced=report.forced,
            abandoned=report.abandoned,
            pending_callbacks=report.pending_callbacks,
        )

    return app


def build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging(
        json_output=settings.LOG_JSON,
        service_name=SERVICE_NAME,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    )
    return create_app(settings)


app = build_default_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notifier.main:app",
        host="0.0.0.0",
        port=get_settings().SERVICE_PORT,
    )
