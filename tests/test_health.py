"""
Tests for health check and metrics endpoints.
"""
from fastapi.testclient import TestClient
from notifier.callbacks.memory import InMemoryCallbackSender
from notifier.main import create_app
from notifier.metrics import Metrics
from notifier.services.notification_service import NotificationService
from conftest import fast_settings


def build_app():
    settings = fast_settings()
    metrics = Metrics()
    service = NotificationService(settings=settings, sender=InMemoryCallbackSender(), metrics=metrics)
    return create_app(settings=settings, service=service, metrics=metrics), service


def test_health_liveness():
    """Test liveness endpoint."""
    app, _ = build_app()
    client = TestClient(app)

    r = client.get("/health")

    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["service"] == "notifier"
    assert data["version"] == "0.1.0"
    assert data["timestamp"].endswith("Z")


def test_readiness_when_workers_running():
    """Test readiness once workers are running."""
    app, _ = build_app()
    with TestClient(app) as client:
        r = client.get("/health/ready")

    # Disk or memory pressure on the host may still report not ready
    assert r.status_code in [200, 503]
    data = r.json()
    assert data["checks"]["pipeline"]["status"] == "ok"
    assert data["checks"]["pipeline"]["backlog"] == 0


def test_readiness_before_startup_is_not_ready():
    """Test readiness fails before workers start."""
    app, _ = build_app()
    client = TestClient(app)

    r = client.get("/health/ready")

    assert r.status_code == 503
    data = r.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["pipeline"]["message"] == "workers not running"


def test_readiness_while_shutting_down():
    """Test readiness fails during shutdown."""
    app, service = build_app()
    with TestClient(app) as client:
        service.router.close()
        r = client.get("/health/ready")

    assert r.status_code == 503
    assert r.json()["checks"]["pipeline"]["message"] == "shutting down"


def test_metrics_endpoint():
    """Test Prometheus metrics endpoint."""
    app, _ = build_app()
    with TestClient(app) as client:
        client.get("/health")
        r = client.get("/metrics/")

    assert r.status_code == 200
    content = r.text
    assert "http_requests_total" in content
    assert "http_request_duration_seconds" in content
    assert "app_up" in content
    assert "notifier_queue_depth" in content or "notifier_events_accepted_total" in content


def test_correlation_id_in_response():
    """Test a correlation ID is generated for responses."""
    app, _ = build_app()
    r = TestClient(app).get("/health")
    assert "x-correlation-id" in r.headers


def test_correlation_id_propagation():
    """Test an incoming correlation ID is echoed back."""
    app, _ = build_app()
    correlation_id = "test-correlation-id-123"
    r = TestClient(app).get("/health", headers={"x-correlation-id": correlation_id})
    assert r.headers["x-correlation-id"] == correlation_id
