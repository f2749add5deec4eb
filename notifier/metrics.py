"""
Prometheus metrics for the notifier service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
import psutil
import os


class Metrics:
    """
    Centralized metrics for the notifier service.
    """

    def __init__(self, service_name: str = "notifier", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            ["service"],
            registry=self.registry,
        )
        self.http_requests_active.labels(service=service_name).set(0)

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Pipeline metrics
        self.events_accepted_total = Counter(
            "notifier_events_accepted_total",
            "Events admitted to a category queue",
            ["event_type"],
            registry=self.registry,
        )

        self.enqueue_latency = Histogram(
            "notifier_enqueue_latency_seconds",
            "Time spent admitting an event",
            ["event_type"],
            registry=self.registry,
        )

        self.events_processed_total = Counter(
            "notifier_events_processed_total",
            "Events that reached a terminal state",
            ["event_type", "status"],
            registry=self.registry,
        )

        self.processing_duration = Histogram(
            "notifier_processing_duration_seconds",
            "Time from dequeue to terminal state",
            ["event_type"],
            buckets=(0.1, 0.5, 1, 2, 3, 5, 7.5, 10, 30),
            registry=self.registry,
        )

        self.queue_depth = Gauge(
            "notifier_queue_depth",
            "Events waiting in a category queue",
            ["event_type"],
            registry=self.registry,
        )

        self.callback_attempts_total = Counter(
            "notifier_callback_attempts_total",
            "Callback delivery attempts",
            ["result"],
            registry=self.registry,
        )

        self.callback_exhausted_total = Counter(
            "notifier_callback_exhausted_total",
            "Callbacks dropped after all retries failed",
            registry=self.registry,
        )

        # System Metrics
        self._setup_process_metrics()

    def _setup_process_metrics(self):
        """Set up process-level metrics using psutil."""
        self.process_cpu_seconds = Counter(
            "process_cpu_seconds_total",
            "Total CPU time consumed by process",
            ["service"],
            registry=self.registry,
        )

        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )

        self.process_open_fds = Gauge(
            "process_open_fds",
            "Number of open file descriptors",
            ["service"],
            registry=self.registry,
        )

        self._last_cpu_total = 0.0
        self.update_system_metrics()

    def update_system_metrics(self):
        """Update system metrics from psutil."""
        try:
            process = psutil.Process(os.getpid())

            cpu_times = process.cpu_times()
            cpu_total = cpu_times.user + cpu_times.system
            # Counter can't be set; add the delta since the last sample
            cpu_diff = cpu_total - self._last_cpu_total
            if cpu_diff > 0:
                self.process_cpu_seconds.labels(service=self.service_name).inc(cpu_diff)
            self._last_cpu_total = cpu_total

            memory_info = process.memory_info()
            self.process_memory_bytes.labels(service=self.service_name).set(memory_info.rss)

            try:
                num_fds = process.num_fds()
                self.process_open_fds.labels(service=self.service_name).set(num_fds)
            except AttributeError:
                # num_fds() not available on all platforms
                pass

        except psutil.Error:
            pass

    def record_event_accepted(self, event_type: str, latency_seconds: float):
        self.events_accepted_total.labels(event_type=event_type).inc()
        self.enqueue_latency.labels(event_type=event_type).observe(latency_seconds)

    def record_event_processed(self, event_type: str, status: str, duration_seconds: float):
        self.events_processed_total.labels(event_type=event_type, status=status).inc()
        self.processing_duration.labels(event_type=event_type).observe(duration_seconds)

    def set_queue_depth(self, event_type: str, depth: int):
        self.queue_depth.labels(event_type=event_type).set(depth)

    def record_callback_attempt(self, result: str):
        self.callback_attempts_total.labels(result=result).inc()

    def record_callback_exhausted(self):
        self.callback_exhausted_total.inc()
