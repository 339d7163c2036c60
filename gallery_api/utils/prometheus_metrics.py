"""
Prometheus metrics for stability and the photo lifecycle.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, db_errors_total, store request errors
- HA: ready gauge (1=up, 0=shutting down)
- Lifecycle: uploads, deletions, orphaned blobs
"""
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from gallery_api.config import get_settings

# --- Stability ---
exceptions_total = Counter(
    "gallery_api_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "gallery_api_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)
external_request_errors_total = Counter(
    "gallery_api_external_request_errors_total",
    "Total blob store request failures",
    ["service"],
    registry=REGISTRY,
)
external_request_total = Counter(
    "gallery_api_external_request_total",
    "Total blob store requests by service and outcome",
    ["service", "status"],  # status: success | failure
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "gallery_api_ready",
    "Application ready (1=up, 0=shutting down)",
    registry=REGISTRY,
)

# --- Performance ---
external_request_duration_seconds = Histogram(
    "gallery_api_external_request_duration_seconds",
    "Blob store request duration in seconds",
    ["service", "result"],  # result: success | failure
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# --- Photo lifecycle ---
photo_upload_total = Counter(
    "gallery_api_photo_upload_total",
    "Total number of photo upload attempts",
    ["result"],  # result: success | failure | orphaned
    registry=REGISTRY,
)
photo_upload_file_size_bytes = Histogram(
    "gallery_api_photo_upload_file_size_bytes",
    "Photo upload file size in bytes",
    buckets=(1024, 10240, 102400, 512000, 1024000, 2048000, 5120000, 10240000),  # 1KB to 10MB
    registry=REGISTRY,
)
photo_delete_total = Counter(
    "gallery_api_photo_delete_total",
    "Total number of photo delete attempts",
    ["result"],  # result: success | not_found | failure
    registry=REGISTRY,
)
blob_cleanup_failures_total = Counter(
    "gallery_api_blob_cleanup_failures_total",
    "Blob deletions that failed and left a blob behind",
    ["operation"],  # operation: upload_compensation | delete
    registry=REGISTRY,
)

app_info = Gauge(
    "gallery_api_app_info",
    "Application and node identity (labels only, value is 1)",
    ["node", "app", "version", "environment"],
    registry=REGISTRY,
)


def _node_identity() -> str:
    """Node/instance identifier: INSTANCE_IP env or hostname."""
    settings = get_settings()
    if settings.instance_ip:
        return settings.instance_ip
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """
    Context manager to record store request duration, total count, and errors.
    Use around every blob store call.
    """
    start = time.perf_counter()
    exc_raised = None
    try:
        yield
    except Exception as e:
        exc_raised = e
        external_request_errors_total.labels(service=service).inc()
        external_request_total.labels(service=service, status="failure").inc()
        raise
    finally:
        duration = time.perf_counter() - start
        result = "failure" if exc_raised is not None else "success"
        if exc_raised is None:
            external_request_total.labels(service=service, status="success").inc()
        external_request_duration_seconds.labels(service=service, result=result).observe(duration)


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation and expose /metrics.
    """
    settings = get_settings()
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    # Expose concrete status codes (200, 201, 404, ...) instead of 2xx/4xx groups
    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
