"""
Health check router.
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text

from gallery_api.config import get_settings
from gallery_api.database import engine
from gallery_api.dependencies.auth import get_current_actor
from gallery_api.dependencies.services import get_diagnostics_service
from gallery_api.schemas.auth import Actor
from gallery_api.schemas.health import ConnectionReport
from gallery_api.services.diagnostics import DiagnosticsService
from gallery_api.utils.prometheus_metrics import REGISTRY, Gauge, ready

logger = logging.getLogger("gallery.health")
router = APIRouter(prefix="/health", tags=["Health"])

health_check_status = Gauge(
    "gallery_api_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["check_type"],
    registry=REGISTRY,
)


@router.get(
    "",
    summary="Health check (fast)",
)
async def health_check() -> Dict[str, Any]:
    """
    Fast health check for load balancers.

    - fails while the application is starting or shutting down
    - DB ping with a 1 second timeout
    """
    start_time = time.perf_counter()

    if ready._value.get() == 0:
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is not ready",
        )

    async def _check_db():
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_check_db(), timeout=1.0)
    except asyncio.TimeoutError:
        logger.warning("DB health check timeout", extra={"event": "health"})
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection timeout",
        )
    except Exception as e:
        logger.warning("DB health check failed", extra={"event": "health", "error": str(e)[:200]})
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed",
        )

    health_check_status.labels(check_type="fast").set(1)
    return {
        "status": "healthy",
        "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        "instance": get_settings().instance_ip or "unknown",
    }


@router.get(
    "/connection",
    response_model=ConnectionReport,
    summary="Connection diagnostics (admin)",
)
async def connection_diagnostics(
    diagnostics: DiagnosticsService = Depends(get_diagnostics_service),
    actor: Actor = Depends(get_current_actor),
) -> ConnectionReport:
    """
    Step-by-step check of configuration, database, photos table and blob store.
    Always 200; read ``healthy`` and the individual checks.
    """
    report = await diagnostics.run_checks()
    health_check_status.labels(check_type="connection").set(1 if report.healthy else 0)
    return report
