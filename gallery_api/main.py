"""
FastAPI Gallery Asset API application.

Main application entry point that configures:
- CORS middleware
- API routers
- Database lifecycle
- Logging system
- Exception handlers
- Prometheus metrics
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gallery_api.config import StorageBackend, get_settings
from gallery_api.database import close_db, init_db
from gallery_api.exceptions import GalleryError, OrphanedResourceError
from gallery_api.middlewares.logging_middleware import LoggingMiddleware
from gallery_api.routers import health_router, photos_router
from gallery_api.utils.config_validator import validate_configuration
from gallery_api.utils.logger import get_request_id, log_error, log_info, log_warning, setup_logging
from gallery_api.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus

settings = get_settings()

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan.

    Startup aborts on a ConfigurationError (bad public URL base, or storage
    settings problems in production).
    """
    try:
        validate_configuration(settings)
    except Exception as e:
        log_error(
            "Startup failed: configuration validation errors",
            error_message=str(e),
            event="lifecycle",
        )
        raise

    await init_db()
    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
        storage_backend=settings.storage_backend.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")
    await close_db()
    log_info("Shutdown completed", event="lifecycle")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Gallery Asset API

Photo asset management for a gallery site.

### Features
- **Upload**: Store a photo in the blob store and record its metadata
- **Curation**: Titles, categories, featured and visibility flags
- **Public view**: Visible photos with public URLs
- **Admin view**: All photos, stats, orphaned blob report, connection diagnostics

### Authentication
Mutating and admin endpoints require a Bearer token issued by the identity provider.
    """,
    openapi_tags=[
        {"name": "Photos", "description": "Photo upload, curation and listing"},
        {"name": "Health", "description": "Liveness and connection diagnostics"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(GalleryError)
async def gallery_exception_handler(request: Request, exc: GalleryError):
    """
    Render lifecycle errors as JSON with the mapped status code.
    Client errors are logged as warnings, store failures as errors.
    """
    rid = get_request_id()
    context = {
        "error_type": type(exc).__name__,
        "error_message": exc.message,
        "http_method": request.method,
        "http_path": request.url.path,
        "request_id": rid,
        "event": "exception",
    }
    if exc.status_code >= 500:
        if isinstance(exc, OrphanedResourceError):
            context["storage_key"] = exc.storage_key
        log_error("Request failed with store error", **context)
    else:
        log_warning("Request rejected", **context)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "context": exc.details,
            "request_id": rid,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler: ERROR log and a 500 with the request id.
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        http_path=request.url.path,
        request_id=rid,
        event="exception",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


app.include_router(health_router)
app.include_router(photos_router)

# Local backend: serve blobs under the default public base
if settings.storage_backend == StorageBackend.LOCAL and not settings.storage_public_base_url:
    _media_root = Path(settings.storage_local_root)
    _media_root.mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=_media_root), name="media")


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
