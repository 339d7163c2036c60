"""
Startup configuration validation.

The public URL resolver is always built here so a bad base URL stops the
process before the first request. Storage settings are checked too; in
production any problem aborts startup, elsewhere it is only logged.
"""
import logging
from typing import List, Optional

from gallery_api.config import Settings, StorageBackend, get_settings
from gallery_api.exceptions import ConfigurationError
from gallery_api.services.url_resolver import PublicUrlResolver, build_url_resolver

logger = logging.getLogger("gallery.config_validator")


def validate_storage_config(settings: Settings) -> List[str]:
    """Blob store settings problems, as readable messages."""
    errors: List[str] = []

    if settings.storage_backend == StorageBackend.S3:
        if not settings.storage_bucket:
            errors.append("STORAGE_BUCKET is required for the s3 backend")
        if bool(settings.s3_access_key) != bool(settings.s3_secret_key):
            errors.append("S3_ACCESS_KEY and S3_SECRET_KEY must be set together")
        if not settings.s3_access_key:
            logger.warning(
                "S3 credentials not set (falling back to the boto3 credential chain)",
                extra={"event": "config"},
            )
    else:
        if not (settings.storage_local_root or "").strip():
            errors.append("STORAGE_LOCAL_ROOT is required for the local backend")

    if errors:
        logger.error(
            "Blob store configuration validation failed",
            extra={"event": "config", "errors": errors},
        )
    else:
        logger.info(
            "Blob store configuration: OK",
            extra={"event": "config", "backend": settings.storage_backend.value},
        )
    return errors


def validate_configuration(settings: Optional[Settings] = None) -> PublicUrlResolver:
    """
    Validate settings at startup.

    Returns:
        The URL resolver built from the configured public base

    Raises:
        ConfigurationError: Unusable public base URL, or storage problems in production
    """
    settings = settings or get_settings()

    resolver = build_url_resolver(settings)
    logger.info(
        "Public URL base: OK",
        extra={"event": "config", "base_url": resolver.base_url},
    )

    errors = validate_storage_config(settings)
    if errors and settings.is_production:
        summary = "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{summary}")

    return resolver
