"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from gallery_api.schemas.auth import Actor, TokenPayload
from gallery_api.schemas.health import CheckStatus, ConnectionCheck, ConnectionReport
from gallery_api.schemas.photo import (
    BatchUploadItem,
    BatchUploadResult,
    PhotoCreate,
    PhotoResponse,
    PhotoStats,
    PhotoUpdate,
    PhotoWithUrl,
    Visibility,
)
from gallery_api.schemas.storage import ObjectInfo

__all__ = [
    # Identity
    "Actor",
    "TokenPayload",
    # Photo schemas
    "PhotoCreate",
    "PhotoResponse",
    "PhotoUpdate",
    "PhotoWithUrl",
    "PhotoStats",
    "BatchUploadItem",
    "BatchUploadResult",
    "Visibility",
    # Storage
    "ObjectInfo",
    # Diagnostics
    "CheckStatus",
    "ConnectionCheck",
    "ConnectionReport",
]
