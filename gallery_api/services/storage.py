"""
Blob store selection.
"""
from typing import Optional

from gallery_api.config import Settings, StorageBackend, get_settings
from gallery_api.services.blob_store import BlobStore
from gallery_api.services.local_storage import LocalObjectStorage
from gallery_api.services.object_storage import S3ObjectStorage


def create_storage_service(settings: Settings) -> BlobStore:
    """Build the blob store configured by STORAGE_BACKEND."""
    if settings.storage_backend == StorageBackend.S3:
        return S3ObjectStorage(settings)
    return LocalObjectStorage(settings.storage_local_root)


# Singleton instance
_storage_service: Optional[BlobStore] = None


def get_storage_service() -> BlobStore:
    """Get the singleton blob store instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = create_storage_service(get_settings())
    return _storage_service
