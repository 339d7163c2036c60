"""
Services package.
Contains the photo lifecycle and blob store integrations.
"""
from gallery_api.services.blob_store import BlobStore
from gallery_api.services.diagnostics import DiagnosticsService
from gallery_api.services.local_storage import LocalObjectStorage
from gallery_api.services.object_storage import S3ObjectStorage
from gallery_api.services.photo import PhotoService
from gallery_api.services.url_resolver import PublicUrlResolver

__all__ = [
    "BlobStore",
    "S3ObjectStorage",
    "LocalObjectStorage",
    "PublicUrlResolver",
    "PhotoService",
    "DiagnosticsService",
]
