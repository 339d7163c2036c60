"""
Service dependencies for FastAPI.
Overridden in tests to swap the blob store or URL resolver.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_api.database import get_db
from gallery_api.services.blob_store import BlobStore
from gallery_api.services.diagnostics import DiagnosticsService
from gallery_api.services.photo import PhotoService
from gallery_api.services.storage import get_storage_service
from gallery_api.services.url_resolver import PublicUrlResolver, get_url_resolver


def get_blob_store() -> BlobStore:
    return get_storage_service()


def get_public_url_resolver() -> PublicUrlResolver:
    return get_url_resolver()


async def get_photo_service(
    db: AsyncSession = Depends(get_db),
    storage: BlobStore = Depends(get_blob_store),
    url_resolver: PublicUrlResolver = Depends(get_public_url_resolver),
) -> PhotoService:
    return PhotoService(db, storage=storage, url_resolver=url_resolver)


async def get_diagnostics_service(
    db: AsyncSession = Depends(get_db),
    storage: BlobStore = Depends(get_blob_store),
) -> DiagnosticsService:
    return DiagnosticsService(db, storage)
