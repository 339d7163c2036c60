"""
Photos router for photo management.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile, status

from gallery_api.config import get_settings
from gallery_api.dependencies.auth import get_current_actor, get_optional_actor
from gallery_api.dependencies.services import get_photo_service
from gallery_api.exceptions import NotFoundError
from gallery_api.schemas.auth import Actor
from gallery_api.schemas.photo import (
    BatchUploadResult,
    PhotoCreate,
    PhotoStats,
    PhotoWithUrl,
    Visibility,
)
from gallery_api.schemas.storage import ObjectInfo
from gallery_api.services.image_info import resolve_content_type
from gallery_api.services.photo import PhotoService, UploadItem

router = APIRouter(prefix="/photos", tags=["Photos"])


def _clean(value: Optional[str]) -> Optional[str]:
    """Form fields arrive as empty strings when left blank."""
    if value is None:
        return None
    value = value.strip()
    return value or None


async def _read_upload(file: UploadFile) -> UploadItem:
    """
    Read an uploaded file and enforce size and type limits.

    Raises:
        HTTPException: 413 when too large, 400 for a disallowed type
    """
    settings = get_settings()
    content = await file.read()

    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.max_upload_size_bytes // (1024 * 1024)}MB",
        )

    content_type = resolve_content_type(file.filename, file.content_type)
    if not content_type or content_type not in settings.allowed_content_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Provided: {file.content_type or 'unknown'}, "
                   f"Filename: {file.filename or 'unknown'}",
        )

    return UploadItem(content=content, filename=file.filename or "photo", content_type=content_type)


@router.get(
    "",
    response_model=List[PhotoWithUrl],
    summary="List visible photos",
)
async def list_visible_photos(
    category: Optional[str] = Query(None, description="Only photos in this category"),
    featured: bool = Query(False, description="Only featured photos"),
    photo_service: PhotoService = Depends(get_photo_service),
) -> List[PhotoWithUrl]:
    """
    Public gallery view: visible photos only, newest first.
    """
    return await photo_service.list_photos(
        Visibility.VISIBLE_ONLY,
        category=category,
        featured_only=featured,
    )


@router.get(
    "/all",
    response_model=List[PhotoWithUrl],
    summary="List all photos (admin)",
)
async def list_all_photos(
    category: Optional[str] = Query(None),
    featured: bool = Query(False),
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> List[PhotoWithUrl]:
    """
    Admin view: visible and hidden photos, newest first.
    """
    return await photo_service.list_photos(Visibility.ALL, category=category, featured_only=featured)


@router.get(
    "/stats",
    response_model=PhotoStats,
    summary="Photo counts (admin)",
)
async def get_photo_stats(
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> PhotoStats:
    return await photo_service.photo_stats()


@router.get(
    "/orphans",
    response_model=List[ObjectInfo],
    summary="Blobs without a photo record (admin)",
)
async def list_orphaned_blobs(
    prefix: str = Query("", description="Only keys starting with this prefix"),
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> List[ObjectInfo]:
    """
    Report blobs that no photo record references.
    Read-only; cleanup is done out of band.
    """
    return await photo_service.find_orphaned_blobs(prefix=prefix)


@router.get(
    "/{photo_id}",
    response_model=PhotoWithUrl,
    summary="Get a specific photo",
)
async def get_photo(
    photo_id: int,
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Optional[Actor] = Depends(get_optional_actor),
) -> PhotoWithUrl:
    """
    Get a photo by ID with its public URL.
    Hidden photos are only returned to authenticated callers.
    """
    photo = await photo_service.get_photo(photo_id)
    if actor is None and not photo.is_visible:
        raise NotFoundError(photo_id)
    return photo


@router.post(
    "",
    response_model=PhotoWithUrl,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a new photo",
)
async def upload_photo(
    file: UploadFile = File(..., description="Photo file to upload"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    is_featured: bool = Form(False),
    is_visible: bool = Form(True),
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> PhotoWithUrl:
    """
    Upload a photo.

    - **file**: Image file (see ALLOWED_CONTENT_TYPES)
    - **title**, **description**, **category**: Optional display metadata
    - **is_featured**: Defaults to false
    - **is_visible**: Defaults to true
    """
    item = await _read_upload(file)
    metadata = PhotoCreate(
        title=_clean(title),
        description=_clean(description),
        category=_clean(category),
        is_featured=is_featured,
        is_visible=is_visible,
    )
    photo = await photo_service.upload_photo(
        actor=actor,
        file_content=item.content,
        filename=item.filename,
        content_type=item.content_type,
        metadata=metadata,
    )
    return photo_service.get_photo_with_url(photo)


@router.post(
    "/batch",
    response_model=BatchUploadResult,
    status_code=status.HTTP_200_OK,
    summary="Upload several photos",
)
async def upload_photos(
    files: List[UploadFile] = File(..., description="Photo files to upload"),
    category: Optional[str] = Form(None),
    is_featured: bool = Form(False),
    is_visible: bool = Form(True),
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> BatchUploadResult:
    """
    Upload several files with shared metadata.

    Every file is checked against the size and type limits first; one bad
    file rejects the request. After that each file is uploaded on its own
    and failures are reported per file.
    """
    items = [await _read_upload(f) for f in files]
    metadata = PhotoCreate(category=_clean(category), is_featured=is_featured, is_visible=is_visible)
    return await photo_service.upload_photos(actor, items, metadata=metadata)


@router.patch(
    "/{photo_id}",
    response_model=PhotoWithUrl,
    summary="Update photo metadata",
)
async def update_photo(
    photo_id: int,
    patch: dict = Body(..., description="Any of title, description, category, is_featured, is_visible"),
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> PhotoWithUrl:
    """
    Update a photo's metadata. The stored file is never changed.
    """
    photo = await photo_service.update_photo(photo_id, patch, actor)
    return photo_service.get_photo_with_url(photo)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a photo",
)
async def delete_photo(
    photo_id: int,
    photo_service: PhotoService = Depends(get_photo_service),
    actor: Actor = Depends(get_current_actor),
) -> None:
    """
    Delete a photo from both the blob store and the database.
    """
    await photo_service.delete_photo(photo_id, actor)
