"""
Photo service for managing the photo asset lifecycle.

A photo is a blob in the blob store plus a row in ``photos``. This service
owns the sequencing that keeps the two coherent:

- upload: blob first, then row; if the row cannot be saved the blob is
  deleted again, and a failed cleanup is reported as an orphan
- delete: row fetched, blob removed best-effort, then the row removed
- update: metadata only, the blob is never touched
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, NoReturn, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_api.exceptions import (
    GalleryError,
    NotFoundError,
    OrphanedResourceError,
    PreconditionFailedError,
    StorageKeyConflictError,
    StoreUnavailableError,
)
from gallery_api.models.photo import Photo
from gallery_api.repositories.photo import PhotoRepository
from gallery_api.schemas.auth import Actor
from gallery_api.schemas.photo import (
    BatchUploadItem,
    BatchUploadResult,
    PhotoCreate,
    PhotoStats,
    PhotoUpdate,
    PhotoWithUrl,
    Visibility,
)
from gallery_api.schemas.storage import ObjectInfo
from gallery_api.services.blob_store import BlobAlreadyExistsError, BlobStore, BlobStoreError
from gallery_api.services.image_info import is_image_type, read_dimensions, resolve_content_type
from gallery_api.services.storage import get_storage_service
from gallery_api.services.storage_keys import HEALTHCHECK_PREFIX, generate_storage_key
from gallery_api.services.url_resolver import PublicUrlResolver, get_url_resolver
from gallery_api.utils.prometheus_metrics import (
    blob_cleanup_failures_total,
    db_errors_total,
    photo_delete_total,
    photo_upload_file_size_bytes,
    photo_upload_total,
)

logger = logging.getLogger("gallery.photo")

# Fields a metadata patch may change
MUTABLE_FIELDS = frozenset({"title", "description", "category", "is_featured", "is_visible"})
NON_NULLABLE_FIELDS = frozenset({"is_featured", "is_visible"})


@dataclass
class UploadItem:
    """One file of a batch upload."""

    content: bytes
    filename: str
    content_type: Optional[str] = None


class PhotoService:
    """
    Service for handling photo operations.
    Coordinates the blob store and the metadata repository.
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[BlobStore] = None,
        url_resolver: Optional[PublicUrlResolver] = None,
    ):
        self.db = db
        self.repository = PhotoRepository(db)
        self.storage = storage if storage is not None else get_storage_service()
        self.url_resolver = url_resolver if url_resolver is not None else get_url_resolver()

    @staticmethod
    def _require_actor(actor: Optional[Actor]) -> Actor:
        if actor is None or not getattr(actor, "id", None):
            raise PreconditionFailedError("An authenticated actor is required")
        return actor

    async def upload_photo(
        self,
        actor: Optional[Actor],
        file_content: bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[PhotoCreate] = None,
    ) -> Photo:
        """
        Store a photo blob and create its metadata record.

        Args:
            actor: Authenticated uploader
            file_content: Photo file content as bytes
            filename: Original filename (informational; only its extension is reused)
            content_type: MIME type of the file
            metadata: Optional display metadata and flags

        Returns:
            Created Photo model

        Raises:
            PreconditionFailedError: No actor or empty file
            StorageKeyConflictError: Generated key already taken
            StoreUnavailableError: Blob write or record insert failed (nothing left behind)
            OrphanedResourceError: Record insert failed and the blob could not be removed
        """
        actor = self._require_actor(actor)
        if not file_content:
            raise PreconditionFailedError("File is empty", {"file_name": filename})

        metadata = metadata or PhotoCreate()
        mime_type = resolve_content_type(filename, content_type)
        storage_key = generate_storage_key(filename)

        try:
            await self.storage.put_object(
                storage_key,
                file_content,
                content_type=mime_type,
                overwrite=False,
            )
        except BlobAlreadyExistsError as e:
            photo_upload_total.labels(result="failure").inc()
            logger.error(
                "Storage key collision",
                extra={"event": "photo", "actor_id": actor.id, "storage_key": storage_key},
            )
            raise StorageKeyConflictError(storage_key) from e
        except BlobStoreError as e:
            photo_upload_total.labels(result="failure").inc()
            logger.error(
                "Photo upload failed",
                exc_info=e,
                extra={"event": "photo", "actor_id": actor.id, "storage_key": storage_key},
            )
            raise StoreUnavailableError("blob", "put", storage_key=storage_key) from e

        width = height = None
        if is_image_type(mime_type):
            dimensions = read_dimensions(file_content)
            if dimensions is not None:
                width, height = dimensions

        values = {
            "file_name": filename or storage_key,
            "storage_key": storage_key,
            "file_size": len(file_content),
            "mime_type": mime_type,
            "width": width,
            "height": height,
            "title": metadata.title,
            "description": metadata.description,
            "category": metadata.category,
            "is_featured": metadata.is_featured,
            "is_visible": metadata.is_visible,
            "uploaded_by": actor.id,
        }

        try:
            photo = await self.repository.insert(values)
        except SQLAlchemyError as e:
            await self._compensate_failed_insert(storage_key, actor, e)

        photo_upload_total.labels(result="success").inc()
        photo_upload_file_size_bytes.observe(len(file_content))
        logger.info(
            "Photo uploaded",
            extra={"event": "photo", "photo_id": photo.id, "actor_id": actor.id, "storage_key": storage_key},
        )
        return photo

    async def _compensate_failed_insert(
        self,
        storage_key: str,
        actor: Actor,
        cause: SQLAlchemyError,
    ) -> NoReturn:
        """Remove the blob of an upload whose record could not be saved, then raise."""
        db_errors_total.inc()
        try:
            await self.storage.delete_object(storage_key)
        except Exception as cleanup_error:
            photo_upload_total.labels(result="orphaned").inc()
            blob_cleanup_failures_total.labels(operation="upload_compensation").inc()
            logger.error(
                "Orphaned blob: record insert failed and blob cleanup failed",
                exc_info=cleanup_error,
                extra={
                    "event": "photo",
                    "actor_id": actor.id,
                    "storage_key": storage_key,
                    "insert_error": f"{type(cause).__name__}: {cause}"[:200],
                },
            )
            raise OrphanedResourceError(storage_key, cause=cause, cleanup_error=cleanup_error) from cause

        photo_upload_total.labels(result="failure").inc()
        logger.error(
            "Photo record insert failed, uploaded blob removed",
            exc_info=cause,
            extra={"event": "photo", "actor_id": actor.id, "storage_key": storage_key},
        )
        if isinstance(cause, IntegrityError) and "storage_key" in str(cause.orig):
            raise StorageKeyConflictError(storage_key) from cause
        raise StoreUnavailableError("metadata", "insert", storage_key=storage_key) from cause

    async def upload_photos(
        self,
        actor: Optional[Actor],
        files: Iterable[UploadItem],
        metadata: Optional[PhotoCreate] = None,
    ) -> BatchUploadResult:
        """
        Upload several files one after another.
        A failed file is recorded and the batch continues.
        """
        actor = self._require_actor(actor)
        items: List[BatchUploadItem] = []
        for item in files:
            try:
                photo = await self.upload_photo(
                    actor=actor,
                    file_content=item.content,
                    filename=item.filename,
                    content_type=item.content_type,
                    metadata=metadata,
                )
            except GalleryError as e:
                items.append(
                    BatchUploadItem(
                        file_name=item.filename,
                        success=False,
                        error=e.message,
                        error_type=type(e).__name__,
                    )
                )
                continue
            items.append(
                BatchUploadItem(
                    file_name=item.filename,
                    success=True,
                    photo=self.get_photo_with_url(photo),
                )
            )

        uploaded = sum(1 for i in items if i.success)
        return BatchUploadResult(uploaded=uploaded, failed=len(items) - uploaded, items=items)

    @staticmethod
    def _metadata_unavailable(operation: str, **identifiers: Any) -> StoreUnavailableError:
        """Metadata store failure, counted in ``db_errors_total``."""
        db_errors_total.inc()
        return StoreUnavailableError("metadata", operation, **identifiers)

    async def _get_or_404(self, photo_id: int) -> Photo:
        try:
            photo = await self.repository.get_by_id(photo_id)
        except SQLAlchemyError as e:
            logger.error("Photo lookup failed", exc_info=e, extra={"event": "photo", "photo_id": photo_id})
            raise self._metadata_unavailable("get", photo_id=photo_id) from e
        if photo is None:
            raise NotFoundError(photo_id)
        return photo

    @staticmethod
    def _validate_patch(patch: Union[PhotoUpdate, Mapping[str, Any]]) -> Dict[str, Any]:
        """Changed fields of a patch; rejects immutable fields and nulled flags."""
        if not isinstance(patch, PhotoUpdate):
            try:
                patch = PhotoUpdate.model_validate(dict(patch))
            except ValidationError as e:
                errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
                raise PreconditionFailedError("Invalid photo update", {"errors": errors}) from e

        changes = patch.model_dump(exclude_unset=True)
        changes.update(patch.model_extra or {})

        disallowed = sorted(set(changes) - MUTABLE_FIELDS)
        if disallowed:
            raise PreconditionFailedError(
                f"Fields cannot be updated: {', '.join(disallowed)}",
                {"fields": disallowed},
            )
        nulled = sorted(f for f in NON_NULLABLE_FIELDS if f in changes and changes[f] is None)
        if nulled:
            raise PreconditionFailedError(
                f"Fields cannot be null: {', '.join(nulled)}",
                {"fields": nulled},
            )
        return changes

    async def update_photo(
        self,
        photo_id: int,
        patch: Union[PhotoUpdate, Mapping[str, Any]],
        actor: Optional[Actor],
    ) -> Photo:
        """
        Update photo metadata.

        Args:
            photo_id: Photo to update
            patch: Any of title, description, category, is_featured, is_visible
            actor: Authenticated editor

        Returns:
            Updated Photo model
        """
        actor = self._require_actor(actor)
        changes = self._validate_patch(patch)
        photo = await self._get_or_404(photo_id)
        if not changes:
            return photo

        try:
            photo = await self.repository.update(photo, changes)
        except SQLAlchemyError as e:
            logger.error("Photo update failed", exc_info=e, extra={"event": "photo", "photo_id": photo_id})
            raise self._metadata_unavailable("update", photo_id=photo_id) from e

        logger.info(
            "Photo updated",
            extra={"event": "photo", "photo_id": photo_id, "actor_id": actor.id, "fields": sorted(changes)},
        )
        return photo

    async def delete_photo(self, photo_id: int, actor: Optional[Actor]) -> None:
        """
        Delete a photo from storage and database.

        A blob that cannot be deleted is logged and left behind; the record is
        still removed. Deleting an already-missing blob counts as success.
        """
        actor = self._require_actor(actor)
        try:
            photo = await self._get_or_404(photo_id)
        except NotFoundError:
            photo_delete_total.labels(result="not_found").inc()
            raise

        storage_key = photo.storage_key
        try:
            await self.storage.delete_object(storage_key)
        except Exception as e:
            # Record is removed anyway; the leftover blob shows up in the orphan report
            blob_cleanup_failures_total.labels(operation="delete").inc()
            logger.error(
                "Photo storage delete failed",
                exc_info=e,
                extra={"event": "photo", "photo_id": photo_id, "storage_key": storage_key},
            )

        try:
            await self.repository.delete(photo)
        except SQLAlchemyError as e:
            photo_delete_total.labels(result="failure").inc()
            logger.error(
                "Photo record delete failed",
                exc_info=e,
                extra={"event": "photo", "photo_id": photo_id, "storage_key": storage_key},
            )
            raise self._metadata_unavailable("delete", photo_id=photo_id, storage_key=storage_key) from e

        photo_delete_total.labels(result="success").inc()
        logger.info(
            "Photo deleted",
            extra={"event": "photo", "photo_id": photo_id, "actor_id": actor.id},
        )

    async def list_photos(
        self,
        visibility: Visibility = Visibility.ALL,
        category: Optional[str] = None,
        featured_only: bool = False,
    ) -> List[PhotoWithUrl]:
        """
        Photos newest first, each with its public URL.

        Args:
            visibility: ALL for the admin view, VISIBLE_ONLY for the public view
            category: Restrict to one category
            featured_only: Restrict to featured photos
        """
        try:
            photos = await self.repository.query(
                visible_only=visibility == Visibility.VISIBLE_ONLY,
                category=category,
                featured_only=featured_only,
            )
        except SQLAlchemyError as e:
            logger.error("Photo listing failed", exc_info=e, extra={"event": "photo"})
            raise self._metadata_unavailable("query") from e
        return self.get_photos_with_urls(photos)

    async def get_photo(self, photo_id: int) -> PhotoWithUrl:
        """Get a single photo with its URL; raises NotFoundError."""
        photo = await self._get_or_404(photo_id)
        return self.get_photo_with_url(photo)

    def get_photo_with_url(self, photo: Photo) -> PhotoWithUrl:
        """
        Photo response with its public URL.
        The URL is recomputed from configuration on every call.
        """
        return PhotoWithUrl(
            id=photo.id,
            file_name=photo.file_name,
            storage_key=photo.storage_key,
            file_size=photo.file_size,
            mime_type=photo.mime_type,
            width=photo.width,
            height=photo.height,
            title=photo.title,
            description=photo.description,
            category=photo.category,
            is_featured=photo.is_featured,
            is_visible=photo.is_visible,
            uploaded_by=photo.uploaded_by,
            created_at=photo.created_at,
            updated_at=photo.updated_at,
            url=self.url_resolver.resolve(photo.storage_key),
        )

    def get_photos_with_urls(self, photos: Iterable[Photo]) -> List[PhotoWithUrl]:
        return [self.get_photo_with_url(photo) for photo in photos]

    async def photo_stats(self) -> PhotoStats:
        """Total, visible, hidden and featured counts."""
        try:
            counts = await self.repository.counts()
        except SQLAlchemyError as e:
            logger.error("Photo stats query failed", exc_info=e, extra={"event": "photo"})
            raise self._metadata_unavailable("count") from e
        return PhotoStats(
            total=counts["total"],
            visible=counts["visible"],
            hidden=counts["total"] - counts["visible"],
            featured=counts["featured"],
        )

    async def find_orphaned_blobs(
        self,
        prefix: str = "",
        page_size: int = 1000,
        min_age_seconds: int = 300,
    ) -> List[ObjectInfo]:
        """
        Blobs that no photo record references, oldest first.

        The whole listing under ``prefix`` is walked ``page_size`` objects at
        a time. Objects younger than ``min_age_seconds`` are skipped so uploads
        still between blob write and record insert are not reported.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=min_age_seconds)
        orphans: List[ObjectInfo] = []
        offset = 0
        while True:
            try:
                page = await self.storage.list_objects(
                    prefix=prefix,
                    limit=page_size,
                    offset=offset,
                    sort_by="last_modified",
                    descending=False,
                )
            except BlobStoreError as e:
                logger.error("Blob listing failed", exc_info=e, extra={"event": "photo", "prefix": prefix})
                raise StoreUnavailableError("blob", "list", prefix=prefix) from e

            candidates = [obj for obj in page if self._is_orphan_candidate(obj, cutoff)]
            if candidates:
                try:
                    referenced = await self.repository.storage_keys(o.key for o in candidates)
                except SQLAlchemyError as e:
                    logger.error("Storage key lookup failed", exc_info=e, extra={"event": "photo"})
                    raise self._metadata_unavailable("query") from e
                orphans.extend(o for o in candidates if o.key not in referenced)

            if not page or len(page) < page_size:
                return orphans
            offset += page_size

    @staticmethod
    def _is_orphan_candidate(obj: ObjectInfo, cutoff: datetime) -> bool:
        if obj.key.startswith(HEALTHCHECK_PREFIX):
            return False
        modified = obj.last_modified
        if modified is None:
            return True
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        return modified <= cutoff
