"""
S3-compatible object storage integration.
Handles upload, download, deletion and listing of photo blobs.

Works against AWS S3 or any S3 API (MinIO, Supabase Storage S3, NHN Cloud, ...).
boto3 is blocking, so every call runs in a worker thread.
"""
import asyncio
import logging
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from gallery_api.config import Settings, get_settings
from gallery_api.schemas.storage import ObjectInfo
from gallery_api.services.blob_store import (
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    sort_and_page,
)
from gallery_api.utils.prometheus_metrics import record_external_request

logger = logging.getLogger("gallery.storage")

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_EXISTS_CODES = frozenset({"412", "PreconditionFailed"})


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStorage(BlobStore):
    """
    Blob store backed by a single S3 bucket.

    Bucket strategy:
    1. One bucket for all photos (STORAGE_BUCKET)
    2. Flat keys produced by the storage key generator
    3. Public reads are served by the bucket/CDN, not by this service
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or get_settings()
        self.bucket = self.settings.storage_bucket
        self._s3_client = client

    def _get_s3_client(self):
        """
        Get or create the boto3 S3 client.

        Returns:
            Configured boto3 S3 client
        """
        if self._s3_client is not None:
            return self._s3_client

        # Endpoint must be host only; a path segment would be read as the bucket name
        endpoint = (self.settings.s3_endpoint_url or "").strip()
        if endpoint:
            parsed = urlparse(endpoint if "://" in endpoint else f"https://{endpoint}")
            endpoint = f"{parsed.scheme or 'https'}://{parsed.netloc or parsed.path.split('/')[0]}"

        self._s3_client = boto3.client(
            "s3",
            aws_access_key_id=self.settings.s3_access_key or None,
            aws_secret_access_key=self.settings.s3_secret_key or None,
            endpoint_url=endpoint or None,
            region_name=self.settings.s3_region_name,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
        return self._s3_client

    async def _call(self, operation: str, key: Optional[str], func: Callable[..., Any], **params: Any) -> Any:
        """Run a boto3 call off the event loop, recording metrics."""
        async with record_external_request("object_storage"):
            try:
                return await asyncio.to_thread(func, **params)
            except ClientError:
                raise
            except BotoCoreError as e:
                logger.error(
                    "Object storage request failed",
                    exc_info=e,
                    extra={"event": "storage", "operation": operation, "object": key},
                )
                raise BlobStoreError(f"Object storage {operation} failed: {e}", key=key) from e

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        """
        Upload a blob.

        Args:
            key: Storage key
            data: File content
            content_type: MIME type stored with the object
            overwrite: Replace an existing object when True
        """
        client = self._get_s3_client()
        if not overwrite and await self.object_exists(key):
            raise BlobAlreadyExistsError(f"Object already exists: {key}", key=key)

        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "CacheControl": self.settings.storage_cache_control,
        }
        if content_type:
            params["ContentType"] = content_type

        try:
            await self._call("put", key, client.put_object, **params)
        except ClientError as e:
            if _error_code(e) in _EXISTS_CODES:
                raise BlobAlreadyExistsError(f"Object already exists: {key}", key=key) from e
            logger.error("File upload failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File upload failed: {_error_code(e)}", key=key) from e

    async def get_object(self, key: str) -> bytes:
        """Download a blob's content."""
        client = self._get_s3_client()
        try:
            response = await self._call("get", key, client.get_object, Bucket=self.bucket, Key=key)
            body = response["Body"]
            try:
                return await asyncio.to_thread(body.read)
            finally:
                body.close()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise BlobNotFoundError(f"Object not found: {key}", key=key) from e
            logger.error("File download failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File download failed: {_error_code(e)}", key=key) from e

    async def delete_object(self, key: str) -> None:
        """
        Delete a blob.
        S3 DELETE already succeeds for absent keys; a 404 is treated the same.
        """
        client = self._get_s3_client()
        try:
            await self._call("delete", key, client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            logger.error("File deletion failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File deletion failed: {_error_code(e)}", key=key) from e

    async def object_exists(self, key: str) -> bool:
        """Check if a blob exists (HEAD)."""
        client = self._get_s3_client()
        try:
            await self._call("head", key, client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            logger.error("File exists check failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File exists check failed: {_error_code(e)}", key=key) from e

    async def list_objects(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: str = "name",
        descending: bool = False,
    ) -> List[ObjectInfo]:
        """
        List blobs under a prefix.
        S3 has no server-side offset or sort, so every page is read first.
        """
        client = self._get_s3_client()

        def _list_all() -> List[ObjectInfo]:
            paginator = client.get_paginator("list_objects_v2")
            found: List[ObjectInfo] = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    found.append(
                        ObjectInfo(
                            key=item["Key"],
                            size=int(item.get("Size", 0)),
                            last_modified=item.get("LastModified"),
                        )
                    )
            return found

        try:
            objects = await self._call("list", prefix, _list_all)
        except ClientError as e:
            logger.error("Object listing failed", exc_info=e, extra={"event": "storage", "prefix": prefix})
            raise BlobStoreError(f"Object listing failed: {_error_code(e)}") from e
        return sort_and_page(objects, limit, offset, sort_by, descending)
