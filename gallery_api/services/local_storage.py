"""Local filesystem blob store using pathlib."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from gallery_api.schemas.storage import ObjectInfo
from gallery_api.services.blob_store import (
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    sort_and_page,
)

logger = logging.getLogger("gallery.storage")


class LocalObjectStorage(BlobStore):
    """Stores each blob as a file below ``root``; keys map to relative paths."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or "\\" in key:
            raise BlobStoreError(f"Invalid storage key: {key!r}", key=key)
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise BlobStoreError(f"Storage key escapes the storage root: {key!r}", key=key)
        return path

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str | None = None,
        overwrite: bool = False,
    ) -> None:
        """Write a file; exclusive create when not overwriting."""
        path = self._path_for(key)
        opened = False
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb" if overwrite else "xb") as fh:
                opened = True
                fh.write(data)
        except FileExistsError as e:
            raise BlobAlreadyExistsError(f"Object already exists: {key}", key=key) from e
        except OSError as e:
            # A partial file must not be left behind as a blob
            if opened:
                path.unlink(missing_ok=True)
            logger.error("File upload failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File upload failed: {e}", key=key) from e

    async def get_object(self, key: str) -> bytes:
        """Read a file."""
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Object not found: {key}", key=key) from e
        except OSError as e:
            raise BlobStoreError(f"File download failed: {e}", key=key) from e

    async def delete_object(self, key: str) -> None:
        """Remove a file; missing files are ignored."""
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("File deletion failed", exc_info=e, extra={"event": "storage", "object": key})
            raise BlobStoreError(f"File deletion failed: {e}", key=key) from e

    async def object_exists(self, key: str) -> bool:
        """Check if a file exists."""
        return self._path_for(key).is_file()

    async def list_objects(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: str = "name",
        descending: bool = False,
    ) -> List[ObjectInfo]:
        """List files whose relative path starts with ``prefix``."""
        if not self.root.exists():
            return []
        found: List[ObjectInfo] = []
        try:
            for path in self.root.rglob("*"):
                if not path.is_file():
                    continue
                key = path.relative_to(self.root).as_posix()
                if not key.startswith(prefix):
                    continue
                stat = path.stat()
                found.append(
                    ObjectInfo(
                        key=key,
                        size=stat.st_size,
                        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
        except OSError as e:
            raise BlobStoreError(f"Object listing failed: {e}") from e
        return sort_and_page(found, limit, offset, sort_by, descending)
