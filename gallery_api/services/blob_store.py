"""Abstract blob store used by the photo lifecycle."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from gallery_api.schemas.storage import ObjectInfo

SORT_FIELDS = ("name", "last_modified", "size")


class BlobStoreError(Exception):
    """A blob store operation failed."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class BlobAlreadyExistsError(BlobStoreError):
    """A non-overwriting put found the key already present."""


class BlobNotFoundError(BlobStoreError):
    """The requested key does not exist."""


class BlobStore(ABC):
    """Key-addressed binary storage.

    Implementations guarantee durability once ``put_object`` returns,
    idempotent ``delete_object`` and a single flat namespace of keys.
    """

    @abstractmethod
    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str | None = None,
        overwrite: bool = False,
    ) -> None:
        """Store ``data`` under ``key``.

        Raises:
            BlobAlreadyExistsError: ``overwrite`` is False and the key exists.
            BlobStoreError: The write failed.
        """

    @abstractmethod
    async def get_object(self, key: str) -> bytes:
        """Read the object at ``key``.

        Raises:
            BlobNotFoundError: No object at ``key``.
        """

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete the object at ``key``. A missing key is not an error."""

    @abstractmethod
    async def object_exists(self, key: str) -> bool:
        """Check whether ``key`` holds an object."""

    @abstractmethod
    async def list_objects(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_by: str = "name",
        descending: bool = False,
    ) -> List[ObjectInfo]:
        """List objects whose key starts with ``prefix``.

        Args:
            prefix: Key prefix filter.
            limit: Maximum number of entries returned.
            offset: Entries skipped after sorting.
            sort_by: One of ``name``, ``last_modified``, ``size``.
            descending: Reverse the sort order.
        """


def sort_and_page(
    objects: List[ObjectInfo],
    limit: int,
    offset: int,
    sort_by: str,
    descending: bool,
) -> List[ObjectInfo]:
    """Shared sort/offset/limit for backends that cannot page server-side."""
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
    ordered = sorted(objects, key=_SORT_KEYS[sort_by], reverse=descending)
    return ordered[offset:offset + limit]


_SORT_KEYS = {
    "name": lambda o: o.key,
    "size": lambda o: (o.size, o.key),
    "last_modified": lambda o: (o.last_modified.timestamp() if o.last_modified else 0.0, o.key),
}
