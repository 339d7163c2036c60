"""
Connection diagnostics for the admin "test connection" view.

Runs each check in order and reports every outcome instead of stopping at
the first failure. Nothing here raises; errors become check entries.
"""
import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_api.config import Settings, get_settings
from gallery_api.exceptions import ConfigurationError
from gallery_api.models.photo import Photo
from gallery_api.schemas.health import CheckStatus, ConnectionCheck, ConnectionReport
from gallery_api.services.blob_store import BlobStore
from gallery_api.services.storage_keys import HEALTHCHECK_PREFIX, random_suffix
from gallery_api.services.url_resolver import build_url_resolver

logger = logging.getLogger("gallery.diagnostics")

T = TypeVar("T")


def _short(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"[:200]


class DiagnosticsService:
    """Checks configuration, database, metadata table and blob store access."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStore,
        settings: Optional[Settings] = None,
        timeout: float = 5.0,
    ):
        self.db = db
        self.storage = storage
        self.settings = settings or get_settings()
        self.timeout = timeout

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    def check_configuration(self) -> ConnectionCheck:
        try:
            resolver = build_url_resolver(self.settings)
        except ConfigurationError as e:
            return ConnectionCheck(
                name="configuration",
                status=CheckStatus.ERROR,
                message="Public URL base is not usable",
                details=str(e),
            )
        if not self.settings.storage_bucket:
            return ConnectionCheck(
                name="configuration",
                status=CheckStatus.ERROR,
                message="Storage bucket is not configured",
            )
        return ConnectionCheck(
            name="configuration",
            status=CheckStatus.SUCCESS,
            message="Configuration loaded",
            details=f"backend={self.settings.storage_backend.value} base_url={resolver.base_url}",
        )

    async def check_database(self) -> ConnectionCheck:
        try:
            await self._bounded(self.db.execute(text("SELECT 1")))
        except Exception as e:
            logger.warning("Database check failed", extra={"event": "health", "error": _short(e)})
            return ConnectionCheck(
                name="database",
                status=CheckStatus.ERROR,
                message="Database connection failed",
                details=_short(e),
            )
        return ConnectionCheck(name="database", status=CheckStatus.SUCCESS, message="Database reachable")

    async def check_metadata_table(self) -> ConnectionCheck:
        try:
            result = await self._bounded(self.db.execute(select(func.count(Photo.id))))
            count = result.scalar_one()
        except Exception as e:
            logger.warning("Metadata table check failed", extra={"event": "health", "error": _short(e)})
            return ConnectionCheck(
                name="metadata_table",
                status=CheckStatus.ERROR,
                message="Photos table is not readable",
                details=_short(e),
            )
        return ConnectionCheck(
            name="metadata_table",
            status=CheckStatus.SUCCESS,
            message=f"Photos table readable ({count} rows)",
        )

    async def check_storage_access(self) -> ConnectionCheck:
        try:
            await self._bounded(self.storage.list_objects(limit=1))
        except Exception as e:
            logger.warning("Storage access check failed", extra={"event": "health", "error": _short(e)})
            return ConnectionCheck(
                name="storage_access",
                status=CheckStatus.ERROR,
                message="Blob store is not reachable",
                details=_short(e),
            )
        return ConnectionCheck(name="storage_access", status=CheckStatus.SUCCESS, message="Blob store reachable")

    async def check_storage_write(self) -> ConnectionCheck:
        key = f"{HEALTHCHECK_PREFIX}{random_suffix(16)}.txt"
        try:
            await self._bounded(
                self.storage.put_object(key, b"ok", content_type="text/plain", overwrite=True)
            )
        except Exception as e:
            logger.warning("Storage write check failed", extra={"event": "health", "error": _short(e)})
            return ConnectionCheck(
                name="storage_write",
                status=CheckStatus.ERROR,
                message="Blob store write failed",
                details=_short(e),
            )
        try:
            await self._bounded(self.storage.delete_object(key))
        except Exception as e:
            logger.warning(
                "Storage probe cleanup failed",
                extra={"event": "health", "error": _short(e), "object": key},
            )
            return ConnectionCheck(
                name="storage_write",
                status=CheckStatus.ERROR,
                message="Blob store write succeeded but delete failed",
                details=_short(e),
            )
        return ConnectionCheck(
            name="storage_write",
            status=CheckStatus.SUCCESS,
            message="Blob store write and delete succeeded",
        )

    async def run_checks(self) -> ConnectionReport:
        """Run every check in order."""
        checks: List[ConnectionCheck] = [
            self.check_configuration(),
            await self.check_database(),
            await self.check_metadata_table(),
        ]

        access = await self.check_storage_access()
        checks.append(access)
        if access.status == CheckStatus.SUCCESS:
            checks.append(await self.check_storage_write())
        else:
            checks.append(
                ConnectionCheck(
                    name="storage_write",
                    status=CheckStatus.SKIPPED,
                    message="Skipped because blob store access failed",
                )
            )

        healthy = all(c.status != CheckStatus.ERROR for c in checks)
        if not healthy:
            logger.error(
                "Connection diagnostics failed",
                extra={"event": "health", "failed": [c.name for c in checks if c.status == CheckStatus.ERROR]},
            )
        return ConnectionReport(healthy=healthy, checks=checks)
