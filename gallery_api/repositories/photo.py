"""Photo metadata repository."""
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_api.models.photo import Photo

KEY_LOOKUP_CHUNK = 500


class PhotoRepository:
    """
    Insert/update/delete/query access to the ``photos`` table.

    Every write commits on its own so a returned record is durable; on
    failure the session is rolled back and the SQLAlchemy error re-raised.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def insert(self, values: Dict[str, Any]) -> Photo:
        """
        Insert a photo row.

        Args:
            values: Column values (id and timestamps are assigned here)

        Returns:
            The persisted Photo with its id
        """
        photo = Photo(**values)
        self.db.add(photo)
        try:
            await self.db.flush()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self._commit()
        await self.db.refresh(photo)
        return photo

    async def update(self, photo: Photo, values: Dict[str, Any]) -> Photo:
        """Apply column values to an existing row."""
        for field, value in values.items():
            setattr(photo, field, value)
        await self._commit()
        await self.db.refresh(photo)
        return photo

    async def delete(self, photo: Photo) -> None:
        """Delete a row."""
        await self.db.delete(photo)
        await self._commit()

    async def get_by_id(self, photo_id: int) -> Optional[Photo]:
        """Get a photo by ID, or None."""
        result = await self.db.execute(select(Photo).where(Photo.id == photo_id))
        return result.scalar_one_or_none()

    async def query(
        self,
        visible_only: bool = False,
        category: Optional[str] = None,
        featured_only: bool = False,
    ) -> List[Photo]:
        """
        All matching photos, newest first.

        Args:
            visible_only: Only rows with is_visible = true
            category: Only rows in this category
            featured_only: Only rows with is_featured = true
        """
        stmt = select(Photo)
        if visible_only:
            stmt = stmt.where(Photo.is_visible.is_(True))
        if category is not None:
            stmt = stmt.where(Photo.category == category)
        if featured_only:
            stmt = stmt.where(Photo.is_featured.is_(True))
        stmt = stmt.order_by(Photo.created_at.desc(), Photo.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def storage_keys(self, keys: Iterable[str]) -> Set[str]:
        """Subset of ``keys`` referenced by some photo row."""
        wanted = list(keys)
        found: Set[str] = set()
        # Chunked to stay under bound-parameter limits
        for start in range(0, len(wanted), KEY_LOOKUP_CHUNK):
            chunk = wanted[start:start + KEY_LOOKUP_CHUNK]
            result = await self.db.execute(
                select(Photo.storage_key).where(Photo.storage_key.in_(chunk))
            )
            found.update(result.scalars().all())
        return found

    async def counts(self) -> Dict[str, int]:
        """Total, visible and featured row counts."""
        result = await self.db.execute(
            select(
                func.count(Photo.id),
                func.coalesce(func.sum(case((Photo.is_visible.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(case((Photo.is_featured.is_(True), 1), else_=0)), 0),
            )
        )
        total, visible, featured = result.one()
        return {"total": int(total), "visible": int(visible), "featured": int(featured)}
