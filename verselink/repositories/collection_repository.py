"""Repository for collection (thread) access."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from verselink.database.models import (
    Collection,
    UNASSIGNED_COLLECTION_SLUG,
    UNASSIGNED_COLLECTION_TITLE,
)
from verselink.repositories.base_repository import BaseRepository
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CollectionRepository(BaseRepository[Collection]):
    """Repository for Collection model, including the per-owner unassigned sentinel."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Collection)

    async def get_for_owner(self, collection_id: UUID, owner_id: str) -> Optional[Collection]:
        """Get a collection only if it belongs to the given owner."""
        try:
            query = select(Collection).where(
                Collection.id == collection_id,
                Collection.owner_id == owner_id,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error getting collection for owner: {e}",
                extra={"collection_id": str(collection_id), "owner_id": owner_id},
                exc_info=True,
            )
            raise

    async def ensure_unassigned(self, owner_id: str) -> Collection:
        """Return the owner's unassigned collection, creating it on first use.

        Concurrent first calls race on the (owner_id, slug) unique constraint;
        the losing insert is a no-op and both callers read the same row.

        Args:
            owner_id: Owning user ID

        Returns:
            Collection: The unassigned sentinel collection
        """
        try:
            stmt = insert(Collection).values(
                owner_id=owner_id,
                title=UNASSIGNED_COLLECTION_TITLE,
                slug=UNASSIGNED_COLLECTION_SLUG,
                is_unassigned=True,
            ).on_conflict_do_nothing(constraint="uq_collection_owner_slug")
            await self.session.execute(stmt)
            await self.session.commit()

            query = select(Collection).where(
                Collection.owner_id == owner_id,
                Collection.slug == UNASSIGNED_COLLECTION_SLUG,
            )
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error ensuring unassigned collection: {e}",
                extra={"owner_id": owner_id},
                exc_info=True,
            )
            raise

    async def touch(self, collection_id: UUID) -> None:
        """Refresh a collection's updated_at timestamp."""
        try:
            stmt = (
                update(Collection)
                .where(Collection.id == collection_id)
                .values(updated_at=datetime.now(timezone.utc))
            )
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error touching collection: {e}",
                extra={"collection_id": str(collection_id)},
                exc_info=True,
            )
            raise
