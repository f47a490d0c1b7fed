"""Repository for document/collection memberships."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from verselink.database.models import DocumentCollection
from verselink.repositories.base_repository import BaseRepository
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MembershipRepository(BaseRepository[DocumentCollection]):
    """Repository for the DocumentCollection junction table.

    The unassigned collection never gets rows here: a document with zero
    memberships is implicitly unassigned.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentCollection)

    async def exists(self, document_id: UUID, collection_id: UUID) -> bool:
        """Check whether a document is explicitly linked to a collection."""
        try:
            query = select(DocumentCollection.id).where(
                DocumentCollection.document_id == document_id,
                DocumentCollection.collection_id == collection_id,
            ).limit(1)
            result = await self.session.execute(query)
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error checking membership: {e}",
                extra={"document_id": str(document_id), "collection_id": str(collection_id)},
                exc_info=True,
            )
            raise

    async def add(self, document_id: UUID, collection_id: UUID) -> bool:
        """Link a document to a collection (idempotent).

        Returns:
            True if a new row was inserted, False if the pair already existed
        """
        try:
            stmt = insert(DocumentCollection).values(
                document_id=document_id,
                collection_id=collection_id,
            ).on_conflict_do_nothing(
                index_elements=["document_id", "collection_id"]
            ).returning(DocumentCollection.id)
            result = await self.session.execute(stmt)
            inserted = result.scalar_one_or_none() is not None
            await self.session.commit()
            return inserted
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error adding membership: {e}",
                extra={"document_id": str(document_id), "collection_id": str(collection_id)},
                exc_info=True,
            )
            raise

    async def count_for_document(self, document_id: UUID) -> int:
        """Count a document's explicit memberships."""
        return await self.count(filters={"document_id": document_id})

    async def first_for_document(self, document_id: UUID) -> Optional[DocumentCollection]:
        """Get the oldest explicit membership of a document, if any."""
        try:
            query = (
                select(DocumentCollection)
                .where(DocumentCollection.document_id == document_id)
                .order_by(DocumentCollection.created_at)
                .limit(1)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error getting first membership: {e}",
                extra={"document_id": str(document_id)},
                exc_info=True,
            )
            raise
