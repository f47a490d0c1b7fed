"""Repository for note and reference document access."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from verselink.database.models import Document
from verselink.repositories.base_repository import BaseRepository
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentRepository(BaseRepository[Document]):
    """Repository for Document model."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def get_for_owner(self, document_id: UUID, owner_id: str) -> Optional[Document]:
        """Get a document only if it belongs to the given owner.

        Args:
            document_id: Document UUID
            owner_id: Owning user ID

        Returns:
            Document if found and owned, None otherwise
        """
        try:
            query = select(Document).where(
                Document.id == document_id,
                Document.owner_id == owner_id,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error getting document for owner: {e}",
                extra={"document_id": str(document_id), "owner_id": owner_id},
                exc_info=True,
            )
            raise

    async def update_body(self, document_id: UUID, body: str) -> Optional[Document]:
        """Replace a document's body, leaving every other field untouched."""
        return await self.update(document_id, body=body)
