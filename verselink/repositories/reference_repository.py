"""Repository for per-owner scripture reference records."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from verselink.database.models import ReferenceRecord
from verselink.repositories.base_repository import BaseRepository
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ReferenceRecordRepository(BaseRepository[ReferenceRecord]):
    """Repository for ReferenceRecord model.

    At most one record exists per (owner_id, normalized_key); the unique
    constraint enforces it across processes.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, ReferenceRecord)

    async def get_by_key(self, owner_id: str, normalized_key: str) -> Optional[ReferenceRecord]:
        """Get the record stored under an exact normalized key."""
        try:
            query = select(ReferenceRecord).where(
                ReferenceRecord.owner_id == owner_id,
                ReferenceRecord.normalized_key == normalized_key,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error getting reference record by key: {e}",
                extra={"owner_id": owner_id, "normalized_key": normalized_key},
                exc_info=True,
            )
            raise

    async def list_for_owner(self, owner_id: str) -> List[ReferenceRecord]:
        """List every reference record of an owner, oldest first."""
        try:
            query = (
                select(ReferenceRecord)
                .where(ReferenceRecord.owner_id == owner_id)
                .order_by(ReferenceRecord.created_at)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error listing reference records: {e}",
                extra={"owner_id": owner_id},
                exc_info=True,
            )
            raise

    async def insert_if_absent(self, **values) -> tuple[ReferenceRecord, bool]:
        """Insert a record unless one already exists for its (owner_id, normalized_key).

        Args:
            **values: Column values; must include owner_id and normalized_key

        Returns:
            Tuple of (the stored record, whether this call inserted it)
        """
        try:
            stmt = insert(ReferenceRecord).values(**values).on_conflict_do_nothing(
                constraint="uq_reference_owner_key"
            ).returning(ReferenceRecord.id)
            result = await self.session.execute(stmt)
            inserted = result.scalar_one_or_none() is not None
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error inserting reference record: {e}",
                extra={
                    "owner_id": values.get("owner_id"),
                    "normalized_key": values.get("normalized_key"),
                },
                exc_info=True,
            )
            raise

        record = await self.get_by_key(values["owner_id"], values["normalized_key"])
        return record, inserted
