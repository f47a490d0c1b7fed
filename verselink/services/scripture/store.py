"""Document/collection store used by the reference resolver."""

import asyncio
from typing import List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from verselink.database.models import ReferenceRecord
from verselink.models.scripture import ParsedReference, StoredReference
from verselink.repositories.collection_repository import CollectionRepository
from verselink.repositories.document_repository import DocumentRepository
from verselink.repositories.membership_repository import MembershipRepository
from verselink.repositories.reference_repository import ReferenceRecordRepository


class ReferenceStore(Protocol):
    """Persistence operations the resolver depends on.

    Implementations must give read-your-writes consistency within a pass.
    """

    async def create_document(self, owner_id: str, kind: str, title: str, body: str) -> UUID: ...

    async def delete_document(self, document_id: UUID) -> None: ...

    async def find_reference_record(self, owner_id: str, normalized_key: str) -> Optional[StoredReference]: ...

    async def list_reference_records(self, owner_id: str) -> List[StoredReference]: ...

    async def create_reference_record(
        self,
        owner_id: str,
        normalized_key: str,
        document_id: UUID,
        reference: ParsedReference,
        translation: str,
    ) -> Tuple[StoredReference, bool]:
        """Insert unless (owner_id, normalized_key) exists; return (record, inserted)."""
        ...

    async def find_membership(self, document_id: UUID, collection_id: UUID) -> bool: ...

    async def create_membership(self, document_id: UUID, collection_id: UUID) -> bool: ...

    async def count_memberships(self, document_id: UUID) -> int: ...

    async def touch_collection(self, collection_id: UUID) -> None: ...


def _to_stored(record: ReferenceRecord) -> StoredReference:
    return StoredReference(
        owner_id=record.owner_id,
        normalized_key=record.normalized_key,
        document_id=record.document_id,
    )


class SqlReferenceStore:
    """ReferenceStore backed by the SQLAlchemy repositories.

    An AsyncSession cannot run statements concurrently, so calls are
    serialized on an internal lock while the resolver overlaps fetches.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.documents = DocumentRepository(session)
        self.collections = CollectionRepository(session)
        self.memberships = MembershipRepository(session)
        self.references = ReferenceRecordRepository(session)
        self._lock = asyncio.Lock()

    async def create_document(self, owner_id: str, kind: str, title: str, body: str) -> UUID:
        async with self._lock:
            document = await self.documents.create(owner_id=owner_id, kind=kind, title=title, body=body)
            return document.id

    async def delete_document(self, document_id: UUID) -> None:
        async with self._lock:
            await self.documents.delete(document_id)

    async def find_reference_record(self, owner_id: str, normalized_key: str) -> Optional[StoredReference]:
        async with self._lock:
            record = await self.references.get_by_key(owner_id, normalized_key)
        return _to_stored(record) if record else None

    async def list_reference_records(self, owner_id: str) -> List[StoredReference]:
        async with self._lock:
            records = await self.references.list_for_owner(owner_id)
        return [_to_stored(record) for record in records]

    async def create_reference_record(
        self,
        owner_id: str,
        normalized_key: str,
        document_id: UUID,
        reference: ParsedReference,
        translation: str,
    ) -> Tuple[StoredReference, bool]:
        async with self._lock:
            record, inserted = await self.references.insert_if_absent(
                owner_id=owner_id,
                normalized_key=normalized_key,
                document_id=document_id,
                book=reference.book,
                chapter=reference.chapter,
                verse_start=reference.verse_start,
                verse_end=reference.verse_end,
                translation=translation,
            )
        return _to_stored(record), inserted

    async def find_membership(self, document_id: UUID, collection_id: UUID) -> bool:
        async with self._lock:
            return await self.memberships.exists(document_id, collection_id)

    async def create_membership(self, document_id: UUID, collection_id: UUID) -> bool:
        async with self._lock:
            return await self.memberships.add(document_id, collection_id)

    async def count_memberships(self, document_id: UUID) -> int:
        async with self._lock:
            return await self.memberships.count_for_document(document_id)

    async def touch_collection(self, collection_id: UUID) -> None:
        async with self._lock:
            await self.collections.touch(collection_id)
