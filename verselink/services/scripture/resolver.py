"""Resolution of a note's citations to per-owner reference documents.

For every distinct normalized key cited by a note the resolver:

1. looks up the owner's ReferenceRecord (exact key, then the legacy-key scan),
2. creates the reference document and record if none exists, at most once
   per (owner_id, normalized_key),
3. links the document to the target collection.

Each distinct key is resolved independently; a failure for one key is
reported as an ``error`` result and never aborts the others.
"""

import asyncio
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from verselink.core.config import settings
from verselink.core.exceptions import ScriptureFetchError
from verselink.database.models import DocumentKind
from verselink.models.scripture import (
    CollectionTarget,
    ParsedReference,
    ScriptureCitation,
    StoredReference,
)
from verselink.schemas.scripture import ReferenceAction, ResolutionOutcome, ResolutionResult
from verselink.services.achievement_service import AchievementHook
from verselink.services.scripture.fetcher import ScriptureFetcher
from verselink.services.scripture.locks import KeyedLock, reference_creation_lock
from verselink.services.scripture.normalizer import normalize_reference
from verselink.services.scripture.store import ReferenceStore
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


class ReferenceResolver:
    """Resolves citations to reference documents and links them to a collection."""

    def __init__(
        self,
        store: ReferenceStore,
        fetcher: Optional[ScriptureFetcher] = None,
        hook: Optional[AchievementHook] = None,
        lock: Optional[KeyedLock] = None,
        translation: Optional[str] = None,
        max_concurrency: Optional[int] = None,
    ):
        """Initialize the resolver.

        Args:
            store: Document/collection store
            fetcher: Verse text source for new reference documents
            hook: Notified once per newly created reference document
            lock: Per-key lock serializing create-if-absent
            translation: Translation recorded on new reference records
            max_concurrency: Distinct keys resolved at once
        """
        self.store = store
        self.fetcher = fetcher or ScriptureFetcher()
        self.hook = hook
        self.lock = lock or reference_creation_lock
        self.translation = translation or settings.scripture.translation
        self.max_concurrency = max(1, max_concurrency or settings.scripture.max_concurrent_fetches)

    async def resolve(
        self,
        owner_id: str,
        citations: Sequence[ScriptureCitation],
        target: CollectionTarget,
    ) -> ResolutionOutcome:
        """Resolve every citation of one note.

        Citations sharing a normalized key are resolved once; the result
        carries the first raw text seen for that key, while the mapping
        covers every raw text.

        Args:
            owner_id: Owner of the note
            citations: Citations extracted from the note, in order
            target: Collection the note currently targets

        Returns:
            ResolutionOutcome with one result per distinct key
        """
        by_key: "OrderedDict[str, List[ScriptureCitation]]" = OrderedDict()
        for citation in citations:
            by_key.setdefault(citation.key, []).append(citation)

        if not by_key:
            return ResolutionOutcome()

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(first: ScriptureCitation) -> ResolutionResult:
            async with semaphore:
                return await self._resolve_one(owner_id, first, target)

        results = await asyncio.gather(*(run(group[0]) for group in by_key.values()))

        citation_to_document: Dict[str, UUID] = {}
        for group, result in zip(by_key.values(), results):
            if result.document_id is None:
                continue
            for citation in group:
                citation_to_document.setdefault(citation.raw_text, result.document_id)

        LOGGER.info(
            "Resolved scripture citations",
            extra={
                "owner_id": owner_id,
                "distinct_keys": len(results),
                "actions": [result.action.value for result in results],
            },
        )
        return ResolutionOutcome(results=list(results), citation_to_document=citation_to_document)

    async def find_existing(self, owner_id: str, normalized_key: str) -> Optional[StoredReference]:
        """Find the owner's record for a key, falling back to the legacy-key scan."""
        record = await self.store.find_reference_record(owner_id, normalized_key)
        if record is not None:
            return record
        return await self.reconcile_legacy_key(owner_id, normalized_key)

    async def reconcile_legacy_key(self, owner_id: str, normalized_key: str) -> Optional[StoredReference]:
        """Find a record stored under an older normalization of ``normalized_key``.

        Records written before a normalization rule changed keep their old
        key. Every record of the owner is re-normalized and compared, so
        those records are still reused instead of duplicated. Retire once
        stored keys are migrated.
        """
        for record in await self.store.list_reference_records(owner_id):
            if record.normalized_key == normalized_key:
                continue
            if normalize_reference(record.normalized_key) == normalized_key:
                LOGGER.warning(
                    "Matched reference record via legacy key",
                    extra={
                        "owner_id": owner_id,
                        "legacy_key": record.normalized_key,
                        "normalized_key": normalized_key,
                    },
                )
                return record
        return None

    async def _resolve_one(
        self,
        owner_id: str,
        citation: ScriptureCitation,
        target: CollectionTarget,
    ) -> ResolutionResult:
        key = citation.key
        document_id: Optional[UUID] = None

        try:
            document_id, created = await self._lookup_or_create(owner_id, citation.reference)
            if created:
                if not target.is_unassigned:
                    await self._add_membership(document_id, target)
                action = ReferenceAction.CREATED
            else:
                action = await self._link(document_id, target)
        except Exception as e:
            LOGGER.error(
                f"Failed to resolve citation: {e}",
                extra={"owner_id": owner_id, "normalized_key": key, "document_id": str(document_id)},
                exc_info=True,
            )
            return ResolutionResult(
                action=ReferenceAction.ERROR,
                document_id=document_id,
                raw_citation=citation.raw_text,
                normalized_key=key,
                error=str(e),
            )

        return ResolutionResult(
            action=action,
            document_id=document_id,
            raw_citation=citation.raw_text,
            normalized_key=key,
        )

    async def _lookup_or_create(self, owner_id: str, reference: ParsedReference) -> Tuple[UUID, bool]:
        """Return (document_id, created) for a reference, creating it at most once."""
        key = reference.key

        existing = await self.find_existing(owner_id, key)
        if existing is not None:
            return existing.document_id, False

        async with self.lock.hold((owner_id, key)):
            existing = await self.find_existing(owner_id, key)
            if existing is not None:
                return existing.document_id, False

            body = await self._fetch_body(reference)
            document_id = await self.store.create_document(
                owner_id=owner_id,
                kind=DocumentKind.REFERENCE,
                title=key,
                body=body,
            )
            try:
                record, inserted = await self.store.create_reference_record(
                    owner_id, key, document_id, reference, self.translation
                )
            except Exception:
                # A document without a record would be minted again next time
                await self.store.delete_document(document_id)
                raise
            if not inserted:
                # Another process created the record first
                await self.store.delete_document(document_id)
                LOGGER.info(
                    "Reference record created concurrently, reusing it",
                    extra={"owner_id": owner_id, "normalized_key": key},
                )
                return record.document_id, False

        LOGGER.info(
            "Created reference document",
            extra={"owner_id": owner_id, "normalized_key": key, "document_id": str(document_id)},
        )
        await self._notify_created(owner_id, document_id)
        return document_id, True

    async def _fetch_body(self, reference: ParsedReference) -> str:
        """Fetched verse text, or the canonical key when nothing can be fetched."""
        try:
            text = await self.fetcher.fetch_text(reference)
        except ScriptureFetchError as e:
            LOGGER.warning(
                f"Verse fetch failed, using reference as body: {e}",
                extra={"normalized_key": reference.key},
            )
            return reference.key

        if not text or not text.strip():
            return reference.key
        return _capitalize_first(text.strip())

    async def _link(self, document_id: UUID, target: CollectionTarget) -> ReferenceAction:
        if target.is_unassigned:
            return ReferenceAction.UNASSIGNED

        if await self.store.find_membership(document_id, target.collection_id):
            return ReferenceAction.SKIPPED

        if not await self._add_membership(document_id, target):
            return ReferenceAction.SKIPPED
        return ReferenceAction.ADDED

    async def _add_membership(self, document_id: UUID, target: CollectionTarget) -> bool:
        """Link to a real collection; False when the link already existed."""
        previous = await self.store.count_memberships(document_id)
        inserted = await self.store.create_membership(document_id, target.collection_id)
        if inserted:
            await self.store.touch_collection(target.collection_id)
            LOGGER.debug(
                "Linked reference document",
                extra={
                    "document_id": str(document_id),
                    "collection_id": str(target.collection_id),
                    "left_unassigned": previous == 0,
                },
            )
        return inserted

    async def _notify_created(self, owner_id: str, document_id: UUID) -> None:
        if self.hook is None:
            return
        try:
            await self.hook.document_created(owner_id, document_id)
        except Exception as e:
            LOGGER.warning(
                f"Achievement hook failed: {e}",
                extra={"owner_id": owner_id, "document_id": str(document_id)},
            )
