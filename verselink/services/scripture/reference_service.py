"""Scripture reference service used by the API endpoints."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from verselink.core.config import settings
from verselink.core.exceptions import (
    CollectionNotFoundError,
    InvalidReferenceError,
    NoteNotFoundError,
)
from verselink.models.scripture import CollectionTarget, ParsedReference
from verselink.repositories.collection_repository import CollectionRepository
from verselink.repositories.document_repository import DocumentRepository
from verselink.repositories.membership_repository import MembershipRepository
from verselink.schemas.scripture import (
    CheckExistingResponse,
    DetectResponse,
    FetchVerseResponse,
    ParsedReferenceResponse,
    ProcessReferencesResponse,
)
from verselink.services.achievement_service import AchievementHook, WebhookAchievementHook
from verselink.services.scripture.detector import (
    NET_BIBLE_COPYRIGHT,
    detect_scripture,
    primary_reference,
)
from verselink.services.scripture.fetcher import ScriptureFetcher
from verselink.services.scripture.locks import KeyedLock
from verselink.services.scripture.normalizer import parse_reference
from verselink.services.scripture.pipeline import link_scripture_references
from verselink.services.scripture.resolver import ReferenceResolver
from verselink.services.scripture.store import SqlReferenceStore
from verselink.services.scripture.verse_groups import format_reference_for_display
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


def parse_or_raise(reference: str) -> ParsedReference:
    parsed = parse_reference(reference)
    if parsed is None:
        raise InvalidReferenceError(f"Not a scripture reference: {reference!r}")
    return parsed


def describe_reference(parsed: ParsedReference) -> ParsedReferenceResponse:
    return ParsedReferenceResponse(
        book=parsed.book,
        chapter=parsed.chapter,
        verse=parsed.verse_start,
        verse_end=parsed.verse_end,
        reference=parsed.key,
        display=format_reference_for_display(parsed.key),
    )


def detect(text: str) -> DetectResponse:
    """Detection summary for arbitrary text, with the primary reference parsed."""
    detection = detect_scripture(text)
    primary = primary_reference(detection)

    parsed = None
    if detection.references:
        parsed = describe_reference(detection.references[0].reference)

    return DetectResponse(
        is_scripture=detection.is_scripture,
        type=detection.type,
        references=[citation.raw_text for citation in detection.references],
        confidence=detection.confidence,
        detected_text=detection.detected_text,
        primary_reference=primary,
        parsed_reference=parsed,
    )


class ScriptureReferenceService:
    """Links the scripture citations of notes to per-owner reference documents."""

    def __init__(
        self,
        session: AsyncSession,
        fetcher: Optional[ScriptureFetcher] = None,
        hook: Optional[AchievementHook] = None,
        lock: Optional[KeyedLock] = None,
    ):
        """Initialize the service.

        Args:
            session: Database session for the request
            fetcher: Verse text source
            hook: Achievement hook for new reference documents
            lock: Per-key creation lock (process-wide by default)
        """
        self.session = session
        self.documents = DocumentRepository(session)
        self.collections = CollectionRepository(session)
        self.memberships = MembershipRepository(session)
        self.fetcher = fetcher or ScriptureFetcher()
        self.resolver = ReferenceResolver(
            SqlReferenceStore(session),
            fetcher=self.fetcher,
            hook=hook or WebhookAchievementHook(),
            lock=lock,
        )

    async def resolve_target(
        self,
        owner_id: str,
        collection_id: Optional[UUID] = None,
        note_id: Optional[UUID] = None,
    ) -> CollectionTarget:
        """Pick the collection new links go to.

        An explicit collection wins; otherwise the note's first collection;
        otherwise the owner's unassigned collection.

        Raises:
            CollectionNotFoundError: If collection_id is not the owner's
        """
        if collection_id is not None:
            collection = await self.collections.get_for_owner(collection_id, owner_id)
            if collection is None:
                raise CollectionNotFoundError(f"Collection {collection_id} not found")
            return CollectionTarget(collection_id=collection.id, is_unassigned=collection.is_unassigned)

        if note_id is not None:
            membership = await self.memberships.first_for_document(note_id)
            if membership is not None:
                return CollectionTarget(collection_id=membership.collection_id)

        unassigned = await self.collections.ensure_unassigned(owner_id)
        return CollectionTarget(collection_id=unassigned.id, is_unassigned=True)

    async def process_note(
        self,
        owner_id: str,
        note_id: UUID,
        collection_id: Optional[UUID] = None,
    ) -> ProcessReferencesResponse:
        """Resolve and mark up every citation in a saved note.

        The rewritten body is persisted only when it differs from the stored one.

        Raises:
            NoteNotFoundError: If the note does not exist or is not the owner's
            CollectionNotFoundError: If collection_id is not the owner's
        """
        note = await self.documents.get_for_owner(note_id, owner_id)
        if note is None:
            raise NoteNotFoundError(f"Note {note_id} not found")
        original_body = note.body or ""

        target = await self.resolve_target(owner_id, collection_id=collection_id, note_id=note.id)
        outcome, body = await link_scripture_references(self.resolver, owner_id, original_body, target)

        if body != original_body:
            await self.documents.update_body(note.id, body)

        LOGGER.info(
            "Processed scripture references",
            extra={
                "owner_id": owner_id,
                "note_id": str(note_id),
                "citations": len(outcome.results),
                "body_changed": body != original_body,
            },
        )
        return ProcessReferencesResponse(results=outcome.results, updated_body=body)

    async def check_existing(
        self,
        owner_id: str,
        reference: str,
        collection_id: Optional[UUID] = None,
    ) -> CheckExistingResponse:
        """Report whether the owner already has a reference document for a citation."""
        parsed = parse_or_raise(reference)
        record = await self.resolver.find_existing(owner_id, parsed.key)
        if record is None:
            return CheckExistingResponse(exists=False, reference=parsed.key)

        in_collection = False
        if collection_id is not None:
            in_collection = await self.memberships.exists(record.document_id, collection_id)
        memberships = await self.memberships.count_for_document(record.document_id)

        return CheckExistingResponse(
            exists=True,
            document_id=record.document_id,
            reference=parsed.key,
            in_collection=in_collection,
            in_unassigned=memberships == 0,
        )

    async def fetch_verse(self, reference: str) -> FetchVerseResponse:
        """Fetch verse text for a reference without storing anything.

        Raises:
            InvalidReferenceError: If the reference does not parse
            ScriptureFetchError: If the provider fails or returns nothing
        """
        parsed = parse_or_raise(reference)
        text = await self.fetcher.fetch_text(parsed)

        return FetchVerseResponse(
            reference=parsed.key,
            book=parsed.book,
            chapter=parsed.chapter,
            verse=parsed.verse_start,
            verse_end=parsed.verse_end,
            translation=settings.scripture.translation,
            text=text,
            copyright=NET_BIBLE_COPYRIGHT,
        )
