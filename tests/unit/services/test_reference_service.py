"""Unit tests for ScriptureReferenceService."""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from unittest.mock import AsyncMock

from verselink.core.exceptions import (
    CollectionNotFoundError,
    InvalidReferenceError,
    NoteNotFoundError,
    ScriptureFetchError,
)
from verselink.schemas.scripture import ReferenceAction
from verselink.services.scripture.detector import NET_BIBLE_COPYRIGHT
from verselink.services.scripture.locks import KeyedLock
from verselink.services.scripture.reference_service import ScriptureReferenceService, detect
from verselink.services.scripture.resolver import ReferenceResolver


@pytest.fixture
def service(store, fetcher, hook):
    """Service with mocked repositories and the in-memory store behind its resolver."""
    service = ScriptureReferenceService(AsyncMock(), fetcher=fetcher, hook=hook, lock=KeyedLock())
    service.documents = AsyncMock()
    service.collections = AsyncMock()
    service.memberships = AsyncMock()
    service.resolver = ReferenceResolver(store, fetcher=fetcher, hook=hook, lock=KeyedLock())
    return service


class TestResolveTarget:
    """Tests for target collection inference."""

    @pytest.mark.asyncio
    async def test_explicit_collection(self, service, owner_id):
        """Test that an explicit collection of the owner is used."""
        collection_id = uuid4()
        service.collections.get_for_owner.return_value = SimpleNamespace(id=collection_id, is_unassigned=False)

        target = await service.resolve_target(owner_id, collection_id=collection_id)

        assert target.collection_id == collection_id
        assert target.is_unassigned is False

    @pytest.mark.asyncio
    async def test_explicit_collection_not_found(self, service, owner_id):
        """Test that a foreign or missing collection is rejected."""
        service.collections.get_for_owner.return_value = None

        with pytest.raises(CollectionNotFoundError):
            await service.resolve_target(owner_id, collection_id=uuid4())

    @pytest.mark.asyncio
    async def test_note_first_membership(self, service, owner_id):
        """Test that the note's first collection is used when none is given."""
        collection_id = uuid4()
        service.memberships.first_for_document.return_value = SimpleNamespace(collection_id=collection_id)

        target = await service.resolve_target(owner_id, note_id=uuid4())

        assert target.collection_id == collection_id
        service.collections.ensure_unassigned.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_unassigned(self, service, owner_id):
        """Test that a note in no collection targets the unassigned collection."""
        unassigned_id = uuid4()
        service.memberships.first_for_document.return_value = None
        service.collections.ensure_unassigned.return_value = SimpleNamespace(id=unassigned_id, is_unassigned=True)

        target = await service.resolve_target(owner_id, note_id=uuid4())

        assert target.collection_id == unassigned_id
        assert target.is_unassigned is True


class TestProcessNote:
    """Tests for process_note."""

    @pytest.mark.asyncio
    async def test_note_not_found(self, service, owner_id):
        """Test that a missing note raises NoteNotFoundError."""
        service.documents.get_for_owner.return_value = None

        with pytest.raises(NoteNotFoundError):
            await service.process_note(owner_id, uuid4())

    @pytest.mark.asyncio
    async def test_rewritten_body_persisted(self, service, store, owner_id):
        """Test that citations are resolved and the new body saved."""
        note_id = uuid4()
        service.documents.get_for_owner.return_value = SimpleNamespace(id=note_id, body="<p>See John 3:16</p>")
        service.memberships.first_for_document.return_value = None
        service.collections.ensure_unassigned.return_value = SimpleNamespace(id=uuid4(), is_unassigned=True)

        response = await service.process_note(owner_id, note_id)

        [result] = response.results
        assert result.action == ReferenceAction.CREATED
        assert f'data-note-id="{result.document_id}"' in response.updated_body
        service.documents.update_body.assert_awaited_once_with(note_id, response.updated_body)

    @pytest.mark.asyncio
    async def test_unchanged_body_not_saved(self, service, owner_id):
        """Test that a body without citations is not written back."""
        note_id = uuid4()
        service.documents.get_for_owner.return_value = SimpleNamespace(id=note_id, body="<p>Hello</p>")
        service.memberships.first_for_document.return_value = None
        service.collections.ensure_unassigned.return_value = SimpleNamespace(id=uuid4(), is_unassigned=True)

        response = await service.process_note(owner_id, note_id)

        assert response.results == []
        assert response.updated_body == "<p>Hello</p>"
        service.documents.update_body.assert_not_awaited()


class TestCheckExisting:
    """Tests for check_existing."""

    @pytest.mark.asyncio
    async def test_not_found(self, service, owner_id):
        """Test the response for an unknown citation."""
        response = await service.check_existing(owner_id, "jn 3:16")

        assert response.exists is False
        assert response.reference == "John 3:16"

    @pytest.mark.asyncio
    async def test_found_in_unassigned(self, service, store, owner_id):
        """Test an existing document with no memberships."""
        document_id = store.add_reference(owner_id, "John 3:16")
        service.memberships.count_for_document.return_value = 0

        response = await service.check_existing(owner_id, "John 3:16")

        assert response.exists is True
        assert response.document_id == document_id
        assert response.in_unassigned is True
        assert response.in_collection is False

    @pytest.mark.asyncio
    async def test_found_through_legacy_key(self, service, store, owner_id):
        """Test that check_existing uses the legacy-key lookup too."""
        document_id = store.add_reference(owner_id, "Jn 3 : 16")
        collection_id = uuid4()
        service.memberships.exists.return_value = True
        service.memberships.count_for_document.return_value = 1

        response = await service.check_existing(owner_id, "John 3:16", collection_id)

        assert response.document_id == document_id
        assert response.in_collection is True
        assert response.in_unassigned is False
        service.memberships.exists.assert_awaited_once_with(document_id, collection_id)

    @pytest.mark.asyncio
    async def test_invalid_reference(self, service, owner_id):
        """Test that a non-citation is rejected."""
        with pytest.raises(InvalidReferenceError):
            await service.check_existing(owner_id, "not a verse")


class TestFetchVerse:
    """Tests for fetch_verse."""

    @pytest.mark.asyncio
    async def test_fetch_verse(self, service):
        """Test the verse response fields."""
        response = await service.fetch_verse("jn 3:16-18")

        assert response.reference == "John 3:16-18"
        assert response.book == "John"
        assert response.chapter == 3
        assert response.verse == 16
        assert response.verse_end == 18
        assert response.translation == "NET"
        assert response.text == "text of John 3:16-18"
        assert response.copyright == NET_BIBLE_COPYRIGHT

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, service):
        """Test that provider failures surface to the caller."""
        service.fetcher.error = ScriptureFetchError("down")

        with pytest.raises(ScriptureFetchError):
            await service.fetch_verse("John 3:16")


def test_detect_summary():
    """Test the detection response with its parsed primary reference."""
    response = detect("<p>Compare Matthew 26:6-13, 17-30 with jn 12:1-8</p>")

    assert response.is_scripture is True
    assert response.references == ["Matthew 26:6-13, 17-30", "jn 12:1-8"]
    assert response.primary_reference == "Matthew 26:6-13, 17-30"
    assert response.parsed_reference.reference == "Matthew 26:6-13,17-30"
    assert response.parsed_reference.display == "Matthew 26:6-13 | 17-30"
    assert response.parsed_reference.verse == 6
    assert response.parsed_reference.verse_end == 30
