"""Unit tests for ReferenceResolver."""

import asyncio
from uuid import uuid4

import pytest
from unittest.mock import AsyncMock

from verselink.models.scripture import CollectionTarget, Verse
from verselink.schemas.scripture import ReferenceAction
from verselink.services.scripture.detector import extract_citations
from verselink.services.scripture.fetcher import GROUP_DIVIDER, ScriptureFetcher
from verselink.services.scripture.locks import KeyedLock
from verselink.services.scripture.resolver import ReferenceResolver


class TestCreateIfAbsent:
    """Lookup and creation of reference documents."""

    @pytest.mark.asyncio
    async def test_new_citation_creates_document_and_record(self, resolver, store, hook, owner_id, unassigned):
        """Test that a first citation mints one reference document."""
        outcome = await resolver.resolve(owner_id, extract_citations("jn 3:16"), unassigned)

        [result] = outcome.results
        assert result.action == ReferenceAction.CREATED
        assert result.raw_citation == "jn 3:16"
        assert result.normalized_key == "John 3:16"

        record = store.records[(owner_id, "John 3:16")]
        assert record.document_id == result.document_id
        document = store.documents[result.document_id]
        assert document["kind"] == "reference"
        assert document["title"] == "John 3:16"
        assert document["body"] == "Text of John 3:16"
        hook.document_created.assert_awaited_once_with(owner_id, result.document_id)

    @pytest.mark.asyncio
    async def test_existing_record_reused(self, resolver, store, fetcher, hook, owner_id, unassigned):
        """Test that a known citation is not fetched or created again."""
        document_id = store.add_reference(owner_id, "John 3:16")

        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)

        [result] = outcome.results
        assert result.action == ReferenceAction.UNASSIGNED
        assert result.document_id == document_id
        assert fetcher.calls == []
        hook.document_created.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_records_are_per_owner(self, resolver, store, owner_id, unassigned):
        """Test that another owner's record is not reused."""
        store.add_reference("someone-else", "John 3:16")

        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)

        assert outcome.results[0].action == ReferenceAction.CREATED
        assert len(store.reference_documents(owner_id)) == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_falls_back_to_key(self, store, failing_fetcher, hook, owner_id, unassigned):
        """Test that a failed fetch still creates the document with the key as body."""
        resolver = ReferenceResolver(store, fetcher=failing_fetcher, hook=hook, lock=KeyedLock())

        outcome = await resolver.resolve(owner_id, extract_citations("jn 3: 16"), unassigned)

        [result] = outcome.results
        assert result.action == ReferenceAction.CREATED
        assert store.documents[result.document_id]["body"] == "John 3:16"

    @pytest.mark.asyncio
    async def test_multi_group_body(self, store, hook, owner_id, unassigned):
        """Test the merged body of a multi-group citation."""
        passages = {
            "Psalms 23:1-1": [Verse(1, "The LORD is my shepherd")],
            "Psalms 23:4-6": [Verse(4, "Even when"), Verse(5, "You prepare"), Verse(6, "Surely")],
        }
        api = AsyncMock()
        api.fetch_passage.side_effect = lambda passage: passages[passage]
        resolver = ReferenceResolver(store, fetcher=ScriptureFetcher(api_client=api), hook=hook, lock=KeyedLock())

        outcome = await resolver.resolve(owner_id, extract_citations("Psalm 23:1, 4-6"), unassigned)

        body = store.documents[outcome.results[0].document_id]["body"]
        assert body.index("Verse 1:") < body.index(GROUP_DIVIDER) < body.index("Verses 4-6:")
        assert not body.endswith(GROUP_DIVIDER)

    @pytest.mark.asyncio
    async def test_hook_failure_does_not_fail_resolution(self, resolver, hook, owner_id, unassigned):
        """Test that an achievement hook error is swallowed."""
        hook.document_created.side_effect = RuntimeError("xp service down")

        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)

        assert outcome.results[0].action == ReferenceAction.CREATED


class TestLegacyKeys:
    """Records stored under an older normalization."""

    @pytest.mark.asyncio
    async def test_reconcile_legacy_key(self, resolver, store, owner_id):
        """Test that a record under a stale key is found by re-normalizing."""
        document_id = store.add_reference(owner_id, "Jn 3: 16")

        record = await resolver.reconcile_legacy_key(owner_id, "John 3:16")

        assert record.document_id == document_id

    @pytest.mark.asyncio
    async def test_reconcile_no_match(self, resolver, store, owner_id):
        """Test that unrelated records are not matched."""
        store.add_reference(owner_id, "John 3:17")

        assert await resolver.reconcile_legacy_key(owner_id, "John 3:16") is None

    @pytest.mark.asyncio
    async def test_legacy_record_reused_during_resolution(self, resolver, store, owner_id, unassigned):
        """Test that resolution reuses the legacy record instead of duplicating it."""
        document_id = store.add_reference(owner_id, "Ps 23:1, 4 – 6")

        outcome = await resolver.resolve(owner_id, extract_citations("Psalm 23:1, 4-6"), unassigned)

        assert outcome.results[0].document_id == document_id
        assert outcome.results[0].action == ReferenceAction.UNASSIGNED
        assert len(store.records) == 1


class TestLinking:
    """Linking reference documents to the target collection."""

    @pytest.mark.asyncio
    async def test_unassigned_target_creates_no_membership(self, resolver, store, owner_id, unassigned):
        """Test that the unassigned collection never gets membership rows."""
        await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)
        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)

        assert outcome.results[0].action == ReferenceAction.UNASSIGNED
        assert store.memberships == set()

    @pytest.mark.asyncio
    async def test_moving_out_of_unassigned_adds_one_membership(self, resolver, store, owner_id, unassigned, collection):
        """Test that linking an unassigned document creates exactly one membership."""
        first = await resolver.resolve(owner_id, extract_citations("John 3:16"), unassigned)
        document_id = first.results[0].document_id

        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), collection)

        assert outcome.results[0].action == ReferenceAction.ADDED
        assert store.memberships == {(document_id, collection.collection_id)}
        assert store.touched == [collection.collection_id]

    @pytest.mark.asyncio
    async def test_already_linked_is_skipped(self, resolver, store, owner_id, collection):
        """Test that an existing membership is not duplicated."""
        await resolver.resolve(owner_id, extract_citations("John 3:16"), collection)
        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), collection)

        assert outcome.results[0].action == ReferenceAction.SKIPPED
        assert len(store.memberships) == 1

    @pytest.mark.asyncio
    async def test_created_into_real_collection(self, resolver, store, owner_id, collection):
        """Test that a new document is linked to a real target and reported as created."""
        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), collection)

        [result] = outcome.results
        assert result.action == ReferenceAction.CREATED
        assert store.memberships == {(result.document_id, collection.collection_id)}

    @pytest.mark.asyncio
    async def test_additional_collection(self, resolver, store, owner_id, collection):
        """Test that a document may belong to several collections."""
        other = CollectionTarget(collection_id=uuid4())
        await resolver.resolve(owner_id, extract_citations("John 3:16"), collection)

        outcome = await resolver.resolve(owner_id, extract_citations("John 3:16"), other)

        document_id = outcome.results[0].document_id
        assert outcome.results[0].action == ReferenceAction.ADDED
        assert await store.count_memberships(document_id) == 2


class TestResolvePass:
    """Whole-pass behaviour."""

    @pytest.mark.asyncio
    async def test_one_result_per_key_mapping_for_every_raw_text(self, resolver, store, owner_id, unassigned):
        """Test dedup of results while every raw spelling is mapped."""
        citations = extract_citations("John 3:16, then jn 3:16, then John 3:16 again")

        outcome = await resolver.resolve(owner_id, citations, unassigned)

        [result] = outcome.results
        assert result.raw_citation == "John 3:16"
        assert outcome.citation_to_document == {
            "John 3:16": result.document_id,
            "jn 3:16": result.document_id,
        }
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_results_in_first_appearance_order(self, resolver, owner_id, unassigned):
        """Test that results follow the order keys first appear in."""
        citations = extract_citations("Romans 8:28 and John 3:16 and Romans 8:28")

        outcome = await resolver.resolve(owner_id, citations, unassigned)

        assert [r.normalized_key for r in outcome.results] == ["Romans 8:28", "John 3:16"]

    @pytest.mark.asyncio
    async def test_store_failure_isolated_to_citation(self, resolver, store, owner_id, unassigned):
        """Test that a store failure for one citation does not abort the others."""
        store.failing_titles.add("Romans 8:28")

        outcome = await resolver.resolve(
            owner_id, extract_citations("Romans 8:28 and John 3:16"), unassigned
        )

        failed, succeeded = outcome.results
        assert failed.action == ReferenceAction.ERROR
        assert failed.document_id is None
        assert "store unavailable" in failed.error
        assert succeeded.action == ReferenceAction.CREATED
        assert set(outcome.citation_to_document) == {"John 3:16"}

    @pytest.mark.asyncio
    async def test_failed_record_insert_removes_document(self, resolver, store, owner_id, unassigned):
        """Test that a document whose record could not be stored is deleted again."""
        citations = extract_citations("John 3:16")
        store.create_reference_record = AsyncMock(side_effect=RuntimeError("insert failed"))

        [failed] = (await resolver.resolve(owner_id, citations, unassigned)).results

        assert failed.action == ReferenceAction.ERROR
        assert store.reference_documents(owner_id) == []

        del store.create_reference_record
        [created] = (await resolver.resolve(owner_id, citations, unassigned)).results

        assert created.action == ReferenceAction.CREATED
        assert len(store.reference_documents(owner_id)) == 1
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_empty_citations(self, resolver, owner_id, unassigned):
        """Test that no citations gives an empty outcome."""
        outcome = await resolver.resolve(owner_id, [], unassigned)

        assert outcome.results == []
        assert outcome.citation_to_document == {}


class TestConcurrentCreation:
    """At most one record per (owner, key) under concurrent passes."""

    @pytest.mark.asyncio
    async def test_shared_lock_creates_once(self, store, fetcher, hook, owner_id, unassigned):
        """Test concurrent passes in one process mint a single document."""
        lock = KeyedLock()
        resolvers = [ReferenceResolver(store, fetcher=fetcher, hook=hook, lock=lock) for _ in range(5)]

        outcomes = await asyncio.gather(*(
            r.resolve(owner_id, extract_citations("John 3:16"), unassigned) for r in resolvers
        ))

        actions = [o.results[0].action for o in outcomes]
        assert actions.count(ReferenceAction.CREATED) == 1
        assert len({o.results[0].document_id for o in outcomes}) == 1
        assert len(store.records) == 1
        assert len(store.reference_documents(owner_id)) == 1
        assert fetcher.calls == ["John 3:16"]
        hook.document_created.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_separate_locks_rely_on_insert_if_absent(self, store, fetcher, hook, owner_id, unassigned):
        """Test that without a shared lock the losing document is discarded."""
        resolvers = [ReferenceResolver(store, fetcher=fetcher, hook=hook, lock=KeyedLock()) for _ in range(3)]

        outcomes = await asyncio.gather(*(
            r.resolve(owner_id, extract_citations("John 3:16"), unassigned) for r in resolvers
        ))

        document_ids = {o.results[0].document_id for o in outcomes}
        assert len(document_ids) == 1
        assert len(store.records) == 1
        assert list(store.documents) == list(document_ids)
        assert [o.results[0].action for o in outcomes].count(ReferenceAction.CREATED) == 1
        hook.document_created.assert_awaited_once()
