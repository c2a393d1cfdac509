"""Tests for VersionStore: atomic transitions, conflicts, cascade and immutability."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError, OperationalError

from prd_api.entities import Document, DocumentVersion, ImmutableSnapshotError
from prd_api.services.version_store import VersionStore
from prd_history.document import propose_edit
from prd_history.errors import NotFound, StorageFailure, VersionConflict


async def _count_snapshots(db, document_id=None):
    query = select(func.count(DocumentVersion.id))
    if document_id:
        query = query.where(DocumentVersion.document_id == document_id)
    return (await db.execute(query)).scalar()


@pytest.fixture
def store(db):
    return VersionStore(db)


class TestInsertAndLoad:
    @pytest.mark.asyncio
    async def test_new_document_starts_at_version_one(self, store, db):
        doc = await store.insert_document("Spec v1", "Hello", editor="alice", project_id="proj_a")
        doc_id = doc.id
        assert doc.version == 1
        assert doc.created_by == "alice"
        assert doc.updated_by == "alice"
        assert doc.project_id == "proj_a"
        assert await store.list_snapshots(doc_id) == []
        assert await _count_snapshots(db) == 0

    @pytest.mark.asyncio
    async def test_load_current_missing(self, store):
        with pytest.raises(NotFound) as exc_info:
            await store.load_current("nope")
        assert exc_info.value.version_number is None

    @pytest.mark.asyncio
    async def test_load_snapshot_missing_version(self, store):
        doc_id = (await store.insert_document("T", "C", editor="alice")).id
        with pytest.raises(NotFound) as exc_info:
            await store.load_snapshot(doc_id, 7)
        assert exc_info.value.version_number == 7

    @pytest.mark.asyncio
    async def test_load_snapshot_missing_document(self, store):
        with pytest.raises(NotFound) as exc_info:
            await store.load_snapshot("nope", 1)
        assert exc_info.value.version_number is None

    @pytest.mark.asyncio
    async def test_list_snapshots_missing_document(self, store):
        with pytest.raises(NotFound):
            await store.list_snapshots("nope")

    @pytest.mark.asyncio
    async def test_list_documents_filters(self, store):
        await store.insert_document("A", "a", editor="x", project_id="p1")
        await store.insert_document("B", "b", editor="x", project_id="p2", status="review")
        assert [d.title for d in await store.list_documents(project_id="p1")] == ["A"]
        assert [d.title for d in await store.list_documents(status="review")] == ["B"]
        assert len(await store.list_documents(limit=1)) == 1


class TestCommitTransition:
    @pytest.mark.asyncio
    async def test_snapshots_prior_revision_and_bumps_version(self, store):
        doc_id = (await store.insert_document("Spec v1", "Hello", editor="alice", change_description="Initial")).id

        updated = await store.commit_transition(doc_id, 1, "Spec v1", "Hello world", "Expand", "bob")
        assert updated.version == 2
        assert updated.content == "Hello world"
        assert updated.change_description == "Expand"
        assert updated.updated_by == "bob"
        assert updated.created_by == "alice"

        snapshots = await store.list_snapshots(doc_id)
        assert len(snapshots) == 1
        snap = snapshots[0]
        assert snap.version_number == 1
        assert snap.title == "Spec v1"
        assert snap.content == "Hello"
        assert snap.change_description == "Initial"
        assert snap.created_by == "alice"

    @pytest.mark.asyncio
    async def test_snapshots_listed_newest_first(self, store):
        doc_id = (await store.insert_document("T", "c1", editor="alice")).id
        for expected in (1, 2, 3):
            await store.commit_transition(doc_id, expected, "T", f"c{expected + 1}", None, "alice")
        snapshots = await store.list_snapshots(doc_id)
        assert [s.version_number for s in snapshots] == [3, 2, 1]
        assert [s.content for s in snapshots] == ["c3", "c2", "c1"]

    @pytest.mark.asyncio
    async def test_stale_expected_version_conflicts_without_writing(self, store, db):
        doc_id = (await store.insert_document("T", "v1", editor="alice")).id
        await store.commit_transition(doc_id, 1, "T", "v2", None, "alice")

        with pytest.raises(VersionConflict) as exc_info:
            await store.commit_transition(doc_id, 1, "T", "stale", None, "bob")
        assert exc_info.value.expected_version == 1
        assert exc_info.value.current_version == 2
        assert exc_info.value.retryable

        current = await store.load_current(doc_id)
        assert current.version == 2
        assert current.content == "v2"
        assert await _count_snapshots(db, doc_id) == 1

    @pytest.mark.asyncio
    async def test_two_intents_from_same_version_only_one_commits(self, store, db):
        doc_id = (await store.insert_document("T", "base", editor="alice")).id
        current = await store.load_current(doc_id)
        first = propose_edit(current, "T", "from alice", None, "alice")
        second = propose_edit(current, "T", "from bob", None, "bob")

        winner = await store.apply(first)
        assert winner.version == 2
        with pytest.raises(VersionConflict):
            await store.apply(second)

        current = await store.load_current(doc_id)
        assert current.version == 2
        assert current.content == "from alice"
        snapshots = await store.list_snapshots(doc_id)
        assert [s.version_number for s in snapshots] == [1]
        assert snapshots[0].content == "base"

    @pytest.mark.asyncio
    async def test_existing_snapshot_row_maps_to_conflict(self, store, db):
        doc_id = (await store.insert_document("T", "base", editor="alice")).id
        # A snapshot for version 1 already on disk means another writer got there first
        db.add(DocumentVersion(document_id=doc_id, version_number=1, title="T", content="base"))
        await db.commit()

        with pytest.raises(VersionConflict) as exc_info:
            await store.commit_transition(doc_id, 1, "T", "late", None, "bob")
        assert exc_info.value.expected_version == 1

        current = await store.load_current(doc_id)
        assert current.version == 1
        assert current.content == "base"

    @pytest.mark.asyncio
    async def test_missing_document(self, store):
        with pytest.raises(NotFound):
            await store.commit_transition("nope", 1, "T", "C", None, "alice")

    @pytest.mark.asyncio
    async def test_driver_errors_become_storage_failure(self, store, db):
        doc_id = (await store.insert_document("T", "base", editor="alice")).id
        boom = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(db, "execute", AsyncMock(side_effect=boom)):
            with pytest.raises(StorageFailure) as exc_info:
                await store.commit_transition(doc_id, 1, "T", "new", None, "alice")
        assert exc_info.value.retryable
        assert (await store.load_current(doc_id)).version == 1


class TestStatusAndDelete:
    @pytest.mark.asyncio
    async def test_status_change_does_not_version(self, store, db):
        doc_id = (await store.insert_document("T", "C", editor="alice")).id
        updated = await store.update_status(doc_id, "approved", "bob")
        assert updated.status == "approved"
        assert updated.version == 1
        assert updated.updated_by == "alice"
        assert await _count_snapshots(db, doc_id) == 0

    @pytest.mark.asyncio
    async def test_status_change_missing_document(self, store):
        with pytest.raises(NotFound):
            await store.update_status("nope", "review", "bob")

    @pytest.mark.asyncio
    async def test_delete_cascades_to_history(self, store, db):
        doc_id = (await store.insert_document("T", "v1", editor="alice")).id
        other_id = (await store.insert_document("Other", "x", editor="alice")).id
        await store.commit_transition(doc_id, 1, "T", "v2", None, "alice")
        await store.commit_transition(doc_id, 2, "T", "v3", None, "alice")
        await store.commit_transition(other_id, 1, "Other", "y", None, "alice")

        assert await store.delete_document(doc_id) is True
        assert await _count_snapshots(db, doc_id) == 0
        assert await _count_snapshots(db, other_id) == 1
        with pytest.raises(NotFound):
            await store.load_current(doc_id)

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store):
        doc_id = (await store.insert_document("T", "C", editor="alice")).id
        assert await store.delete_document(doc_id) is True
        assert await store.delete_document(doc_id) is False


class TestSnapshotImmutability:
    @pytest.mark.asyncio
    async def test_orm_update_rejected(self, store, db):
        doc_id = (await store.insert_document("T", "original", editor="alice")).id
        await store.commit_transition(doc_id, 1, "T", "v2", None, "alice")
        snap = await store.load_snapshot(doc_id, 1)

        snap.content = "rewritten"
        with pytest.raises(ImmutableSnapshotError):
            await db.flush()
        await db.rollback()

        fresh = await store.load_snapshot(doc_id, 1)
        assert fresh.content == "original"

    @pytest.mark.asyncio
    async def test_orm_delete_rejected(self, store, db):
        doc_id = (await store.insert_document("T", "original", editor="alice")).id
        await store.commit_transition(doc_id, 1, "T", "v2", None, "alice")
        snap = await store.load_snapshot(doc_id, 1)

        await db.delete(snap)
        with pytest.raises(ImmutableSnapshotError):
            await db.flush()
        await db.rollback()
        assert await _count_snapshots(db, doc_id) == 1

    @pytest.mark.asyncio
    async def test_duplicate_version_number_rejected(self, store, db):
        doc_id = (await store.insert_document("T", "C", editor="alice")).id
        db.add(DocumentVersion(document_id=doc_id, version_number=1, title="T", content="a"))
        db.add(DocumentVersion(document_id=doc_id, version_number=1, title="T", content="b"))
        with pytest.raises(IntegrityError):
            await db.commit()
        await db.rollback()

    def test_history_reachable_only_through_the_store(self):
        # No ORM relationships: nothing can lazy-load or cascade snapshots behind the store
        assert not inspect(Document).relationships
        assert not inspect(DocumentVersion).relationships
