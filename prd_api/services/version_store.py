"""Transactional persistence for documents and their version history.

``commit_transition`` is the only path that changes title, content or
version. It copies the current row into ``document_versions`` and bumps the
document in one transaction, guarded by the expected version on both
statements and by the ``(document_id, version_number)`` unique constraint, so
two transitions from the same version can never both commit.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prd_api.entities.document import Document, DocumentStatus
from prd_api.entities.document_version import DocumentVersion
from prd_history.document import TransitionIntent
from prd_history.errors import NotFound, StorageFailure, VersionConflict, VersioningError

logger = logging.getLogger(__name__)

_documents = Document.__table__
_versions = DocumentVersion.__table__

_SNAPSHOT_COLUMNS = [
    "document_id",
    "version_number",
    "title",
    "content",
    "change_description",
    "created_by",
    "created_at",
]


@contextmanager
def _storage_errors(operation: str, document_id: str | None):
    """Translate driver/ORM errors into StorageFailure."""
    try:
        yield
    except VersioningError:
        raise
    except SQLAlchemyError as exc:
        logger.error(
            "Storage failure during %s (document=%s)", operation, document_id, exc_info=True
        )
        raise StorageFailure(f"{operation} failed for document {document_id}") from exc


class VersionStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _current_version(self, document_id: str) -> int | None:
        result = await self.db.execute(
            select(_documents.c.version).where(_documents.c.id == document_id)
        )
        return result.scalar_one_or_none()

    async def _require_document(self, document_id: str) -> None:
        if await self._current_version(document_id) is None:
            raise NotFound(document_id)

    async def load_current(self, document_id: str) -> Document:
        with _storage_errors("load_current", document_id):
            result = await self.db.execute(
                select(Document)
                .where(Document.id == document_id)
                .execution_options(populate_existing=True)
            )
            document = result.scalar_one_or_none()
        if document is None:
            raise NotFound(document_id)
        return document

    async def load_snapshot(self, document_id: str, version_number: int) -> DocumentVersion:
        with _storage_errors("load_snapshot", document_id):
            result = await self.db.execute(
                select(DocumentVersion).where(
                    DocumentVersion.document_id == document_id,
                    DocumentVersion.version_number == version_number,
                )
            )
            snapshot = result.scalar_one_or_none()
            if snapshot is None:
                await self._require_document(document_id)
                raise NotFound(document_id, version_number)
        return snapshot

    async def list_snapshots(self, document_id: str) -> list[DocumentVersion]:
        """All snapshots of a document, newest first. Queried fresh each call."""
        with _storage_errors("list_snapshots", document_id):
            await self._require_document(document_id)
            result = await self.db.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(DocumentVersion.version_number.desc())
            )
            return list(result.scalars().all())

    async def list_documents(
        self,
        project_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Document]:
        query = select(Document).order_by(Document.updated_at.desc())
        if project_id:
            query = query.where(Document.project_id == project_id)
        if status:
            query = query.where(Document.status == status)
        query = query.limit(limit).offset(offset)
        with _storage_errors("list_documents", None):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def insert_document(
        self,
        title: str,
        content: str,
        editor: str | None,
        status: str = DocumentStatus.DRAFT.value,
        project_id: str | None = None,
        change_description: str | None = None,
    ) -> Document:
        """Create a document at version 1 with no history."""
        now = datetime.now(timezone.utc)
        document = Document(
            title=title,
            content=content,
            version=1,
            status=status,
            project_id=project_id,
            change_description=change_description,
            created_by=editor,
            updated_by=editor,
            created_at=now,
            updated_at=now,
        )
        with _storage_errors("insert_document", None):
            try:
                self.db.add(document)
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise
            await self.db.refresh(document)
        logger.info("Created document %s at version 1", document.id)
        return document

    async def commit_transition(
        self,
        document_id: str,
        expected_version: int,
        new_title: str,
        new_content: str,
        change_description: str | None,
        editor: str | None,
    ) -> Document:
        """Snapshot the current revision and write the next one atomically.

        Raises VersionConflict when the document has moved past
        ``expected_version``; nothing is written in that case.
        """
        with _storage_errors("commit_transition", document_id):
            try:
                snapshot_source = select(
                    _documents.c.id,
                    _documents.c.version,
                    _documents.c.title,
                    _documents.c.content,
                    _documents.c.change_description,
                    _documents.c.updated_by,
                    _documents.c.updated_at,
                ).where(
                    _documents.c.id == document_id,
                    _documents.c.version == expected_version,
                )
                inserted = await self.db.execute(
                    insert(_versions).from_select(_SNAPSHOT_COLUMNS, snapshot_source)
                )
                if inserted.rowcount != 1:
                    await self._abort(document_id, expected_version)

                updated = await self.db.execute(
                    update(_documents)
                    .where(
                        _documents.c.id == document_id,
                        _documents.c.version == expected_version,
                    )
                    .values(
                        title=new_title,
                        content=new_content,
                        change_description=change_description,
                        updated_by=editor,
                        updated_at=datetime.now(timezone.utc),
                        version=expected_version + 1,
                    )
                )
                if updated.rowcount != 1:
                    await self._abort(document_id, expected_version)

                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                logger.info(
                    "Snapshot %d of document %s already written by a concurrent transition",
                    expected_version, document_id,
                )
                raise VersionConflict(document_id, expected_version) from exc
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            "Document %s advanced to version %d by %s",
            document_id, expected_version + 1, editor,
        )
        return await self.load_current(document_id)

    async def _abort(self, document_id: str, expected_version: int) -> None:
        """Roll back and raise the most specific error for a failed guard."""
        await self.db.rollback()
        current = await self._current_version(document_id)
        if current is None:
            raise NotFound(document_id)
        logger.info(
            "Version conflict on document %s: expected %d, found %d",
            document_id, expected_version, current,
        )
        raise VersionConflict(document_id, expected_version, current)

    async def apply(self, intent: TransitionIntent) -> Document:
        return await self.commit_transition(
            intent.document_id,
            intent.expected_version,
            intent.new_title,
            intent.new_content,
            intent.change_description,
            intent.editor,
        )

    async def update_status(self, document_id: str, status: str, editor: str | None) -> Document:
        """Change lifecycle status without creating a version."""
        with _storage_errors("update_status", document_id):
            try:
                result = await self.db.execute(
                    update(_documents)
                    .where(_documents.c.id == document_id)
                    .values(status=status)
                )
                if result.rowcount != 1:
                    await self.db.rollback()
                    raise NotFound(document_id)
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise
        logger.info("Document %s status set to %s by %s", document_id, status, editor)
        return await self.load_current(document_id)

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and, by cascade, its history.

        Returns False when there was nothing to delete.
        """
        with _storage_errors("delete_document", document_id):
            try:
                result = await self.db.execute(
                    delete(_documents).where(_documents.c.id == document_id)
                )
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted document %s and its history", document_id)
        return deleted
