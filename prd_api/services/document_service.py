"""Document service: the caller-facing versioning contract.

Composes VersionStore (atomic persistence) with the transition rules in
``prd_history.document``. Errors from either side are passed through
unchanged so callers can run their own retry-on-conflict loop.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from prd_api.config import settings
from prd_api.entities.document import Document, DocumentStatus
from prd_api.services.version_store import VersionStore
from prd_history.diff import Comparison, compare_versions
from prd_history.document import (
    VersionView,
    current_view,
    propose_edit,
    propose_restore,
    require_text,
    snapshot_view,
)
from prd_history.errors import NotFound, ValidationError, ValidationReason, VersionConflict

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = VersionStore(db)

    async def create(
        self,
        title: str,
        content: str,
        editor: str | None,
        status: str = DocumentStatus.DRAFT.value,
        project_id: str | None = None,
        change_description: str | None = None,
    ) -> Document:
        require_text("title", title)
        require_text("content", content)
        return await self.store.insert_document(
            title=title,
            content=content,
            editor=editor,
            status=status,
            project_id=project_id,
            change_description=change_description,
        )

    async def get(self, document_id: str) -> Document:
        return await self.store.load_current(document_id)

    async def list_documents(
        self,
        project_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Document]:
        return await self.store.list_documents(
            project_id=project_id, status=status, limit=limit, offset=offset
        )

    async def _load_for_write(self, document_id: str, expected_version: int | None) -> Document:
        """Load the current row, failing fast if the caller's copy is stale."""
        current = await self.store.load_current(document_id)
        if expected_version is not None and expected_version != current.version:
            raise VersionConflict(document_id, expected_version, current.version)
        return current

    async def edit(
        self,
        document_id: str,
        new_title: str,
        new_content: str,
        change_description: str | None,
        editor: str | None,
        expected_version: int | None = None,
    ) -> Document:
        """Replace title and content, producing version N+1.

        ``expected_version`` is the version the caller loaded; without it the
        version read here is used, which still catches writers racing between
        this load and the commit.
        """
        current = await self._load_for_write(document_id, expected_version)
        intent = propose_edit(current, new_title, new_content, change_description, editor)
        return await self.store.apply(intent)

    async def set_status(self, document_id: str, status: str, editor: str | None) -> Document:
        """Move the document through its lifecycle. Does not create a version."""
        try:
            status = DocumentStatus(status).value
        except ValueError as exc:
            allowed = ", ".join(s.value for s in DocumentStatus)
            raise ValidationError(
                ValidationReason.INVALID_STATUS,
                f"Unknown status {status!r}; expected one of {allowed}",
            ) from exc
        return await self.store.update_status(document_id, status, editor)

    async def list_history(self, document_id: str) -> list[VersionView]:
        """Current revision first, then every snapshot, newest to oldest.

        Snapshots at or above the loaded current version belong to writers
        that committed after the current row was read, and are left out so
        each version appears exactly once.
        """
        head = current_view(await self.store.load_current(document_id))
        snapshots = await self.store.list_snapshots(document_id)
        return [head] + [
            snapshot_view(s) for s in snapshots if s.version_number < head.version_number
        ]

    async def _resolve(self, head: VersionView, version_number: int) -> VersionView:
        if version_number == head.version_number:
            return head
        if version_number > head.version_number:
            raise NotFound(head.document_id, version_number)
        snapshot = await self.store.load_snapshot(head.document_id, version_number)
        return snapshot_view(snapshot)

    async def get_version(self, document_id: str, version_number: int) -> VersionView:
        head = current_view(await self.store.load_current(document_id))
        return await self._resolve(head, version_number)

    async def restore(
        self,
        document_id: str,
        target_version: int,
        change_description: str | None,
        editor: str | None,
        expected_version: int | None = None,
    ) -> Document:
        """Copy an older revision forward as a new version; history is kept."""
        current = await self._load_for_write(document_id, expected_version)
        try:
            target = await self._resolve(current_view(current), target_version)
        except NotFound as exc:
            if exc.version_number is None:
                raise
            raise ValidationError(
                ValidationReason.INVALID_TARGET,
                f"Document {document_id} has no version {target_version}",
            ) from exc
        intent = propose_restore(current, target, change_description, editor)
        document = await self.store.apply(intent)
        logger.info(
            "Restored document %s to version %d as version %d",
            document_id, target_version, document.version,
        )
        return document

    async def compare(self, document_id: str, version_a: int, version_b: int) -> Comparison:
        # Both sides are resolved against one read of the current row
        head = current_view(await self.store.load_current(document_id))
        a = await self._resolve(head, version_a)
        b = await self._resolve(head, version_b)
        return compare_versions(a, b, preview_lines=settings.preview_lines)

    async def delete(self, document_id: str) -> bool:
        return await self.store.delete_document(document_id)
