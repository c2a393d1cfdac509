"""Transition rules for versioned documents.

Mutations are decided here as inert ``TransitionIntent`` values and executed
atomically elsewhere (``VersionStore.apply``). Nothing in this module touches
the database, so the rules can be tested in isolation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from prd_history.errors import ValidationError, ValidationReason

EDIT = "edit"
RESTORE = "restore"
RESTORE_DESCRIPTION = "Restored to version {n}"


@dataclass(frozen=True)
class VersionView:
    """One revision of a document, current or historical."""

    document_id: str
    version_number: int
    title: str
    content: str
    change_description: str | None = None
    author: str | None = None
    created_at: datetime | None = None
    is_current: bool = False
    status: str | None = None


@dataclass(frozen=True)
class TransitionIntent:
    document_id: str
    expected_version: int
    new_title: str
    new_content: str
    change_description: str | None
    editor: str | None
    kind: str = EDIT
    restored_from: int | None = None


def current_view(document: Any) -> VersionView:
    """Build a VersionView from a current document row."""
    return VersionView(
        document_id=document.id,
        version_number=document.version,
        title=document.title,
        content=document.content,
        change_description=document.change_description,
        author=document.updated_by,
        created_at=document.updated_at,
        is_current=True,
        status=document.status,
    )


def snapshot_view(snapshot: Any) -> VersionView:
    """Build a VersionView from a document_versions row."""
    return VersionView(
        document_id=snapshot.document_id,
        version_number=snapshot.version_number,
        title=snapshot.title,
        content=snapshot.content,
        change_description=snapshot.change_description,
        author=snapshot.created_by,
        created_at=snapshot.created_at,
        is_current=False,
    )


def require_text(field: str, value: str | None) -> str:
    """Reject None or whitespace-only values for a required text field."""
    if value is None or not value.strip():
        raise ValidationError(ValidationReason.EMPTY_FIELD, f"{field} must not be empty")
    return value


def _clean_description(description: str | None) -> str | None:
    if description is None or not description.strip():
        return None
    return description.strip()


def propose_edit(
    current: Any,
    new_title: str | None,
    new_content: str | None,
    change_description: str | None,
    editor: str | None,
) -> TransitionIntent:
    """Build the intent for replacing the current title and content."""
    require_text("title", new_title)
    require_text("content", new_content)
    return TransitionIntent(
        document_id=current.id,
        expected_version=current.version,
        new_title=new_title,
        new_content=new_content,
        change_description=_clean_description(change_description),
        editor=editor,
        kind=EDIT,
    )


def propose_restore(
    current: Any,
    target: Any,
    change_description: str | None,
    editor: str | None,
) -> TransitionIntent:
    """Build the intent for copying an older revision forward as a new version.

    ``target`` is a snapshot row or a VersionView. Only revisions strictly
    older than the current one can be restored.
    """
    target_document = getattr(target, "document_id", current.id)
    if target_document != current.id:
        raise ValidationError(
            ValidationReason.INVALID_TARGET,
            f"Version {target.version_number} belongs to document {target_document}, not {current.id}",
        )
    if not 1 <= target.version_number < current.version:
        raise ValidationError(
            ValidationReason.INVALID_TARGET,
            f"Cannot restore version {target.version_number}: "
            f"document {current.id} is at version {current.version}",
        )
    description = _clean_description(change_description) or RESTORE_DESCRIPTION.format(
        n=target.version_number
    )
    return TransitionIntent(
        document_id=current.id,
        expected_version=current.version,
        new_title=target.title,
        new_content=target.content,
        change_description=description,
        editor=editor,
        kind=RESTORE,
        restored_from=target.version_number,
    )
