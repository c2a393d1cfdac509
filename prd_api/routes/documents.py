"""Versioned document endpoints: edit, history, compare and restore."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from prd_api.config import settings
from prd_api.database import get_db
from prd_api.notify import notify_version_committed
from prd_api.schemas.documents import (
    ComparisonResponse,
    DocumentCreate,
    DocumentEdit,
    DocumentResponse,
    DocumentRestore,
    StatusEnum,
    StatusUpdate,
    VersionResponse,
)
from prd_api.services.document_service import DocumentService
from prd_history.document import EDIT, RESTORE
from prd_history.errors import (
    NotFound,
    StorageFailure,
    ValidationError,
    VersionConflict,
    VersioningError,
)

router = APIRouter(prefix="/documents", tags=["documents"])


def get_editor(x_editor_id: str | None = Header(default=None)) -> str:
    """Opaque editor identity supplied by the identity layer in front of us."""
    return x_editor_id or settings.default_editor


def _http_error(exc: VersioningError) -> HTTPException:
    """Map each versioning error kind to its own stable status code."""
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=422,
            detail={"error": "validation_error", "reason": exc.reason.value, "message": str(exc)},
        )
    if isinstance(exc, VersionConflict):
        return HTTPException(
            status_code=409,
            detail={
                "error": "version_conflict",
                "message": str(exc),
                "expected_version": exc.expected_version,
                "current_version": exc.current_version,
            },
        )
    if isinstance(exc, StorageFailure):
        return HTTPException(status_code=503, detail="Storage temporarily unavailable, try again later")
    return HTTPException(status_code=500, detail=str(exc))


@router.post("", response_model=DocumentResponse, status_code=201)
async def create_document(
    body: DocumentCreate,
    editor: str = Depends(get_editor),
    db: AsyncSession = Depends(get_db),
):
    """Create a document at version 1 with an empty history."""
    try:
        document = await DocumentService(db).create(
            title=body.title,
            content=body.content,
            editor=editor,
            status=body.status.value,
            project_id=body.project_id,
            change_description=body.change_description,
        )
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return DocumentResponse.model_validate(document)


@router.get("", response_model=list[DocumentResponse])
async def list_documents(
    project_id: str | None = None,
    status: StatusEnum | None = None,
    limit: int = Query(default=50, le=200),
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """List current documents, most recently updated first."""
    try:
        documents = await DocumentService(db).list_documents(
            project_id=project_id,
            status=status.value if status else None,
            limit=limit,
            offset=offset,
        )
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return [DocumentResponse.model_validate(d) for d in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, db: AsyncSession = Depends(get_db)):
    try:
        document = await DocumentService(db).get(document_id)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return DocumentResponse.model_validate(document)


@router.put("/{document_id}", response_model=DocumentResponse)
async def edit_document(
    document_id: str,
    body: DocumentEdit,
    editor: str = Depends(get_editor),
    db: AsyncSession = Depends(get_db),
):
    """Save a new revision. 409 means reload and re-apply."""
    try:
        document = await DocumentService(db).edit(
            document_id,
            new_title=body.title,
            new_content=body.content,
            change_description=body.change_description,
            editor=editor,
            expected_version=body.expected_version,
        )
    except VersioningError as exc:
        raise _http_error(exc) from exc
    await notify_version_committed(document, EDIT, editor)
    return DocumentResponse.model_validate(document)


@router.patch("/{document_id}/status", response_model=DocumentResponse)
async def update_status(
    document_id: str,
    body: StatusUpdate,
    editor: str = Depends(get_editor),
    db: AsyncSession = Depends(get_db),
):
    """Change lifecycle status; the version number is left alone."""
    try:
        document = await DocumentService(db).set_status(document_id, body.status.value, editor)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return DocumentResponse.model_validate(document)


@router.delete("/{document_id}", status_code=204)
async def delete_document(document_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a document and its whole history. Repeating the call is a no-op."""
    try:
        await DocumentService(db).delete(document_id)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@router.get("/{document_id}/versions", response_model=list[VersionResponse])
async def list_history(document_id: str, db: AsyncSession = Depends(get_db)):
    """Current revision plus every snapshot, newest first."""
    try:
        history = await DocumentService(db).list_history(document_id)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return [VersionResponse.model_validate(v) for v in history]


@router.get("/{document_id}/versions/{version_number}", response_model=VersionResponse)
async def get_version(document_id: str, version_number: int, db: AsyncSession = Depends(get_db)):
    try:
        view = await DocumentService(db).get_version(document_id, version_number)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return VersionResponse.model_validate(view)


@router.post("/{document_id}/versions/{version_number}/restore", response_model=DocumentResponse)
async def restore_version(
    document_id: str,
    version_number: int,
    body: DocumentRestore | None = None,
    editor: str = Depends(get_editor),
    db: AsyncSession = Depends(get_db),
):
    """Copy an older revision forward as a brand-new version."""
    body = body or DocumentRestore()
    try:
        document = await DocumentService(db).restore(
            document_id,
            version_number,
            change_description=body.change_description,
            editor=editor,
            expected_version=body.expected_version,
        )
    except VersioningError as exc:
        raise _http_error(exc) from exc
    await notify_version_committed(document, RESTORE, editor)
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}/compare", response_model=ComparisonResponse)
async def compare_versions(
    document_id: str,
    a: int = Query(ge=1),
    b: int = Query(ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Side-by-side rendering of two revisions, newer on the left."""
    try:
        comparison = await DocumentService(db).compare(document_id, a, b)
    except VersioningError as exc:
        raise _http_error(exc) from exc
    return ComparisonResponse.model_validate(comparison)
