from prd_api.entities.document import Document, DocumentStatus
from prd_api.entities.document_version import DocumentVersion, ImmutableSnapshotError

__all__ = [
    "Document", "DocumentStatus",
    "DocumentVersion", "ImmutableSnapshotError",
]
