"""DocumentVersion model: append-only snapshots of superseded revisions."""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Text, Integer, ForeignKey, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from prd_api.database import Base


class ImmutableSnapshotError(RuntimeError):
    """Raised when a flush would update or delete a written snapshot."""


class DocumentVersion(Base):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_versions_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    change_description: Mapped[str] = mapped_column(Text, nullable=True)
    # Author and timestamp of the revision itself, copied from the document
    # row at the moment it was superseded.
    created_by: Mapped[str] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )


@event.listens_for(DocumentVersion, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    raise ImmutableSnapshotError(
        f"Version {target.version_number} of document {target.document_id} is immutable"
    )


@event.listens_for(DocumentVersion, "before_delete")
def _reject_snapshot_delete(mapper, connection, target):
    raise ImmutableSnapshotError(
        f"Version {target.version_number} of document {target.document_id} cannot be deleted; "
        "delete the document instead"
    )
