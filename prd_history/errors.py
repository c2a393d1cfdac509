"""Error taxonomy for document versioning."""

from __future__ import annotations

import enum


class VersioningError(Exception):
    """Base class for every error raised by the versioning core."""

    retryable = False


class NotFound(VersioningError):
    """The referenced document, or one of its versions, does not exist."""

    def __init__(self, document_id: str, version_number: int | None = None):
        self.document_id = document_id
        self.version_number = version_number
        if version_number is None:
            message = f"Document {document_id} not found"
        else:
            message = f"Version {version_number} of document {document_id} not found"
        super().__init__(message)


class ValidationReason(str, enum.Enum):
    EMPTY_FIELD = "empty_field"
    INVALID_TARGET = "invalid_target"
    INVALID_STATUS = "invalid_status"


class ValidationError(VersioningError):
    """Caller input was rejected before reaching the store."""

    def __init__(self, reason: ValidationReason, message: str):
        self.reason = reason
        super().__init__(message)


class VersionConflict(VersioningError):
    """Another writer advanced the document since it was loaded.

    Reload the current document, re-derive the intent and resubmit.
    """

    retryable = True

    def __init__(
        self,
        document_id: str,
        expected_version: int,
        current_version: int | None = None,
    ):
        self.document_id = document_id
        self.expected_version = expected_version
        self.current_version = current_version
        message = f"Document {document_id} is no longer at version {expected_version}"
        if current_version is not None:
            message += f" (current version is {current_version})"
        super().__init__(message)


class StorageFailure(VersioningError):
    """The underlying database failed; retry later with backoff."""

    retryable = True
