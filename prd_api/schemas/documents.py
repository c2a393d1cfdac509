"""Pydantic schemas for versioned document endpoints."""

from __future__ import annotations

import enum
from datetime import datetime
from pydantic import BaseModel, Field


class StatusEnum(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    ARCHIVED = "archived"


class DocumentCreate(BaseModel):
    title: str = Field(max_length=500)
    content: str
    status: StatusEnum = StatusEnum.DRAFT
    project_id: str | None = None
    change_description: str | None = None


class DocumentEdit(BaseModel):
    title: str = Field(max_length=500)
    content: str
    change_description: str | None = None
    # Version the caller loaded; omit to accept whatever is current
    expected_version: int | None = Field(default=None, ge=1)


class DocumentRestore(BaseModel):
    change_description: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class StatusUpdate(BaseModel):
    status: StatusEnum


class DocumentResponse(BaseModel):
    id: str
    project_id: str | None = None
    title: str
    content: str
    version: int
    status: str
    change_description: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VersionResponse(BaseModel):
    document_id: str
    version_number: int
    title: str
    content: str
    change_description: str | None = None
    author: str | None = None
    created_at: datetime | None = None
    is_current: bool
    status: str | None = None

    model_config = {"from_attributes": True}


class RenderedLineResponse(BaseModel):
    number: int
    text: str
    marker: str

    model_config = {"from_attributes": True}


class RenderedBlockResponse(BaseModel):
    version_number: int
    title: str
    created_at: datetime | None = None
    author: str | None = None
    change_description: str | None = None
    is_current: bool
    lines: list[RenderedLineResponse] = []
    preview: list[str] = []

    model_config = {"from_attributes": True}


class ComparisonResponse(BaseModel):
    left: RenderedBlockResponse
    right: RenderedBlockResponse
    is_current_left: bool
    is_current_right: bool
    title_changed: bool
    content_identical: bool
    lines_added: int
    lines_removed: int

    model_config = {"from_attributes": True}
