"""Tests for the transition rules in prd_history.document."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from prd_history.document import (
    EDIT,
    RESTORE,
    VersionView,
    current_view,
    propose_edit,
    propose_restore,
    snapshot_view,
)
from prd_history.errors import ValidationError, ValidationReason


def _doc(version=3, title="Spec v2", content="Hello world!", doc_id="doc-1"):
    return SimpleNamespace(
        id=doc_id,
        version=version,
        title=title,
        content=content,
        change_description="Tweak",
        updated_by="alice",
        updated_at=datetime(2026, 1, 3, tzinfo=timezone.utc),
        status="draft",
    )


def _snapshot(version_number=1, title="Spec v1", content="Hello", doc_id="doc-1"):
    return SimpleNamespace(
        document_id=doc_id,
        version_number=version_number,
        title=title,
        content=content,
        change_description=None,
        created_by="bob",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


class TestProposeEdit:
    def test_builds_intent_from_current_version(self):
        intent = propose_edit(_doc(), "New title", "New body", "Rewrite intro", "alice")
        assert intent.document_id == "doc-1"
        assert intent.expected_version == 3
        assert intent.new_title == "New title"
        assert intent.new_content == "New body"
        assert intent.change_description == "Rewrite intro"
        assert intent.editor == "alice"
        assert intent.kind == EDIT
        assert intent.restored_from is None

    @pytest.mark.parametrize("title,content", [
        ("", "body"),
        ("   ", "body"),
        ("title", ""),
        ("title", "\n\t "),
        (None, "body"),
    ])
    def test_blank_fields_rejected(self, title, content):
        with pytest.raises(ValidationError) as exc_info:
            propose_edit(_doc(), title, content, None, "alice")
        assert exc_info.value.reason == ValidationReason.EMPTY_FIELD
        assert not exc_info.value.retryable

    def test_blank_change_description_normalised(self):
        intent = propose_edit(_doc(), "t", "c", "   ", "alice")
        assert intent.change_description is None

    def test_current_document_untouched(self):
        current = _doc()
        propose_edit(current, "Other", "Other body", None, "alice")
        assert current.title == "Spec v2"
        assert current.content == "Hello world!"
        assert current.version == 3


class TestProposeRestore:
    def test_copies_snapshot_content_forward(self):
        intent = propose_restore(_doc(), _snapshot(), None, "carol")
        assert intent.expected_version == 3
        assert intent.new_title == "Spec v1"
        assert intent.new_content == "Hello"
        assert intent.kind == RESTORE
        assert intent.restored_from == 1
        assert intent.editor == "carol"

    def test_default_description(self):
        intent = propose_restore(_doc(), _snapshot(version_number=2), None, "carol")
        assert intent.change_description == "Restored to version 2"

    def test_blank_description_gets_default(self):
        intent = propose_restore(_doc(), _snapshot(), "  ", "carol")
        assert intent.change_description == "Restored to version 1"

    def test_caller_description_kept(self):
        intent = propose_restore(_doc(), _snapshot(), "Roll back scope creep", "carol")
        assert intent.change_description == "Roll back scope creep"

    @pytest.mark.parametrize("target", [3, 4, 0, -1])
    def test_target_must_be_strictly_older(self, target):
        with pytest.raises(ValidationError) as exc_info:
            propose_restore(_doc(version=3), _snapshot(version_number=target), None, "carol")
        assert exc_info.value.reason == ValidationReason.INVALID_TARGET

    def test_snapshot_of_other_document_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            propose_restore(_doc(), _snapshot(doc_id="doc-2"), None, "carol")
        assert exc_info.value.reason == ValidationReason.INVALID_TARGET

    def test_accepts_version_view(self):
        view = VersionView(document_id="doc-1", version_number=2, title="T", content="C")
        intent = propose_restore(_doc(), view, None, "carol")
        assert intent.new_content == "C"
        assert intent.restored_from == 2

    def test_current_view_cannot_be_restored(self):
        current = _doc()
        with pytest.raises(ValidationError):
            propose_restore(current, current_view(current), None, "carol")


class TestViews:
    def test_current_view(self):
        view = current_view(_doc())
        assert view.is_current
        assert view.version_number == 3
        assert view.author == "alice"
        assert view.status == "draft"

    def test_snapshot_view(self):
        view = snapshot_view(_snapshot(version_number=2))
        assert not view.is_current
        assert view.version_number == 2
        assert view.author == "bob"
        assert view.document_id == "doc-1"
