"""Side-by-side comparison of two document revisions.

Line oriented only: no semantic merge, no conflict resolution.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from datetime import datetime, timezone

from prd_history.document import VersionView

DEFAULT_PREVIEW_LINES = 10

_MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class RenderedLine:
    number: int         # 1-based line number within its own block
    text: str
    marker: str         # unchanged, added, removed, changed


@dataclass(frozen=True)
class RenderedBlock:
    version_number: int
    title: str
    created_at: datetime | None
    author: str | None
    change_description: str | None
    is_current: bool
    lines: tuple[RenderedLine, ...]
    preview: tuple[str, ...]


@dataclass(frozen=True)
class Comparison:
    left: RenderedBlock   # newer revision
    right: RenderedBlock  # older revision
    is_current_left: bool
    is_current_right: bool
    title_changed: bool
    content_identical: bool
    lines_added: int
    lines_removed: int


def _sort_key(view: VersionView) -> tuple[int, datetime]:
    created = view.created_at
    if created is None:
        created = _MIN_TIMESTAMP
    elif created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return view.version_number, created


def order_newer_first(a: VersionView, b: VersionView) -> tuple[VersionView, VersionView]:
    """Return (newer, older) by version number, then by timestamp."""
    if _sort_key(b) > _sort_key(a):
        return b, a
    return a, b


def _block(view: VersionView, markers: list[str], preview_lines: int) -> RenderedBlock:
    lines = view.content.splitlines()
    return RenderedBlock(
        version_number=view.version_number,
        title=view.title,
        created_at=view.created_at,
        author=view.author,
        change_description=view.change_description,
        is_current=view.is_current,
        lines=tuple(
            RenderedLine(number=i + 1, text=text, marker=marker)
            for i, (text, marker) in enumerate(zip(lines, markers))
        ),
        preview=tuple(lines[:preview_lines]),
    )


def _line_markers(newer: list[str], older: list[str]) -> tuple[list[str], list[str]]:
    """Mark each line of both sides relative to the other side."""
    newer_markers = ["unchanged"] * len(newer)
    older_markers = ["unchanged"] * len(older)
    matcher = difflib.SequenceMatcher(None, older, newer, autojunk=False)
    for tag, o1, o2, n1, n2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if tag == "replace":
            older_markers[o1:o2] = ["changed"] * (o2 - o1)
            newer_markers[n1:n2] = ["changed"] * (n2 - n1)
        elif tag == "delete":
            older_markers[o1:o2] = ["removed"] * (o2 - o1)
        elif tag == "insert":
            newer_markers[n1:n2] = ["added"] * (n2 - n1)
    return newer_markers, older_markers


def compare_versions(
    a: VersionView,
    b: VersionView,
    preview_lines: int = DEFAULT_PREVIEW_LINES,
) -> Comparison:
    """Render two revisions side by side, newer on the left."""
    newer, older = order_newer_first(a, b)
    newer_lines = newer.content.splitlines()
    older_lines = older.content.splitlines()
    newer_markers, older_markers = _line_markers(newer_lines, older_lines)

    left = _block(newer, newer_markers, preview_lines)
    right = _block(older, older_markers, preview_lines)
    return Comparison(
        left=left,
        right=right,
        is_current_left=newer.is_current,
        is_current_right=older.is_current,
        title_changed=newer.title != older.title,
        content_identical=newer.content == older.content,
        lines_added=sum(1 for m in newer_markers if m in ("added", "changed")),
        lines_removed=sum(1 for m in older_markers if m in ("removed", "changed")),
    )
