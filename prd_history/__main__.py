"""Entry point: python -m prd_history

Inspect and change versioned documents directly against the configured
database (PRD_API_DATABASE_URL).

Usage:
    python -m prd_history show <document_id>
    python -m prd_history history <document_id>
    python -m prd_history compare <document_id> 1 4
    python -m prd_history edit <document_id> --content-file prd.md -m "Tighten scope"
    python -m prd_history restore <document_id> 2 -m "Revert latency target"
    python -m prd_history export <document_id> --format yaml > history.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import yaml

# Ensure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from prd_api.config import settings
from prd_api.database import async_session, close_db, init_db
from prd_api.services.document_service import DocumentService
from prd_history.diff import Comparison
from prd_history.document import VersionView
from prd_history.errors import VersioningError
from prd_history.retry import retry_on_conflict

_MARKERS = {"unchanged": " ", "added": "+", "removed": "-", "changed": "~"}


def format_history(history: list[VersionView]) -> str:
    lines = []
    for view in history:
        badge = " (current)" if view.is_current else ""
        stamp = view.created_at.strftime("%Y-%m-%d %H:%M") if view.created_at else "-"
        lines.append(
            f"v{view.version_number}{badge}  {stamp}  {view.author or 'unknown'}  "
            f"{view.title}  {view.change_description or ''}".rstrip()
        )
    return "\n".join(lines)


def format_comparison(comparison: Comparison) -> str:
    out = []
    for side, block in (("LEFT", comparison.left), ("RIGHT", comparison.right)):
        badge = " [Current]" if block.is_current else ""
        out.append("=" * 60)
        out.append(f"{side}: version {block.version_number}{badge}  {block.title}")
        out.append("=" * 60)
        for line in block.lines:
            out.append(f"{_MARKERS.get(line.marker, '?')} {line.number:>4} {line.text}")
    out.append("")
    out.append(
        f"{comparison.lines_added} line(s) added/changed, "
        f"{comparison.lines_removed} line(s) removed/changed"
        + (", content identical" if comparison.content_identical else "")
    )
    return "\n".join(out)


def export_history(history: list[VersionView], fmt: str = "yaml") -> str:
    """Serialise a full history, oldest first, for archiving."""
    entries = [
        {
            "version": view.version_number,
            "current": view.is_current,
            "title": view.title,
            "change_description": view.change_description,
            "author": view.author,
            "created_at": view.created_at.isoformat() if view.created_at else None,
            "content": view.content,
        }
        for view in sorted(history, key=lambda v: v.version_number)
    ]
    payload = {"document_id": history[0].document_id if history else None, "versions": entries}
    if fmt == "json":
        return json.dumps(payload, indent=2)
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


async def _edit(args: argparse.Namespace) -> None:
    content = Path(args.content_file).read_text()

    async def attempt():
        async with async_session() as db:
            service = DocumentService(db)
            current = await service.get(args.document_id)
            return await service.edit(
                args.document_id,
                new_title=args.title or current.title,
                new_content=content,
                change_description=args.message,
                editor=args.editor,
            )

    document = await retry_on_conflict(attempt, attempts=settings.conflict_retry_attempts)
    print(f"Document {document.id} is now at version {document.version}")


async def _restore(args: argparse.Namespace) -> None:
    async def attempt():
        async with async_session() as db:
            return await DocumentService(db).restore(
                args.document_id,
                args.version,
                change_description=args.message,
                editor=args.editor,
            )

    document = await retry_on_conflict(attempt, attempts=settings.conflict_retry_attempts)
    print(f"Restored version {args.version}; document {document.id} is now at version {document.version}")


async def main(args: argparse.Namespace) -> int:
    await init_db()
    try:
        if args.command == "edit":
            await _edit(args)
        elif args.command == "restore":
            await _restore(args)
        else:
            async with async_session() as db:
                service = DocumentService(db)
                if args.command == "show":
                    document = await service.get(args.document_id)
                    print(f"{document.title}  (v{document.version}, {document.status})")
                    print("-" * 60)
                    print(document.content)
                elif args.command == "history":
                    print(format_history(await service.list_history(args.document_id)))
                elif args.command == "compare":
                    comparison = await service.compare(args.document_id, args.a, args.b)
                    print(format_comparison(comparison))
                elif args.command == "export":
                    history = await service.list_history(args.document_id)
                    print(export_history(history, args.format))
    except VersioningError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_db()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prd_history", description="Versioned PRD history tool")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print the current revision")
    show.add_argument("document_id")

    history = sub.add_parser("history", help="List every version, newest first")
    history.add_argument("document_id")

    compare = sub.add_parser("compare", help="Side-by-side diff of two versions")
    compare.add_argument("document_id")
    compare.add_argument("a", type=int)
    compare.add_argument("b", type=int)

    edit = sub.add_parser("edit", help="Save a new revision from a file")
    edit.add_argument("document_id")
    edit.add_argument("--content-file", required=True)
    edit.add_argument("--title", help="New title (defaults to the current one)")
    edit.add_argument("-m", "--message", help="Change description")
    edit.add_argument("--editor", default=settings.default_editor)

    restore = sub.add_parser("restore", help="Restore an older version as a new one")
    restore.add_argument("document_id")
    restore.add_argument("version", type=int)
    restore.add_argument("-m", "--message", help="Reason for the restore")
    restore.add_argument("--editor", default=settings.default_editor)

    export = sub.add_parser("export", help="Dump the whole history")
    export.add_argument("document_id")
    export.add_argument("--format", choices=["yaml", "json"], default="yaml")

    return parser


if __name__ == "__main__":
    sys.exit(asyncio.run(main(build_parser().parse_args())))
