"""Delete documents so the workspace starts empty.

History rows are never deleted directly; they go with their document through
the ON DELETE CASCADE foreign key.

Usage:
    python scripts/reset_live_data.py                       # delete every document
    python scripts/reset_live_data.py --project proj_search # only one project's PRDs
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from sqlalchemy import func, select

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from prd_api.database import async_session, init_db
from prd_api.entities import Document, DocumentVersion
from prd_api.services.document_service import DocumentService


async def _count_snapshots() -> int:
    async with async_session() as db:
        result = await db.execute(select(func.count(DocumentVersion.id)))
        return int(result.scalar() or 0)


async def main(project_id: str | None) -> None:
    await init_db()

    async with async_session() as db:
        query = select(Document.id)
        if project_id:
            query = query.where(Document.project_id == project_id)
        document_ids = list((await db.execute(query)).scalars().all())

    before = await _count_snapshots()
    print("Resetting documents...")
    async with async_session() as db:
        service = DocumentService(db)
        for document_id in document_ids:
            await service.delete(document_id)
            print(f"  {document_id}: deleted")
    after = await _count_snapshots()
    print(f"Removed {len(document_ids)} document(s) and {before - after} snapshot(s).")
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clear documents and their history")
    parser.add_argument("--project", dest="project_id", help="Only delete PRDs in this project")
    args = parser.parse_args()
    asyncio.run(main(project_id=args.project_id))
