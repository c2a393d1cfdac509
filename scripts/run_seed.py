"""Load the demo PRDs and print each one's version history.

Usage:
    python scripts/run_seed.py            # seed, even if documents exist
    python scripts/run_seed.py --if-empty # skip when any document exists
    python scripts/run_seed.py --reset    # drop and recreate tables first
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from prd_api.database import async_session, init_db, engine, Base
from prd_api.seed import has_documents, seed_data
from prd_api.services.document_service import DocumentService
from prd_history.__main__ import format_history


async def main(reset: bool = False, if_empty: bool = False) -> int:
    if reset:
        print("Dropping document tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    await init_db()

    async with async_session() as db:
        if if_empty and await has_documents(db):
            print("Documents already present, nothing seeded.")
            return 0

        documents = await seed_data(db)
        service = DocumentService(db)
        for document in documents:
            history = await service.list_history(document.id)
            print(f"\n{document.title} [{document.project_id}] {document.id}")
            print(format_history(history))

    print(f"\nSeeded {len(documents)} document(s).")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo PRDs with version history")
    parser.add_argument(
        "--reset", action="store_true", help="Drop and recreate tables before seeding"
    )
    parser.add_argument(
        "--if-empty", action="store_true", help="Only seed an empty database"
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(reset=args.reset, if_empty=args.if_empty)))
