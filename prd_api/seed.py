"""Seed demo PRDs with a realistic revision history."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from prd_api.entities.document import Document, DocumentStatus
from prd_api.services.document_service import DocumentService

logger = logging.getLogger(__name__)

CHECKOUT_V1 = """# One-click Checkout

## Problem
Returning customers re-enter payment details on every purchase.

## Goals
- Cut checkout time for returning customers
"""

CHECKOUT_V2 = CHECKOUT_V1 + """- Keep card data out of our servers (tokenised vault only)

## Success Metrics
- Median checkout under 20 seconds
"""

CHECKOUT_V3 = CHECKOUT_V2.replace(
    "- Median checkout under 20 seconds",
    "- Median checkout under 10 seconds\n- Conversion +3% for returning customers",
)

SEARCH_V1 = """# Workspace Search

## Problem
PRDs, tasks and notes can only be browsed, not searched.

## Scope
- Title and full-text search across PRDs
"""

SEARCH_V2 = SEARCH_V1 + """- Filters by project and status

## Out of Scope
- Searching attachments
"""

DOCUMENTS = [
    {
        "project_id": "proj_checkout",
        "editor": "pm.alex",
        "status": DocumentStatus.REVIEW.value,
        "revisions": [
            ("One-click Checkout", CHECKOUT_V1, "Initial draft"),
            ("One-click Checkout", CHECKOUT_V2, "Add security goal and metrics"),
            ("One-click Checkout PRD", CHECKOUT_V3, "Tighten latency target after design review"),
        ],
    },
    {
        "project_id": "proj_search",
        "editor": "pm.sam",
        "status": DocumentStatus.DRAFT.value,
        "revisions": [
            ("Workspace Search", SEARCH_V1, "Initial draft"),
            ("Workspace Search", SEARCH_V2, "Add filters, exclude attachments"),
        ],
    },
]


async def has_documents(db: AsyncSession) -> bool:
    result = await db.execute(select(func.count(Document.id)))
    return bool(result.scalar())


async def seed_data(db: AsyncSession) -> list[Document]:
    """Seed the database with demo documents and their histories.

    Returns the seeded documents at their final versions.
    """
    service = DocumentService(db)
    seeded = []

    for entry in DOCUMENTS:
        revisions = entry["revisions"]
        title, content, description = revisions[0]
        document = await service.create(
            title=title,
            content=content,
            editor=entry["editor"],
            status=entry["status"],
            project_id=entry["project_id"],
            change_description=description,
        )
        for title, content, description in revisions[1:]:
            document = await service.edit(
                document.id,
                new_title=title,
                new_content=content,
                change_description=description,
                editor=entry["editor"],
                expected_version=document.version,
            )
        seeded.append(document)

    # Show a restore in the checkout history: roll back the latency target
    checkout = seeded[0]
    seeded[0] = await service.restore(
        checkout.id,
        target_version=2,
        change_description="Latency target not feasible for Q3, reverting",
        editor="eng.lead",
        expected_version=checkout.version,
    )

    for document in seeded:
        logger.info("Seeded document %s (%s) at version %d", document.id, document.title, document.version)
    return seeded
