"""PRD API: versioned product requirements documents with history, compare and restore."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prd_api.config import settings
from prd_api.database import init_db, close_db, async_session
from prd_api.middleware.api_key_auth import ApiKeyAuthMiddleware
from prd_api.middleware.request_timing import RequestTimingMiddleware
from prd_api.routes import documents
from prd_api.seed import has_documents, seed_data

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    # Seed demo data on first startup
    if settings.seed_demo_data:
        async with async_session() as db:
            if not await has_documents(db):
                await seed_data(db)
    yield
    await close_db()


app = FastAPI(
    title="PRD API",
    description="Versioned product requirements documents: append-only history, compare and restore",
    version=settings.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ApiKeyAuthMiddleware)
app.add_middleware(RequestTimingMiddleware)

app.include_router(documents.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "prd-api", "version": settings.api_version}
