"""Caller-side retry loop for optimistic-concurrency conflicts."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from prd_history.errors import VersionConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
) -> T:
    """Run ``operation`` until it stops raising VersionConflict.

    ``operation`` must reload the current document and re-derive its intent on
    every call. Only conflicts are retried; the last one is re-raised once
    ``attempts`` runs are used up, since repeated conflicts mean the document
    is genuinely hot.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except VersionConflict as exc:
            if attempt == attempts:
                logger.warning(
                    "Giving up on document %s after %d conflicting attempt(s)",
                    exc.document_id, attempts,
                )
                raise
            logger.info(
                "Version conflict on document %s (attempt %d/%d), retrying",
                exc.document_id, attempt, attempts,
            )
    raise AssertionError("unreachable")
