"""Fire-and-forget webhook emission for committed document versions.

Failures are logged but never raised: a version is already committed by the
time subscribers are told about it.
"""

from __future__ import annotations

import logging

import httpx

from prd_api.config import settings

logger = logging.getLogger(__name__)

_TIMEOUT = 5.0


async def emit_webhook(path: str, payload: dict) -> None:
    """POST payload to the configured webhook base URL at the given path.

    Silent on failure: logs the error and returns.
    """
    base = settings.notification_webhook_url
    if not base:
        logger.debug("notification_webhook_url not configured, skipping webhook")
        return

    url = f"{base.rstrip('/')}{path}"
    try:
        async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
            logger.info("Webhook delivered to %s (status %d)", url, resp.status_code)
    except Exception as exc:
        logger.warning("Webhook to %s failed (non-fatal): %s", url, exc)


async def notify_version_committed(document, kind: str, editor: str | None) -> None:
    await emit_webhook(
        "/document-versions",
        {
            "document_id": document.id,
            "version": document.version,
            "kind": kind,
            "editor": editor,
        },
    )
