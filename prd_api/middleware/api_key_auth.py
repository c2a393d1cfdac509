"""API key check for the versioned document endpoints.

Only paths under ``settings.api_prefix`` are guarded; health and the OpenAPI
pages stay public. ``PRD_API_API_KEY`` may hold several comma-separated keys
so a new key can be rolled out before the old one is withdrawn.
"""

from __future__ import annotations

import logging
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from prd_api.config import settings

logger = logging.getLogger(__name__)


def configured_keys() -> list[str]:
    return [k.strip() for k in settings.api_key.split(",") if k.strip()]


def _is_guarded(path: str) -> bool:
    prefix = settings.api_prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    # Same body shape the document routes use for their own errors
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"error": error, "message": message}},
        headers={"WWW-Authenticate": "ApiKey"} if status_code == 401 else None,
    )


class ApiKeyAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS" or not _is_guarded(request.url.path):
            return await call_next(request)

        keys = configured_keys()
        if not keys:
            if settings.debug:
                return await call_next(request)
            logger.error("Rejecting %s: PRD_API_API_KEY is not configured", request.url.path)
            return _error(500, "auth_not_configured", "PRD_API_API_KEY not configured")

        provided = request.headers.get("X-API-Key", "")
        if not provided:
            return _error(401, "missing_api_key", "X-API-Key header is required")
        if not any(secrets.compare_digest(provided, key) for key in keys):
            logger.warning(
                "Invalid API key for %s %s (editor=%s)",
                request.method, request.url.path, request.headers.get("X-Editor-Id", "-"),
            )
            return _error(401, "invalid_api_key", "X-API-Key is not valid")

        return await call_next(request)
