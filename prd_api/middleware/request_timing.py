"""Middleware that logs how long every API request took."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_QUIET_ROUTES = ("/health", "/docs", "/openapi.json", "/redoc")


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time-Ms"] = f"{duration_ms:.2f}"

        # Matched route template, e.g. /api/v1/documents/{document_id}
        route = request.scope.get("route")
        route_template = route.path if route else request.url.path

        if route_template in _QUIET_ROUTES:
            return response

        logger.info(
            "%s %s -> %d in %.2fms (editor=%s)",
            request.method,
            route_template,
            response.status_code,
            duration_ms,
            request.headers.get("X-Editor-Id", "-"),
        )
        return response
