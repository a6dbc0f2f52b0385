"""
Request deadline for TechStock.

Catalog listing with a huge page size, dashboard rollups and tag scans all
touch the whole resource table. A request that outlives its deadline is
cancelled and answered with a 504 in the standard error envelope.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from techstock.shared.core.config import get_settings
from techstock.shared.core.error_governance import error_body
from techstock.shared.core.ops_metrics import API_ERRORS_TOTAL

logger = structlog.get_logger()

EXEMPT_PATHS = ("/metrics",)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Cancels requests that run past `REQUEST_TIMEOUT_SECONDS`."""

    def __init__(self, app: ASGIApp, timeout_seconds: float | None = None) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds or get_settings().REQUEST_TIMEOUT_SECONDS

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path.startswith(EXEMPT_PATHS):
            return await call_next(request)
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                path=request.url.path,
                method=request.method,
                timeout_seconds=self.timeout_seconds,
            )
            API_ERRORS_TOTAL.labels(
                path=request.url.path, method=request.method, status_code=504
            ).inc()
            return JSONResponse(
                status_code=504,
                content=error_body(
                    504,
                    f"Request timed out after {self.timeout_seconds} seconds",
                    "gateway_timeout",
                ),
            )
