"""
Request context middleware.

Every request gets a correlation ID (taken from X-Correlation-ID when it is
a plain token, generated otherwise) that is bound to the logging context
and echoed back. Requests to the admin surface (clear, purge, delete,
restore) are logged at INFO with their outcome and timing as an audit
trail; everything else is logged at DEBUG.
"""
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from matchstats.core.logging import set_correlation_id, clear_correlation_id, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
ADMIN_PATH_PREFIX = "/api/v1/admin"

# Client-supplied ids end up in log lines
_CORRELATION_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_correlation_id(value: str | None) -> str:
    """Accept a well-formed client id, otherwise generate one."""
    if value and _CORRELATION_ID_RE.match(value):
        return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Tag every request (and its log lines) with a correlation ID and audit admin calls.

    Usage:
        app.add_middleware(CorrelationIdMiddleware)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = correlation_id

        token = set_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id

            path = request.url.path
            extra = {
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            }
            if path.startswith(ADMIN_PATH_PREFIX):
                logger.info(f"Admin request: {request.method} {path} -> {response.status_code}", extra=extra)
            else:
                logger.debug(f"Request completed: {request.method} {path}", extra=extra)
            return response
        finally:
            clear_correlation_id(token)
