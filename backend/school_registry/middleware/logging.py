"""
School Registry Backend: Request Logging Middleware
=====================================================

What:  One access log line per request with status, duration and, for
       uploads, the declared body size.
How:   Measures time around call_next and logs at a level chosen by status
       class (5xx ERROR, 4xx WARNING, otherwise INFO). Paths listed in
       LOG_QUIET_PATHS (default: /health) are passed through unlogged.

Logged:     method, path, status, duration, request id, client ip, body size
Not logged: form fields, uploaded file contents
"""

import logging
import time
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from school_registry.middleware.request_id import request_id_var

logger = logging.getLogger("school_registry.access")


def status_log_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def declared_body_size(request: Request) -> Optional[int]:
    """Content-Length of the request, None when absent or malformed."""
    raw = request.headers.get("content-length")
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ("/health",)):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.quiet_paths:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
            "body_bytes": declared_body_size(request),
        }

        message = "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s"
        if entry["body_bytes"]:
            message += " body=%(body_bytes)dB"

        logger.log(status_log_level(entry["status"]), message, entry, extra=entry)
        return response
