"""
Epic Notes — Request Logging Middleware
========================================

What:  One access-log line per HTTP request.
How:   Measures from middleware entry until the handler returns its response
       and logs method, path, status, duration, request ID and client IP.
       For streamed images the duration covers opening the file, not
       sending the body.

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

What we log vs what we DON'T log:
    Logged:     method, path, status, duration, client IP, request ID
    Not logged: form bodies (note text is user content), cookies (CSRF token)

/resources/healthcheck is skipped; probes hit it every few seconds.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from epicnotes.middleware.request_id import request_id_var

logger = logging.getLogger("epicnotes.access")

UNLOGGED_PATHS = frozenset({"/resources/healthcheck"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
