"""
Epic Notes — Request ID Middleware
===================================

What:  Assigns a short ID to each request and returns it as X-Request-ID.
Why:   Lines logged while handling one request share the ID, so a failed
       edit can be traced from the access log to the service log entries.
How:   Reuses a client-sent X-Request-ID, otherwise generates one. The ID
       is kept in a ContextVar (read by loggers) and on request.state
       (read by handlers and error pages).
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 characters is plenty for correlating log lines
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
