"""
Marketplace Backend — Request ID Middleware
============================================

What:  Tags every request with a short correlation id.
Why:   One id ties together the access log line, service logs, the error
       body and whatever the caller reports to support.
How:   Reuses the caller's X-Request-ID header when present, otherwise
       generates one; stores it in a ContextVar for loggers and exception
       handlers and echoes it back on the response.
When:  Runs inside the rate limiter, before access logging.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Sets request_id_var for the duration of the request.

    The caller's header is trusted as-is; generated ids are the first
    8 hex characters of a uuid4.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        # Why: clients quote it in bug reports
        response.headers["X-Request-ID"] = rid
        return response
