"""
Marketplace Backend — Access Log Middleware
============================================

What:  Access log for every request except health checks.
Why:   Latency and error rates per endpoint without a separate metrics stack.
How:   Times call_next() and logs method, path, status, duration, request id
       and client IP, also passed as `extra` fields for structured handlers.

One line per request on the `marketplace.access` logger:

    POST /api/v1/project-bids 201 12.4ms [a1b2c3d4] from 10.0.0.7

Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
Request bodies are never logged (credentials, payment payloads).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from marketplace.middleware.request_id import request_id_var

logger = logging.getLogger("marketplace.access")

# Why: load balancers poll it every few seconds; logging each hit drowns real traffic
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
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
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
