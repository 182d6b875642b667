"""
Marketplace Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window limiter (RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW seconds).
Why:   Keeps one client from starving the others (login guessing, listing scrapes).
How:   Keeps the timestamps of each IP's requests inside the current window;
       a request arriving when the window is full gets 429 with Retry-After.
Who:   Registered last in create_app(), so it is the outermost middleware.
When:  Before any other work, including request id assignment.

Algorithm: Sliding Window
    1. Drop the IP's timestamps older than now - window
    2. If the remaining count >= limit, answer 429
    3. Otherwise record now and pass the request on

    A fixed window lets a client burst twice the limit across a window
    boundary; the sliding window always counts the last N seconds.

State is per process. With several workers each one enforces its own limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from marketplace.config import settings
from marketplace.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (from settings):
        rate_limit_requests: max requests per window
        rate_limit_window:   window length in seconds

    Excluded paths:
        - /health, /docs, /redoc, /openapi.json
        - the Razorpay webhook

    Response on rate limit:
        HTTP 429, Retry-After = seconds until the oldest request leaves the window,
        body in the same shape as every other error.
    """

    # Why: the gateway retries webhooks on its own schedule; throttling them loses payments
    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        f"{settings.api_prefix}/webhook/razorpay",
    }

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy address unless uvicorn runs with --proxy-headers
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= settings.rate_limit_requests:
            retry_after = int(recent[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(recent),
                settings.rate_limit_window,
            )
            # Runs outside the exception handlers and before RequestIDMiddleware
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request.headers.get("X-Request-ID", ""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)

        # Why: IPs that went quiet would otherwise stay in the dict forever
        if len(self._requests) > 1000:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Remove IPs with no request inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
