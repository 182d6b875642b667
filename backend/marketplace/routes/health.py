"""
Marketplace Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Checks the database and the payment gateway circuit breaker.

Status levels:
    - healthy:   database reachable, gateway breaker closed
    - degraded:  database reachable, gateway breaker open (payments paused)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from marketplace import __version__
from marketplace.database import engine
from marketplace.schemas.common import HealthResponse
from marketplace.services.razorpay_client import CircuitBreaker, razorpay_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports database connectivity and payment gateway circuit state.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    gateway_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Payment Gateway Breaker ─────────────────────────────────────
    # No outbound call here; an OPEN breaker already means recent failures
    if razorpay_client.circuit_breaker.state == CircuitBreaker.OPEN:
        gateway_status = "circuit_open"
        if overall != "unhealthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        payment_gateway=gateway_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
