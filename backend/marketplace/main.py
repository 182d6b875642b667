"""
Marketplace Backend — FastAPI Application Factory
==================================================

What:  Builds the FastAPI application: middleware, exception handlers, routers.
Who:   uvicorn loads `marketplace.main:app`.

Application Architecture:
    Middleware (outermost first):
        RateLimit → RequestID → AccessLog → GZip → CORS

    Routers:
        auth, projects, applications, project-bids, submissions, category,
        tags, skills, role, permission, favorites, saved-projects, report,
        payments, webhook, notifications (+ websocket), health

    Exception Handlers:
        MarketplaceError        → exc.status_code / exc.error_code
        RequestValidationError  → 400
        Exception               → 500 (traceback logged, never returned)

Lifecycle:
    Startup:  configure logging, report missing secrets
    Shutdown: close the gateway HTTP client, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from marketplace import __version__
from marketplace.config import settings
from marketplace.database import dispose_engine
from marketplace.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    MarketplaceError,
    PaymentGatewayError,
    RateLimitExceededError,
)
from marketplace.middleware.logging import RequestLoggingMiddleware
from marketplace.middleware.rate_limit import RateLimitMiddleware
from marketplace.middleware.request_id import RequestIDMiddleware, request_id_var
from marketplace.routes import (
    activity,
    applications,
    auth,
    bids,
    health,
    notifications,
    payments,
    projects,
    rbac,
    submissions,
    taxonomy,
)
from marketplace.services.razorpay_client import razorpay_client

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, to stdout."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from these duplicates the access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Marketplace backend %s starting up...", __version__)

    # Missing secrets disable the features that need them; /health stays up
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Marketplace backend shutting down...")
    await razorpay_client.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details, rid: str) -> dict:
    return {"error": error, "message": message, "details": details, "request_id": rid}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the shared JSON error body.

    Every MarketplaceError subclass carries its own status_code and
    error_code, so one handler covers the whole hierarchy. Server-side
    failures (DatabaseError, unexpected exceptions) return a generic
    message; details go to the log only.
    """

    @app.exception_handler(MarketplaceError)
    async def handle_marketplace_error(request: Request, exc: MarketplaceError):
        rid = request_id_var.get("")
        headers = {}

        if isinstance(exc, DatabaseError):
            logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body(
                    exc.error_code,
                    "An internal error occurred. Please try again later.",
                    {},
                    rid,
                ),
            )

        if isinstance(exc, CircuitBreakerOpenError):
            logger.warning("[%s] Circuit breaker open: %s", rid, exc.message)
            headers["Retry-After"] = str(exc.recovery_time)
        elif isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        elif isinstance(exc, PaymentGatewayError):
            logger.error("[%s] Payment gateway error: %s", rid, exc.message)
            if exc.retry_after:
                headers["Retry-After"] = str(exc.retry_after)
        elif exc.status_code >= 500:
            logger.error("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, exc.context, rid),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.info("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Request validation failed", {"errors": errors}, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                {},
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Marketplace API",
        description=(
            "Freelance marketplace backend: projects, applications, bids, "
            "catalogs, role-based access, escrow payments and notifications."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(applications.router)
    app.include_router(bids.router)
    app.include_router(submissions.router)
    app.include_router(taxonomy.category_router)
    app.include_router(taxonomy.tag_router)
    app.include_router(taxonomy.skill_router)
    app.include_router(rbac.role_router)
    app.include_router(rbac.permission_router)
    app.include_router(activity.favorites_router)
    app.include_router(activity.saved_projects_router)
    app.include_router(activity.reports_router)
    app.include_router(payments.router)
    app.include_router(payments.webhook_router)
    app.include_router(notifications.router)
    app.include_router(notifications.ws_router)
    app.include_router(health.router)

    return app


app = create_app()
