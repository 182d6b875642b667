"""
Marketplace Backend — Shared Response Schemas
==============================================

What:  Response shapes shared by every router: the error body, the health
       report and the plain acknowledgement message.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body returned by every exception handler.

    Example:
        {
            "error": "not_found",
            "message": "bid with ID '42' was not found",
            "details": {"resource": "bid", "resource_id": "42"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome of the operation")


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    A backend that cannot reach its database is down even if the process is up,
    so the database is queried on every call.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    payment_gateway: str = Field(description="Payment gateway status: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")


class CountResponse(BaseModel):
    count: int = Field(ge=0)
