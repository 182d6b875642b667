"""
Marketplace Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions, each bound to one HTTP status code.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the class's status code.
Who:   Raised by services and auth dependencies; caught by global handlers.

Exception Hierarchy:
    MarketplaceError (base)            → 500
    ├── ValidationError                → 400 Bad Request
    ├── WebhookSignatureError          → 400 Bad Request
    ├── AuthenticationError            → 401 Unauthorized
    ├── PermissionDeniedError          → 403 Forbidden
    ├── NotFoundError                  → 404 Not Found
    ├── ConflictError                  → 409 Conflict
    ├── RateLimitExceededError         → 429 Too Many Requests
    ├── DatabaseError                  → 500 Internal Server Error
    ├── PaymentGatewayError            → 502 Bad Gateway
    └── CircuitBreakerOpenError        → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """
    Base exception for all marketplace application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info
        status_code: HTTP status the global handler responds with
        error_code:  Machine-readable `error` field of the response body
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    """
    Raised when client input fails a business rule.

    When:    Empty update bodies, out-of-range status codes, bid on a closed project,
             operating on a bid that is no longer pending.
    HTTP:    400 Bad Request

    Schema-level errors (wrong types, missing fields) are raised by FastAPI
    as RequestValidationError and are mapped to the same 400 body in main.py.
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(MarketplaceError):
    """
    Raised when the caller's identity cannot be established.

    When:    Missing bearer token, bad signature, expired token, unknown or banned user,
             wrong login credentials.
    HTTP:    401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(MarketplaceError):
    """
    Raised when an authenticated caller may not perform the operation.

    When:    Missing role or permission, or acting on a resource owned by someone else.
    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MarketplaceError):
    """
    Raised when a requested resource does not exist (or is soft-deleted).

    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; services convert
    None → NotFoundError so the handler can answer 404.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id is not None:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(MarketplaceError):
    """
    Raised when a write would duplicate an existing active record.

    When:    Second bid on the same project, duplicate category/tag/skill name,
             freelancer already in favorites, duplicate role or permission name.
    HTTP:    409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MarketplaceError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Details
    (constraint names, SQL text) are logged server-side only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentGatewayError(MarketplaceError):
    """
    Raised when the payment gateway rejects a call or keeps failing after retries.

    HTTP:    502 Bad Gateway
    """

    status_code = 502
    error_code = "payment_gateway_error"

    def __init__(
        self,
        message: str = "The payment gateway is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(MarketplaceError):
    """
    Raised when the payment gateway circuit breaker is OPEN.

    HTTP:    503 Service Unavailable

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for the recovery timeout)
        → After timeout → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Payment service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class WebhookSignatureError(MarketplaceError):
    """
    Raised when a payment webhook is missing its signature or the HMAC does not match.

    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "invalid_signature"

    def __init__(
        self,
        message: str = "Invalid signature",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MarketplaceError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
