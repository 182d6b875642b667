"""
Marketplace Backend — Razorpay Gateway Client
==============================================

What:  Outbound calls to the Razorpay Orders API.
How:   httpx.AsyncClient with basic auth (key id / key secret), wrapped in
       tenacity retries and a circuit breaker.
Who:   PaymentService.create_order(); the health route reads the breaker state.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transport errors
       and 5xx responses. 4xx responses are the caller's fault and are not retried.
    2. Circuit breaker in front of every call: after N consecutive failed
       calls, further calls fail instantly with CircuitBreakerOpenError (503)
       until the recovery timeout elapses.

Error Handling Chain:
    call fails → tenacity retries (retry_max_attempts, backoff)
    → retries exhausted → breaker.record_failure() → PaymentGatewayError (502)
    → threshold reached → breaker OPEN → CircuitBreakerOpenError (503)
    → recovery timeout → one trial call (HALF_OPEN) → success closes the breaker

Amounts:
    Razorpay works in the currency's smallest unit; ₹499.50 is sent as 49950.
"""

import logging
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from marketplace.config import settings
from marketplace.exceptions import CircuitBreakerOpenError, PaymentGatewayError

logger = logging.getLogger(__name__)


def to_subunits(amount: Decimal) -> int:
    """Rupees → paise, rounded half-up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GatewayUnavailable(Exception):
    """Transient gateway failure (transport error or 5xx); retried."""


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════


class CircuitBreaker:
    """
    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Per-process state; each uvicorn worker keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True when a call may proceed.

        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (gateway recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Razorpay Client
# ══════════════════════════════════════════════════════════════════════════


class RazorpayClient:
    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http = http_client
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "RazorpayClient initialized: base_url=%s, circuit_breaker(threshold=%d, recovery=%ds)",
            settings.razorpay_base_url,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=settings.razorpay_base_url,
                auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
                timeout=settings.razorpay_timeout,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a Razorpay order for `amount` (major units).

        Returns:
            The gateway's order object (`id`, `amount`, `currency`, `status`, ...).

        Raises:
            CircuitBreakerOpenError: too many recent gateway failures
            PaymentGatewayError:     gateway rejected the order or kept failing
        """
        if not settings.razorpay_key_id or not settings.razorpay_key_secret:
            raise PaymentGatewayError("Payment gateway is not configured")

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        body = {
            "amount": to_subunits(amount),
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        logger.info("[%s] Creating Razorpay order: receipt=%s amount=%s", request_id, receipt, body["amount"])

        try:
            order = await self._post_with_retry("/orders", body, request_id)
        except GatewayUnavailable as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Razorpay retries exhausted: %s", request_id, e)
            raise PaymentGatewayError(
                message="The payment gateway is temporarily unavailable. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            ) from e
        except PaymentGatewayError:
            # Gateway answered with a client error; it is up, so the breaker stays closed
            self.circuit_breaker.record_success()
            raise

        self.circuit_breaker.record_success()
        return order

    @retry(
        retry=retry_if_exception_type(GatewayUnavailable),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, path: str, body: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        start_time = time.time()
        try:
            response = await self.http.post(path, json=body)
        except httpx.TransportError as e:
            logger.warning("[%s] Razorpay transport error: %s", request_id, e)
            raise GatewayUnavailable(str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 500:
            logger.warning(
                "[%s] Razorpay returned %d after %.0fms", request_id, response.status_code, duration_ms
            )
            raise GatewayUnavailable(f"HTTP {response.status_code}")

        if response.status_code >= 400:
            description = _error_description(response)
            logger.error("[%s] Razorpay rejected request (%d): %s", request_id, response.status_code, description)
            raise PaymentGatewayError(
                message=f"Payment gateway rejected the request: {description}",
                context={"request_id": request_id, "gateway_status": response.status_code},
            )

        logger.info("[%s] Razorpay call completed in %.0fms", request_id, duration_ms)
        return response.json()


def _error_description(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("description") or response.text
    except ValueError:
        return response.text


razorpay_client = RazorpayClient()
