"""
Marketplace Backend — Payment and Webhook Services
===================================================

What:  Escrow orders through Razorpay and the webhook that settles them.
Why:   The client pays into escrow up front; the row is only marked paid
       when Razorpay itself confirms the capture, never on the browser's word.
How:   create_order() calls the gateway first and records a pending row
       keyed by the gateway order id; the webhook moves that row on.
Who:   Payments router (orders, history) and the webhook router.
When:  Orders on client checkout; webhooks whenever Razorpay delivers them,
       possibly more than once and out of order.

Escrow Flow:
    ┌────────────┐   create_order   ┌──────────────┐   checkout   ┌──────────┐
    │   Client   │ ───────────────▶ │ Razorpay API │ ───────────▶ │ Razorpay │
    └────────────┘                  └──────────────┘              └────┬─────┘
          ▲   escrow / pending row (gateway_transaction_id = order id)  │
          │                                                            ▼
          └──────── POST /webhook/razorpay  payment.captured → completed
                                            payment.failed   → failed

Webhook trust:
    The X-Razorpay-Signature header must equal HMAC-SHA256(secret, raw body)
    in hex. The raw bytes are verified before the JSON is parsed, and the
    comparison is constant-time.

Webhook idempotency:
    payment.captured on a completed row is a no-op (processed=False), and
    payment.failed never downgrades a completed row. Redeliveries are safe.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth import CurrentUser, load_role_names
from marketplace.config import settings
from marketplace.exceptions import (
    MarketplaceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    WebhookSignatureError,
)
from marketplace.models.base import utcnow
from marketplace.models.project import AppliedProject, ProjectTask
from marketplace.models.transaction import Transaction, TransactionStatus, TransactionType
from marketplace.models.user import FREELANCER_ROLES, User
from marketplace.schemas.payment import OrderCreate, OrderResponse, WebhookAck
from marketplace.services.notification_service import notification_service
from marketplace.services.razorpay_client import RazorpayClient, razorpay_client

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, gateway: RazorpayClient):
        self.gateway = gateway

    async def create_order(
        self, db: AsyncSession, user: CurrentUser, data: OrderCreate
    ) -> OrderResponse:
        """
        Open an escrow payment from the calling client to a freelancer.

        Raises:
            NotFoundError:         payee, project or application missing
            PermissionDeniedError: payee holds no freelancer role
            PaymentGatewayError / CircuitBreakerOpenError: gateway failures
        """
        payee = await db.get(User, data.payee_id)
        if payee is None or payee.is_deleted:
            raise NotFoundError(resource="payee", resource_id=data.payee_id)

        project = await db.get(ProjectTask, data.project_id)
        if project is None or project.is_deleted:
            raise NotFoundError(resource="project", resource_id=data.project_id)

        application = await db.get(AppliedProject, data.application_id)
        if application is None or application.is_deleted:
            raise NotFoundError(resource="application", resource_id=data.application_id)

        payee_roles = await load_role_names(db, payee.user_id)
        if not any(role in FREELANCER_ROLES for role in payee_roles):
            raise PermissionDeniedError("Payments can only be made to freelancers")

        # Why: gateway first. A failed call leaves no orphan pending row behind
        currency = settings.payment_currency
        order = await self.gateway.create_order(
            amount=data.amount,
            currency=currency,
            receipt=f"project_{project.projects_task_id}_app_{application.applied_projects_id}",
            notes={
                "type": "escrow",
                "payer_id": str(user.user_id),
                "payee_id": str(payee.user_id),
                "project_id": str(project.projects_task_id),
            },
        )

        transaction = Transaction(
            transaction_type=TransactionType.ESCROW,
            transaction_status=TransactionStatus.PENDING,
            project_id=project.projects_task_id,
            application_id=application.applied_projects_id,
            payer_id=user.user_id,
            payee_id=payee.user_id,
            amount=data.amount,
            currency=currency,
            payment_gateway="razorpay",
            gateway_transaction_id=order["id"],
            description=data.description,
        )
        db.add(transaction)
        await db.flush()
        logger.info(
            "Escrow order %s created for project %s (transaction %s)",
            order["id"], project.projects_task_id, transaction.id,
        )

        return OrderResponse(
            order_id=order["id"],
            amount=order.get("amount", 0),
            currency=order.get("currency", currency),
            key_id=settings.razorpay_key_id,
            transaction_id=transaction.id,
        )

    async def history(self, db: AsyncSession, status: Optional[str] = None) -> List[Transaction]:
        query = select(Transaction)
        if status is not None:
            query = query.where(Transaction.transaction_status == status)
        result = await db.execute(query.order_by(Transaction.created_at.desc(), Transaction.id.desc()))
        return list(result.scalars().all())

    async def my_history(
        self, db: AsyncSession, user: CurrentUser, status: Optional[str] = None
    ) -> List[Transaction]:
        """Clients see what they paid, freelancers what they were paid; users with both roles see both."""
        if status is not None and status not in TransactionStatus.ALL:
            raise ValidationError(
                f"Status must be one of: {', '.join(TransactionStatus.ALL)}", field="status"
            )

        sides = []
        if user.has_role("CLIENT"):
            sides.append(Transaction.payer_id == user.user_id)
        if user.has_role(*FREELANCER_ROLES):
            sides.append(Transaction.payee_id == user.user_id)
        if not sides:
            sides = [Transaction.payer_id == user.user_id, Transaction.payee_id == user.user_id]

        query = select(Transaction).where(or_(*sides))
        if status is not None:
            query = query.where(Transaction.transaction_status == status)
        result = await db.execute(query.order_by(Transaction.created_at.desc(), Transaction.id.desc()))
        return list(result.scalars().all())

    async def project_transactions(self, db: AsyncSession, project_id: int) -> List[Transaction]:
        project = await db.get(ProjectTask, project_id)
        if project is None:
            raise NotFoundError(resource="project", resource_id=project_id)
        result = await db.execute(
            select(Transaction)
            .where(Transaction.project_id == project_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        return list(result.scalars().all())


class WebhookService:
    """
    Verifies and applies Razorpay webhook events.

    Every signed body is shape-checked before use; a malformed one is a
    400 validation_error, not a 500.
    """

    HANDLED_EVENTS = ("payment.captured", "payment.failed")

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        secret = settings.razorpay_webhook_secret
        if not secret:
            logger.error("RAZORPAY_WEBHOOK_SECRET not configured; refusing webhook")
            raise MarketplaceError("Webhook secret not configured")
        if not signature:
            logger.warning("Webhook rejected: missing signature")
            raise WebhookSignatureError("Missing signature")

        expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, signature):
            logger.warning("Webhook rejected: invalid signature")
            raise WebhookSignatureError("Invalid signature")

    async def handle(self, db: AsyncSession, raw_body: bytes, signature: Optional[str]) -> WebhookAck:
        self.verify_signature(raw_body, signature)

        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise ValidationError("Webhook body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("Webhook body must be a JSON object")

        event = payload.get("event")
        if event is not None and not isinstance(event, str):
            raise ValidationError("Webhook event must be a string", field="event")
        logger.info("Webhook received: %s", event)
        if event not in self.HANDLED_EVENTS:
            return WebhookAck(event=event, processed=False)

        payment = self._payment_entity(payload)
        order_id = payment.get("order_id")
        if not order_id or not isinstance(order_id, str):
            raise ValidationError("Webhook payment entity has no order_id")
        payment_id = payment.get("id")
        if payment_id is not None and not isinstance(payment_id, str):
            raise ValidationError("Webhook payment id must be a string")

        if event == "payment.captured":
            processed = await self._mark_captured(db, order_id, payment_id)
        else:
            processed = await self._mark_failed(db, order_id, payment_id)
        return WebhookAck(event=event, processed=processed)

    @staticmethod
    def _payment_entity(payload: Dict[str, Any]) -> Dict[str, Any]:
        """payload.payment.entity, with every level required to be an object."""
        node: Any = payload
        for key in ("payload", "payment", "entity"):
            node = node.get(key)
            if not isinstance(node, dict):
                raise ValidationError(f"Webhook field '{key}' is missing or not an object")
        return node

    async def _find(self, db: AsyncSession, order_id: str) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(Transaction.gateway_transaction_id == order_id)
        )
        return result.scalars().first()

    async def _mark_captured(self, db: AsyncSession, order_id: str, payment_id: Optional[str]) -> bool:
        transaction = await self._find(db, order_id)
        if transaction is None:
            logger.warning("payment.captured for unknown order %s", order_id)
            return False
        if transaction.transaction_status == TransactionStatus.COMPLETED:
            logger.info("Order %s already completed; duplicate delivery ignored", order_id)
            return False

        transaction.transaction_status = TransactionStatus.COMPLETED
        transaction.gateway_payment_id = payment_id
        transaction.completed_at = utcnow()
        await db.flush()
        logger.info("Escrow payment captured: order %s, payment %s", order_id, payment_id)

        if transaction.payee_id is not None:
            await notification_service.notify(
                db,
                user_id=transaction.payee_id,
                title="Payment Received in Escrow",
                message=f"A payment of {transaction.amount} {transaction.currency} has been secured for your project.",
                type="payment",
                related_id=transaction.project_id,
                related_type="projects_task",
            )
        return True

    async def _mark_failed(self, db: AsyncSession, order_id: str, payment_id: Optional[str]) -> bool:
        transaction = await self._find(db, order_id)
        if transaction is None:
            logger.warning("payment.failed for unknown order %s", order_id)
            return False
        if transaction.transaction_status == TransactionStatus.COMPLETED:
            # A captured payment is final; a late failure event for another attempt does not undo it
            return False

        transaction.transaction_status = TransactionStatus.FAILED
        transaction.gateway_payment_id = payment_id
        await db.flush()
        logger.info("Payment failed for order %s", order_id)
        return True


payment_service = PaymentService(razorpay_client)
webhook_service = WebhookService()
