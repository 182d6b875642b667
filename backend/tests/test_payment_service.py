"""
Marketplace Backend — Payment and Webhook Service Tests
========================================================

What we test:
    ✅ Escrow order creation records a pending transaction
    ✅ Payee must hold a freelancer role
    ✅ Webhook signature: missing / wrong / correct, unconfigured secret
    ✅ payment.captured is idempotent and notifies the payee
    ✅ payment.failed never downgrades a completed transaction
    ✅ Unknown events are acknowledged but not processed
    ✅ Signed bodies of the wrong shape → ValidationError, never a 500
"""

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from marketplace.config import settings
from marketplace.exceptions import (
    MarketplaceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    WebhookSignatureError,
)
from marketplace.models import Notification
from marketplace.models.transaction import Transaction, TransactionStatus, TransactionType
from marketplace.schemas.payment import OrderCreate
from marketplace.schemas.project import ApplicationCreate, ProjectCreate
from marketplace.services.application_service import application_service
from marketplace.services.payment_service import PaymentService, WebhookService
from marketplace.services.project_service import project_service


def _sign(body: bytes, secret: str = "whsec_test") -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _event(event: str, order_id: str = "order_1", payment_id: str = "pay_1") -> bytes:
    return json.dumps({
        "event": event,
        "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id}}},
    }).encode("utf-8")


async def _pending_transaction(db, payer_id, payee_id, order_id="order_1"):
    transaction = Transaction(
        transaction_type=TransactionType.ESCROW,
        transaction_status=TransactionStatus.PENDING,
        payer_id=payer_id,
        payee_id=payee_id,
        amount=Decimal("1500.00"),
        currency="INR",
        gateway_transaction_id=order_id,
    )
    db.add(transaction)
    await db.flush()
    return transaction


class TestCreateOrder:
    def setup_method(self):
        self.gateway = AsyncMock()
        self.gateway.create_order.return_value = {"id": "order_xyz", "amount": 150000, "currency": "INR"}
        self.service = PaymentService(self.gateway)

    async def _setup(self, db, make_user, payee_roles):
        _, client = await make_user(roles=["CLIENT"])
        payee, payee_user = await make_user(roles=payee_roles)
        project = await project_service.create_project(
            db, client, ProjectCreate(project_title="Launch film", budget=Decimal("1500"))
        )
        application, _ = await application_service.apply(
            db, payee_user, ApplicationCreate(projects_task_id=project.projects_task_id)
        )
        data = OrderCreate(
            amount=Decimal("1500.00"),
            payee_id=payee.user_id,
            project_id=project.projects_task_id,
            application_id=application.applied_projects_id,
        )
        return client, data

    @pytest.mark.asyncio
    async def test_records_pending_escrow(self, db_session, make_user):
        client, data = await self._setup(db_session, make_user, ["VIDEOGRAPHER"])

        response = await self.service.create_order(db_session, client, data)

        assert response.order_id == "order_xyz"
        assert response.amount == 150000
        assert response.key_id == settings.razorpay_key_id

        transaction = await db_session.get(Transaction, response.transaction_id)
        assert transaction.transaction_status == TransactionStatus.PENDING
        assert transaction.transaction_type == TransactionType.ESCROW
        assert transaction.gateway_transaction_id == "order_xyz"
        assert transaction.payer_id == client.user_id

        kwargs = self.gateway.create_order.await_args.kwargs
        assert kwargs["receipt"] == f"project_{data.project_id}_app_{data.application_id}"
        assert kwargs["notes"]["type"] == "escrow"

    @pytest.mark.asyncio
    async def test_payee_must_be_freelancer(self, db_session, make_user):
        client, data = await self._setup(db_session, make_user, ["CLIENT"])

        with pytest.raises(PermissionDeniedError):
            await self.service.create_order(db_session, client, data)
        self.gateway.create_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_payee(self, db_session, make_user):
        client, data = await self._setup(db_session, make_user, ["VIDEO_EDITOR"])

        with pytest.raises(NotFoundError):
            await self.service.create_order(db_session, client, data.model_copy(update={"payee_id": 999}))


class TestWebhookSignature:
    def setup_method(self):
        self.service = WebhookService()

    def test_missing_signature(self):
        with pytest.raises(WebhookSignatureError):
            self.service.verify_signature(b"{}", None)

    def test_invalid_signature(self):
        body = _event("payment.captured")
        with pytest.raises(WebhookSignatureError):
            self.service.verify_signature(body, _sign(body, "another-secret"))

    def test_signature_covers_raw_bytes(self):
        body = _event("payment.captured")
        self.service.verify_signature(body, _sign(body))

        # Same JSON, different bytes
        reformatted = json.dumps(json.loads(body), indent=2).encode("utf-8")
        with pytest.raises(WebhookSignatureError):
            self.service.verify_signature(reformatted, _sign(body))

    def test_unconfigured_secret_is_server_error(self):
        with patch.object(settings, "razorpay_webhook_secret", ""):
            with pytest.raises(MarketplaceError) as exc_info:
                self.service.verify_signature(b"{}", "anything")
        assert exc_info.value.status_code == 500


class TestWebhookEvents:
    def setup_method(self):
        self.service = WebhookService()

    @pytest.mark.asyncio
    async def test_captured_is_idempotent(self, db_session, make_user):
        payer, _ = await make_user(roles=["CLIENT"])
        payee, _ = await make_user(roles=["VIDEOGRAPHER"])
        transaction = await _pending_transaction(db_session, payer.user_id, payee.user_id)
        body = _event("payment.captured")

        first = await self.service.handle(db_session, body, _sign(body))
        second = await self.service.handle(db_session, body, _sign(body))

        assert first.processed is True
        assert second.processed is False
        assert transaction.transaction_status == TransactionStatus.COMPLETED
        assert transaction.gateway_payment_id == "pay_1"
        assert transaction.completed_at is not None

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == payee.user_id, Notification.type == "payment")
        )
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_failed_does_not_override_completed(self, db_session, make_user):
        payer, _ = await make_user(roles=["CLIENT"])
        payee, _ = await make_user(roles=["VIDEOGRAPHER"])
        transaction = await _pending_transaction(db_session, payer.user_id, payee.user_id)

        captured = _event("payment.captured")
        await self.service.handle(db_session, captured, _sign(captured))
        failed = _event("payment.failed", payment_id="pay_2")
        ack = await self.service.handle(db_session, failed, _sign(failed))

        assert ack.processed is False
        assert transaction.transaction_status == TransactionStatus.COMPLETED
        assert transaction.gateway_payment_id == "pay_1"

    @pytest.mark.asyncio
    async def test_failed_marks_pending_failed(self, db_session, make_user):
        payer, _ = await make_user(roles=["CLIENT"])
        transaction = await _pending_transaction(db_session, payer.user_id, None, order_id="order_9")
        body = _event("payment.failed", order_id="order_9")

        ack = await self.service.handle(db_session, body, _sign(body))

        assert ack.processed is True
        assert transaction.transaction_status == TransactionStatus.FAILED

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(self, db_session):
        body = json.dumps({"event": "refund.created", "payload": {}}).encode("utf-8")
        ack = await self.service.handle(db_session, body, _sign(body))
        assert ack.event == "refund.created"
        assert ack.processed is False

    @pytest.mark.asyncio
    async def test_unknown_order_not_processed(self, db_session):
        body = _event("payment.captured", order_id="order_missing")
        ack = await self.service.handle(db_session, body, _sign(body))
        assert ack.processed is False


class TestWebhookPayloadShape:
    def setup_method(self):
        self.service = WebhookService()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"[1, 2]",
            b'"payment.captured"',
            b'{"event": "payment.captured", "payload": {"payment": null}}',
            b'{"event": "payment.captured", "payload": []}',
            b'{"event": "payment.failed", "payload": {"payment": {"entity": "order_1"}}}',
            b'{"event": ["payment.captured"]}',
            b'{"event": "payment.captured", "payload": {"payment": {"entity": {"order_id": 17}}}}',
        ],
    )
    async def test_malformed_signed_body_is_validation_error(self, db_session, body):
        with pytest.raises(ValidationError):
            await self.service.handle(db_session, body, _sign(body))

    @pytest.mark.asyncio
    async def test_malformed_body_over_http_is_400(self, test_client):
        body = b'{"event": "payment.captured", "payload": {"payment": null}}'
        response = await test_client.post(
            "/api/v1/webhook/razorpay", content=body, headers={"X-Razorpay-Signature": _sign(body)}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
