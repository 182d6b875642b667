"""
Marketplace Backend — Payment Transaction Model
================================================

What:  Ledger row for money moving through the payment gateway.
Who:   PaymentService (writes escrow rows when an order is created) and
       WebhookService (moves them to completed / failed).

Lifecycle:
    create_order  → escrow / pending   (gateway_transaction_id = order id)
    payment.captured webhook → completed (gateway_payment_id recorded)
    payment.failed   webhook → failed
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database import Base
from marketplace.models.base import TimestampMixin


class TransactionType:
    ESCROW = "escrow"
    PAYOUT = "payout"
    REFUND = "refund"


class TransactionStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, COMPLETED, FAILED)


class Transaction(TimestampMixin, Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING
    )
    project_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("projects_task.projects_task_id", ondelete="CASCADE"), nullable=True, index=True
    )
    application_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("applied_projects.applied_projects_id", ondelete="CASCADE"), nullable=True
    )
    payer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=True, index=True
    )
    payee_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    payment_gateway: Mapped[str] = mapped_column(String(50), nullable=False, default="razorpay")
    # Gateway order id; the webhook matches on this
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    gateway_payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, type='{self.transaction_type}', "
            f"status='{self.transaction_status}')>"
        )
