"""Payment order and transaction DTOs."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class OrderCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2, description="Amount in rupees")
    payee_id: int = Field(gt=0, description="Freelancer being paid")
    project_id: int = Field(gt=0)
    application_id: int = Field(gt=0)
    description: Optional[str] = None


class OrderResponse(BaseModel):
    """Gateway order plus the escrow transaction recorded for it."""
    order_id: str
    amount: int = Field(description="Amount in the currency's smallest unit (paise)")
    currency: str
    key_id: str = Field(description="Public gateway key for the checkout widget")
    transaction_id: int


class TransactionResponse(BaseModel):
    id: int
    transaction_type: str
    transaction_status: str
    project_id: Optional[int] = None
    application_id: Optional[int] = None
    payer_id: Optional[int] = None
    payee_id: Optional[int] = None
    amount: Decimal
    currency: str
    payment_gateway: str
    gateway_transaction_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WebhookAck(BaseModel):
    status: str = Field(default="ok")
    event: Optional[str] = None
    processed: bool = False
