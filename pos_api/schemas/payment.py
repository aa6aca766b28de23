"""Payment API schemas."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pos_api.schemas.common import Money, UTCDateTime


class PaymentCreate(BaseModel):
    """Payload for recording a non gift card payment."""

    order_id: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    method: Literal["CASH", "CREDIT_CARD", "DEBIT_CARD", "MOBILE_PAYMENT", "OTHER"]
    transaction_id: str | None = Field(default=None, max_length=128)


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    user_id: int
    amount: Money
    method: str
    status: str
    transaction_id: str | None = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class PaymentListResponse(BaseModel):
    """Page of payments."""

    items: list[PaymentResponse]
    total: int
    skip: int
    limit: int


class PaymentSummaryResponse(BaseModel):
    """Payments of one order with the outstanding balance."""

    order_id: int
    order_total: Money
    total_paid: Money
    remaining: Money
    is_fully_paid: bool
    payments: list[PaymentResponse]
