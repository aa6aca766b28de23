"""Gift card API schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from pos_api.schemas.common import Money, OptionalUTCDateTime, UTCDateTime


class GiftCardCreate(BaseModel):
    """Payload for issuing a gift card."""

    initial_balance: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    code: str | None = Field(default=None, min_length=4, max_length=32)
    customer_id: int | None = None
    expiry_date: datetime | None = None
    restaurant_id: int | None = None


class GiftCardRedeemRequest(BaseModel):
    code: str
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    order_id: int | None = None


class GiftCardAddFundsRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    notes: str | None = None


class GiftCardStatusUpdate(BaseModel):
    is_active: bool


class GiftCardTransactionResponse(BaseModel):
    id: int
    type: str
    amount: Money
    payment_id: int | None = None
    user_id: int
    notes: str | None = None
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class GiftCardResponse(BaseModel):
    id: int
    restaurant_id: int
    customer_id: int | None = None
    code: str
    initial_balance: Money
    current_balance: Money
    is_active: bool
    expiry_date: OptionalUTCDateTime = None
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class GiftCardDetailResponse(GiftCardResponse):
    """Card with its full ledger."""

    transactions: list[GiftCardTransactionResponse]


class GiftCardListResponse(BaseModel):
    """Page of gift cards."""

    items: list[GiftCardResponse]
    total: int
    skip: int
    limit: int


class GiftCardBalanceResponse(BaseModel):
    code: str
    current_balance: Money
    is_active: bool
    expiry_date: OptionalUTCDateTime = None

    model_config = ConfigDict(from_attributes=True)


class GiftCardRedeemResponse(BaseModel):
    gift_card: GiftCardResponse
    transaction: GiftCardTransactionResponse
    payment_id: int | None = None
