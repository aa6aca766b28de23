"""Voucher API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pos_api.schemas.common import Money, UTCDateTime


class VoucherCreate(BaseModel):
    """Payload for creating a voucher; the code is generated when omitted."""

    code: str | None = Field(default=None, min_length=3, max_length=64)
    type: Literal["PERCENTAGE", "FIXED_AMOUNT", "FREE_ITEM"]
    value: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    min_purchase: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    start_date: datetime | None = None
    expiry_date: datetime
    usage_limit: int | None = Field(default=None, ge=1)
    is_active: bool = True
    restaurant_id: int | None = None


class VoucherResponse(BaseModel):
    id: int
    restaurant_id: int
    code: str
    type: str
    value: Money
    min_purchase: Money
    is_active: bool
    start_date: UTCDateTime
    expiry_date: UTCDateTime
    usage_limit: int | None = None
    usage_count: int
    remaining_uses: int | None = None

    model_config = ConfigDict(from_attributes=True)


class VoucherUpdate(BaseModel):
    """Editable voucher terms; the code, type and usage count are fixed."""

    value: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    min_purchase: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class VoucherRedemptionResponse(BaseModel):
    id: int
    order_id: int
    user_id: int
    discount_amount: Money
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class VoucherDetailResponse(VoucherResponse):
    redemptions: list[VoucherRedemptionResponse]


class VoucherValidateRequest(BaseModel):
    code: str
    amount: Decimal | None = Field(default=None, ge=0)
    restaurant_id: int | None = None


class VoucherValidateResponse(BaseModel):
    """Preview of what a voucher would deduct."""

    valid: bool = True
    voucher: VoucherResponse
    amount: Money
    discount: Money
    discounted_amount: Money


class VoucherApplyRequest(BaseModel):
    order_id: int
    code: str
