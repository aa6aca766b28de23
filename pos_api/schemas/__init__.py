"""Schema exports."""

from pos_api.schemas.auth import AuthContextResponse, LoginRequest, TokenResponse
from pos_api.schemas.gift_card import GiftCardCreate, GiftCardResponse
from pos_api.schemas.kitchen import KitchenOrderResponse, KitchenStatsResponse
from pos_api.schemas.order import OrderCreate, OrderItemPayload, OrderItemUpdate, OrderResponse
from pos_api.schemas.payment import PaymentCreate, PaymentResponse
from pos_api.schemas.voucher import VoucherCreate, VoucherResponse

__all__ = [
    "AuthContextResponse",
    "LoginRequest",
    "TokenResponse",
    "GiftCardCreate",
    "GiftCardResponse",
    "KitchenOrderResponse",
    "KitchenStatsResponse",
    "OrderCreate",
    "OrderItemPayload",
    "OrderItemUpdate",
    "OrderResponse",
    "PaymentCreate",
    "PaymentResponse",
    "VoucherCreate",
    "VoucherResponse",
]
