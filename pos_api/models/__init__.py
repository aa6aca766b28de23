"""Application models package."""

from pos_api.models.audit_log import AuditLog
from pos_api.models.gift_card import GiftCard, GiftCardTransaction
from pos_api.models.menu import MenuItem, Modifier, ModifierGroup
from pos_api.models.order import Order, OrderItem, OrderItemModifier
from pos_api.models.payment import Payment
from pos_api.models.restaurant import DiningTable, Restaurant
from pos_api.models.user import Customer, User
from pos_api.models.voucher import Voucher, VoucherRedemption

__all__ = [
    "AuditLog", "Customer", "DiningTable", "GiftCard", "GiftCardTransaction", "MenuItem", "Modifier",
    "ModifierGroup", "Order", "OrderItem", "OrderItemModifier", "Payment", "Restaurant", "User", "Voucher",
    "VoucherRedemption",
]
