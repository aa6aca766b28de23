"""Order API schemas."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pos_api.models.order import Order, OrderItem
from pos_api.schemas.common import Money, OptionalMoney, OptionalUTCDateTime, UTCDateTime

OrderStatus = Literal["PENDING", "PREPARING", "READY", "SERVED", "COMPLETED", "CANCELLED"]
OrderType = Literal["DINE_IN", "TAKEOUT", "DELIVERY", "ONLINE"]
OrderItemStatus = Literal["PENDING", "PREPARING", "READY", "SERVED", "CANCELLED"]


class OrderItemPayload(BaseModel):
    """Single order item payload."""

    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None
    modifier_ids: list[int] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Create an order with at least one item."""

    items: list[OrderItemPayload] = Field(min_length=1)
    type: OrderType = "DINE_IN"
    table_id: int | None = None
    customer_id: int | None = None
    notes: str | None = None
    restaurant_id: int | None = None


class OrderItemsAdd(BaseModel):
    items: list[OrderItemPayload] = Field(min_length=1)


class OrderItemUpdate(BaseModel):
    """Partial update of one order line."""

    quantity: int | None = Field(default=None, ge=1)
    notes: str | None = None
    status: OrderItemStatus | None = None
    modifier_ids: list[int] | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderTipUpdate(BaseModel):
    tip: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class OrderItemModifierResponse(BaseModel):
    id: int
    modifier_id: int
    name: str
    price: Money


class OrderItemResponse(BaseModel):
    """Serialized order item."""

    id: int
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Money
    notes: str | None = None
    status: str
    modifiers: list[OrderItemModifierResponse]

    @classmethod
    def from_item(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            id=item.id,
            menu_item_id=item.menu_item_id,
            name=item.menu_item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            notes=item.notes,
            status=item.status,
            modifiers=[
                OrderItemModifierResponse(
                    id=selected.id,
                    modifier_id=selected.modifier_id,
                    name=selected.modifier.name,
                    price=selected.price,
                )
                for selected in item.modifiers
            ],
        )


class AppliedVoucherResponse(BaseModel):
    code: str
    type: str
    value: Money
    discount_amount: Money


class OrderResponse(BaseModel):
    """Serialized order."""

    id: int
    order_number: str
    restaurant_id: int
    status: str
    type: str
    table_id: int | None = None
    table_number: int | None = None
    customer_id: int | None = None
    user_id: int
    subtotal: Money
    tax: Money
    tip: OptionalMoney = None
    total: Money
    notes: str | None = None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    completed_at: OptionalUTCDateTime = None
    items: list[OrderItemResponse]
    voucher: AppliedVoucherResponse | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        redemption = order.voucher_redemption
        voucher: AppliedVoucherResponse | None = None
        if redemption is not None:
            voucher = AppliedVoucherResponse(
                code=redemption.voucher.code,
                type=redemption.voucher.type,
                value=redemption.voucher.value,
                discount_amount=redemption.discount_amount,
            )
        return cls(
            id=order.id,
            order_number=order.order_number,
            restaurant_id=order.restaurant_id,
            status=order.status,
            type=order.type,
            table_id=order.table_id,
            table_number=order.table_number,
            customer_id=order.customer_id,
            user_id=order.user_id,
            subtotal=order.subtotal,
            tax=order.tax,
            tip=order.tip,
            total=order.total,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            completed_at=order.completed_at,
            items=[OrderItemResponse.from_item(item) for item in order.items],
            voucher=voucher,
        )


class OrderListResponse(BaseModel):
    """Page of orders."""

    items: list[OrderResponse]
    total: int
    skip: int
    limit: int

    model_config = ConfigDict(from_attributes=True)
