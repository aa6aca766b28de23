"""Order aggregate operations: creation, status changes and item mutation.

Every mutating function runs in exactly one :func:`unit_of_work` and loads the
order with a row lock. Notifications are published only after the commit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_api.core.errors import (
    InvalidStateTransition,
    LastItemRemoval,
    NotFound,
    OrderNotEditable,
    OrderNumberConflict,
)
from pos_api.core.security import AuthContext
from pos_api.db.session import unit_of_work
from pos_api.models.order import Order, OrderItem, OrderItemModifier
from pos_api.models.restaurant import Restaurant
from pos_api.schemas.order import OrderCreate, OrderItemPayload, OrderItemUpdate
from pos_api.services import audit_service, catalog, notifications, table_occupancy
from pos_api.services.order_status import (
    EDITABLE_ORDER_STATUSES,
    TERMINAL_ORDER_STATUSES,
    TRANSITION_CAPABILITY,
    derive_order_status,
    ensure_item_transition,
    ensure_transition,
    set_status,
)
from pos_api.services.pricing import Discount, PriceBreakdown, PriceLine, calculate
from pos_api.services.security_guards import ensure_can_access_order, ensure_capability, resolve_tenant
from pos_api.utils.time import Clock

logger = logging.getLogger(__name__)

Event = tuple[str, dict[str, Any]]

# Capability required to move an order item into each target status.
ITEM_TRANSITION_CAPABILITY: dict[str, str] = {
    "PREPARING": "KITCHEN",
    "READY": "KITCHEN",
    "SERVED": "TAKE_ORDERS",
    "CANCELLED": "TAKE_ORDERS",
}


class Publisher(Protocol):
    def publish(self, restaurant_id: int, event: str, payload: dict[str, Any]) -> None:
        ...


def publish_events(dispatcher: Publisher, restaurant_id: int, events: Sequence[Event]) -> None:
    """Hand committed events to the notification dispatcher."""
    for event, payload in events:
        dispatcher.publish(restaurant_id, event, payload)


def lock_order(db: Session, order_id: int) -> Order | None:
    """Load an order for mutation, refreshing any stale identity-map copy."""
    return db.scalar(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def load_order_for_update(db: Session, ctx: AuthContext, order_id: int) -> Order:
    """Lock an order and check the caller may act on it."""
    order: Order | None = lock_order(db, order_id)
    ensure_can_access_order(ctx, order, order_id)
    return order


def ensure_editable(order: Order) -> None:
    """Raise ``OrderNotEditable`` unless items may still change."""
    if order.status not in EDITABLE_ORDER_STATUSES:
        raise OrderNotEditable(
            f"Items cannot be changed while the order is {order.status}.",
            order_id=order.id,
            status=order.status,
            editable_statuses=sorted(EDITABLE_ORDER_STATUSES),
        )


def price_lines(order: Order) -> list[PriceLine]:
    """Pricing input for the order's non-cancelled lines."""
    return [
        PriceLine(
            unit_price=item.unit_price,
            quantity=item.quantity,
            modifier_prices=tuple(selected.price for selected in item.modifiers),
        )
        for item in order.items
        if item.status != "CANCELLED"
    ]


def reprice_order(order: Order) -> PriceBreakdown:
    """Recompute stored totals from the lines, re-applying an active voucher."""
    redemption = order.voucher_redemption
    discount: Discount | None = None
    if redemption is not None:
        discount = Discount(type=redemption.voucher.type, value=redemption.voucher.value)
    breakdown: PriceBreakdown = calculate(price_lines(order), order.restaurant.tax_rate, order.tip, discount)
    order.subtotal = breakdown.subtotal
    order.tax = breakdown.tax
    order.total = breakdown.total
    if redemption is not None:
        redemption.discount_amount = breakdown.discount
    return breakdown


def next_order_number(db: Session, restaurant: Restaurant, now: datetime) -> tuple[str, int]:
    """Next ``<PREFIX>-<YYYYMMDD>-<seq>`` number for the tenant's day."""
    current_max: int | None = db.scalar(
        select(func.max(Order.order_seq)).where(
            Order.restaurant_id == restaurant.id,
            Order.order_date == now.date(),
        )
    )
    seq: int = (current_max or 0) + 1
    return f"{restaurant.order_prefix}-{now:%Y%m%d}-{seq:04d}", seq


def build_order_item(db: Session, restaurant_id: int, payload: OrderItemPayload, now: datetime) -> OrderItem:
    """Validate a requested line against the catalog and snapshot its prices."""
    menu_item = catalog.get_available_menu_item(db, restaurant_id, payload.menu_item_id)
    modifiers = catalog.resolve_modifiers(db, menu_item, payload.modifier_ids)
    item = OrderItem(
        menu_item=menu_item,
        menu_item_id=menu_item.id,
        quantity=payload.quantity,
        unit_price=menu_item.price,
        notes=payload.notes,
        status="PENDING",
        created_at=now,
    )
    item.modifiers = [
        OrderItemModifier(modifier=modifier, modifier_id=modifier.id, price=modifier.price)
        for modifier in modifiers
    ]
    return item


def status_event(order: Order, old_status: str) -> Event:
    """``order:status-changed`` payload for a transition."""
    return (
        notifications.ORDER_STATUS_CHANGED,
        {
            "order_id": order.id,
            "order_number": order.order_number,
            "old_status": old_status,
            "new_status": order.status,
            "table_number": order.table_number,
        },
    )


def table_event(order: Order) -> Event:
    """``table:status-changed`` payload for the order's table."""
    return (
        notifications.TABLE_STATUS_CHANGED,
        {"table_id": order.table_id, "table_number": order.table_number, "status": order.table.status},
    )


def updated_event(order: Order) -> Event:
    """``order:updated`` payload with the current total."""
    return (
        notifications.ORDER_UPDATED,
        {"order_id": order.id, "order_number": order.order_number, "total": str(order.total)},
    )


def apply_status_change(
    db: Session,
    ctx: AuthContext,
    order: Order,
    new_status: str,
    now: datetime,
) -> list[Event]:
    """Validate and apply an order transition with all of its side effects.

    Must run inside the caller's unit of work; returns the events to publish
    once it commits.
    """
    ensure_transition(order.status, new_status)
    ensure_capability(ctx, TRANSITION_CAPABILITY[new_status])

    old_status: str = order.status
    before = audit_service.order_snapshot(order)
    set_status(order, new_status, now)
    events: list[Event] = [status_event(order, old_status)]

    if new_status in TERMINAL_ORDER_STATUSES and table_occupancy.on_order_terminal(db, order.table, order.id):
        events.append(table_event(order))

    audit_service.log_action(
        db,
        actor_user_id=ctx.user_id,
        action_type="ORDER_STATUS_CHANGED",
        restaurant_id=order.restaurant_id,
        order_id=order.id,
        before_snapshot=before,
        after_snapshot=audit_service.order_snapshot(order),
    )
    logger.info("[ORDERS] Order %s moved %s -> %s by user %s", order.order_number, old_status, new_status, ctx.user_id)
    return events


def apply_item_status_change(
    ctx: AuthContext,
    order: Order,
    item: OrderItem,
    new_status: str,
    now: datetime,
) -> list[Event]:
    """Change one item's status and promote the order if its items imply it."""
    ensure_editable(order)
    ensure_item_transition(item.status, new_status)
    ensure_capability(ctx, ITEM_TRANSITION_CAPABILITY[new_status])

    old_item_status: str = item.status
    item.status = new_status
    order.updated_at = now
    events: list[Event] = [
        (
            notifications.ORDER_ITEM_STATUS_CHANGED,
            {
                "order_id": order.id,
                "order_item_id": item.id,
                "old_status": old_item_status,
                "new_status": new_status,
            },
        )
    ]
    if new_status == "CANCELLED":
        reprice_order(order)

    derived: str = derive_order_status(order.status, [line.status for line in order.items])
    if derived != order.status:
        old_status: str = order.status
        set_status(order, derived, now)
        events.append(status_event(order, old_status))
    return events


def find_item(order: Order, item_id: int) -> OrderItem:
    """Line of the order with the given id."""
    for item in order.items:
        if item.id == item_id:
            return item
    raise NotFound("Order item not found on this order.", order_id=order.id, order_item_id=item_id)


def list_orders(
    db: Session,
    ctx: AuthContext,
    *,
    restaurant_id: int | None = None,
    status: str | None = None,
    order_type: str | None = None,
    table_id: int | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Order], int]:
    """Tenant-scoped order page, newest first."""
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    filters = [Order.restaurant_id == tenant_id]
    if status is not None:
        filters.append(Order.status == status)
    if order_type is not None:
        filters.append(Order.type == order_type)
    if table_id is not None:
        filters.append(Order.table_id == table_id)

    total: int = db.scalar(select(func.count(Order.id)).where(*filters)) or 0
    orders = db.scalars(
        select(Order).where(*filters).order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit)
    ).all()
    return list(orders), total


def get_order(db: Session, ctx: AuthContext, order_id: int) -> Order:
    """Load one order visible to the caller."""
    order: Order | None = db.get(Order, order_id)
    ensure_can_access_order(ctx, order, order_id)
    return order


def create_order(
    db: Session,
    ctx: AuthContext,
    payload: OrderCreate,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Validate, price and persist a new PENDING order."""
    ensure_capability(ctx, "TAKE_ORDERS")
    restaurant_id: int = resolve_tenant(ctx, payload.restaurant_id)
    now: datetime = clock.now()
    events: list[Event] = []

    with unit_of_work(db):
        restaurant: Restaurant = catalog.get_restaurant(db, restaurant_id)
        table = catalog.get_table(db, restaurant_id, payload.table_id) if payload.table_id is not None else None
        if payload.customer_id is not None:
            catalog.get_customer(db, payload.customer_id)

        items: list[OrderItem] = [build_order_item(db, restaurant_id, line, now) for line in payload.items]
        table_changed: bool = table_occupancy.on_order_created(db, table)
        order_number, seq = next_order_number(db, restaurant, now)
        order = Order(
            restaurant=restaurant,
            restaurant_id=restaurant_id,
            user_id=ctx.user_id,
            table=table,
            table_id=table.id if table is not None else None,
            customer_id=payload.customer_id,
            order_number=order_number,
            order_date=now.date(),
            order_seq=seq,
            status="PENDING",
            type=payload.type,
            notes=payload.notes,
            created_at=now,
            updated_at=now,
        )
        order.items = items
        reprice_order(order)
        db.add(order)

        try:
            db.flush()
        except IntegrityError as exc:
            logger.warning("[ORDERS] Order number %s already taken", order_number)
            raise OrderNumberConflict(
                "Order number collided with a concurrent order; retry the request.",
                order_number=order_number,
            ) from exc

        events.append(
            (
                notifications.ORDER_CREATED,
                {
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "status": order.status,
                    "table_number": order.table_number,
                    "total": str(order.total),
                },
            )
        )
        if table_changed:
            events.append(table_event(order))

    logger.info("[ORDERS] Created order %s for restaurant %s", order.order_number, restaurant_id)
    publish_events(dispatcher, restaurant_id, events)
    return order


def transition_order_status(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    new_status: str,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Move an order to a new status as one transaction."""
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        events: list[Event] = apply_status_change(db, ctx, order, new_status, clock.now())
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def cancel_order(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Cancel an order; its items are kept as they are."""
    return transition_order_status(db, ctx, order_id, "CANCELLED", clock=clock, dispatcher=dispatcher)


def add_order_items(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    items: Sequence[OrderItemPayload],
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Append lines to an editable order and reprice it."""
    ensure_capability(ctx, "TAKE_ORDERS")
    now: datetime = clock.now()
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        ensure_editable(order)
        for line in items:
            order.items.append(build_order_item(db, order.restaurant_id, line, now))
        reprice_order(order)
        order.updated_at = now
        events: list[Event] = [updated_event(order)]
    logger.info("[ORDERS] Added %s item(s) to order %s", len(items), order.order_number)
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def update_order_item(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    item_id: int,
    payload: OrderItemUpdate,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Change quantity, notes, modifiers and/or status of one line."""
    now: datetime = clock.now()
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        ensure_editable(order)
        item: OrderItem = find_item(order, item_id)
        events: list[Event] = []

        if payload.quantity is not None or "notes" in payload.model_fields_set or payload.modifier_ids is not None:
            ensure_capability(ctx, "TAKE_ORDERS")
            if item.status in ("SERVED", "CANCELLED"):
                raise InvalidStateTransition(
                    f"A {item.status} item can no longer be edited.",
                    order_item_id=item.id,
                    status=item.status,
                )
            if payload.quantity is not None:
                item.quantity = payload.quantity
            if "notes" in payload.model_fields_set:
                item.notes = payload.notes
            if payload.modifier_ids is not None:
                modifiers = catalog.resolve_modifiers(db, item.menu_item, payload.modifier_ids)
                # Old selections are deleted first; the flush inserts before it deletes.
                item.modifiers.clear()
                db.flush()
                item.modifiers = [
                    OrderItemModifier(modifier=modifier, modifier_id=modifier.id, price=modifier.price)
                    for modifier in modifiers
                ]
            reprice_order(order)
            order.updated_at = now

        if payload.status is not None and payload.status != item.status:
            events.extend(apply_item_status_change(ctx, order, item, payload.status, now))

        events.append(updated_event(order))
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def remove_order_item(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    item_id: int,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Delete a line from a PENDING order that has more than one line."""
    ensure_capability(ctx, "TAKE_ORDERS")
    now: datetime = clock.now()
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        if order.status != "PENDING":
            raise OrderNotEditable(
                f"Items can only be removed from PENDING orders, this order is {order.status}.",
                order_id=order.id,
                status=order.status,
            )
        item: OrderItem = find_item(order, item_id)
        if len(order.items) <= 1:
            raise LastItemRemoval(
                "Cannot remove the last item of an order; cancel the order instead.",
                order_id=order.id,
                order_item_id=item.id,
            )
        order.items.remove(item)
        reprice_order(order)
        order.updated_at = now
        events: list[Event] = [updated_event(order)]
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def set_order_tip(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    tip: Decimal,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Set or clear the tip of a non-terminal order."""
    ensure_capability(ctx, "TAKE_ORDERS")
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        if order.status in TERMINAL_ORDER_STATUSES:
            raise OrderNotEditable(
                f"Tip cannot be changed on a {order.status} order.",
                order_id=order.id,
                status=order.status,
            )
        order.tip = tip
        reprice_order(order)
        order.updated_at = clock.now()
        events: list[Event] = [updated_event(order)]
    publish_events(dispatcher, order.restaurant_id, events)
    return order
