"""Kitchen display projection and kitchen-side status updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_api.core.config import settings
from pos_api.core.errors import InvalidStateTransition, NotFound
from pos_api.core.security import AuthContext
from pos_api.db.session import unit_of_work
from pos_api.models.order import ORDER_STATUSES, Order, OrderItem
from pos_api.services.order_service import (
    Event,
    Publisher,
    apply_item_status_change,
    apply_status_change,
    load_order_for_update,
    publish_events,
)
from pos_api.services.order_status import KITCHEN_ORDER_STATUSES
from pos_api.services.security_guards import ensure_capability, resolve_tenant
from pos_api.utils.time import Clock, day_window, ensure_utc, minutes_between

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KitchenItemView:
    id: int
    name: str
    quantity: int
    status: str
    notes: str | None
    modifiers: str
    preparation_time: int


@dataclass(frozen=True)
class KitchenOrderView:
    id: int
    order_number: str
    status: str
    type: str
    table_number: int | None
    server_name: str
    notes: str | None
    created_at: datetime
    order_age: int
    estimated_prep_time: int
    is_overdue: bool
    items: list[KitchenItemView]


@dataclass(frozen=True)
class WaitingOrder:
    id: int
    order_number: str
    created_at: datetime
    wait_time_minutes: int


@dataclass(frozen=True)
class KitchenStats:
    pending: int
    preparing: int
    ready: int
    completed: int
    average_prep_time_minutes: int
    oldest_pending: WaitingOrder | None
    oldest_preparing: WaitingOrder | None


def project_order(order: Order, now: datetime) -> KitchenOrderView:
    """Kitchen view of one order: age, estimate and overdue flag."""
    items: list[KitchenItemView] = [
        KitchenItemView(
            id=item.id,
            name=item.menu_item.name,
            quantity=item.quantity,
            status=item.status,
            notes=item.notes,
            modifiers=", ".join(selected.modifier.name for selected in item.modifiers),
            preparation_time=item.menu_item.preparation_time or settings.default_prep_time_minutes,
        )
        for item in order.items
    ]
    estimate: int = max((item.preparation_time for item in items), default=settings.default_prep_time_minutes)
    age: int = minutes_between(order.created_at, now)
    return KitchenOrderView(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        type=order.type,
        table_number=order.table_number,
        server_name=order.user.full_name,
        notes=order.notes,
        created_at=ensure_utc(order.created_at),
        order_age=age,
        estimated_prep_time=estimate,
        is_overdue=age > estimate and order.status != "READY",
        items=items,
    )


def list_kitchen_orders(
    db: Session,
    ctx: AuthContext,
    *,
    status: str | None = None,
    restaurant_id: int | None = None,
    clock: Clock,
) -> list[KitchenOrderView]:
    """Active kitchen orders, oldest first."""
    ensure_capability(ctx, "KITCHEN")
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    statuses: tuple[str, ...] = (status,) if status is not None else KITCHEN_ORDER_STATUSES
    orders = db.scalars(
        select(Order)
        .where(Order.restaurant_id == tenant_id, Order.status.in_(statuses))
        .order_by(Order.created_at.asc(), Order.id.asc())
    ).all()
    now: datetime = clock.now()
    return [project_order(order, now) for order in orders]


def advance_kitchen_order(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    new_status: str,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Move an order to PREPARING or READY from the kitchen display."""
    ensure_capability(ctx, "KITCHEN")
    if new_status not in ("PREPARING", "READY"):
        raise InvalidStateTransition(
            "The kitchen can only move orders to PREPARING or READY.",
            requested_status=new_status,
        )
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        events: list[Event] = apply_status_change(db, ctx, order, new_status, clock.now())
    logger.info("[KITCHEN] Order %s now %s", order.order_number, new_status)
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def update_item_status(
    db: Session,
    ctx: AuthContext,
    order_item_id: int,
    new_status: str,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> OrderItem:
    """Change one item's status; the order follows when all items agree."""
    with unit_of_work(db):
        item: OrderItem | None = db.get(OrderItem, order_item_id)
        if item is None:
            raise NotFound("Order item not found.", order_item_id=order_item_id)
        order: Order = load_order_for_update(db, ctx, item.order_id)
        db.refresh(item)
        events: list[Event] = apply_item_status_change(ctx, order, item, new_status, clock.now())
    logger.info("[KITCHEN] Item %s of order %s now %s", order_item_id, order.order_number, new_status)
    publish_events(dispatcher, order.restaurant_id, events)
    return item


def _oldest(db: Session, tenant_id: int, status: str, now: datetime) -> WaitingOrder | None:
    order: Order | None = db.scalar(
        select(Order)
        .where(Order.restaurant_id == tenant_id, Order.status == status)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .limit(1)
    )
    if order is None:
        return None
    return WaitingOrder(
        id=order.id,
        order_number=order.order_number,
        created_at=ensure_utc(order.created_at),
        wait_time_minutes=minutes_between(order.created_at, now),
    )


def kitchen_stats(
    db: Session,
    ctx: AuthContext,
    *,
    restaurant_id: int | None = None,
    clock: Clock,
) -> KitchenStats:
    """Today's counts per status, average completion time and longest waits."""
    ensure_capability(ctx, "KITCHEN")
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    now: datetime = clock.now()
    start, end = day_window(now)
    today = (Order.restaurant_id == tenant_id, Order.created_at >= start, Order.created_at < end)

    counts: dict[str, int] = {status: 0 for status in ORDER_STATUSES}
    for status, count in db.execute(
        select(Order.status, func.count(Order.id)).where(*today).group_by(Order.status)
    ).all():
        counts[status] = count

    completed = db.scalars(
        select(Order).where(*today, Order.status == "COMPLETED", Order.completed_at.is_not(None))
    ).all()
    average: int = 0
    if completed:
        total_seconds: float = sum(
            (ensure_utc(order.completed_at) - ensure_utc(order.created_at)).total_seconds() for order in completed
        )
        average = round(total_seconds / len(completed) / 60)

    return KitchenStats(
        pending=counts["PENDING"],
        preparing=counts["PREPARING"],
        ready=counts["READY"],
        completed=counts["COMPLETED"],
        average_prep_time_minutes=average,
        oldest_pending=_oldest(db, tenant_id, "PENDING", now),
        oldest_preparing=_oldest(db, tenant_id, "PREPARING", now),
    )
