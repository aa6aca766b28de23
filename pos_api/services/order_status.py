"""Order and order item status transition helpers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pos_api.core.errors import InvalidStateTransition
from pos_api.models.order import ORDER_ITEM_STATUSES, ORDER_STATUSES, Order, OrderItem

ACTIVE_ORDER_STATUSES: frozenset[str] = frozenset({"PENDING", "PREPARING", "READY", "SERVED"})
TERMINAL_ORDER_STATUSES: frozenset[str] = frozenset({"COMPLETED", "CANCELLED"})
EDITABLE_ORDER_STATUSES: frozenset[str] = frozenset({"PENDING", "PREPARING", "READY"})
KITCHEN_ORDER_STATUSES: tuple[str, ...] = ("PENDING", "PREPARING", "READY")

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"PREPARING", "CANCELLED"},
    "PREPARING": {"READY", "CANCELLED"},
    "READY": {"SERVED", "CANCELLED"},
    "SERVED": {"COMPLETED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}

# Capability required to move an order into each target status.
TRANSITION_CAPABILITY: dict[str, str] = {
    "PREPARING": "KITCHEN",
    "READY": "KITCHEN",
    "SERVED": "TAKE_ORDERS",
    "COMPLETED": "TAKE_ORDERS",
    "CANCELLED": "MANAGE_ORDERS",
}

ITEM_STATUS_RANK: dict[str, int] = {"PENDING": 0, "PREPARING": 1, "READY": 2, "SERVED": 3}
FINAL_ITEM_STATUSES: frozenset[str] = frozenset({"SERVED", "CANCELLED"})

# Order statuses that mirror onto items sitting in the preceding status.
_CASCADE_FROM: dict[str, str] = {"PREPARING": "PENDING", "READY": "PREPARING"}


def can_transition(current: str, new: str) -> bool:
    """Return whether order can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def ensure_transition(current: str, new: str) -> None:
    """Raise ``InvalidStateTransition`` for a disallowed order move."""
    if new not in ORDER_STATUSES:
        raise InvalidStateTransition(f"Unknown order status '{new}'.", current_status=current, requested_status=new)
    if not can_transition(current, new):
        raise InvalidStateTransition(
            f"Cannot change order status from {current} to {new}.",
            current_status=current,
            requested_status=new,
            allowed=sorted(ALLOWED_TRANSITIONS.get(current, set())),
        )


def can_transition_item(current: str, new: str) -> bool:
    """Items only move forward; any non-final item may be cancelled."""
    if current in FINAL_ITEM_STATUSES:
        return False
    if new == "CANCELLED":
        return True
    if new not in ITEM_STATUS_RANK:
        return False
    return ITEM_STATUS_RANK[new] > ITEM_STATUS_RANK[current]


def ensure_item_transition(current: str, new: str) -> None:
    """Raise ``InvalidStateTransition`` for a disallowed item move."""
    if new not in ORDER_ITEM_STATUSES or not can_transition_item(current, new):
        raise InvalidStateTransition(
            f"Cannot change order item status from {current} to {new}.",
            current_status=current,
            requested_status=new,
        )


def set_status(order: Order, new_status: str, now: datetime) -> list[OrderItem]:
    """Set status and update timestamps; returns items whose status was mirrored."""
    order.status = new_status
    order.updated_at = now
    if new_status in TERMINAL_ORDER_STATUSES and order.completed_at is None:
        order.completed_at = now

    cascaded: list[OrderItem] = []
    prior: str | None = _CASCADE_FROM.get(new_status)
    if prior is not None:
        for item in order.items:
            if item.status == prior:
                item.status = new_status
                cascaded.append(item)
    return cascaded


def derive_order_status(order_status: str, item_statuses: Iterable[str]) -> str:
    """Order status implied by its items' statuses.

    Cancelled items are ignored. All remaining SERVED promotes to SERVED; all
    remaining READY or SERVED promotes to READY. The result never demotes the
    order and terminal orders are returned untouched.
    """
    if order_status in TERMINAL_ORDER_STATUSES:
        return order_status
    live: list[str] = [status for status in item_statuses if status != "CANCELLED"]
    if not live:
        return order_status
    if all(status == "SERVED" for status in live):
        if order_status in ("PENDING", "PREPARING", "READY"):
            return "SERVED"
        return order_status
    if all(status in ("READY", "SERVED") for status in live):
        if order_status in ("PENDING", "PREPARING"):
            return "READY"
    return order_status
