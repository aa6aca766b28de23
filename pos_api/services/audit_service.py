"""Audit log helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from pos_api.models import AuditLog, Order


def order_snapshot(order: Order) -> dict[str, Any]:
    """Serializable view of an order's status and money columns."""
    return {
        "status": order.status,
        "subtotal": str(order.subtotal),
        "tax": str(order.tax),
        "tip": str(order.tip) if order.tip is not None else None,
        "total": str(order.total),
    }


def log_action(
    db: Session,
    *,
    actor_user_id: int | None,
    action_type: str,
    restaurant_id: int | None = None,
    order_id: int | None = None,
    before_snapshot: dict[str, Any] | None = None,
    after_snapshot: dict[str, Any] | None = None,
) -> None:
    db.add(
        AuditLog(
            actor_user_id=actor_user_id,
            restaurant_id=restaurant_id,
            action_type=action_type,
            order_id=order_id,
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
        )
    )
