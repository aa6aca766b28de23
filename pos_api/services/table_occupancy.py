"""Table occupancy tracking driven by order lifecycle events."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_api.models.order import Order
from pos_api.models.restaurant import DiningTable
from pos_api.services.order_status import ACTIVE_ORDER_STATUSES

logger = logging.getLogger(__name__)


def lock_table(db: Session, table: DiningTable) -> DiningTable:
    """Row-lock the table and reload its current status."""
    locked: DiningTable | None = db.get(DiningTable, table.id, with_for_update=True, populate_existing=True)
    return locked if locked is not None else table


def on_order_created(db: Session, table: DiningTable | None) -> bool:
    """Occupy a free table; returns whether its status changed."""
    if table is None:
        return False
    table = lock_table(db, table)
    if table.status != "AVAILABLE":
        return False
    table.status = "OCCUPIED"
    logger.info("[ORDERS] Table %s occupied", table.number)
    return True


def on_order_terminal(db: Session, table: DiningTable | None, excluding_order_id: int) -> bool:
    """Release the table once no other active order sits on it.

    The table row stays locked until the caller commits, so concurrent
    completions and new orders on the same table are counted one at a time.
    """
    if table is None:
        return False
    table = lock_table(db, table)
    other_active: int = db.scalar(
        select(func.count(Order.id)).where(
            Order.table_id == table.id,
            Order.id != excluding_order_id,
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
    ) or 0
    if other_active or table.status == "AVAILABLE":
        return False
    table.status = "AVAILABLE"
    logger.info("[ORDERS] Table %s released", table.number)
    return True
