"""Kitchen display endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_api.core.security import AuthContext, get_auth_context
from pos_api.db.session import get_db
from pos_api.schemas.kitchen import (
    KitchenItemStatusResponse,
    KitchenItemStatusUpdate,
    KitchenOrderResponse,
    KitchenOrderStatusUpdate,
    KitchenStatsResponse,
)
from pos_api.schemas.order import OrderResponse
from pos_api.services import kitchen_service
from pos_api.services.notifications import NotificationDispatcher, get_dispatcher
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()


@router.get("/orders", response_model=list[KitchenOrderResponse])
def list_kitchen_orders(
    status_filter: Literal["PENDING", "PREPARING", "READY"] | None = Query(default=None, alias="status"),
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> list[KitchenOrderResponse]:
    views = kitchen_service.list_kitchen_orders(
        db, ctx, status=status_filter, restaurant_id=restaurant_id, clock=clock
    )
    return [KitchenOrderResponse.model_validate(view) for view in views]


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
def advance_order(
    order_id: int,
    payload: KitchenOrderStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = kitchen_service.advance_kitchen_order(
        db, ctx, order_id, payload.status, clock=clock, dispatcher=dispatcher
    )
    return OrderResponse.from_order(order)


@router.put("/order-items/{order_item_id}/status", response_model=KitchenItemStatusResponse)
def update_item_status(
    order_item_id: int,
    payload: KitchenItemStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> KitchenItemStatusResponse:
    item = kitchen_service.update_item_status(
        db, ctx, order_item_id, payload.status, clock=clock, dispatcher=dispatcher
    )
    return KitchenItemStatusResponse.model_validate(item)


@router.get("/stats", response_model=KitchenStatsResponse)
def stats(
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> KitchenStatsResponse:
    return KitchenStatsResponse.model_validate(
        kitchen_service.kitchen_stats(db, ctx, restaurant_id=restaurant_id, clock=clock)
    )
