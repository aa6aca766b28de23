"""Order endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pos_api.core.security import AuthContext, get_auth_context
from pos_api.db.session import get_db
from pos_api.schemas.order import (
    OrderCreate,
    OrderItemsAdd,
    OrderItemUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatus,
    OrderStatusUpdate,
    OrderTipUpdate,
    OrderType,
)
from pos_api.services import order_service
from pos_api.services.notifications import NotificationDispatcher, get_dispatcher
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()


@router.get("", response_model=OrderListResponse)
def list_orders(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    order_type: OrderType | None = Query(default=None, alias="type"),
    table_id: int | None = None,
    restaurant_id: int | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderListResponse:
    orders, total = order_service.list_orders(
        db,
        ctx,
        restaurant_id=restaurant_id,
        status=status_filter,
        order_type=order_type,
        table_id=table_id,
        skip=skip,
        limit=limit,
    )
    return OrderListResponse(
        items=[OrderResponse.from_order(order) for order in orders],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.create_order(db, ctx, payload, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderResponse:
    return OrderResponse.from_order(order_service.get_order(db, ctx, order_id))


@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.transition_order_status(
        db, ctx, order_id, payload.status, clock=clock, dispatcher=dispatcher
    )
    return OrderResponse.from_order(order)


@router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.cancel_order(db, ctx, order_id, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/tip", response_model=OrderResponse)
def set_tip(
    order_id: int,
    payload: OrderTipUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.set_order_tip(db, ctx, order_id, payload.tip, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/items", response_model=OrderResponse)
def add_items(
    order_id: int,
    payload: OrderItemsAdd,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.add_order_items(db, ctx, order_id, payload.items, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/items/{item_id}", response_model=OrderResponse)
def update_item(
    order_id: int,
    item_id: int,
    payload: OrderItemUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.update_order_item(
        db, ctx, order_id, item_id, payload, clock=clock, dispatcher=dispatcher
    )
    return OrderResponse.from_order(order)


@router.delete("/{order_id}/items/{item_id}", response_model=OrderResponse)
def remove_item(
    order_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = order_service.remove_order_item(db, ctx, order_id, item_id, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)
