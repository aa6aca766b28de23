"""Voucher endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pos_api.core.security import AuthContext, get_auth_context
from pos_api.db.session import get_db
from pos_api.schemas.order import OrderResponse
from pos_api.schemas.voucher import (
    VoucherApplyRequest,
    VoucherCreate,
    VoucherDetailResponse,
    VoucherResponse,
    VoucherUpdate,
    VoucherValidateRequest,
    VoucherValidateResponse,
)
from pos_api.services import voucher_service
from pos_api.services.notifications import NotificationDispatcher, get_dispatcher
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()


@router.get("", response_model=list[VoucherResponse])
def list_vouchers(
    restaurant_id: int | None = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[VoucherResponse]:
    vouchers = voucher_service.list_vouchers(db, ctx, restaurant_id=restaurant_id, active_only=active_only)
    return [VoucherResponse.model_validate(voucher) for voucher in vouchers]


@router.post("", response_model=VoucherResponse, status_code=status.HTTP_201_CREATED)
def create_voucher(
    payload: VoucherCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> VoucherResponse:
    return VoucherResponse.model_validate(voucher_service.create_voucher(db, ctx, payload, clock=clock))


@router.post("/validate", response_model=VoucherValidateResponse)
def validate_voucher(
    payload: VoucherValidateRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> VoucherValidateResponse:
    preview = voucher_service.validate_voucher(
        db, ctx, payload.code, payload.amount, restaurant_id=payload.restaurant_id, clock=clock
    )
    return VoucherValidateResponse(
        voucher=VoucherResponse.model_validate(preview.voucher),
        amount=preview.amount,
        discount=preview.discount,
        discounted_amount=preview.discounted_amount,
    )


@router.post("/apply", response_model=OrderResponse)
def apply_voucher(
    payload: VoucherApplyRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = voucher_service.apply_voucher(
        db, ctx, payload.order_id, payload.code, clock=clock, dispatcher=dispatcher
    )
    return OrderResponse.from_order(order)


@router.delete("/remove/{order_id}", response_model=OrderResponse)
def remove_voucher(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderResponse:
    order = voucher_service.remove_voucher(db, ctx, order_id, clock=clock, dispatcher=dispatcher)
    return OrderResponse.from_order(order)


@router.get("/{voucher_id}", response_model=VoucherDetailResponse)
def get_voucher(
    voucher_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> VoucherDetailResponse:
    return VoucherDetailResponse.model_validate(voucher_service.get_voucher(db, ctx, voucher_id))


@router.put("/{voucher_id}", response_model=VoucherResponse)
def update_voucher(
    voucher_id: int,
    payload: VoucherUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> VoucherResponse:
    return VoucherResponse.model_validate(voucher_service.update_voucher(db, ctx, voucher_id, payload))
