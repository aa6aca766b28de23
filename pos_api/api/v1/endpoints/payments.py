"""Payment endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pos_api.core.security import AuthContext, get_auth_context
from pos_api.db.session import get_db
from pos_api.schemas.payment import PaymentCreate, PaymentListResponse, PaymentResponse, PaymentSummaryResponse
from pos_api.services import payment_service
from pos_api.services.notifications import NotificationDispatcher, get_dispatcher
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()


@router.get("", response_model=PaymentListResponse)
def list_payments(
    order_id: int | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    method: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    restaurant_id: int | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> PaymentListResponse:
    payments, total = payment_service.list_payments(
        db,
        ctx,
        restaurant_id=restaurant_id,
        order_id=order_id,
        status=status_filter,
        method=method,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return PaymentListResponse(
        items=[PaymentResponse.model_validate(payment) for payment in payments],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> PaymentResponse:
    payment = payment_service.record_payment(
        db,
        ctx,
        payload.order_id,
        payload.amount,
        payload.method,
        transaction_id=payload.transaction_id,
        clock=clock,
        dispatcher=dispatcher,
    )
    return PaymentResponse.model_validate(payment)


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
def refund_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> PaymentResponse:
    return PaymentResponse.model_validate(payment_service.refund_payment(db, ctx, payment_id, clock=clock))


@router.get("/order/{order_id}", response_model=PaymentSummaryResponse)
def order_payments(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> PaymentSummaryResponse:
    summary = payment_service.payment_summary(db, ctx, order_id)
    return PaymentSummaryResponse(
        order_id=summary.order.id,
        order_total=summary.order.total,
        total_paid=summary.total_paid,
        remaining=summary.remaining,
        is_fully_paid=summary.is_fully_paid,
        payments=[PaymentResponse.model_validate(payment) for payment in summary.payments],
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> PaymentResponse:
    return PaymentResponse.model_validate(payment_service.get_payment(db, ctx, payment_id))
