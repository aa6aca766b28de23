"""Gift card endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pos_api.core.security import AuthContext, get_auth_context
from pos_api.db.session import get_db
from pos_api.schemas.gift_card import (
    GiftCardAddFundsRequest,
    GiftCardBalanceResponse,
    GiftCardCreate,
    GiftCardDetailResponse,
    GiftCardListResponse,
    GiftCardRedeemRequest,
    GiftCardRedeemResponse,
    GiftCardResponse,
    GiftCardStatusUpdate,
    GiftCardTransactionResponse,
)
from pos_api.services import gift_card_service
from pos_api.services.notifications import NotificationDispatcher, get_dispatcher
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()


@router.post("", response_model=GiftCardResponse, status_code=status.HTTP_201_CREATED)
def issue_gift_card(
    payload: GiftCardCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> GiftCardResponse:
    return GiftCardResponse.model_validate(gift_card_service.issue_gift_card(db, ctx, payload, clock=clock))


@router.get("", response_model=GiftCardListResponse)
def list_gift_cards(
    restaurant_id: int | None = None,
    customer_id: int | None = None,
    is_active: bool | None = None,
    code: str | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> GiftCardListResponse:
    cards, total = gift_card_service.list_gift_cards(
        db,
        ctx,
        restaurant_id=restaurant_id,
        customer_id=customer_id,
        is_active=is_active,
        code=code,
        skip=skip,
        limit=limit,
    )
    return GiftCardListResponse(
        items=[GiftCardResponse.model_validate(card) for card in cards],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/check-balance/{code}", response_model=GiftCardBalanceResponse)
def check_balance(
    code: str,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> GiftCardBalanceResponse:
    return GiftCardBalanceResponse.model_validate(gift_card_service.check_balance(db, ctx, code))


@router.post("/redeem", response_model=GiftCardRedeemResponse)
def redeem_gift_card(
    payload: GiftCardRedeemRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> GiftCardRedeemResponse:
    result = gift_card_service.redeem(
        db,
        ctx,
        payload.code,
        payload.amount,
        order_id=payload.order_id,
        clock=clock,
        dispatcher=dispatcher,
    )
    return GiftCardRedeemResponse(
        gift_card=GiftCardResponse.model_validate(result.card),
        transaction=GiftCardTransactionResponse.model_validate(result.transaction),
        payment_id=result.payment.id if result.payment is not None else None,
    )


@router.get("/{gift_card_id}", response_model=GiftCardDetailResponse)
def get_gift_card(
    gift_card_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> GiftCardDetailResponse:
    return GiftCardDetailResponse.model_validate(gift_card_service.get_gift_card(db, ctx, gift_card_id))


@router.post("/{gift_card_id}/add-funds", response_model=GiftCardResponse)
def add_funds(
    gift_card_id: int,
    payload: GiftCardAddFundsRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    clock: Clock = Depends(get_clock),
) -> GiftCardResponse:
    card = gift_card_service.add_funds(db, ctx, gift_card_id, payload.amount, notes=payload.notes, clock=clock)
    return GiftCardResponse.model_validate(card)


@router.put("/{gift_card_id}/status", response_model=GiftCardResponse)
def set_status(
    gift_card_id: int,
    payload: GiftCardStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> GiftCardResponse:
    return GiftCardResponse.model_validate(
        gift_card_service.set_gift_card_status(db, ctx, gift_card_id, payload.is_active)
    )
