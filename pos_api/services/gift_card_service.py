"""Gift card issuance, redemption and balance management."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_api.core.errors import (
    DuplicateCode,
    GiftCardExpired,
    GiftCardInactive,
    GiftCardNotFound,
    InsufficientBalance,
    ValidationFailed,
)
from pos_api.core.security import AuthContext
from pos_api.db.session import unit_of_work
from pos_api.models.gift_card import GiftCard, GiftCardTransaction
from pos_api.models.order import Order
from pos_api.models.payment import Payment
from pos_api.schemas.gift_card import GiftCardCreate
from pos_api.services import audit_service, catalog
from pos_api.services.gift_card_ledger import lock_gift_card, post_transaction
from pos_api.services.order_service import Event, Publisher, load_order_for_update, publish_events
from pos_api.services.payment_service import add_payment
from pos_api.services.pricing import ZERO, quantize_money
from pos_api.services.security_guards import ensure_capability, ensure_tenant, resolve_tenant
from pos_api.utils.time import Clock, ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redemption:
    card: GiftCard
    transaction: GiftCardTransaction
    payment: Payment | None


def generate_gift_card_code() -> str:
    """Random ``XXXX-XXXX-XXXX`` card code."""
    raw: str = secrets.token_hex(6).upper()
    return "-".join(raw[index:index + 4] for index in range(0, 12, 4))


def _positive(amount: Decimal, field: str = "amount") -> Decimal:
    amount = quantize_money(amount)
    if amount <= ZERO:
        raise ValidationFailed("Amount must be greater than zero.", field=field, value=amount)
    return amount


def _load_card(db: Session, ctx: AuthContext, *, card_id: int | None = None, code: str | None = None) -> GiftCard:
    card: GiftCard | None = lock_gift_card(db, card_id=card_id, code=code)
    if card is None:
        raise GiftCardNotFound("Gift card not found.", gift_card_id=card_id, code=code)
    ensure_tenant(ctx, card.restaurant_id)
    return card


def _balance_snapshot(card: GiftCard) -> dict[str, str | bool]:
    return {"code": card.code, "balance": str(card.current_balance), "is_active": card.is_active}


def ensure_redeemable(card: GiftCard, amount: Decimal, now: datetime) -> None:
    if not card.is_active:
        raise GiftCardInactive("Gift card is not active.", code=card.code)
    if card.expiry_date is not None and now > ensure_utc(card.expiry_date):
        raise GiftCardExpired(
            "Gift card has expired.",
            code=card.code,
            expiry_date=ensure_utc(card.expiry_date).isoformat(),
        )
    if amount > card.current_balance:
        raise InsufficientBalance(
            "Gift card balance is insufficient.",
            code=card.code,
            balance=card.current_balance,
            requested=amount,
        )


def issue_gift_card(db: Session, ctx: AuthContext, payload: GiftCardCreate, *, clock: Clock) -> GiftCard:
    """Create a card and post its initial balance as an ISSUE transaction."""
    ensure_capability(ctx, "TAKE_ORDERS")
    restaurant_id: int = resolve_tenant(ctx, payload.restaurant_id)
    amount: Decimal = _positive(payload.initial_balance, "initial_balance")
    now: datetime = clock.now()
    code: str = payload.code.strip().upper() if payload.code else generate_gift_card_code()

    with unit_of_work(db):
        if payload.customer_id is not None:
            catalog.get_customer(db, payload.customer_id)
        if db.scalar(select(GiftCard.id).where(GiftCard.code == code)) is not None:
            raise DuplicateCode("Gift card code already exists.", code=code)
        card = GiftCard(
            restaurant_id=restaurant_id,
            customer_id=payload.customer_id,
            code=code,
            initial_balance=amount,
            current_balance=ZERO,
            is_active=True,
            expiry_date=ensure_utc(payload.expiry_date) if payload.expiry_date else None,
            created_at=now,
        )
        db.add(card)
        post_transaction(db, card, "ISSUE", amount, user_id=ctx.user_id, now=now, notes="Initial balance")
        try:
            db.flush()
        except IntegrityError as exc:
            raise DuplicateCode("Gift card code already exists.", code=code) from exc
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="GIFT_CARD_ISSUED",
            restaurant_id=restaurant_id,
            after_snapshot=_balance_snapshot(card),
        )
    logger.info("[GIFT_CARDS] Issued card %s with %s", code, amount)
    return card


def list_gift_cards(
    db: Session,
    ctx: AuthContext,
    *,
    restaurant_id: int | None = None,
    customer_id: int | None = None,
    is_active: bool | None = None,
    code: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[GiftCard], int]:
    """Tenant-scoped gift card page, newest first."""
    ensure_capability(ctx, "MANAGE_DISCOUNTS")
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    filters = [GiftCard.restaurant_id == tenant_id]
    if customer_id is not None:
        filters.append(GiftCard.customer_id == customer_id)
    if is_active is not None:
        filters.append(GiftCard.is_active.is_(is_active))
    if code:
        filters.append(GiftCard.code == code.strip().upper())

    total: int = db.scalar(select(func.count(GiftCard.id)).where(*filters)) or 0
    cards = db.scalars(
        select(GiftCard).where(*filters).order_by(GiftCard.created_at.desc(), GiftCard.id.desc()).offset(skip).limit(limit)
    ).all()
    return list(cards), total


def get_gift_card(db: Session, ctx: AuthContext, card_id: int) -> GiftCard:
    """Gift card with its transaction ledger."""
    card: GiftCard | None = db.get(GiftCard, card_id)
    if card is None:
        raise GiftCardNotFound("Gift card not found.", gift_card_id=card_id)
    ensure_tenant(ctx, card.restaurant_id)
    return card


def check_balance(db: Session, ctx: AuthContext, code: str) -> GiftCard:
    """Look up a card's balance by its code."""
    card: GiftCard | None = db.scalar(select(GiftCard).where(GiftCard.code == code.strip().upper()))
    if card is None:
        raise GiftCardNotFound("Gift card not found.", code=code)
    ensure_tenant(ctx, card.restaurant_id)
    return card


def redeem(
    db: Session,
    ctx: AuthContext,
    code: str,
    amount: Decimal,
    *,
    order_id: int | None = None,
    clock: Clock,
    dispatcher: Publisher,
) -> Redemption:
    """Debit a card; with an order, the debit is also recorded as its payment."""
    ensure_capability(ctx, "TAKE_ORDERS")
    amount = _positive(amount)
    now: datetime = clock.now()
    events: list[Event] = []
    order: Order | None = None

    with unit_of_work(db):
        if order_id is not None:
            order = load_order_for_update(db, ctx, order_id)
        card: GiftCard = _load_card(db, ctx, code=code)
        if order is not None and card.restaurant_id != order.restaurant_id:
            raise GiftCardNotFound("Gift card not found for this order's restaurant.", code=code, order_id=order.id)
        ensure_redeemable(card, amount, now)

        payment: Payment | None = None
        if order is not None:
            payment, events = add_payment(db, ctx, order, amount, "GIFT_CARD", now, transaction_id=card.code)

        before = _balance_snapshot(card)
        transaction = post_transaction(
            db,
            card,
            "REDEEM",
            amount,
            user_id=ctx.user_id,
            now=now,
            payment_id=payment.id if payment is not None else None,
            notes=f"Order {order.order_number}" if order is not None else None,
        )
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="GIFT_CARD_REDEEMED",
            restaurant_id=card.restaurant_id,
            order_id=order.id if order is not None else None,
            before_snapshot=before,
            after_snapshot=_balance_snapshot(card),
        )
    logger.info("[GIFT_CARDS] Redeemed %s from card %s", amount, card.code)
    if order is not None:
        publish_events(dispatcher, order.restaurant_id, events)
    return Redemption(card=card, transaction=transaction, payment=payment)


def add_funds(
    db: Session,
    ctx: AuthContext,
    card_id: int,
    amount: Decimal,
    *,
    notes: str | None = None,
    clock: Clock,
) -> GiftCard:
    """Load money onto a card, reactivating it."""
    ensure_capability(ctx, "TAKE_ORDERS")
    amount = _positive(amount)
    now: datetime = clock.now()
    with unit_of_work(db):
        card: GiftCard = _load_card(db, ctx, card_id=card_id)
        before = _balance_snapshot(card)
        post_transaction(db, card, "LOAD", amount, user_id=ctx.user_id, now=now, notes=notes)
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="GIFT_CARD_LOADED",
            restaurant_id=card.restaurant_id,
            before_snapshot=before,
            after_snapshot=_balance_snapshot(card),
        )
    logger.info("[GIFT_CARDS] Loaded %s onto card %s", amount, card.code)
    return card


def set_gift_card_status(db: Session, ctx: AuthContext, card_id: int, is_active: bool) -> GiftCard:
    """Activate or deactivate a card without touching its balance."""
    ensure_capability(ctx, "MANAGE_DISCOUNTS")
    with unit_of_work(db):
        card: GiftCard = _load_card(db, ctx, card_id=card_id)
        before = _balance_snapshot(card)
        card.is_active = is_active
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="GIFT_CARD_STATUS_CHANGED",
            restaurant_id=card.restaurant_id,
            before_snapshot=before,
            after_snapshot=_balance_snapshot(card),
        )
    logger.info("[GIFT_CARDS] Card %s active=%s", card.code, is_active)
    return card
