"""Payment ledger for orders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_api.core.errors import NotFound, OrderNotEditable, PaymentExceedsBalance, PaymentNotRefundable, ValidationFailed
from pos_api.core.security import AuthContext
from pos_api.db.session import unit_of_work
from pos_api.models.gift_card import GiftCardTransaction
from pos_api.models.order import Order
from pos_api.models.payment import Payment
from pos_api.services import audit_service, notifications
from pos_api.services.gift_card_ledger import lock_gift_card, post_transaction
from pos_api.services.order_service import (
    Event,
    Publisher,
    apply_status_change,
    load_order_for_update,
    lock_order,
    publish_events,
)
from pos_api.services.pricing import ZERO, quantize_money
from pos_api.services.security_guards import ensure_can_access_order, ensure_capability, resolve_tenant
from pos_api.utils.time import Clock, ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentSummary:
    order: Order
    payments: list[Payment]
    total_paid: Decimal
    remaining: Decimal

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining <= ZERO


def completed_total(order: Order) -> Decimal:
    """Sum of the order's COMPLETED payments."""
    return sum((payment.amount for payment in order.payments if payment.status == "COMPLETED"), ZERO)


def add_payment(
    db: Session,
    ctx: AuthContext,
    order: Order,
    amount: Decimal,
    method: str,
    now: datetime,
    *,
    transaction_id: str | None = None,
) -> tuple[Payment, list[Event]]:
    """Record a completed payment on a locked order inside the caller's unit of work.

    A SERVED order that becomes fully paid is completed, which releases its
    table.
    """
    amount = quantize_money(amount)
    if amount <= ZERO:
        raise ValidationFailed("Payment amount must be greater than zero.", field="amount", value=amount)
    if order.status == "CANCELLED":
        raise OrderNotEditable(
            "Cancelled orders cannot receive payments.",
            order_id=order.id,
            status=order.status,
        )
    paid: Decimal = completed_total(order)
    remaining: Decimal = order.total - paid
    if amount > remaining:
        raise PaymentExceedsBalance(
            "Payment exceeds the outstanding order balance.",
            order_id=order.id,
            amount=amount,
            total=order.total,
            paid=paid,
            remaining=remaining,
        )

    payment = Payment(
        order=order,
        order_id=order.id,
        user_id=ctx.user_id,
        amount=amount,
        method=method,
        status="COMPLETED",
        transaction_id=transaction_id,
        created_at=now,
        updated_at=now,
    )
    db.add(payment)
    db.flush()
    order.updated_at = now
    audit_service.log_action(
        db,
        actor_user_id=ctx.user_id,
        action_type="PAYMENT_RECORDED",
        restaurant_id=order.restaurant_id,
        order_id=order.id,
        after_snapshot={"payment_id": payment.id, "amount": str(amount), "method": method},
    )
    events: list[Event] = [
        (
            notifications.PAYMENT_CREATED,
            {"order_id": order.id, "payment_id": payment.id, "amount": str(amount), "method": method},
        )
    ]
    if paid + amount >= order.total and order.status == "SERVED":
        events.extend(apply_status_change(db, ctx, order, "COMPLETED", now))
    logger.info("[PAYMENTS] Recorded %s %s payment on order %s", amount, method, order.order_number)
    return payment, events


def record_payment(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    amount: Decimal,
    method: str,
    *,
    transaction_id: str | None = None,
    clock: Clock,
    dispatcher: Publisher,
) -> Payment:
    """Take a non gift card payment against an order."""
    ensure_capability(ctx, "TAKE_ORDERS")
    if method == "GIFT_CARD":
        raise ValidationFailed("Gift card payments are taken through gift card redemption.", field="method")
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        payment, events = add_payment(db, ctx, order, amount, method, clock.now(), transaction_id=transaction_id)
    publish_events(dispatcher, order.restaurant_id, events)
    return payment


def refund_payment(db: Session, ctx: AuthContext, payment_id: int, *, clock: Clock) -> Payment:
    """Mark a completed payment refunded, re-crediting gift cards it drew on."""
    ensure_capability(ctx, "MANAGE_ORDERS")
    now: datetime = clock.now()
    with unit_of_work(db):
        payment: Payment | None = db.get(Payment, payment_id)
        if payment is None:
            raise NotFound("Payment not found.", payment_id=payment_id)
        order: Order | None = lock_order(db, payment.order_id)
        ensure_can_access_order(ctx, order, payment.order_id)
        db.refresh(payment)
        if payment.status != "COMPLETED":
            raise PaymentNotRefundable(
                f"Only COMPLETED payments can be refunded, this one is {payment.status}.",
                payment_id=payment.id,
                status=payment.status,
            )
        payment.status = "REFUNDED"
        payment.updated_at = now
        order.updated_at = now

        if payment.method == "GIFT_CARD":
            redeemed: GiftCardTransaction | None = db.scalar(
                select(GiftCardTransaction).where(
                    GiftCardTransaction.payment_id == payment.id,
                    GiftCardTransaction.type == "REDEEM",
                )
            )
            if redeemed is not None:
                card = lock_gift_card(db, card_id=redeemed.gift_card_id)
                post_transaction(
                    db,
                    card,
                    "REFUND",
                    payment.amount,
                    user_id=ctx.user_id,
                    now=now,
                    payment_id=payment.id,
                    notes=f"Refund of payment {payment.id}",
                )
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="PAYMENT_REFUNDED",
            restaurant_id=order.restaurant_id,
            order_id=order.id,
            before_snapshot={"payment_id": payment.id, "status": "COMPLETED"},
            after_snapshot={"payment_id": payment.id, "status": "REFUNDED", "amount": str(payment.amount)},
        )
    logger.info("[PAYMENTS] Refunded payment %s", payment_id)
    return payment


def list_payments(
    db: Session,
    ctx: AuthContext,
    *,
    restaurant_id: int | None = None,
    order_id: int | None = None,
    status: str | None = None,
    method: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Payment], int]:
    """Tenant-scoped payment page, newest first."""
    ensure_capability(ctx, "MANAGE_ORDERS")
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    filters = [Order.restaurant_id == tenant_id]
    if order_id is not None:
        filters.append(Payment.order_id == order_id)
    if status is not None:
        filters.append(Payment.status == status)
    if method is not None:
        filters.append(Payment.method == method)
    if start_date is not None:
        filters.append(Payment.created_at >= ensure_utc(start_date))
    if end_date is not None:
        filters.append(Payment.created_at <= ensure_utc(end_date))

    total: int = db.scalar(select(func.count(Payment.id)).join(Payment.order).where(*filters)) or 0
    payments = db.scalars(
        select(Payment)
        .join(Payment.order)
        .where(*filters)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset(skip)
        .limit(limit)
    ).all()
    return list(payments), total


def get_payment(db: Session, ctx: AuthContext, payment_id: int) -> Payment:
    """Load one payment of the caller's restaurant."""
    ensure_capability(ctx, "MANAGE_ORDERS")
    payment: Payment | None = db.get(Payment, payment_id)
    if payment is None:
        raise NotFound("Payment not found.", payment_id=payment_id)
    ensure_can_access_order(ctx, payment.order, payment.order_id)
    return payment


def payment_summary(db: Session, ctx: AuthContext, order_id: int) -> PaymentSummary:
    """Payments of an order with the outstanding balance."""
    order: Order | None = db.get(Order, order_id)
    ensure_can_access_order(ctx, order, order_id)
    paid: Decimal = completed_total(order)
    return PaymentSummary(
        order=order,
        payments=list(order.payments),
        total_paid=paid,
        remaining=max(order.total - paid, ZERO),
    )
