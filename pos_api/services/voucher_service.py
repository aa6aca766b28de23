"""Voucher creation, validation preview and application to orders."""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_api.core.errors import (
    DuplicateCode,
    MinimumPurchaseNotMet,
    NoVoucherApplied,
    ValidationFailed,
    VoucherAlreadyApplied,
    VoucherExhausted,
    VoucherExpired,
    VoucherInactive,
    VoucherNotFound,
    VoucherNotStarted,
)
from pos_api.core.security import AuthContext
from pos_api.db.session import unit_of_work
from pos_api.models.order import Order
from pos_api.models.voucher import Voucher, VoucherRedemption
from pos_api.schemas.voucher import VoucherCreate, VoucherUpdate
from pos_api.services import audit_service
from pos_api.services.order_service import (
    Event,
    Publisher,
    ensure_editable,
    load_order_for_update,
    price_lines,
    publish_events,
    updated_event,
)
from pos_api.services.pricing import CENT, Discount, calculate, discount_amount, quantize_money, restore_subtotal, totals_for_subtotal
from pos_api.services.security_guards import ensure_capability, ensure_tenant, resolve_tenant
from pos_api.utils.time import Clock, ensure_utc

logger = logging.getLogger(__name__)

CODE_ALPHABET: str = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class VoucherPreview:
    voucher: Voucher
    amount: Decimal
    discount: Decimal
    discounted_amount: Decimal


def generate_voucher_code() -> str:
    """Random ``PROMO-XXXXXX`` voucher code."""
    return "PROMO-" + "".join(secrets.choice(CODE_ALPHABET) for _ in range(6))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def find_voucher(db: Session, restaurant_id: int, code: str) -> Voucher:
    """Tenant-scoped voucher lookup by code."""
    voucher: Voucher | None = db.scalar(
        select(Voucher)
        .where(Voucher.restaurant_id == restaurant_id, Voucher.code == normalize_code(code))
        .execution_options(populate_existing=True)
    )
    if voucher is None:
        raise VoucherNotFound("Voucher code not found.", code=code)
    return voucher


def _voucher_snapshot(voucher: Voucher) -> dict[str, str | int | bool | None]:
    return {
        "code": voucher.code,
        "value": str(voucher.value),
        "min_purchase": str(voucher.min_purchase),
        "is_active": voucher.is_active,
        "start_date": ensure_utc(voucher.start_date).isoformat(),
        "expiry_date": ensure_utc(voucher.expiry_date).isoformat(),
        "usage_limit": voucher.usage_limit,
    }


def check_voucher_usable(voucher: Voucher, amount: Decimal, now: datetime) -> None:
    """Activity, date window, usage limit and minimum purchase, in that order."""
    if not voucher.is_active:
        raise VoucherInactive("Voucher is not active.", code=voucher.code)
    if now < ensure_utc(voucher.start_date):
        raise VoucherNotStarted(
            "Voucher is not valid yet.",
            code=voucher.code,
            start_date=ensure_utc(voucher.start_date).isoformat(),
        )
    if now > ensure_utc(voucher.expiry_date):
        raise VoucherExpired(
            "Voucher has expired.",
            code=voucher.code,
            expiry_date=ensure_utc(voucher.expiry_date).isoformat(),
        )
    if voucher.usage_limit is not None and voucher.usage_count >= voucher.usage_limit:
        raise VoucherExhausted(
            "Voucher usage limit reached.",
            code=voucher.code,
            usage_limit=voucher.usage_limit,
            usage_count=voucher.usage_count,
        )
    if amount < voucher.min_purchase:
        raise MinimumPurchaseNotMet(
            f"Order subtotal must be at least {voucher.min_purchase}.",
            code=voucher.code,
            min_purchase=voucher.min_purchase,
            subtotal=amount,
        )


def create_voucher(db: Session, ctx: AuthContext, payload: VoucherCreate, *, clock: Clock) -> Voucher:
    """Create a voucher for the caller's restaurant."""
    ensure_capability(ctx, "MANAGE_DISCOUNTS")
    restaurant_id: int = resolve_tenant(ctx, payload.restaurant_id)
    start_date: datetime = ensure_utc(payload.start_date) if payload.start_date else clock.now()
    expiry_date: datetime = ensure_utc(payload.expiry_date)
    if expiry_date <= start_date:
        raise ValidationFailed(
            "Expiry date must be after the start date.",
            field="expiry_date",
            start_date=start_date.isoformat(),
            expiry_date=expiry_date.isoformat(),
        )
    if payload.type == "PERCENTAGE" and payload.value > 100:
        raise ValidationFailed("Percentage vouchers cannot exceed 100.", field="value", limit=100, value=payload.value)

    code: str = normalize_code(payload.code) if payload.code else generate_voucher_code()
    existing: Voucher | None = db.scalar(
        select(Voucher).where(Voucher.restaurant_id == restaurant_id, Voucher.code == code)
    )
    if existing is not None:
        raise DuplicateCode("Voucher code already exists.", code=code)

    voucher = Voucher(
        restaurant_id=restaurant_id,
        code=code,
        type=payload.type,
        value=payload.value,
        min_purchase=payload.min_purchase,
        is_active=payload.is_active,
        start_date=start_date,
        expiry_date=expiry_date,
        usage_limit=payload.usage_limit,
        usage_count=0,
        created_at=clock.now(),
    )
    with unit_of_work(db):
        db.add(voucher)
        try:
            db.flush()
        except IntegrityError as exc:
            raise DuplicateCode("Voucher code already exists.", code=code) from exc
    logger.info("[VOUCHERS] Created voucher %s for restaurant %s", code, restaurant_id)
    return voucher


def list_vouchers(
    db: Session,
    ctx: AuthContext,
    *,
    restaurant_id: int | None = None,
    active_only: bool = False,
) -> list[Voucher]:
    """Vouchers of the caller's restaurant, newest first."""
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    query = select(Voucher).where(Voucher.restaurant_id == tenant_id)
    if active_only:
        query = query.where(Voucher.is_active.is_(True))
    return list(db.scalars(query.order_by(Voucher.created_at.desc(), Voucher.id.desc())).all())


def get_voucher(db: Session, ctx: AuthContext, voucher_id: int) -> Voucher:
    """Voucher with its redemption history."""
    voucher: Voucher | None = db.get(Voucher, voucher_id)
    if voucher is None:
        raise VoucherNotFound("Voucher not found.", voucher_id=voucher_id)
    ensure_tenant(ctx, voucher.restaurant_id)
    return voucher


def update_voucher(db: Session, ctx: AuthContext, voucher_id: int, payload: VoucherUpdate) -> Voucher:
    """Change the terms of a voucher; its usage count is never edited here."""
    ensure_capability(ctx, "MANAGE_DISCOUNTS")
    # A null usage limit means unlimited; other nulls leave the field as is.
    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field == "usage_limit"
    }
    with unit_of_work(db):
        voucher: Voucher | None = db.get(Voucher, voucher_id, with_for_update=True, populate_existing=True)
        if voucher is None:
            raise VoucherNotFound("Voucher not found.", voucher_id=voucher_id)
        ensure_tenant(ctx, voucher.restaurant_id)
        before = _voucher_snapshot(voucher)

        start_date: datetime = ensure_utc(changes.get("start_date", voucher.start_date))
        expiry_date: datetime = ensure_utc(changes.get("expiry_date", voucher.expiry_date))
        if expiry_date <= start_date:
            raise ValidationFailed(
                "Expiry date must be after the start date.",
                field="expiry_date",
                start_date=start_date.isoformat(),
                expiry_date=expiry_date.isoformat(),
            )
        value: Decimal = changes.get("value", voucher.value)
        if voucher.type == "PERCENTAGE" and value > 100:
            raise ValidationFailed("Percentage vouchers cannot exceed 100.", field="value", limit=100, value=value)

        for field, new_value in changes.items():
            setattr(voucher, field, new_value)
        voucher.start_date = start_date
        voucher.expiry_date = expiry_date
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="VOUCHER_UPDATED",
            restaurant_id=voucher.restaurant_id,
            before_snapshot=before,
            after_snapshot=_voucher_snapshot(voucher),
        )
    logger.info("[VOUCHERS] Updated voucher %s (%s)", voucher.code, ", ".join(sorted(changes)) or "no changes")
    return voucher


def validate_voucher(
    db: Session,
    ctx: AuthContext,
    code: str,
    amount: Decimal | None = None,
    *,
    restaurant_id: int | None = None,
    clock: Clock,
) -> VoucherPreview:
    """Run the application checks without writing anything."""
    tenant_id: int = resolve_tenant(ctx, restaurant_id)
    voucher: Voucher = find_voucher(db, tenant_id, code)
    base: Decimal = quantize_money(amount) if amount is not None else voucher.min_purchase
    check_voucher_usable(voucher, base, clock.now())
    discount: Decimal = discount_amount(Discount(type=voucher.type, value=voucher.value), base)
    return VoucherPreview(voucher=voucher, amount=base, discount=discount, discounted_amount=base - discount)


def apply_voucher(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    code: str,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Discount an order with a voucher and record the redemption."""
    ensure_capability(ctx, "TAKE_ORDERS")
    now: datetime = clock.now()
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        voucher: Voucher = find_voucher(db, order.restaurant_id, code)
        if order.voucher_redemption is not None:
            raise VoucherAlreadyApplied(
                "A voucher is already applied to this order.",
                order_id=order.id,
                applied_code=order.voucher_redemption.voucher.code,
            )
        check_voucher_usable(voucher, order.subtotal, now)
        ensure_editable(order)

        before = audit_service.order_snapshot(order)
        breakdown = calculate(
            price_lines(order),
            order.restaurant.tax_rate,
            order.tip,
            Discount(type=voucher.type, value=voucher.value),
        )
        order.subtotal = breakdown.subtotal
        order.tax = breakdown.tax
        order.total = breakdown.total
        order.updated_at = now
        order.voucher_redemptions.append(
            VoucherRedemption(
                voucher=voucher,
                voucher_id=voucher.id,
                user_id=ctx.user_id,
                discount_amount=breakdown.discount,
                created_at=now,
            )
        )
        voucher.usage_count += 1
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="VOUCHER_APPLIED",
            restaurant_id=order.restaurant_id,
            order_id=order.id,
            before_snapshot=before,
            after_snapshot={**audit_service.order_snapshot(order), "voucher": voucher.code, "discount": str(breakdown.discount)},
        )
        events: list[Event] = [updated_event(order)]
    logger.info("[VOUCHERS] Applied %s to order %s", voucher.code, order.order_number)
    publish_events(dispatcher, order.restaurant_id, events)
    return order


def remove_voucher(
    db: Session,
    ctx: AuthContext,
    order_id: int,
    *,
    clock: Clock,
    dispatcher: Publisher,
) -> Order:
    """Reverse a voucher application, restoring the undiscounted totals."""
    ensure_capability(ctx, "TAKE_ORDERS")
    now: datetime = clock.now()
    with unit_of_work(db):
        order: Order = load_order_for_update(db, ctx, order_id)
        redemption: VoucherRedemption | None = order.voucher_redemption
        if redemption is None:
            raise NoVoucherApplied("No voucher is applied to this order.", order_id=order.id)
        ensure_editable(order)

        voucher: Voucher = redemption.voucher
        before = audit_service.order_snapshot(order)
        restored: Decimal = restore_subtotal(voucher.type, voucher.value, order.subtotal, redemption.discount_amount)
        from_lines: Decimal = calculate(price_lines(order), order.restaurant.tax_rate).gross_subtotal
        if abs(restored - from_lines) > CENT:
            logger.warning(
                "[VOUCHERS] Restored subtotal %s for order %s differs from line total %s; using line total",
                restored,
                order.order_number,
                from_lines,
            )
            restored = from_lines
        breakdown = totals_for_subtotal(restored, order.restaurant.tax_rate, order.tip)
        order.subtotal = breakdown.subtotal
        order.tax = breakdown.tax
        order.total = breakdown.total
        order.updated_at = now
        order.voucher_redemptions.remove(redemption)
        voucher.usage_count = max(voucher.usage_count - 1, 0)
        audit_service.log_action(
            db,
            actor_user_id=ctx.user_id,
            action_type="VOUCHER_REMOVED",
            restaurant_id=order.restaurant_id,
            order_id=order.id,
            before_snapshot={**before, "voucher": voucher.code},
            after_snapshot=audit_service.order_snapshot(order),
        )
        events: list[Event] = [updated_event(order)]
    logger.info("[VOUCHERS] Removed voucher from order %s", order.order_number)
    publish_events(dispatcher, order.restaurant_id, events)
    return order
