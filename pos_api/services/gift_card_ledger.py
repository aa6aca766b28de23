"""Gift card balance primitives shared by gift card and payment operations."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models.gift_card import GiftCard, GiftCardTransaction

CREDIT_TYPES: frozenset[str] = frozenset({"ISSUE", "LOAD", "REFUND"})


def lock_gift_card(db: Session, *, card_id: int | None = None, code: str | None = None) -> GiftCard | None:
    """Row-lock a gift card by id or code, refreshing the loaded copy."""
    query = select(GiftCard)
    if card_id is not None:
        query = query.where(GiftCard.id == card_id)
    else:
        query = query.where(GiftCard.code == (code or "").strip().upper())
    return db.scalar(query.with_for_update().execution_options(populate_existing=True))


def post_transaction(
    db: Session,
    card: GiftCard,
    transaction_type: str,
    amount: Decimal,
    *,
    user_id: int,
    now: datetime,
    payment_id: int | None = None,
    notes: str | None = None,
) -> GiftCardTransaction:
    """Append a ledger entry and move the balance by the same signed amount.

    Credits reactivate the card; a debit that empties it deactivates it.
    """
    if transaction_type in CREDIT_TYPES:
        card.current_balance = card.current_balance + amount
        card.is_active = True
    else:
        card.current_balance = card.current_balance - amount
        if card.current_balance == 0:
            card.is_active = False

    transaction = GiftCardTransaction(
        gift_card=card,
        type=transaction_type,
        amount=amount,
        user_id=user_id,
        payment_id=payment_id,
        notes=notes,
        created_at=now,
    )
    db.add(transaction)
    return transaction


def ledger_balance(card: GiftCard) -> Decimal:
    """Signed sum of every transaction ever posted to the card."""
    return sum((transaction.signed_amount for transaction in card.transactions), Decimal("0.00"))
