"""Payment recording, auto-completion and refund tests."""

from decimal import Decimal

import pytest

from pos_api.core.errors import (
    AuthorizationDenied,
    NotFound,
    OrderNotEditable,
    PaymentExceedsBalance,
    PaymentNotRefundable,
    ValidationFailed,
)
from pos_api.models import DiningTable
from pos_api.schemas.gift_card import GiftCardCreate
from pos_api.services import gift_card_service, order_service, payment_service


def _serve(db, world, clock, dispatcher, order_id: int) -> None:
    for ctx, status in [(world.kitchen, "PREPARING"), (world.kitchen, "READY"), (world.server, "SERVED")]:
        order_service.transition_order_status(db, ctx, order_id, status, clock=clock, dispatcher=dispatcher)


def test_record_payment(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    payment = payment_service.record_payment(
        db, world.server, order.id, Decimal("10.00"), "CASH", clock=clock, dispatcher=dispatcher
    )

    assert payment.status == "COMPLETED"
    assert payment.user_id == world.server.user_id
    summary = payment_service.payment_summary(db, world.server, order.id)
    assert summary.total_paid == Decimal("10.00")
    assert summary.remaining == Decimal("22.40")
    assert summary.is_fully_paid is False
    assert order_service.get_order(db, world.server, order.id).status == "PENDING"
    assert dispatcher.names()[-1] == "payment:created"


def test_payment_cannot_exceed_balance(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    payment_service.record_payment(db, world.server, order.id, Decimal("30.00"), "CASH", clock=clock, dispatcher=dispatcher)

    with pytest.raises(PaymentExceedsBalance) as exc_info:
        payment_service.record_payment(
            db, world.server, order.id, Decimal("2.41"), "CREDIT_CARD", clock=clock, dispatcher=dispatcher
        )

    assert exc_info.value.details["remaining"] == Decimal("2.40")
    assert len(payment_service.payment_summary(db, world.server, order.id).payments) == 1


def test_payment_amount_must_be_positive(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(ValidationFailed):
        payment_service.record_payment(db, world.server, order.id, Decimal("0"), "CASH", clock=clock, dispatcher=dispatcher)
    with pytest.raises(ValidationFailed):
        payment_service.record_payment(
            db, world.server, order.id, Decimal("5.00"), "GIFT_CARD", clock=clock, dispatcher=dispatcher
        )


def test_cancelled_order_takes_no_payment(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    order_service.cancel_order(db, world.manager, order.id, clock=clock, dispatcher=dispatcher)

    with pytest.raises(OrderNotEditable):
        payment_service.record_payment(db, world.server, order.id, Decimal("5.00"), "CASH", clock=clock, dispatcher=dispatcher)


def test_full_payment_completes_served_order(db, world, clock, dispatcher, make_order) -> None:
    order = make_order(table_id=world.table_1_id)
    _serve(db, world, clock, dispatcher, order.id)

    payment_service.record_payment(db, world.server, order.id, Decimal("12.40"), "CASH", clock=clock, dispatcher=dispatcher)
    assert order_service.get_order(db, world.server, order.id).status == "SERVED"

    payment_service.record_payment(
        db, world.server, order.id, Decimal("20.00"), "DEBIT_CARD", clock=clock, dispatcher=dispatcher
    )

    order = order_service.get_order(db, world.server, order.id)
    assert order.status == "COMPLETED"
    assert order.completed_at is not None
    assert db.get(DiningTable, world.table_1_id).status == "AVAILABLE"
    assert dispatcher.names()[-3:] == ["payment:created", "order:status-changed", "table:status-changed"]
    assert payment_service.payment_summary(db, world.server, order.id).is_fully_paid is True


def test_refund_cash_payment(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    payment = payment_service.record_payment(
        db, world.server, order.id, Decimal("10.00"), "CASH", clock=clock, dispatcher=dispatcher
    )

    with pytest.raises(AuthorizationDenied):
        payment_service.refund_payment(db, world.server, payment.id, clock=clock)

    refunded = payment_service.refund_payment(db, world.manager, payment.id, clock=clock)
    assert refunded.status == "REFUNDED"
    assert payment_service.payment_summary(db, world.server, order.id).total_paid == Decimal("0.00")

    with pytest.raises(PaymentNotRefundable):
        payment_service.refund_payment(db, world.manager, payment.id, clock=clock)


def test_refund_of_gift_card_payment_recredits_card(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    card = gift_card_service.issue_gift_card(
        db, world.server, GiftCardCreate(initial_balance=Decimal("20.00")), clock=clock
    )
    redemption = gift_card_service.redeem(
        db, world.server, card.code, Decimal("20.00"), order_id=order.id, clock=clock, dispatcher=dispatcher
    )
    assert redemption.card.is_active is False

    payment_service.refund_payment(db, world.manager, redemption.payment.id, clock=clock)

    card = gift_card_service.get_gift_card(db, world.server, card.id)
    assert card.current_balance == Decimal("20.00")
    assert card.is_active is True
    assert [txn.type for txn in card.transactions] == ["ISSUE", "REDEEM", "REFUND"]
    assert card.transactions[-1].payment_id == redemption.payment.id


def test_list_and_get_payments(db, world, clock, dispatcher, make_order) -> None:
    first = make_order()
    second = make_order()
    cash = payment_service.record_payment(
        db, world.server, first.id, Decimal("10.00"), "CASH", clock=clock, dispatcher=dispatcher
    )
    clock.advance(minutes=1)
    card = payment_service.record_payment(
        db, world.server, second.id, Decimal("5.00"), "CREDIT_CARD", clock=clock, dispatcher=dispatcher
    )

    payments, total = payment_service.list_payments(db, world.manager)
    assert total == 2
    assert [payment.id for payment in payments] == [card.id, cash.id]

    by_order, _ = payment_service.list_payments(db, world.manager, order_id=first.id)
    assert [payment.id for payment in by_order] == [cash.id]
    by_method, _ = payment_service.list_payments(db, world.manager, method="CREDIT_CARD")
    assert [payment.id for payment in by_method] == [card.id]

    assert payment_service.get_payment(db, world.manager, cash.id).amount == Decimal("10.00")
    with pytest.raises(NotFound):
        payment_service.get_payment(db, world.manager, 424242)
    with pytest.raises(AuthorizationDenied):
        payment_service.list_payments(db, world.server)
    with pytest.raises(AuthorizationDenied):
        payment_service.get_payment(db, world.server, cash.id)
