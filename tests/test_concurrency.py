"""Optimistic locking and transactional rollback tests."""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from pos_api.core.errors import ConcurrentModification, MenuItemUnavailable, OrderNotEditable, StoreTimeout
from pos_api.db.session import unit_of_work
from pos_api.models import DiningTable, Order, Voucher
from pos_api.schemas.order import OrderItemPayload
from pos_api.services import order_service, table_occupancy, voucher_service


def test_stale_order_write_is_rejected_and_retry_succeeds(
    db, session_factory, world, clock, dispatcher, make_order
) -> None:
    order = make_order()
    other_session = session_factory()
    try:
        stale = other_session.get(Order, order.id)
        assert stale.version_id == order.version_id

        order_service.add_order_items(
            db,
            world.server,
            order.id,
            [OrderItemPayload(menu_item_id=world.fries_id)],
            clock=clock,
            dispatcher=dispatcher,
        )

        with pytest.raises(ConcurrentModification) as exc_info:
            with unit_of_work(other_session):
                stale.notes = "written from an outdated copy"
        assert exc_info.value.retryable is True

        retried = order_service.set_order_tip(
            other_session, world.server, order.id, Decimal("2.00"), clock=clock, dispatcher=dispatcher
        )
        assert retried.subtotal == Decimal("35.00")
        assert retried.total == Decimal("39.80")
        assert retried.notes is None
    finally:
        other_session.close()


def test_failed_operation_leaves_no_partial_write(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(MenuItemUnavailable):
        order_service.add_order_items(
            db,
            world.server,
            order.id,
            [
                OrderItemPayload(menu_item_id=world.fries_id),
                OrderItemPayload(menu_item_id=world.soup_id),
            ],
            clock=clock,
            dispatcher=dispatcher,
        )

    order = order_service.get_order(db, world.server, order.id)
    assert len(order.items) == 2
    assert order.total == Decimal("32.40")
    assert dispatcher.names() == ["order:created"]


def test_voucher_failure_does_not_consume_usage(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    order_service.transition_order_status(db, world.kitchen, order.id, "PREPARING", clock=clock, dispatcher=dispatcher)
    order_service.transition_order_status(db, world.kitchen, order.id, "READY", clock=clock, dispatcher=dispatcher)
    order_service.transition_order_status(db, world.server, order.id, "SERVED", clock=clock, dispatcher=dispatcher)

    with pytest.raises(OrderNotEditable):
        voucher_service.apply_voucher(db, world.server, order.id, "SAVE20", clock=clock, dispatcher=dispatcher)

    db.expire_all()
    voucher = db.scalar(select(Voucher).where(Voucher.code == "SAVE20"))
    assert voucher.usage_count == 0


def test_store_errors_become_retryable_timeouts(db) -> None:
    with pytest.raises(StoreTimeout) as exc_info:
        with unit_of_work(db):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 503


def test_new_order_rereads_table_released_by_another_session(
    db, session_factory, world, clock, dispatcher, make_order
) -> None:
    first = make_order(table_id=world.table_1_id)
    table = db.get(DiningTable, world.table_1_id)
    assert table.status == "OCCUPIED"

    other_session = session_factory()
    try:
        order_service.transition_order_status(
            other_session, world.manager, first.id, "CANCELLED", clock=clock, dispatcher=dispatcher
        )
    finally:
        other_session.close()

    assert table_occupancy.on_order_created(db, table) is True
    assert table.status == "OCCUPIED"


def test_orders_sharing_a_table_completed_from_separate_sessions_release_it(
    db, session_factory, world, clock, dispatcher, make_order
) -> None:
    first = make_order(table_id=world.table_1_id)
    second = make_order(table_id=world.table_1_id)

    sessions = [session_factory(), session_factory()]
    try:
        for session, order in zip(sessions, (first, second)):
            order_service.transition_order_status(
                session, world.manager, order.id, "CANCELLED", clock=clock, dispatcher=dispatcher
            )
    finally:
        for session in sessions:
            session.close()

    db.expire_all()
    assert db.get(DiningTable, world.table_1_id).status == "AVAILABLE"
    assert dispatcher.names().count("table:status-changed") == 2


def test_item_additions_from_two_sessions_are_both_kept(
    db, session_factory, world, clock, dispatcher, make_order
) -> None:
    order = make_order()
    other_session = session_factory()
    try:
        stale = other_session.get(Order, order.id)
        assert len(stale.items) == 2

        order_service.add_order_items(
            db, world.server, order.id, [OrderItemPayload(menu_item_id=world.fries_id)], clock=clock, dispatcher=dispatcher
        )
        merged = order_service.add_order_items(
            other_session,
            world.server,
            order.id,
            [OrderItemPayload(menu_item_id=world.wings_id)],
            clock=clock,
            dispatcher=dispatcher,
        )
        assert len(merged.items) == 4
        assert merged.subtotal == Decimal("43.00")
    finally:
        other_session.close()

    db.expire_all()
    final = db.get(Order, order.id)
    assert len(final.items) == 4
    assert final.subtotal == Decimal("43.00")
    assert final.tax == Decimal("3.44")
    assert final.total == Decimal("46.44")
