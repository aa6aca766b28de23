"""Order lifecycle service tests."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from pos_api.core.errors import (
    AuthorizationDenied,
    InvalidModifierSelection,
    InvalidStateTransition,
    LastItemRemoval,
    MenuItemUnavailable,
    NotFound,
    OrderNotEditable,
)
from pos_api.models import AuditLog, DiningTable
from pos_api.schemas.order import OrderItemPayload, OrderItemUpdate
from pos_api.services import order_service
from pos_api.utils.time import ensure_utc

from conftest import NOW


def test_create_order_prices_and_numbers_it(db, world, dispatcher, make_order) -> None:
    order = make_order()

    assert order.order_number == "TST-20260310-0001"
    assert order.status == "PENDING"
    assert order.user_id == world.server.user_id
    assert order.subtotal == Decimal("30.00")
    assert order.tax == Decimal("2.40")
    assert order.total == Decimal("32.40")
    assert [item.unit_price for item in order.items] == [Decimal("10.00"), Decimal("5.00")]
    assert all(item.status == "PENDING" for item in order.items)
    assert ensure_utc(order.created_at) == NOW
    assert dispatcher.names() == ["order:created"]


def test_order_numbers_increase_per_restaurant_and_day(db, world, clock, make_order) -> None:
    first = make_order()
    second = make_order()
    other = make_order(
        ctx=world.other_server,
        items=[OrderItemPayload(menu_item_id=world.other_item_id)],
    )
    clock.advance(days=1)
    next_day = make_order()

    assert first.order_number == "TST-20260310-0001"
    assert second.order_number == "TST-20260310-0002"
    assert other.order_number == "HBR-20260310-0001"
    assert next_day.order_number == "TST-20260311-0001"


def test_create_order_with_modifiers(db, world, make_order) -> None:
    order = make_order(
        items=[OrderItemPayload(menu_item_id=world.burger_id, quantity=2, modifier_ids=[world.cheese_id])],
    )

    item = order.items[0]
    assert [selected.price for selected in item.modifiers] == [Decimal("1.50")]
    assert order.subtotal == Decimal("23.00")
    assert order.tax == Decimal("1.84")
    assert order.total == Decimal("24.84")


@pytest.mark.parametrize(
    "modifier_ids",
    [
        pytest.param("bacon", id="unavailable"),
        pytest.param("aioli", id="other-group"),
        pytest.param("cheese-twice", id="duplicate"),
    ],
)
def test_create_order_rejects_invalid_modifiers(db, world, make_order, modifier_ids: str) -> None:
    selection = {
        "bacon": [world.bacon_id],
        "aioli": [world.aioli_id],
        "cheese-twice": [world.cheese_id, world.cheese_id],
    }[modifier_ids]

    with pytest.raises(InvalidModifierSelection):
        make_order(items=[OrderItemPayload(menu_item_id=world.burger_id, modifier_ids=selection)])

    assert order_service.list_orders(db, world.server)[1] == 0


def test_create_order_rejects_unavailable_and_foreign_items(db, world, make_order) -> None:
    with pytest.raises(MenuItemUnavailable):
        make_order(items=[OrderItemPayload(menu_item_id=world.soup_id)])
    with pytest.raises(NotFound):
        make_order(items=[OrderItemPayload(menu_item_id=world.other_item_id)])
    with pytest.raises(NotFound):
        make_order(table_id=world.other_table_id)


def test_kitchen_role_cannot_take_orders(db, world, make_order) -> None:
    with pytest.raises(AuthorizationDenied):
        make_order(ctx=world.kitchen)


def test_create_order_occupies_table(db, world, dispatcher, make_order) -> None:
    order = make_order(table_id=world.table_1_id)

    assert order.table_number == 1
    assert db.get(DiningTable, world.table_1_id).status == "OCCUPIED"
    assert dispatcher.names() == ["order:created", "table:status-changed"]

    make_order(table_id=world.table_1_id)
    assert dispatcher.names()[-1] == "order:created"


def test_cancel_releases_table_when_no_other_active_order(db, world, clock, dispatcher, make_order) -> None:
    first = make_order(table_id=world.table_1_id)
    second = make_order(table_id=world.table_1_id)

    order_service.cancel_order(db, world.manager, first.id, clock=clock, dispatcher=dispatcher)
    assert db.get(DiningTable, world.table_1_id).status == "OCCUPIED"

    cancelled = order_service.cancel_order(db, world.manager, second.id, clock=clock, dispatcher=dispatcher)
    assert cancelled.status == "CANCELLED"
    assert ensure_utc(cancelled.completed_at) == NOW
    assert db.get(DiningTable, world.table_1_id).status == "AVAILABLE"
    assert dispatcher.names()[-2:] == ["order:status-changed", "table:status-changed"]


def test_server_cannot_cancel(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(AuthorizationDenied):
        order_service.cancel_order(db, world.server, order.id, clock=clock, dispatcher=dispatcher)


def test_full_lifecycle_records_audit_trail(db, world, clock, dispatcher, make_order) -> None:
    order = make_order(table_id=world.table_2_id)

    for ctx, status in [
        (world.kitchen, "PREPARING"),
        (world.kitchen, "READY"),
        (world.server, "SERVED"),
        (world.server, "COMPLETED"),
    ]:
        clock.advance(minutes=5)
        order = order_service.transition_order_status(db, ctx, order.id, status, clock=clock, dispatcher=dispatcher)

    assert order.status == "COMPLETED"
    assert ensure_utc(order.completed_at) == ensure_utc(order.updated_at)
    assert db.get(DiningTable, world.table_2_id).status == "AVAILABLE"
    actions = db.scalars(select(AuditLog.action_type).where(AuditLog.order_id == order.id)).all()
    assert actions.count("ORDER_STATUS_CHANGED") == 4


def test_preparing_cascades_to_items(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    order = order_service.transition_order_status(
        db, world.kitchen, order.id, "PREPARING", clock=clock, dispatcher=dispatcher
    )

    assert {item.status for item in order.items} == {"PREPARING"}


def test_invalid_transition_leaves_order_untouched(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(InvalidStateTransition):
        order_service.transition_order_status(db, world.server, order.id, "SERVED", clock=clock, dispatcher=dispatcher)

    assert order_service.get_order(db, world.server, order.id).status == "PENDING"
    assert dispatcher.names() == ["order:created"]


def test_other_tenant_cannot_read_or_change_order(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(AuthorizationDenied):
        order_service.get_order(db, world.other_server, order.id)
    with pytest.raises(AuthorizationDenied):
        order_service.set_order_tip(db, world.other_server, order.id, Decimal("1.00"), clock=clock, dispatcher=dispatcher)
    with pytest.raises(NotFound):
        order_service.get_order(db, world.server, 999_999)

    assert order_service.get_order(db, world.admin, order.id).id == order.id


def test_list_orders_filters_and_paginates(db, world, make_order) -> None:
    make_order(table_id=world.table_1_id)
    make_order()
    make_order()

    orders, total = order_service.list_orders(db, world.server, skip=0, limit=2)
    assert total == 3
    assert len(orders) == 2

    on_table, on_table_total = order_service.list_orders(db, world.server, table_id=world.table_1_id)
    assert on_table_total == 1
    assert on_table[0].table_id == world.table_1_id

    assert order_service.list_orders(db, world.other_server)[1] == 0
    with pytest.raises(AuthorizationDenied):
        order_service.list_orders(db, world.server, restaurant_id=world.other_restaurant_id)


def test_add_items_reprices_order(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    order = order_service.add_order_items(
        db,
        world.server,
        order.id,
        [OrderItemPayload(menu_item_id=world.wings_id, modifier_ids=[world.aioli_id])],
        clock=clock,
        dispatcher=dispatcher,
    )

    assert len(order.items) == 3
    assert order.subtotal == Decimal("38.75")
    assert order.tax == Decimal("3.10")
    assert order.total == Decimal("41.85")
    assert dispatcher.names()[-1] == "order:updated"


def test_add_items_rejected_once_served(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    for ctx, status in [(world.kitchen, "PREPARING"), (world.kitchen, "READY"), (world.server, "SERVED")]:
        order_service.transition_order_status(db, ctx, order.id, status, clock=clock, dispatcher=dispatcher)

    with pytest.raises(OrderNotEditable):
        order_service.add_order_items(
            db,
            world.server,
            order.id,
            [OrderItemPayload(menu_item_id=world.fries_id)],
            clock=clock,
            dispatcher=dispatcher,
        )


def test_update_item_quantity_and_modifiers(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    burger_line = order.items[0]

    order = order_service.update_order_item(
        db,
        world.server,
        order.id,
        burger_line.id,
        OrderItemUpdate(quantity=3, notes="no onions", modifier_ids=[world.cheese_id]),
        clock=clock,
        dispatcher=dispatcher,
    )
    assert order.items[0].quantity == 3
    assert order.items[0].notes == "no onions"
    assert order.subtotal == Decimal("44.50")
    assert order.tax == Decimal("3.56")

    # Re-selecting the same modifier replaces the stored row.
    order = order_service.update_order_item(
        db,
        world.server,
        order.id,
        burger_line.id,
        OrderItemUpdate(modifier_ids=[world.cheese_id]),
        clock=clock,
        dispatcher=dispatcher,
    )
    assert [selected.modifier_id for selected in order.items[0].modifiers] == [world.cheese_id]

    order = order_service.update_order_item(
        db,
        world.server,
        order.id,
        burger_line.id,
        OrderItemUpdate(modifier_ids=[]),
        clock=clock,
        dispatcher=dispatcher,
    )
    assert order.items[0].modifiers == []
    assert order.subtotal == Decimal("40.00")


def test_cancelling_an_item_excludes_it_from_totals(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    fries_line = order.items[1]

    order = order_service.update_order_item(
        db,
        world.server,
        order.id,
        fries_line.id,
        OrderItemUpdate(status="CANCELLED"),
        clock=clock,
        dispatcher=dispatcher,
    )

    assert order.items[1].status == "CANCELLED"
    assert order.subtotal == Decimal("20.00")
    assert order.total == Decimal("21.60")
    assert "order-item:status-changed" in dispatcher.names()

    with pytest.raises(InvalidStateTransition):
        order_service.update_order_item(
            db,
            world.server,
            order.id,
            fries_line.id,
            OrderItemUpdate(quantity=4),
            clock=clock,
            dispatcher=dispatcher,
        )


def test_remove_item_and_last_item_guard(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    burger_line, fries_line = order.items

    order = order_service.remove_order_item(db, world.server, order.id, fries_line.id, clock=clock, dispatcher=dispatcher)
    assert [item.id for item in order.items] == [burger_line.id]
    assert order.subtotal == Decimal("20.00")
    assert order.total == Decimal("21.60")

    with pytest.raises(LastItemRemoval):
        order_service.remove_order_item(db, world.server, order.id, burger_line.id, clock=clock, dispatcher=dispatcher)


def test_remove_item_requires_pending_order(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    order_service.transition_order_status(db, world.kitchen, order.id, "PREPARING", clock=clock, dispatcher=dispatcher)

    with pytest.raises(OrderNotEditable):
        order_service.remove_order_item(
            db, world.server, order.id, order.items[0].id, clock=clock, dispatcher=dispatcher
        )


def test_remove_unknown_item(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    with pytest.raises(NotFound):
        order_service.remove_order_item(db, world.server, order.id, 999_999, clock=clock, dispatcher=dispatcher)


def test_tip_updates_total(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()

    order = order_service.set_order_tip(db, world.server, order.id, Decimal("4.60"), clock=clock, dispatcher=dispatcher)

    assert order.tip == Decimal("4.60")
    assert order.total == Decimal("37.00")


def test_tip_rejected_on_terminal_order(db, world, clock, dispatcher, make_order) -> None:
    order = make_order()
    order_service.cancel_order(db, world.manager, order.id, clock=clock, dispatcher=dispatcher)

    with pytest.raises(OrderNotEditable):
        order_service.set_order_tip(db, world.server, order.id, Decimal("1.00"), clock=clock, dispatcher=dispatcher)
