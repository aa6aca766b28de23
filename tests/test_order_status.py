"""Order and order item state machine tests."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from pos_api.core.errors import InvalidStateTransition
from pos_api.services.order_status import (
    can_transition,
    can_transition_item,
    derive_order_status,
    ensure_item_transition,
    ensure_transition,
    set_status,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _order(status: str, item_statuses: list[str]) -> SimpleNamespace:
    return SimpleNamespace(
        status=status,
        updated_at=None,
        completed_at=None,
        items=[SimpleNamespace(status=item_status) for item_status in item_statuses],
    )


@pytest.mark.parametrize(
    ("current", "new"),
    [
        ("PENDING", "PREPARING"),
        ("PENDING", "CANCELLED"),
        ("PREPARING", "READY"),
        ("PREPARING", "CANCELLED"),
        ("READY", "SERVED"),
        ("READY", "CANCELLED"),
        ("SERVED", "COMPLETED"),
    ],
)
def test_allowed_transitions(current: str, new: str) -> None:
    assert can_transition(current, new)
    ensure_transition(current, new)


@pytest.mark.parametrize(
    ("current", "new"),
    [
        ("PENDING", "READY"),
        ("PENDING", "COMPLETED"),
        ("READY", "PREPARING"),
        ("SERVED", "CANCELLED"),
        ("COMPLETED", "PENDING"),
        ("CANCELLED", "PENDING"),
        ("PENDING", "PENDING"),
    ],
)
def test_rejected_transitions(current: str, new: str) -> None:
    assert not can_transition(current, new)
    with pytest.raises(InvalidStateTransition) as exc_info:
        ensure_transition(current, new)
    assert exc_info.value.details["current_status"] == current
    assert exc_info.value.details["requested_status"] == new


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(InvalidStateTransition):
        ensure_transition("PENDING", "ON_HOLD")


def test_item_transitions_only_move_forward() -> None:
    assert can_transition_item("PENDING", "READY")
    assert can_transition_item("PREPARING", "CANCELLED")
    assert not can_transition_item("READY", "PREPARING")
    assert not can_transition_item("SERVED", "CANCELLED")
    assert not can_transition_item("CANCELLED", "PENDING")

    with pytest.raises(InvalidStateTransition):
        ensure_item_transition("READY", "PENDING")


def test_set_status_cascades_pending_items_to_preparing() -> None:
    order = _order("PENDING", ["PENDING", "READY", "CANCELLED"])

    cascaded = set_status(order, "PREPARING", NOW)

    assert [item.status for item in order.items] == ["PREPARING", "READY", "CANCELLED"]
    assert len(cascaded) == 1
    assert order.updated_at == NOW
    assert order.completed_at is None


def test_set_status_stamps_completion_once() -> None:
    order = _order("SERVED", ["SERVED"])
    set_status(order, "COMPLETED", NOW)
    assert order.completed_at == NOW

    set_status(order, "COMPLETED", NOW + timedelta(minutes=5))
    assert order.completed_at == NOW


def test_cancel_does_not_touch_items() -> None:
    order = _order("PREPARING", ["PREPARING", "PENDING"])

    cascaded = set_status(order, "CANCELLED", NOW)

    assert cascaded == []
    assert [item.status for item in order.items] == ["PREPARING", "PENDING"]
    assert order.completed_at == NOW


@pytest.mark.parametrize(
    ("order_status", "items", "expected"),
    [
        ("PREPARING", ["READY", "READY"], "READY"),
        ("PREPARING", ["READY", "SERVED"], "READY"),
        ("PREPARING", ["READY", "PREPARING"], "PREPARING"),
        ("READY", ["SERVED", "SERVED"], "SERVED"),
        ("READY", ["SERVED", "CANCELLED"], "SERVED"),
        ("READY", ["PREPARING"], "READY"),
        ("PENDING", ["CANCELLED"], "PENDING"),
        ("CANCELLED", ["SERVED"], "CANCELLED"),
        ("COMPLETED", ["READY"], "COMPLETED"),
    ],
)
def test_derive_order_status(order_status: str, items: list[str], expected: str) -> None:
    assert derive_order_status(order_status, items) == expected
