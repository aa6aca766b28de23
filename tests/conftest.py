"""Shared fixtures: a throwaway SQLite database with two seeded restaurants."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pos_api.core.security import AuthContext, create_user_token, get_password_hash
from pos_api.db import session as db_session
from pos_api.db.base import Base
from pos_api.models import (
    Customer,
    DiningTable,
    MenuItem,
    Modifier,
    ModifierGroup,
    Restaurant,
    User,
    Voucher,
)
from pos_api.schemas.order import OrderCreate, OrderItemPayload
from pos_api.services import order_service
from pos_api.utils import time as time_utils
from pos_api.utils.time import FixedClock

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@dataclass
class RecordingDispatcher:
    """Keeps published events in memory."""

    events: list[tuple[int, str, dict[str, Any]]] = field(default_factory=list)

    def publish(self, restaurant_id: int, event: str, payload: dict[str, Any]) -> None:
        self.events.append((restaurant_id, event, payload))

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def session_factory(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = _build_test_engine(tmp_path / "pos_test.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    yield testing_session_local
    engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Session:
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock(monkeypatch) -> FixedClock:
    fixed = FixedClock(NOW)
    monkeypatch.setattr(time_utils, "default_clock", fixed)
    return fixed


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


def _user(restaurant: Restaurant | None, email: str, role: str, first_name: str) -> User:
    return User(
        email=email,
        password_hash=get_password_hash("secret123"),
        first_name=first_name,
        last_name="Tester",
        role=role,
        restaurant_id=restaurant.id if restaurant is not None else None,
        is_active=True,
    )


def _ctx(user: User) -> AuthContext:
    return AuthContext(user_id=user.id, role=user.role, restaurant_id=user.restaurant_id)


@pytest.fixture
def world(session_factory: sessionmaker) -> SimpleNamespace:
    """Two tenants; the first has staff, tables, a small menu and vouchers."""
    session: Session = session_factory()
    try:
        main = Restaurant(name="Main Street Diner", code="TST", tax_rate=Decimal("8.00"), is_active=True)
        other = Restaurant(name="Harbour Grill", code="HBR", tax_rate=Decimal("5.00"), is_active=True)
        session.add_all([main, other])
        session.flush()

        admin = _user(main, "admin@example.com", "ADMIN", "Ada")
        manager = _user(main, "manager@example.com", "MANAGER", "Mona")
        server = _user(main, "server@example.com", "SERVER", "Sid")
        kitchen = _user(main, "kitchen@example.com", "KITCHEN", "Kai")
        other_server = _user(other, "other-server@example.com", "SERVER", "Olga")
        session.add_all([admin, manager, server, kitchen, other_server])

        table_1 = DiningTable(restaurant_id=main.id, number=1, capacity=4, status="AVAILABLE")
        table_2 = DiningTable(restaurant_id=main.id, number=2, capacity=2, status="AVAILABLE")
        other_table = DiningTable(restaurant_id=other.id, number=1, capacity=4, status="AVAILABLE")
        session.add_all([table_1, table_2, other_table])

        extras = ModifierGroup(name="Extras", required=False, multi_select=True)
        cheese = Modifier(name="Cheese", price=Decimal("1.50"), available=True)
        bacon = Modifier(name="Bacon", price=Decimal("2.00"), available=False)
        extras.modifiers = [cheese, bacon]
        sauces = ModifierGroup(name="Sauces", required=False, multi_select=True)
        aioli = Modifier(name="Aioli", price=Decimal("0.75"), available=True)
        sauces.modifiers = [aioli]

        burger = MenuItem(
            restaurant_id=main.id,
            name="Burger",
            price=Decimal("10.00"),
            available=True,
            preparation_time=15,
            modifier_groups=[extras],
        )
        fries = MenuItem(restaurant_id=main.id, name="Fries", price=Decimal("5.00"), available=True, preparation_time=5)
        soup = MenuItem(restaurant_id=main.id, name="Soup", price=Decimal("4.00"), available=False, preparation_time=8)
        wings = MenuItem(
            restaurant_id=main.id,
            name="Wings",
            price=Decimal("8.00"),
            available=True,
            preparation_time=None,
            modifier_groups=[sauces],
        )
        other_item = MenuItem(restaurant_id=other.id, name="Fish", price=Decimal("14.00"), available=True)
        session.add_all([burger, fries, soup, wings, other_item])

        customer = Customer(first_name="Cora", last_name="Guest", email="cora@example.com", loyalty_points=0)
        session.add(customer)

        session.add_all([
            Voucher(
                restaurant_id=main.id,
                code="SAVE20",
                type="PERCENTAGE",
                value=Decimal("20.00"),
                min_purchase=Decimal("0.00"),
                is_active=True,
                start_date=NOW - timedelta(days=1),
                expiry_date=NOW + timedelta(days=30),
                usage_limit=10,
                usage_count=0,
            ),
            Voucher(
                restaurant_id=main.id,
                code="FIVEOFF",
                type="FIXED_AMOUNT",
                value=Decimal("5.00"),
                min_purchase=Decimal("20.00"),
                is_active=True,
                start_date=NOW - timedelta(days=1),
                expiry_date=NOW + timedelta(days=30),
                usage_limit=None,
                usage_count=0,
            ),
        ])
        session.commit()

        return SimpleNamespace(
            restaurant_id=main.id,
            other_restaurant_id=other.id,
            table_1_id=table_1.id,
            table_2_id=table_2.id,
            other_table_id=other_table.id,
            burger_id=burger.id,
            fries_id=fries.id,
            soup_id=soup.id,
            wings_id=wings.id,
            other_item_id=other_item.id,
            cheese_id=cheese.id,
            bacon_id=bacon.id,
            aioli_id=aioli.id,
            customer_id=customer.id,
            admin=_ctx(admin),
            manager=_ctx(manager),
            server=_ctx(server),
            kitchen=_ctx(kitchen),
            other_server=_ctx(other_server),
            tokens={
                "admin": create_user_token(admin),
                "manager": create_user_token(manager),
                "server": create_user_token(server),
                "kitchen": create_user_token(kitchen),
                "other_server": create_user_token(other_server),
            },
        )
    finally:
        session.close()


@pytest.fixture
def make_order(db: Session, world: SimpleNamespace, clock: FixedClock, dispatcher: RecordingDispatcher):
    """Create an order through the service; defaults to two burgers and two fries (30.00 net)."""

    def _make(ctx: AuthContext | None = None, table_id: int | None = None, items: list[OrderItemPayload] | None = None):
        payload = OrderCreate(
            items=items
            or [
                OrderItemPayload(menu_item_id=world.burger_id, quantity=2),
                OrderItemPayload(menu_item_id=world.fries_id, quantity=2),
            ],
            table_id=table_id,
        )
        return order_service.create_order(db, ctx or world.server, payload, clock=clock, dispatcher=dispatcher)

    return _make


@pytest.fixture
def client(session_factory: sessionmaker, clock: FixedClock, dispatcher: RecordingDispatcher) -> TestClient:
    from pos_api.main import app
    from pos_api.services.notifications import get_dispatcher

    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(world: SimpleNamespace):
    def _headers(who: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {world.tokens[who]}"}

    return _headers
