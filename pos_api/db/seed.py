"""Database seeding helpers."""

import logging
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.core.config import settings
from pos_api.core.security import get_password_hash
from pos_api.models import DiningTable, MenuItem, Modifier, ModifierGroup, Restaurant, User, Voucher
from pos_api.utils.time import SystemClock

logger = logging.getLogger(__name__)

DEMO_STAFF: tuple[tuple[str, str, str, str], ...] = (
    ("manager@example.com", "MANAGER", "Maria", "Manager"),
    ("server@example.com", "SERVER", "Sam", "Server"),
    ("kitchen@example.com", "KITCHEN", "Kim", "Cook"),
)


def ensure_admin_user(session: Session, restaurant: Restaurant) -> User:
    """Ensure the configured admin account exists."""
    existing_user: User | None = session.scalar(select(User).where(User.email == settings.admin_email))
    if existing_user is not None:
        return existing_user

    admin = User(
        email=settings.admin_email,
        password_hash=get_password_hash(settings.admin_password),
        first_name="Admin",
        last_name="User",
        role="ADMIN",
        restaurant_id=restaurant.id,
        is_active=True,
    )
    session.add(admin)
    return admin


def ensure_seed_data(session: Session) -> bool:
    """Create a demo restaurant with staff, tables and a small menu.

    Returns whether anything was created.
    """
    if session.scalar(select(Restaurant).limit(1)) is not None:
        return False

    restaurant = Restaurant(name="Demo Bistro", code="DEMO", tax_rate=Decimal("8.00"), is_active=True)
    session.add(restaurant)
    session.flush()

    ensure_admin_user(session, restaurant)
    for email, role, first_name, last_name in DEMO_STAFF:
        session.add(
            User(
                email=email,
                password_hash=get_password_hash(settings.admin_password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                restaurant_id=restaurant.id,
                is_active=True,
            )
        )

    for number in range(1, 7):
        session.add(DiningTable(restaurant_id=restaurant.id, number=number, capacity=4 if number % 2 else 2))

    sizes = ModifierGroup(name="Size", required=False, multi_select=False)
    sizes.modifiers = [
        Modifier(name="Large", price=Decimal("2.50"), available=True),
        Modifier(name="Small", price=Decimal("0.00"), available=True),
    ]
    extras = ModifierGroup(name="Extras", required=False, multi_select=True)
    extras.modifiers = [
        Modifier(name="Extra cheese", price=Decimal("1.50"), available=True),
        Modifier(name="Bacon", price=Decimal("2.00"), available=True),
    ]
    session.add_all([
        MenuItem(
            restaurant_id=restaurant.id,
            name="Classic Burger",
            price=Decimal("12.00"),
            available=True,
            preparation_time=15,
            modifier_groups=[sizes, extras],
        ),
        MenuItem(
            restaurant_id=restaurant.id,
            name="Tomato Soup",
            price=Decimal("6.50"),
            available=True,
            preparation_time=8,
        ),
        MenuItem(
            restaurant_id=restaurant.id,
            name="Lemonade",
            price=Decimal("3.00"),
            available=True,
            preparation_time=2,
            modifier_groups=[sizes],
        ),
    ])

    now = SystemClock().now()
    session.add(
        Voucher(
            restaurant_id=restaurant.id,
            code="WELCOME10",
            type="PERCENTAGE",
            value=Decimal("10.00"),
            min_purchase=Decimal("0.00"),
            is_active=True,
            start_date=now,
            expiry_date=now + timedelta(days=365),
            usage_limit=None,
            usage_count=0,
        )
    )
    session.commit()
    logger.info("[BOOTSTRAP] Seeded demo restaurant %s", restaurant.code)
    return True
