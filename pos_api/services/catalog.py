"""Read-only access to menu items, modifiers, tables and tenant tax rates."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy.orm import Session

from pos_api.core.errors import InvalidModifierSelection, MenuItemUnavailable, NotFound
from pos_api.models.menu import MenuItem, Modifier
from pos_api.models.restaurant import DiningTable, Restaurant
from pos_api.models.user import Customer


def get_restaurant(db: Session, restaurant_id: int) -> Restaurant:
    """Load a restaurant or raise ``NotFound``."""
    restaurant: Restaurant | None = db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFound("Restaurant not found.", restaurant_id=restaurant_id)
    return restaurant


def get_tax_rate(db: Session, restaurant_id: int) -> Decimal:
    """Tenant tax rate in percent."""
    return get_restaurant(db, restaurant_id).tax_rate


def get_table(db: Session, restaurant_id: int, table_id: int) -> DiningTable:
    """Load a dining table of the given restaurant."""
    table: DiningTable | None = db.get(DiningTable, table_id)
    if table is None or table.restaurant_id != restaurant_id:
        raise NotFound("Table not found in this restaurant.", table_id=table_id)
    return table


def get_customer(db: Session, customer_id: int) -> Customer:
    """Load a customer or raise ``NotFound``."""
    customer: Customer | None = db.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found.", customer_id=customer_id)
    return customer


def get_available_menu_item(db: Session, restaurant_id: int, menu_item_id: int) -> MenuItem:
    """Menu item of the tenant that can currently be ordered."""
    item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if item is None or item.restaurant_id != restaurant_id:
        raise NotFound("Menu item not found in this restaurant.", menu_item_id=menu_item_id)
    if not item.available:
        raise MenuItemUnavailable(f"Menu item '{item.name}' is not available.", menu_item_id=menu_item_id)
    return item


def resolve_modifiers(db: Session, menu_item: MenuItem, modifier_ids: Iterable[int]) -> list[Modifier]:
    """Validate a modifier selection against the item's modifier groups.

    Every modifier must exist, be available, belong to one of the item's groups
    and appear at most once.
    """
    requested: list[int] = list(modifier_ids)
    duplicates: list[int] = sorted({mid for mid in requested if requested.count(mid) > 1})
    if duplicates:
        raise InvalidModifierSelection(
            "The same modifier was selected more than once.",
            menu_item_id=menu_item.id,
            modifier_ids=duplicates,
        )

    allowed_group_ids: set[int] = {group.id for group in menu_item.modifier_groups}
    modifiers: list[Modifier] = []
    for modifier_id in requested:
        modifier: Modifier | None = db.get(Modifier, modifier_id)
        if modifier is None or modifier.modifier_group_id not in allowed_group_ids:
            raise InvalidModifierSelection(
                "Modifier does not belong to any modifier group of this menu item.",
                menu_item_id=menu_item.id,
                modifier_id=modifier_id,
            )
        if not modifier.available:
            raise InvalidModifierSelection(
                f"Modifier '{modifier.name}' is not available.",
                menu_item_id=menu_item.id,
                modifier_id=modifier_id,
            )
        modifiers.append(modifier)
    return modifiers
