"""Centralized tenant and capability guards for POS operations."""

from __future__ import annotations

from typing import Protocol

from pos_api.core.errors import AuthorizationDenied, NotFound

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    "ADMIN": frozenset({"TAKE_ORDERS", "KITCHEN", "MANAGE_ORDERS", "MANAGE_DISCOUNTS", "CROSS_TENANT"}),
    "MANAGER": frozenset({"TAKE_ORDERS", "KITCHEN", "MANAGE_ORDERS", "MANAGE_DISCOUNTS"}),
    "SERVER": frozenset({"TAKE_ORDERS"}),
    "KITCHEN": frozenset({"KITCHEN"}),
}


class _Actor(Protocol):
    user_id: int
    role: str
    restaurant_id: int | None


class _Tenanted(Protocol):
    id: int
    restaurant_id: int


def has_capability(ctx: _Actor, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(ctx.role, frozenset())


def ensure_capability(ctx: _Actor, capability: str) -> None:
    """Ensure the caller's role grants ``capability``."""
    if not has_capability(ctx, capability):
        raise AuthorizationDenied(
            "Your role is not allowed to perform this action.",
            role=ctx.role,
            required_capability=capability,
        )


def can_access_tenant(ctx: _Actor, restaurant_id: int) -> bool:
    """Whether the caller may act within the restaurant."""
    return ctx.restaurant_id == restaurant_id or has_capability(ctx, "CROSS_TENANT")


def ensure_tenant(ctx: _Actor, restaurant_id: int) -> None:
    if not can_access_tenant(ctx, restaurant_id):
        raise AuthorizationDenied(
            "Resource belongs to another restaurant.",
            restaurant_id=restaurant_id,
            caller_restaurant_id=ctx.restaurant_id,
        )


def can_access_order(ctx: _Actor, order: _Tenanted) -> bool:
    """Same tenant, or a role with cross-tenant capability."""
    return can_access_tenant(ctx, order.restaurant_id)


def ensure_can_access_order(ctx: _Actor, order: _Tenanted | None, order_id: int) -> None:
    """Raise ``NotFound`` or ``AuthorizationDenied`` for an order the caller cannot see."""
    if order is None:
        raise NotFound("Order not found.", order_id=order_id)
    if not can_access_order(ctx, order):
        raise AuthorizationDenied("Order belongs to another restaurant.", order_id=order_id)


def resolve_tenant(ctx: _Actor, requested: int | None) -> int:
    """Tenant an operation runs against; only cross-tenant roles may pick one."""
    if requested is None:
        if ctx.restaurant_id is None:
            raise AuthorizationDenied("No restaurant is associated with this account.", user_id=ctx.user_id)
        return ctx.restaurant_id
    ensure_tenant(ctx, requested)
    return requested
