"""restaurant pos schema

Revision ID: 0001_pos_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_pos_schema"
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATUSES = ("PENDING", "PREPARING", "READY", "SERVED", "COMPLETED", "CANCELLED")
ORDER_ITEM_STATUSES = ("PENDING", "PREPARING", "READY", "SERVED", "CANCELLED")


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(10, 2), nullable=nullable)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=8), nullable=True, unique=True),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_table(
        "dining_tables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False, index=True),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "OCCUPIED", "RESERVED", "MAINTENANCE", name="table_status"),
            nullable=False,
        ),
        sa.UniqueConstraint("restaurant_id", "number", name="uq_dining_table_restaurant_number"),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("role", sa.Enum("ADMIN", "MANAGER", "SERVER", "KITCHEN", name="user_role"), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        _timestamp("last_login_at", nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("loyalty_points", sa.Integer(), nullable=False),
    )
    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _money("price"),
        sa.Column("available", sa.Boolean(), nullable=False),
        sa.Column("preparation_time", sa.Integer(), nullable=True),
    )
    op.create_table(
        "modifier_groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=False),
        sa.Column("multi_select", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "menu_item_modifier_groups",
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "modifier_group_id",
            sa.Integer(),
            sa.ForeignKey("modifier_groups.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_table(
        "modifiers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("modifier_group_id", sa.Integer(), sa.ForeignKey("modifier_groups.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _money("price"),
        sa.Column("available", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("dining_tables.id"), nullable=True, index=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("order_seq", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum(*ORDER_STATUSES, name="order_status"), nullable=False),
        sa.Column("type", sa.Enum("DINE_IN", "TAKEOUT", "DELIVERY", "ONLINE", name="order_type"), nullable=False),
        _money("subtotal"),
        _money("tax"),
        _money("tip", nullable=True),
        _money("total"),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("completed_at", nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_order_number"),
        sa.UniqueConstraint("restaurant_id", "order_date", "order_seq", name="uq_orders_restaurant_date_seq"),
    )
    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("unit_price"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(*ORDER_ITEM_STATUSES, name="order_item_status"), nullable=False),
        _timestamp("created_at"),
    )
    op.create_table(
        "order_item_modifiers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_item_id", sa.Integer(), sa.ForeignKey("order_items.id"), nullable=False, index=True),
        sa.Column("modifier_id", sa.Integer(), sa.ForeignKey("modifiers.id"), nullable=False),
        _money("price"),
        sa.UniqueConstraint("order_item_id", "modifier_id", name="uq_order_item_modifier"),
    )
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        _money("amount"),
        sa.Column(
            "method",
            sa.Enum(
                "CASH", "CREDIT_CARD", "DEBIT_CARD", "MOBILE_PAYMENT", "GIFT_CARD", "OTHER",
                name="payment_method",
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("PENDING", "COMPLETED", "FAILED", "REFUNDED", name="payment_status"),
            nullable=False,
        ),
        sa.Column("transaction_id", sa.String(length=128), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_table(
        "vouchers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False, index=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("type", sa.Enum("PERCENTAGE", "FIXED_AMOUNT", "FREE_ITEM", name="voucher_type"), nullable=False),
        _money("value"),
        _money("min_purchase"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("start_date"),
        _timestamp("expiry_date"),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("restaurant_id", "code", name="uq_vouchers_restaurant_code"),
    )
    op.create_table(
        "voucher_redemptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("voucher_id", sa.Integer(), sa.ForeignKey("vouchers.id"), nullable=False, index=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        _money("discount_amount"),
        _timestamp("created_at"),
        sa.UniqueConstraint("order_id", name="uq_voucher_redemptions_order"),
    )
    op.create_table(
        "gift_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False, index=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        _money("initial_balance"),
        _money("current_balance"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("expiry_date", nullable=True),
        _timestamp("created_at"),
        sa.Column("version_id", sa.Integer(), nullable=False),
    )
    op.create_index("ix_gift_cards_code", "gift_cards", ["code"], unique=True)
    op.create_table(
        "gift_card_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gift_card_id", sa.Integer(), sa.ForeignKey("gift_cards.id"), nullable=False, index=True),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payments.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "type",
            sa.Enum("ISSUE", "LOAD", "REDEEM", "REFUND", name="gift_card_transaction_type"),
            nullable=False,
        ),
        _money("amount"),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        _timestamp("timestamp"),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("restaurant_id", sa.Integer(), nullable=True, index=True),
        sa.Column("action_type", sa.String(length=64), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=True, index=True),
        sa.Column("before_snapshot", sa.JSON(), nullable=True),
        sa.Column("after_snapshot", sa.JSON(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "gift_card_transactions",
        "gift_cards",
        "voucher_redemptions",
        "vouchers",
        "payments",
        "order_item_modifiers",
        "order_items",
        "orders",
        "modifiers",
        "menu_item_modifier_groups",
        "modifier_groups",
        "menu_items",
        "customers",
        "users",
        "dining_tables",
        "restaurants",
    ):
        op.drop_table(table)
