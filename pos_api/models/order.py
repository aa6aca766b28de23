"""Order aggregate models: orders, their line items and selected modifiers."""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

ORDER_STATUSES = ("PENDING", "PREPARING", "READY", "SERVED", "COMPLETED", "CANCELLED")
ORDER_TYPES = ("DINE_IN", "TAKEOUT", "DELIVERY", "ONLINE")
ORDER_ITEM_STATUSES = ("PENDING", "PREPARING", "READY", "SERVED", "CANCELLED")


class Order(Base):
    """One purchase transaction of a restaurant."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_order_number"),
        UniqueConstraint("restaurant_id", "order_date", "order_seq", name="uq_orders_restaurant_date_seq"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    table_id: Mapped[int | None] = mapped_column(ForeignKey("dining_tables.id"), nullable=True, index=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    order_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(Enum(*ORDER_STATUSES, name="order_status"), nullable=False, default="PENDING")
    type: Mapped[str] = mapped_column(Enum(*ORDER_TYPES, name="order_type"), nullable=False, default="DINE_IN")
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tip: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    table: Mapped["DiningTable | None"] = relationship()
    user: Mapped["User"] = relationship()
    customer: Mapped["Customer | None"] = relationship(back_populates="orders")
    restaurant: Mapped["Restaurant"] = relationship()
    voucher_redemptions: Mapped[list["VoucherRedemption"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payments: Mapped[list["Payment"]] = relationship(back_populates="order", order_by="Payment.id")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def table_number(self) -> int | None:
        return self.table.number if self.table is not None else None

    @property
    def voucher_redemption(self) -> "VoucherRedemption | None":
        return self.voucher_redemptions[0] if self.voucher_redemptions else None


class OrderItem(Base):
    """Line of an order; ``unit_price`` is a snapshot taken when the line was added."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*ORDER_ITEM_STATUSES, name="order_item_status"),
        nullable=False,
        default="PENDING",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    order: Mapped[Order] = relationship(back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship()
    modifiers: Mapped[list["OrderItemModifier"]] = relationship(
        back_populates="order_item",
        cascade="all, delete-orphan",
        order_by="OrderItemModifier.id",
        lazy="selectin",
    )

    @property
    def modifier_total(self) -> Decimal:
        return sum((modifier.price for modifier in self.modifiers), Decimal("0"))

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price + self.modifier_total) * self.quantity


class OrderItemModifier(Base):
    """Modifier selected for an order line, priced at selection time."""

    __tablename__ = "order_item_modifiers"
    __table_args__ = (
        UniqueConstraint("order_item_id", "modifier_id", name="uq_order_item_modifier"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    order_item_id: Mapped[int] = mapped_column(ForeignKey("order_items.id"), nullable=False, index=True)
    modifier_id: Mapped[int] = mapped_column(ForeignKey("modifiers.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order_item: Mapped[OrderItem] = relationship(back_populates="modifiers")
    modifier: Mapped["Modifier"] = relationship()
