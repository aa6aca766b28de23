"""Menu catalog ORM models read by the order subsystem."""

from decimal import Decimal

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

menu_item_modifier_groups = Table(
    "menu_item_modifier_groups",
    Base.metadata,
    Column("menu_item_id", ForeignKey("menu_items.id", ondelete="CASCADE"), primary_key=True),
    Column("modifier_group_id", ForeignKey("modifier_groups.id", ondelete="CASCADE"), primary_key=True),
)


class MenuItem(Base):
    """Dish that can be ordered."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    preparation_time: Mapped[int | None] = mapped_column(Integer, nullable=True)

    modifier_groups: Mapped[list["ModifierGroup"]] = relationship(
        secondary=menu_item_modifier_groups,
        back_populates="menu_items",
        lazy="selectin",
    )


class ModifierGroup(Base):
    """Named set of modifiers, shared between menu items."""

    __tablename__ = "modifier_groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    multi_select: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    modifiers: Mapped[list["Modifier"]] = relationship(back_populates="group", lazy="selectin")
    menu_items: Mapped[list[MenuItem]] = relationship(
        secondary=menu_item_modifier_groups,
        back_populates="modifier_groups",
    )


class Modifier(Base):
    """Priced add-on or variant, e.g. extra cheese."""

    __tablename__ = "modifiers"

    id: Mapped[int] = mapped_column(primary_key=True)
    modifier_group_id: Mapped[int] = mapped_column(ForeignKey("modifier_groups.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    group: Mapped[ModifierGroup] = relationship(back_populates="modifiers")
