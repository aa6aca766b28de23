"""Restaurant (tenant) and dining table ORM models."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

TABLE_STATUSES = ("AVAILABLE", "OCCUPIED", "RESERVED", "MAINTENANCE")


class Restaurant(Base):
    """Tenant; the unit of data isolation."""

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(8), nullable=True, unique=True)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    tables: Mapped[list["DiningTable"]] = relationship(back_populates="restaurant")

    @property
    def order_prefix(self) -> str:
        """Prefix used in human-readable order numbers."""
        if self.code:
            return self.code.upper()
        return f"R{self.id:03d}"


class DiningTable(Base):
    """Physical table; status is driven by the occupancy tracker."""

    __tablename__ = "dining_tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "number", name="uq_dining_table_restaurant_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    status: Mapped[str] = mapped_column(
        Enum(*TABLE_STATUSES, name="table_status"),
        nullable=False,
        default="AVAILABLE",
    )

    restaurant: Mapped[Restaurant] = relationship(back_populates="tables")
