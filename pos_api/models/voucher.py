"""Voucher and voucher redemption ORM models."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

VOUCHER_TYPES = ("PERCENTAGE", "FIXED_AMOUNT", "FREE_ITEM")


class Voucher(Base):
    """Promotional code with usage and date limits."""

    __tablename__ = "vouchers"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "code", name="uq_vouchers_restaurant_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(Enum(*VOUCHER_TYPES, name="voucher_type"), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_purchase: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    redemptions: Mapped[list["VoucherRedemption"]] = relationship(back_populates="voucher")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_uses(self) -> int | None:
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - self.usage_count, 0)


class VoucherRedemption(Base):
    """Active application of a voucher to an order."""

    __tablename__ = "voucher_redemptions"
    __table_args__ = (
        UniqueConstraint("order_id", name="uq_voucher_redemptions_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    voucher_id: Mapped[int] = mapped_column(ForeignKey("vouchers.id"), nullable=False, index=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    voucher: Mapped[Voucher] = relationship(back_populates="redemptions", lazy="joined")
    order: Mapped["Order"] = relationship(back_populates="voucher_redemptions")
