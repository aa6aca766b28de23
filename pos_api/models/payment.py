"""Payment records attached to orders."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

PAYMENT_METHODS = ("CASH", "CREDIT_CARD", "DEBIT_CARD", "MOBILE_PAYMENT", "GIFT_CARD", "OTHER")
PAYMENT_STATUSES = ("PENDING", "COMPLETED", "FAILED", "REFUNDED")


class Payment(Base):
    """Money received against an order."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(Enum(*PAYMENT_METHODS, name="payment_method"), nullable=False)
    status: Mapped[str] = mapped_column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="PENDING")
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
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

    order: Mapped["Order"] = relationship(back_populates="payments")
