"""Gift card and its append-only transaction ledger."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_api.db.base import Base

TRANSACTION_TYPES = ("ISSUE", "LOAD", "REDEEM", "REFUND")


class GiftCard(Base):
    """Stored-value card; ``current_balance`` always matches the ledger."""

    __tablename__ = "gift_cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False, index=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    initial_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    current_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    transactions: Mapped[list["GiftCardTransaction"]] = relationship(
        back_populates="gift_card",
        order_by="GiftCardTransaction.id",
    )
    restaurant: Mapped["Restaurant"] = relationship()

    __mapper_args__ = {"version_id_col": version_id}


class GiftCardTransaction(Base):
    """Ledger entry; never updated or deleted once written."""

    __tablename__ = "gift_card_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    gift_card_id: Mapped[int] = mapped_column(ForeignKey("gift_cards.id"), nullable=False, index=True)
    payment_id: Mapped[int | None] = mapped_column(ForeignKey("payments.id"), nullable=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(Enum(*TRANSACTION_TYPES, name="gift_card_transaction_type"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    gift_card: Mapped[GiftCard] = relationship(back_populates="transactions")

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.type == "REDEEM" else self.amount
