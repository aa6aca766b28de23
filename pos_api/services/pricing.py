"""Order pricing: line totals, discounts, tax and grand total.

All amounts are :class:`~decimal.Decimal`. Line totals are exact, the discount
is rounded once (it is persisted on the voucher redemption), tax is rounded
from the discounted subtotal and the total is the sum of the rounded parts, so
``total == subtotal + tax + tip`` always holds to the cent.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from pos_api.core.errors import InvalidPriceInput

CENT: Decimal = Decimal("0.01")
ZERO: Decimal = Decimal("0.00")
HUNDRED: Decimal = Decimal("100")

DISCOUNT_TYPES: tuple[str, ...] = ("PERCENTAGE", "FIXED_AMOUNT", "FREE_ITEM")


def quantize_money(value: Decimal) -> Decimal:
    """Round half-up to whole cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceLine:
    unit_price: Decimal
    quantity: int
    modifier_prices: tuple[Decimal, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return (self.unit_price + sum(self.modifier_prices, ZERO)) * self.quantity


@dataclass(frozen=True)
class Discount:
    type: str
    value: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    gross_subtotal: Decimal
    discount: Decimal
    subtotal: Decimal
    tax: Decimal
    tip: Decimal | None
    total: Decimal


def _validate_line(line: PriceLine) -> None:
    if line.quantity < 1:
        raise InvalidPriceInput("Quantity must be at least 1.", field="quantity", value=line.quantity)
    if line.unit_price < 0:
        raise InvalidPriceInput("Unit price cannot be negative.", field="unit_price", value=line.unit_price)
    for price in line.modifier_prices:
        if price < 0:
            raise InvalidPriceInput("Modifier price cannot be negative.", field="modifier_price", value=price)


def _validate_rate(tax_rate: Decimal) -> None:
    if tax_rate < 0 or tax_rate > HUNDRED:
        raise InvalidPriceInput("Tax rate must be between 0 and 100.", field="tax_rate", value=tax_rate)


def gross_subtotal(lines: Iterable[PriceLine]) -> Decimal:
    """Sum of line totals, validated and unrounded."""
    total: Decimal = ZERO
    for line in lines:
        _validate_line(line)
        total += line.total
    return total


def discount_amount(discount: Discount, subtotal: Decimal) -> Decimal:
    """Rounded deduction a discount grants against ``subtotal``.

    FREE_ITEM deducts its flat ``value``; the deduction never exceeds the
    subtotal for any type.
    """
    if discount.type not in DISCOUNT_TYPES:
        raise InvalidPriceInput("Unknown discount type.", field="discount_type", value=discount.type)
    if discount.value < 0:
        raise InvalidPriceInput("Discount value cannot be negative.", field="discount_value", value=discount.value)

    if discount.type == "PERCENTAGE":
        if discount.value > HUNDRED:
            raise InvalidPriceInput(
                "Percentage discount cannot exceed 100.",
                field="discount_value",
                limit=HUNDRED,
                value=discount.value,
            )
        amount: Decimal = subtotal * discount.value / HUNDRED
    else:
        amount = discount.value
    return quantize_money(min(amount, subtotal))


def tax_for(net_subtotal: Decimal, tax_rate: Decimal) -> Decimal:
    """Tax on the discounted subtotal, rounded to cents."""
    _validate_rate(tax_rate)
    return quantize_money(net_subtotal * tax_rate / HUNDRED)


def totals_for_subtotal(subtotal: Decimal, tax_rate: Decimal, tip: Decimal | None = None) -> PriceBreakdown:
    """Recompute tax and total for an already-discounted subtotal."""
    if tip is not None and tip < 0:
        raise InvalidPriceInput("Tip cannot be negative.", field="tip", value=tip)
    net: Decimal = quantize_money(subtotal)
    tax: Decimal = tax_for(net, tax_rate)
    rounded_tip: Decimal | None = quantize_money(tip) if tip is not None else None
    total: Decimal = net + tax + (rounded_tip or ZERO)
    return PriceBreakdown(
        gross_subtotal=net,
        discount=ZERO,
        subtotal=net,
        tax=tax,
        tip=rounded_tip,
        total=total,
    )


def calculate(
    lines: Sequence[PriceLine],
    tax_rate: Decimal,
    tip: Decimal | None = None,
    discount: Discount | None = None,
) -> PriceBreakdown:
    """Price a set of order lines.

    ``subtotal`` in the result is the discounted subtotal that is stored on
    the order; ``gross_subtotal`` is the pre-discount figure.
    """
    _validate_rate(tax_rate)
    gross: Decimal = quantize_money(gross_subtotal(lines))
    deduction: Decimal = discount_amount(discount, gross) if discount is not None else ZERO
    breakdown: PriceBreakdown = totals_for_subtotal(gross - deduction, tax_rate, tip)
    return PriceBreakdown(
        gross_subtotal=gross,
        discount=deduction,
        subtotal=breakdown.subtotal,
        tax=breakdown.tax,
        tip=breakdown.tip,
        total=breakdown.total,
    )


def restore_subtotal(
    discount_type: str,
    discount_value: Decimal,
    current_subtotal: Decimal,
    recorded_discount: Decimal,
) -> Decimal:
    """Invert a voucher deduction to recover the pre-discount subtotal.

    Percentage vouchers divide back out. The recorded deduction was rounded
    once, so adding it back is exact; the division is only kept while it
    agrees with that to the cent. A 100% voucher has no inverse and fixed and
    free-item vouchers only ever add the deduction back.
    """
    exact: Decimal = quantize_money(current_subtotal + recorded_discount)
    if discount_type == "PERCENTAGE" and discount_value < HUNDRED:
        factor: Decimal = Decimal("1") - discount_value / HUNDRED
        divided: Decimal = quantize_money(current_subtotal / factor)
        if abs(divided - exact) <= CENT:
            return divided
    return exact
