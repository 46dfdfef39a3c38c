"""
Totals calculation for purchase orders and sales.

Pure functions over line items; no I/O. Purchase totals are always derived
from the items (tax at a fixed rate, rounded to a whole unit), while sale totals
take the tax and discount the POS cart supplied.

The same function must be used at creation and whenever items are replaced,
so that stored totals always equal a recomputation from the current items.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

from domain.errors import ValidationError

TAX_RATE = Decimal("0.18")

_ZERO = Decimal("0")
_WHOLE_UNIT = Decimal("1")


class CostedLine(Protocol):
    quantity: int
    unit_cost: Decimal


class PricedLine(Protocol):
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class Totals:
    """
    Purchase order totals.

    total = max(0, subtotal + tax - discount)
    """
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


@dataclass(frozen=True, slots=True)
class SaleTotals:
    """
    Sale totals. total_amount is the pre-tax, pre-discount item sum.

    final_amount = total_amount - discount_amount + tax_amount
    """
    total_amount: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal


def round_tax(amount: Decimal) -> Decimal:
    """Round to a whole currency unit, halves away from zero."""
    return amount.quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


def calculate_totals(
    items: Iterable[CostedLine],
    discount: Decimal = _ZERO,
    tax_rate: Decimal = TAX_RATE,
) -> Totals:
    """
    Calculate purchase totals for the given line items.

    Args:
        items: Line items with quantity and unit_cost
        discount: Flat discount taken off subtotal + tax (must be >= 0)
        tax_rate: Tax rate as a fraction (default 0.18)

    Returns:
        Totals; total is clamped at 0 when the discount exceeds subtotal + tax

    Example:
        calculate_totals([PurchaseItemInput("Paracetamol", 10, Decimal("99.9"))])
        # Totals(subtotal=999.0, tax=180, discount=0, total=1179.0)
    """

    discount = Decimal(discount)
    if discount < 0:
        raise ValidationError("discount must be >= 0")

    subtotal = sum((Decimal(item.quantity) * Decimal(item.unit_cost) for item in items), _ZERO)
    tax = round_tax(subtotal * Decimal(tax_rate))
    total = max(_ZERO, subtotal + tax - discount)

    return Totals(subtotal=subtotal, tax=tax, discount=discount, total=total)


def calculate_sale_totals(
    items: Iterable[PricedLine],
    tax_amount: Decimal = _ZERO,
    discount_amount: Decimal = _ZERO,
) -> SaleTotals:
    """
    Calculate sale totals from line items and caller-supplied tax/discount.
    """

    tax_amount = Decimal(tax_amount)
    discount_amount = Decimal(discount_amount)
    if tax_amount < 0:
        raise ValidationError("tax_amount must be >= 0")
    if discount_amount < 0:
        raise ValidationError("discount_amount must be >= 0")

    total_amount = sum((Decimal(item.quantity) * Decimal(item.unit_price) for item in items), _ZERO)

    return SaleTotals(
        total_amount=total_amount,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        final_amount=total_amount - discount_amount + tax_amount,
    )


__all__ = [
    "TAX_RATE",
    "Totals",
    "SaleTotals",
    "round_tax",
    "calculate_totals",
    "calculate_sale_totals",
]
