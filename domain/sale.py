"""
Domain: point-of-sale transactions and refunds.

A sale is created complete: it is persisted together with its line items and
immediately lowers stock for every item. After creation the only change a sale
undergoes here is its payment_status moving to `refunded` when a refund is
recorded against it.

A refund references a sale but does not own it, and does not give stock back.

Unlike purchases, a sale's tax and discount are supplied by the caller
(the POS cart) rather than derived from the items.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence

from .errors import ValidationError
from .time import require_utc_timestamp

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class SalePaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class SalePaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"


class RefundStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RefundMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


def generate_sale_number(now: datetime) -> str:
    """
    Build a sale number: "SALE-" + epoch milliseconds + "-" + 9 random base-36
    characters, e.g. "SALE-1792288000000-k3z9qa0b1".
    """

    require_utc_timestamp("now", now)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"SALE-{millis}-{suffix}"


@dataclass(frozen=True, slots=True)
class SaleItemInput:
    product_id: str
    quantity: int
    unit_price: Decimal
    discount: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class SaleLineItem:
    id: str
    sale_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class Sale:
    """
    Immutable record of a completed point-of-sale transaction.

    final_amount = total_amount - discount_amount + tax_amount
    """

    id: str
    tenant_id: str
    branch_id: str
    customer_id: str
    sale_number: str
    sale_date: datetime
    total_amount: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    payment_method: SalePaymentMethod
    payment_status: SalePaymentStatus
    status: SaleStatus
    user_id: str
    notes: str = ""
    created_at: Optional[datetime] = None
    items: List[SaleLineItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        require_utc_timestamp("sale_date", self.sale_date)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class Refund:
    id: str
    tenant_id: str
    branch_id: str
    sale_id: str
    refund_date: datetime
    refund_amount: Decimal
    refund_reason: str
    refund_method: RefundMethod
    status: RefundStatus
    user_id: str
    customer_id: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("refund_date", self.refund_date)


@dataclass(frozen=True, slots=True)
class SalesStats:
    total_sales: int
    total_revenue: Decimal
    total_refunds: int
    refund_amount: Decimal
    net_revenue: Decimal
    average_order_value: Decimal
    sales_today: int
    revenue_today: Decimal
    sales_this_month: int
    revenue_this_month: Decimal


def validate_sale_items(items: Sequence[SaleItemInput]) -> None:
    if not items:
        raise ValidationError("At least one item is required")

    for index, item in enumerate(items, start=1):
        if not item.product_id or not str(item.product_id).strip():
            raise ValidationError(f"Item {index}: product_id is required")
        if item.quantity <= 0:
            raise ValidationError(f"Item {index}: quantity must be greater than 0")
        if item.unit_price < 0:
            raise ValidationError(f"Item {index}: unit_price must be >= 0")
        if item.discount < 0:
            raise ValidationError(f"Item {index}: discount must be >= 0")


__all__ = [
    "SaleStatus",
    "SalePaymentStatus",
    "SalePaymentMethod",
    "RefundStatus",
    "RefundMethod",
    "SaleItemInput",
    "SaleLineItem",
    "Sale",
    "Refund",
    "SalesStats",
    "generate_sale_number",
    "validate_sale_items",
]
