"""
Domain: purchase orders.

A purchase order is a procurement document raised against a supplier. It owns
its line items and moves through a status lifecycle:

    pending -> ordered -> received -> returned
    pending -> received
    pending | ordered -> cancelled

`cancelled` and `returned` are terminal. Receiving an order is the only
transition that changes stock.

Totals are never taken from the caller; they are recomputed from the line items
(see services.pricing_service).

This module is pure: no I/O. Timestamps are passed explicitly.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence

from .errors import ValidationError
from .time import require_utc_timestamp

_NUMBER_ALPHABET = string.digits + string.ascii_uppercase


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    ORDERED = "ordered"
    RECEIVED = "received"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PurchasePaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PurchasePaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT = "credit"
    MOBILE_MONEY = "mobile_money"


_TRANSITIONS: Dict[PurchaseStatus, FrozenSet[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset(
        {PurchaseStatus.ORDERED, PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED}
    ),
    PurchaseStatus.ORDERED: frozenset({PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED}),
    PurchaseStatus.RECEIVED: frozenset({PurchaseStatus.RETURNED}),
    PurchaseStatus.CANCELLED: frozenset(),
    PurchaseStatus.RETURNED: frozenset(),
}


def can_transition(current: PurchaseStatus, new: PurchaseStatus) -> bool:
    """True if `current -> new` is an allowed lifecycle step (not a no-op)."""
    return new in _TRANSITIONS[current]


def is_terminal(status: PurchaseStatus) -> bool:
    return not _TRANSITIONS[status]


def generate_purchase_number(now: datetime) -> str:
    """
    Build a purchase number: "PO" + 2-digit year + 2-digit month + 6 random
    base-36 characters, e.g. "PO2610K3Z9QA".

    Collisions are not checked against the store.
    """

    require_utc_timestamp("now", now)
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(6))
    return f"PO{now:%y%m}{suffix}"


@dataclass(frozen=True, slots=True)
class PurchaseItemInput:
    """A line item as submitted by the caller, before persistence."""

    product_name: str
    quantity: int
    unit_cost: Decimal
    product_id: Optional[str] = None
    expiry_date: Optional[str] = None
    batch_number: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ReceivedItem:
    """Quantity actually delivered for one product on receipt."""

    received_quantity: int
    product_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PurchaseLineItem:
    id: str
    purchase_id: str
    product_name: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    received_quantity: int = 0
    product_id: Optional[str] = None
    expiry_date: Optional[str] = None
    batch_number: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PurchaseOrder:
    id: str
    tenant_id: str
    branch_id: str
    supplier_id: str
    purchase_number: str
    purchase_date: datetime
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_status: PurchasePaymentStatus
    status: PurchaseStatus
    created_by: str
    payment_method: Optional[PurchasePaymentMethod] = None
    expected_delivery_date: Optional[str] = None
    delivery_date: Optional[datetime] = None
    received_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseLineItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        require_utc_timestamp("purchase_date", self.purchase_date)
        if self.delivery_date is not None:
            require_utc_timestamp("delivery_date", self.delivery_date)

    @property
    def is_editable(self) -> bool:
        return self.status is not PurchaseStatus.CANCELLED


def validate_purchase_items(items: Sequence[PurchaseItemInput]) -> None:
    """Raise ValidationError unless there is at least one well-formed item."""

    if not items:
        raise ValidationError("At least one item is required")

    for index, item in enumerate(items, start=1):
        if not item.product_name or not item.product_name.strip():
            raise ValidationError(f"Item {index}: product_name is required")
        if item.quantity <= 0:
            raise ValidationError(f"Item {index}: quantity must be greater than 0")
        if item.unit_cost <= 0:
            raise ValidationError(f"Item {index}: unit_cost must be greater than 0")


def validate_received_items(items: Sequence[ReceivedItem]) -> None:
    for index, item in enumerate(items, start=1):
        if item.received_quantity < 0:
            raise ValidationError(f"Item {index}: received_quantity must be >= 0")


__all__ = [
    "PurchaseStatus",
    "PurchasePaymentStatus",
    "PurchasePaymentMethod",
    "PurchaseItemInput",
    "ReceivedItem",
    "PurchaseLineItem",
    "PurchaseOrder",
    "can_transition",
    "is_terminal",
    "generate_purchase_number",
    "validate_purchase_items",
    "validate_received_items",
]
