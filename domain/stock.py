"""
Domain: stock movements.

Every change to a product's on-hand counter is recorded as a movement carrying
the counter before and after the change, so a branch can reconstruct how a
product reached its current level.

Movement types and their effect on the counter:

    in          +quantity   (purchase receipts, manual stock-in)
    out         -quantity   (sales, manual write-off)
    transfer    -quantity   (stock sent to another branch)
    adjustment  +quantity   (count corrections; quantity may be negative)

This module is pure: no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import ValidationError


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"


_OUTBOUND = frozenset({MovementType.OUT, MovementType.TRANSFER})


def movement_delta(movement_type: MovementType, quantity: int) -> int:
    """
    Signed change to the counter for a movement of `quantity`.

    Raises:
        ValidationError: quantity is not positive (or zero, for adjustments)
    """

    if movement_type is MovementType.ADJUSTMENT:
        if quantity == 0:
            raise ValidationError("quantity must not be 0 for an adjustment")
        return quantity

    if quantity <= 0:
        raise ValidationError(f"quantity must be greater than 0 for a '{movement_type.value}' movement")
    return -quantity if movement_type in _OUTBOUND else quantity


def movement_for_delta(delta: int) -> tuple[MovementType, int]:
    """Movement type and recorded quantity for an engine-issued signed delta."""
    if delta < 0:
        return MovementType.OUT, -delta
    return MovementType.IN, delta


@dataclass(frozen=True, slots=True)
class StockMovement:
    id: str
    tenant_id: str
    branch_id: str
    product_id: str
    movement_type: MovementType
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    user_id: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


__all__ = [
    "MovementType",
    "StockMovement",
    "movement_delta",
    "movement_for_delta",
]
