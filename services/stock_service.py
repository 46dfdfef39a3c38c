"""
Stock reconciliation: applying signed quantity deltas to product counters.

Both purchase receipts (positive deltas) and sales (negative deltas) go through
`apply_delta`. The counter is read, then written back with a condition that it
still holds the value read; if another writer got there first the update
matches no row and the read/write is retried. Stock is allowed to go negative
(an oversold product is recorded, not refused).

Every successful write is followed by one row in the stock movement ledger
holding the counter before and after, the reason, and the purchase or sale
number that caused it. Manual movements (stock-in, write-off, transfer,
count adjustment) go through `record_movement`.

`apply_deltas` is best-effort: a failure on one product is collected and the
remaining products are still adjusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from config.settings import get_settings
from domain.context import RequestContext
from domain.errors import EngineError, NotFoundError, PartialWriteError, PersistenceError, ValidationError
from domain.stock import MovementType, StockMovement, movement_delta, movement_for_delta
from repositories import stock_movement_repository
from repositories.product_repository import compare_and_set_stock, read_stock
from repositories.stock_movement_repository import StockMovementFilters
from services.results import service_operation

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Stock adjustment"


@dataclass(frozen=True, slots=True)
class StockDelta:
    product_id: Optional[str]
    quantity: int


@dataclass(frozen=True, slots=True)
class StockAdjustment:
    product_id: str
    delta: int
    previous: int
    current: int
    movement: StockMovement


@dataclass(frozen=True, slots=True)
class StockFailure:
    product_id: str
    delta: int
    message: str


@dataclass(frozen=True, slots=True)
class StockBatchResult:
    adjustments: List[StockAdjustment] = field(default_factory=list)
    failures: List[StockFailure] = field(default_factory=list)


def _coerce_movement_type(value: Union[MovementType, str, None]) -> MovementType:
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(value)
    except ValueError:
        raise ValidationError(f"Unsupported movement type: {value!r}") from None


def apply_delta(
    ctx: RequestContext,
    product_id: str,
    signed_quantity: int,
    *,
    reason: str = DEFAULT_REASON,
    movement_type: Optional[MovementType] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> StockAdjustment:
    """
    Add `signed_quantity` to a product's stock counter and record the movement.

    `movement_type` defaults to `in` for a positive delta and `out` for a
    negative one. The recorded quantity is the magnitude of the delta, except
    for adjustments, which keep their sign.

    Raises:
        NotFoundError: product does not exist in the caller's branch
        PersistenceError: the store failed, or the counter kept changing
            underneath us for every allowed attempt
        PartialWriteError: the counter was written but the movement row was not
    """

    if movement_type is None:
        movement_type, recorded_quantity = movement_for_delta(signed_quantity)
    elif movement_type is MovementType.ADJUSTMENT:
        recorded_quantity = signed_quantity
    else:
        recorded_quantity = abs(signed_quantity)

    max_attempts = get_settings().stock_update_max_attempts

    for attempt in range(1, max_attempts + 1):
        reading = read_stock(ctx, product_id)
        if reading is None:
            raise NotFoundError(f"Product not found: {product_id}")

        new_quantity = reading.quantity + signed_quantity
        if compare_and_set_stock(ctx, reading, new_quantity):
            break

        logger.warning(
            "Stock changed concurrently, retrying",
            extra={"product_id": product_id, "attempt": attempt, "max_attempts": max_attempts},
        )
    else:
        raise PersistenceError(
            f"Failed to update stock for product {product_id}: "
            f"counter changed concurrently {max_attempts} times"
        )

    try:
        movement = stock_movement_repository.insert_movement(
            ctx,
            product_id=product_id,
            movement_type=movement_type,
            quantity=recorded_quantity,
            previous_quantity=reading.quantity,
            new_quantity=new_quantity,
            reason=reason,
            reference_number=reference_number,
            notes=notes,
        )
    except PersistenceError as e:
        raise PartialWriteError(
            f"Stock for product {product_id} changed from {reading.quantity} to {new_quantity} "
            f"but the movement could not be recorded: {e.message}",
            orphan_id=product_id,
        ) from e

    logger.info(
        "Stock adjusted",
        extra={
            "product_id": product_id,
            "delta": signed_quantity,
            "previous": reading.quantity,
            "current": new_quantity,
            "movement_id": movement.id,
            "reference_number": reference_number,
            "branch_id": ctx.branch_id,
        },
    )
    return StockAdjustment(
        product_id=product_id,
        delta=signed_quantity,
        previous=reading.quantity,
        current=new_quantity,
        movement=movement,
    )


def apply_deltas(
    ctx: RequestContext,
    deltas: Iterable[StockDelta],
    *,
    reason: str = DEFAULT_REASON,
    reference_number: Optional[str] = None,
) -> StockBatchResult:
    """
    Apply each delta independently, in order, recording each under `reason`.

    Entries without a product_id, or with a zero quantity, are skipped.
    """

    result = StockBatchResult()

    for delta in deltas:
        if not delta.product_id or delta.quantity == 0:
            continue

        try:
            result.adjustments.append(
                apply_delta(
                    ctx,
                    delta.product_id,
                    delta.quantity,
                    reason=reason,
                    reference_number=reference_number,
                )
            )
        except EngineError as e:
            logger.warning(
                f"Stock update incomplete for product {delta.product_id}: {e.message}",
                extra={"product_id": delta.product_id, "delta": delta.quantity, "error_code": e.code},
            )
            result.failures.append(
                StockFailure(product_id=delta.product_id, delta=delta.quantity, message=e.message)
            )

    return result


@service_operation("record stock movement")
def record_movement(
    ctx: RequestContext,
    product_id: str,
    movement_type: Union[MovementType, str],
    quantity: int,
    reason: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> StockMovement:
    """
    Record a manual stock movement and apply it to the product's counter.

    `in` and `adjustment` add the quantity; `out` and `transfer` subtract it.
    Quantities must be positive, except adjustments, which may be negative
    but not zero.
    """

    if not product_id or not str(product_id).strip():
        raise ValidationError("product_id is required")
    if not reason or not reason.strip():
        raise ValidationError("reason is required")

    kind = _coerce_movement_type(movement_type)
    signed = movement_delta(kind, quantity)

    adjustment = apply_delta(
        ctx,
        product_id,
        signed,
        reason=reason.strip(),
        movement_type=kind,
        reference_number=reference_number,
        notes=notes,
    )
    return adjustment.movement


@service_operation("fetch stock movements")
def list_stock_movements(
    ctx: RequestContext,
    filters: Optional[StockMovementFilters] = None,
) -> List[StockMovement]:
    return stock_movement_repository.list_movements(ctx, filters)


__all__ = [
    "StockDelta",
    "StockAdjustment",
    "StockFailure",
    "StockBatchResult",
    "apply_delta",
    "apply_deltas",
    "record_movement",
    "list_stock_movements",
]
