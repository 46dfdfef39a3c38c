"""
Purchase order lifecycle.

Handles:
- Creating orders with totals derived from their items
- Editing orders, including wholesale replacement of line items
- Receiving orders, which raises stock for every item linked to a product
- Deleting orders together with their items

Every operation returns a ServiceResult (see services.results). Writes are
issued in order (order row, then items, then stock; an update replaces items
before touching the order row) and are not rolled back if a later step fails:
a failed item insert leaves the earlier rows behind and is reported as a
partial write.

Stock failures while receiving are logged and skipped; they do not fail the
receipt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from config.settings import get_settings
from domain.catalog import Product, Supplier
from domain.context import RequestContext
from domain.errors import NotFoundError, PartialWriteError, PersistenceError, ValidationError
from domain.purchase import (
    PurchaseItemInput,
    PurchaseOrder,
    PurchasePaymentMethod,
    PurchasePaymentStatus,
    PurchaseStatus,
    ReceivedItem,
    can_transition,
    generate_purchase_number,
    validate_purchase_items,
    validate_received_items,
)
from domain.time import utc_now
from repositories import purchase_repository
from repositories.catalog_repository import list_active_suppliers
from repositories.product_repository import list_active_products
from repositories.purchase_repository import PurchaseFilters
from services.pricing_service import calculate_totals
from services.results import service_operation
from services.stock_service import StockBatchResult, StockDelta, apply_deltas

logger = logging.getLogger(__name__)

PRODUCT_SEARCH_LIMIT = 50
RECEIPT_REASON = "Purchase received"


@dataclass(frozen=True, slots=True)
class PurchaseChanges:
    """
    Partial update of a purchase order. Fields left as None are not written.

    Supplying `items` replaces every existing line item and recomputes totals.
    `discount` is only accepted together with `items`.
    """
    supplier_id: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    payment_method: Optional[PurchasePaymentMethod] = None
    payment_status: Optional[PurchasePaymentStatus] = None
    status: Optional[PurchaseStatus] = None
    notes: Optional[str] = None
    delivery_date: Optional[datetime] = None
    received_by: Optional[str] = None
    discount: Optional[Decimal] = None
    items: Optional[List[PurchaseItemInput]] = None


def _coerce_payment_method(
    value: Union[PurchasePaymentMethod, str, None],
) -> Optional[PurchasePaymentMethod]:
    if value is None or isinstance(value, PurchasePaymentMethod):
        return value
    try:
        return PurchasePaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Unsupported payment method: {value!r}") from None


def _require_purchase(ctx: RequestContext, purchase_id: str) -> PurchaseOrder:
    purchase = purchase_repository.get_purchase(ctx, purchase_id)
    if purchase is None:
        raise NotFoundError(f"Purchase order not found: {purchase_id}")
    return purchase


def _receive_stock(ctx: RequestContext, purchase: PurchaseOrder, deltas: Sequence[StockDelta]) -> StockBatchResult:
    purchase_id = purchase.id
    batch = apply_deltas(ctx, deltas, reason=RECEIPT_REASON, reference_number=purchase.purchase_number)
    if batch.failures:
        logger.warning(
            f"{len(batch.failures)} stock update(s) skipped while receiving purchase {purchase_id}",
            extra={
                "purchase_id": purchase_id,
                "product_ids": [failure.product_id for failure in batch.failures],
            },
        )
    return batch


@service_operation("create purchase")
def create_purchase(
    ctx: RequestContext,
    supplier_id: str,
    items: Sequence[PurchaseItemInput],
    discount: Decimal = Decimal("0"),
    payment_method: Union[PurchasePaymentMethod, str, None] = None,
    notes: Optional[str] = None,
    expected_delivery_date: Optional[str] = None,
) -> PurchaseOrder:
    """
    Create a purchase order in `pending` status with `pending` payment.

    Process:
    1. Validate supplier, items and discount (nothing is written on failure)
    2. Compute subtotal, tax and total from the items
    3. Insert the order row, then its line items

    If the items cannot be saved the order row stays in the store and the
    result reports a partial write.
    """

    if not supplier_id or not str(supplier_id).strip():
        raise ValidationError("supplier_id is required")
    validate_purchase_items(items)
    method = _coerce_payment_method(payment_method)

    totals = calculate_totals(items, discount if discount is not None else Decimal("0"), get_settings().tax_rate)
    now = utc_now()

    order = purchase_repository.insert_purchase(
        ctx,
        supplier_id=supplier_id,
        purchase_number=generate_purchase_number(now),
        purchase_date=now,
        subtotal=totals.subtotal,
        tax=totals.tax,
        discount=totals.discount,
        total_amount=totals.total,
        payment_method=method,
        expected_delivery_date=expected_delivery_date,
        notes=notes,
    )

    try:
        lines = purchase_repository.insert_purchase_items(order.id, items)
    except PersistenceError as e:
        raise PartialWriteError(
            f"Purchase {order.purchase_number} was created but its items could not be saved: {e.message}",
            orphan_id=order.id,
        ) from e

    logger.info(
        f"Purchase order {order.purchase_number} created",
        extra={
            "purchase_id": order.id,
            "supplier_id": supplier_id,
            "item_count": len(lines),
            "total_amount": str(totals.total),
            "branch_id": ctx.branch_id,
        },
    )
    return replace(order, items=lines)


@service_operation("update purchase")
def update_purchase(ctx: RequestContext, purchase_id: str, changes: PurchaseChanges) -> PurchaseOrder:
    """
    Apply a partial update to a purchase order.

    Rules:
    - Cancelled orders cannot be edited
    - A status change must follow the lifecycle (see domain.purchase)
    - Totals are recomputed only when items are supplied, using the supplied
      discount or else the stored one; a discount on its own is rejected so
      stored totals never drift from the items
    - Supplied items replace all existing items (no merge)
    - Moving into `received` raises stock by each item's ordered quantity
    """

    current = _require_purchase(ctx, purchase_id)

    if not current.is_editable:
        raise ValidationError(f"Purchase order {current.purchase_number} is cancelled and cannot be edited")

    new_status = changes.status
    if new_status is not None and new_status != current.status and not can_transition(current.status, new_status):
        raise ValidationError(
            f"Cannot change purchase status from {current.status.value} to {new_status.value}"
        )

    if changes.items is not None:
        validate_purchase_items(changes.items)
    elif changes.discount is not None:
        raise ValidationError("discount can only be changed together with items")

    patch: Dict[str, Any] = {
        "supplier_id": changes.supplier_id,
        "expected_delivery_date": changes.expected_delivery_date,
        "payment_method": changes.payment_method,
        "payment_status": changes.payment_status,
        "status": new_status,
        "notes": changes.notes,
        "delivery_date": changes.delivery_date,
        "received_by": changes.received_by,
    }
    patch = {key: value for key, value in patch.items() if value is not None}

    entering_received = new_status is PurchaseStatus.RECEIVED and current.status is not PurchaseStatus.RECEIVED
    if entering_received:
        patch.setdefault("delivery_date", utc_now())
        patch.setdefault("received_by", ctx.user_id)

    if changes.items is not None:
        discount = changes.discount if changes.discount is not None else current.discount
        totals = calculate_totals(changes.items, discount, get_settings().tax_rate)
        patch.update(
            subtotal=totals.subtotal,
            tax=totals.tax,
            discount=totals.discount,
            total_amount=totals.total,
        )

    # Items first: a failed replacement must leave status and totals untouched.
    if changes.items is not None:
        purchase_repository.delete_purchase_items(purchase_id)
        try:
            purchase_repository.insert_purchase_items(purchase_id, changes.items)
        except PersistenceError as e:
            raise PartialWriteError(
                f"Items of purchase {current.purchase_number} were removed but the replacements could not be "
                f"saved; the order itself was not changed: {e.message}",
                orphan_id=purchase_id,
            ) from e

    try:
        purchase_repository.update_purchase(ctx, purchase_id, patch)
    except PersistenceError as e:
        if changes.items is None:
            raise
        raise PartialWriteError(
            f"Items of purchase {current.purchase_number} were replaced but the order could not be updated: "
            f"{e.message}",
            orphan_id=purchase_id,
        ) from e

    if entering_received:
        received_lines = changes.items if changes.items is not None else current.items
        _receive_stock(
            ctx,
            current,
            [StockDelta(product_id=line.product_id, quantity=line.quantity) for line in received_lines],
        )

    return _require_purchase(ctx, purchase_id)


@service_operation("mark purchase as received")
def mark_received(ctx: RequestContext, purchase_id: str, received_items: Sequence[ReceivedItem]) -> PurchaseOrder:
    """
    Record delivery of a purchase order.

    Sets status to `received`, stamps delivery_date and received_by, stores
    each item's received_quantity and raises stock by the received (not the
    ordered) quantity for every item linked to a product.

    An order can be received once; receiving it again is rejected so stock is
    never raised twice for the same delivery.
    """

    validate_received_items(received_items)
    current = _require_purchase(ctx, purchase_id)

    if current.status is PurchaseStatus.RECEIVED:
        raise ValidationError(f"Purchase order {current.purchase_number} has already been received")
    if not can_transition(current.status, PurchaseStatus.RECEIVED):
        raise ValidationError(
            f"Purchase order {current.purchase_number} cannot be received from status {current.status.value}"
        )

    purchase_repository.update_purchase(
        ctx,
        purchase_id,
        {
            "status": PurchaseStatus.RECEIVED,
            "delivery_date": utc_now(),
            "received_by": ctx.user_id,
        },
    )

    try:
        for item in received_items:
            if item.product_id:
                purchase_repository.set_received_quantity(purchase_id, item.product_id, item.received_quantity)
    except PersistenceError as e:
        raise PartialWriteError(
            f"Purchase {current.purchase_number} was marked received but item quantities could not be saved: {e.message}",
            orphan_id=purchase_id,
        ) from e

    batch = _receive_stock(
        ctx,
        current,
        [StockDelta(product_id=item.product_id, quantity=item.received_quantity) for item in received_items],
    )

    logger.info(
        f"Purchase order {current.purchase_number} received",
        extra={
            "purchase_id": purchase_id,
            "received_by": ctx.user_id,
            "products_adjusted": len(batch.adjustments),
        },
    )
    return _require_purchase(ctx, purchase_id)


@service_operation("delete purchase")
def delete_purchase(ctx: RequestContext, purchase_id: str) -> bool:
    """
    Delete a purchase order and its line items.

    Stock raised by an earlier receipt is left as is.
    """

    current = _require_purchase(ctx, purchase_id)

    if current.status is PurchaseStatus.RECEIVED:
        logger.warning(
            f"Deleting received purchase {current.purchase_number}; stock is not reversed",
            extra={"purchase_id": purchase_id},
        )

    purchase_repository.delete_purchase_items(purchase_id)
    try:
        purchase_repository.delete_purchase(ctx, purchase_id)
    except PersistenceError as e:
        raise PartialWriteError(
            f"Items of purchase {current.purchase_number} were deleted but the order could not be: {e.message}",
            orphan_id=purchase_id,
        ) from e

    logger.info(f"Purchase order {current.purchase_number} deleted", extra={"purchase_id": purchase_id})
    return True


@service_operation("fetch purchase")
def get_purchase(ctx: RequestContext, purchase_id: str) -> PurchaseOrder:
    return _require_purchase(ctx, purchase_id)


@service_operation("fetch purchases")
def list_purchases(ctx: RequestContext, filters: Optional[PurchaseFilters] = None) -> List[PurchaseOrder]:
    return purchase_repository.list_purchases(ctx, filters)


@service_operation("fetch suppliers")
def list_suppliers(ctx: RequestContext) -> List[Supplier]:
    return list_active_suppliers(ctx)


@service_operation("fetch products")
def search_products(
    ctx: RequestContext,
    search: Optional[str] = None,
    limit: int = PRODUCT_SEARCH_LIMIT,
) -> List[Product]:
    return list_active_products(ctx, search=search, limit=limit)


__all__ = [
    "PurchaseChanges",
    "create_purchase",
    "update_purchase",
    "mark_received",
    "delete_purchase",
    "get_purchase",
    "list_purchases",
    "list_suppliers",
    "search_products",
]
