"""
Purchase order repository (persistence).

This module provides *only* persistence operations for PurchaseOrder and its
line items. It does not enforce lifecycle rules; those live in
services.purchase_service.

Orders are always addressed inside the caller's tenant and branch. Line items
carry no tenant columns and are addressed through their purchase_id, which
callers resolve in scope first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from domain.context import RequestContext
from domain.errors import PersistenceError
from domain.purchase import (
    PurchaseItemInput,
    PurchaseLineItem,
    PurchaseOrder,
    PurchasePaymentMethod,
    PurchasePaymentStatus,
    PurchaseStatus,
)
from domain.time import bound_to_iso_utc, parse_utc_datetime, to_iso_utc, utc_now
from repositories._query import (
    execute,
    optional_str,
    scoped,
    serialize,
    serialize_row,
    to_decimal,
)
from repositories.client import get_supabase

# Supabase table names.
# Keep these aligned with your database schema.
_PURCHASES_TABLE: str = "purchases"
_PURCHASE_ITEMS_TABLE: str = "purchase_items"

SORTABLE_COLUMNS = frozenset({"purchase_date", "total_amount", "purchase_number", "created_at"})


@dataclass(frozen=True, slots=True)
class PurchaseFilters:
    """Filter criteria for listing purchase orders."""
    search: Optional[str] = None  # substring of purchase_number
    status: Optional[PurchaseStatus] = None
    payment_status: Optional[PurchasePaymentStatus] = None
    supplier_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = "created_at"
    ascending: bool = False


def _row_to_item(row: Mapping[str, Any]) -> PurchaseLineItem:
    """Convert a Supabase row into a PurchaseLineItem."""

    return PurchaseLineItem(
        id=str(row["id"]),
        purchase_id=str(row["purchase_id"]),
        product_id=optional_str(row.get("product_id")),
        product_name=str(row.get("product_name") or ""),
        quantity=int(row["quantity"]),
        unit_cost=to_decimal(row.get("unit_cost")),
        total_cost=to_decimal(row.get("total_cost")),
        received_quantity=int(row.get("received_quantity") or 0),
        expiry_date=row.get("expiry_date"),
        batch_number=row.get("batch_number"),
        notes=row.get("notes"),
    )


def _row_to_purchase(row: Mapping[str, Any], items: Sequence[PurchaseLineItem] = ()) -> PurchaseOrder:
    """Convert a Supabase row into a PurchaseOrder."""

    payment_method = row.get("payment_method")
    return PurchaseOrder(
        id=str(row["id"]),
        tenant_id=str(row["tenant_id"]),
        branch_id=str(row["branch_id"]),
        supplier_id=str(row["supplier_id"]),
        purchase_number=str(row["purchase_number"]),
        purchase_date=parse_utc_datetime(row["purchase_date"]),
        subtotal=to_decimal(row.get("subtotal")),
        tax=to_decimal(row.get("tax")),
        discount=to_decimal(row.get("discount")),
        total_amount=to_decimal(row.get("total_amount")),
        payment_method=PurchasePaymentMethod(payment_method) if payment_method else None,
        payment_status=PurchasePaymentStatus(row["payment_status"]),
        status=PurchaseStatus(row["status"]),
        created_by=str(row["created_by"]),
        expected_delivery_date=row.get("expected_delivery_date"),
        delivery_date=parse_utc_datetime(row.get("delivery_date")),
        received_by=optional_str(row.get("received_by")),
        notes=row.get("notes"),
        created_at=parse_utc_datetime(row.get("created_at")),
        updated_at=parse_utc_datetime(row.get("updated_at")),
        items=list(items),
    )


def insert_purchase(
    ctx: RequestContext,
    *,
    supplier_id: str,
    purchase_number: str,
    purchase_date: datetime,
    subtotal: Decimal,
    tax: Decimal,
    discount: Decimal,
    total_amount: Decimal,
    payment_method: Optional[PurchasePaymentMethod] = None,
    expected_delivery_date: Optional[str] = None,
    notes: Optional[str] = None,
) -> PurchaseOrder:
    """
    Insert a new purchase order in `pending/pending` state.

    Returns:
        PurchaseOrder as stored (without items)
    """

    payload: Dict[str, Any] = {
        "tenant_id": ctx.tenant_id,
        "branch_id": ctx.branch_id,
        "supplier_id": supplier_id,
        "purchase_number": purchase_number,
        "purchase_date": to_iso_utc(purchase_date, name="purchase_date"),
        "expected_delivery_date": expected_delivery_date,
        "subtotal": serialize(subtotal),
        "tax": serialize(tax),
        "discount": serialize(discount),
        "total_amount": serialize(total_amount),
        "payment_method": serialize(payment_method),
        "payment_status": PurchasePaymentStatus.PENDING.value,
        "status": PurchaseStatus.PENDING.value,
        "notes": notes,
        "created_by": ctx.user_id,
    }

    rows = execute(get_supabase().table(_PURCHASES_TABLE).insert(payload), "create purchase")
    if not rows:
        raise PersistenceError("Failed to create purchase: store returned no row")
    return _row_to_purchase(rows[0])


def insert_purchase_items(purchase_id: str, items: Sequence[PurchaseItemInput]) -> List[PurchaseLineItem]:
    """
    Insert line items for a purchase in one request.

    total_cost is stored as quantity * unit_cost; received_quantity starts at 0.
    """

    payload = [
        {
            "purchase_id": purchase_id,
            "product_id": item.product_id,
            "product_name": item.product_name,
            "quantity": item.quantity,
            "unit_cost": serialize(item.unit_cost),
            "total_cost": serialize(item.quantity * item.unit_cost),
            "received_quantity": 0,
            "expiry_date": item.expiry_date,
            "batch_number": item.batch_number,
            "notes": item.notes,
        }
        for item in items
    ]

    rows = execute(get_supabase().table(_PURCHASE_ITEMS_TABLE).insert(payload), "create purchase items")
    return [_row_to_item(row) for row in rows]


def list_purchase_items(purchase_id: str) -> List[PurchaseLineItem]:
    response = (
        get_supabase()
        .table(_PURCHASE_ITEMS_TABLE)
        .select("*")
        .eq("purchase_id", purchase_id)
        .order("created_at")
    )
    return [_row_to_item(row) for row in execute(response, "list purchase items")]


def get_purchase(ctx: RequestContext, purchase_id: str) -> Optional[PurchaseOrder]:
    """
    Retrieve a purchase order with its line items.

    Returns:
        PurchaseOrder or None if not found in the caller's branch
    """

    query = scoped(get_supabase().table(_PURCHASES_TABLE).select("*"), ctx).eq("id", purchase_id).limit(1)
    rows = execute(query, "get purchase")
    if not rows:
        return None

    return _row_to_purchase(rows[0], list_purchase_items(purchase_id))


def list_purchases(ctx: RequestContext, filters: Optional[PurchaseFilters] = None) -> List[PurchaseOrder]:
    """
    List purchase orders in the caller's branch, with their line items.

    Items for all returned orders are fetched in a single follow-up query.
    """

    filters = filters or PurchaseFilters()
    query = scoped(get_supabase().table(_PURCHASES_TABLE).select("*"), ctx)

    if filters.search:
        query = query.ilike("purchase_number", f"%{filters.search}%")
    if filters.status is not None:
        query = query.eq("status", filters.status.value)
    if filters.payment_status is not None:
        query = query.eq("payment_status", filters.payment_status.value)
    if filters.supplier_id:
        query = query.eq("supplier_id", filters.supplier_id)
    if filters.date_from is not None:
        query = query.gte("purchase_date", bound_to_iso_utc(filters.date_from))
    if filters.date_to is not None:
        query = query.lte("purchase_date", bound_to_iso_utc(filters.date_to))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_COLUMNS else "created_at"
    query = query.order(sort_by, desc=not filters.ascending)

    rows = execute(query, "list purchases")
    if not rows:
        return []

    ids = [str(row["id"]) for row in rows]
    item_rows = execute(
        get_supabase().table(_PURCHASE_ITEMS_TABLE).select("*").in_("purchase_id", ids),
        "list purchase items",
    )
    items_by_purchase: Dict[str, List[PurchaseLineItem]] = {}
    for item_row in item_rows:
        item = _row_to_item(item_row)
        items_by_purchase.setdefault(item.purchase_id, []).append(item)

    return [_row_to_purchase(row, items_by_purchase.get(str(row["id"]), [])) for row in rows]


def update_purchase(ctx: RequestContext, purchase_id: str, changes: Mapping[str, Any]) -> None:
    """
    Write the given columns on a purchase order and stamp updated_at.
    """

    payload = serialize_row(changes)
    payload["updated_at"] = utc_now().isoformat()

    query = scoped(get_supabase().table(_PURCHASES_TABLE).update(payload), ctx).eq("id", purchase_id)
    execute(query, "update purchase")


def delete_purchase_items(purchase_id: str) -> None:
    query = get_supabase().table(_PURCHASE_ITEMS_TABLE).delete().eq("purchase_id", purchase_id)
    execute(query, "delete purchase items")


def delete_purchase(ctx: RequestContext, purchase_id: str) -> None:
    query = scoped(get_supabase().table(_PURCHASES_TABLE).delete(), ctx).eq("id", purchase_id)
    execute(query, "delete purchase")


def set_received_quantity(purchase_id: str, product_id: str, received_quantity: int) -> None:
    """Record the delivered quantity on every line of `purchase_id` for `product_id`."""

    query = (
        get_supabase()
        .table(_PURCHASE_ITEMS_TABLE)
        .update({"received_quantity": received_quantity})
        .eq("purchase_id", purchase_id)
        .eq("product_id", product_id)
    )
    execute(query, "update received quantity")


__all__ = [
    "PurchaseFilters",
    "insert_purchase",
    "insert_purchase_items",
    "list_purchase_items",
    "get_purchase",
    "list_purchases",
    "update_purchase",
    "delete_purchase_items",
    "delete_purchase",
    "set_received_quantity",
]
