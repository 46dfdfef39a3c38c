"""
Sale repository (persistence).

This module provides *only* persistence operations for Sale and its line
items. It does not enforce business rules (stock movements, refund effects);
those live in services.sales_service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from domain.context import RequestContext
from domain.errors import PersistenceError
from domain.sale import (
    Sale,
    SaleItemInput,
    SaleLineItem,
    SalePaymentMethod,
    SalePaymentStatus,
    SaleStatus,
)
from domain.time import bound_to_iso_utc, parse_utc_datetime, to_iso_utc
from repositories._query import execute, scoped, serialize, to_decimal
from repositories.client import get_supabase

# Supabase table names.
# Keep these aligned with your database schema.
_SALES_TABLE: str = "sales"
_SALE_ITEMS_TABLE: str = "sale_items"

SORTABLE_COLUMNS = frozenset({"sale_date", "total_amount", "created_at"})


@dataclass(frozen=True, slots=True)
class SaleFilters:
    """Filter criteria for listing sales."""
    search: Optional[str] = None  # substring of sale_number
    status: Optional[SaleStatus] = None
    payment_status: Optional[SalePaymentStatus] = None
    payment_method: Optional[SalePaymentMethod] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = "created_at"
    ascending: bool = False


def _row_to_item(row: Mapping[str, Any]) -> SaleLineItem:
    return SaleLineItem(
        id=str(row["id"]),
        sale_id=str(row["sale_id"]),
        product_id=str(row["product_id"]),
        quantity=int(row["quantity"]),
        unit_price=to_decimal(row.get("unit_price")),
        total_price=to_decimal(row.get("total_price")),
        discount=to_decimal(row.get("discount")),
    )


def _row_to_sale(row: Mapping[str, Any], items: Sequence[SaleLineItem] = ()) -> Sale:
    """Convert a Supabase row into a Sale."""

    return Sale(
        id=str(row["id"]),
        tenant_id=str(row["tenant_id"]),
        branch_id=str(row["branch_id"]),
        customer_id=str(row["customer_id"]),
        sale_number=str(row["sale_number"]),
        sale_date=parse_utc_datetime(row["sale_date"]),
        total_amount=to_decimal(row.get("total_amount")),
        tax_amount=to_decimal(row.get("tax_amount")),
        discount_amount=to_decimal(row.get("discount_amount")),
        final_amount=to_decimal(row.get("final_amount")),
        payment_method=SalePaymentMethod(row["payment_method"]),
        payment_status=SalePaymentStatus(row["payment_status"]),
        status=SaleStatus(row["status"]),
        user_id=str(row["user_id"]),
        notes=str(row.get("notes") or ""),
        created_at=parse_utc_datetime(row.get("created_at")),
        items=list(items),
    )


def insert_sale(
    ctx: RequestContext,
    *,
    customer_id: str,
    sale_number: str,
    sale_date: datetime,
    total_amount: Decimal,
    tax_amount: Decimal,
    discount_amount: Decimal,
    final_amount: Decimal,
    payment_method: SalePaymentMethod,
    notes: Optional[str] = None,
) -> Sale:
    """
    Insert a completed sale (status and payment_status both `completed`).

    Returns:
        Sale as stored (without items)
    """

    payload: Dict[str, Any] = {
        "tenant_id": ctx.tenant_id,
        "branch_id": ctx.branch_id,
        "user_id": ctx.user_id,
        "customer_id": customer_id,
        "sale_number": sale_number,
        "sale_date": to_iso_utc(sale_date, name="sale_date"),
        "total_amount": serialize(total_amount),
        "tax_amount": serialize(tax_amount),
        "discount_amount": serialize(discount_amount),
        "final_amount": serialize(final_amount),
        "payment_method": payment_method.value,
        "payment_status": SalePaymentStatus.COMPLETED.value,
        "status": SaleStatus.COMPLETED.value,
        "notes": notes or "",
    }

    rows = execute(get_supabase().table(_SALES_TABLE).insert(payload), "create sale")
    if not rows:
        raise PersistenceError("Failed to create sale: store returned no row")
    return _row_to_sale(rows[0])


def insert_sale_items(sale_id: str, items: Sequence[SaleItemInput]) -> List[SaleLineItem]:
    payload = [
        {
            "sale_id": sale_id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "unit_price": serialize(item.unit_price),
            "total_price": serialize(item.quantity * item.unit_price),
            "discount": serialize(item.discount),
        }
        for item in items
    ]

    rows = execute(get_supabase().table(_SALE_ITEMS_TABLE).insert(payload), "create sale items")
    return [_row_to_item(row) for row in rows]


def list_sale_items(sale_id: str) -> List[SaleLineItem]:
    query = get_supabase().table(_SALE_ITEMS_TABLE).select("*").eq("sale_id", sale_id)
    return [_row_to_item(row) for row in execute(query, "list sale items")]


def get_sale_by_id(ctx: RequestContext, sale_id: str, *, with_items: bool = True) -> Optional[Sale]:
    """
    Retrieve a single sale in the caller's branch.

    Returns:
        Sale or None if not found
    """

    query = scoped(get_supabase().table(_SALES_TABLE).select("*"), ctx).eq("id", sale_id).limit(1)
    rows = execute(query, "get sale")
    if not rows:
        return None

    items = list_sale_items(sale_id) if with_items else []
    return _row_to_sale(rows[0], items)


def list_sales(ctx: RequestContext, filters: Optional[SaleFilters] = None) -> List[Sale]:
    """List sales in the caller's branch (without line items)."""

    filters = filters or SaleFilters()
    query = scoped(get_supabase().table(_SALES_TABLE).select("*"), ctx)

    if filters.search:
        query = query.ilike("sale_number", f"%{filters.search}%")
    if filters.status is not None:
        query = query.eq("status", filters.status.value)
    if filters.payment_status is not None:
        query = query.eq("payment_status", filters.payment_status.value)
    if filters.payment_method is not None:
        query = query.eq("payment_method", filters.payment_method.value)
    if filters.date_from is not None:
        query = query.gte("sale_date", bound_to_iso_utc(filters.date_from))
    if filters.date_to is not None:
        query = query.lte("sale_date", bound_to_iso_utc(filters.date_to))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_COLUMNS else "created_at"
    query = query.order(sort_by, desc=not filters.ascending)

    return [_row_to_sale(row) for row in execute(query, "list sales")]


def list_completed_sale_amounts(ctx: RequestContext) -> List[Tuple[Decimal, Optional[datetime]]]:
    """(final_amount, created_at) for every completed sale in the branch."""

    query = scoped(
        get_supabase().table(_SALES_TABLE).select("final_amount, created_at"), ctx
    ).eq("status", SaleStatus.COMPLETED.value)

    return [
        (to_decimal(row.get("final_amount")), parse_utc_datetime(row.get("created_at")))
        for row in execute(query, "list sales for statistics")
    ]


def update_payment_status(ctx: RequestContext, sale_id: str, payment_status: SalePaymentStatus) -> None:
    """
    Update the payment status of a sale.

    Raises:
        PersistenceError: if the store rejects the update
    """

    query = (
        scoped(get_supabase().table(_SALES_TABLE).update({"payment_status": payment_status.value}), ctx)
        .eq("id", sale_id)
    )
    execute(query, "update payment status")


__all__ = [
    "SaleFilters",
    "insert_sale",
    "insert_sale_items",
    "list_sale_items",
    "get_sale_by_id",
    "list_sales",
    "list_completed_sale_amounts",
    "update_payment_status",
]
