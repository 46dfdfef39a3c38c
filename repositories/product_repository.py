"""
Product repository (persistence).

Reads product rows and writes the on-hand stock counter. The counter column is
configurable (STOCK_COLUMN) because older branches store it as `quantity`.

Stock writes are conditional: `compare_and_set_stock` only updates the row if
the counter still holds the value the caller read, so two concurrent writers
cannot silently overwrite each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from config.settings import get_settings
from domain.catalog import Product
from domain.context import RequestContext
from repositories._query import execute, optional_decimal, scoped
from repositories.client import get_supabase

_PRODUCTS_TABLE: str = "products"


@dataclass(frozen=True, slots=True)
class StockReading:
    """Counter value as read; `stored_null` marks a NULL column read as 0."""
    product_id: str
    quantity: int
    stored_null: bool = False


def _stock_column() -> str:
    return get_settings().stock_column


def _row_to_product(row: Mapping[str, Any]) -> Product:
    return Product(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        stock_quantity=int(row.get(_stock_column()) or 0),
        price=optional_decimal(row.get("price")),
        cost_price=optional_decimal(row.get("cost_price")),
        sku=row.get("sku"),
        status=str(row.get("status") or "active"),
    )


def read_stock(ctx: RequestContext, product_id: str) -> Optional[StockReading]:
    """
    Read a product's stock counter in the caller's branch.

    Returns:
        StockReading or None if the product does not exist in scope
    """

    column = _stock_column()
    query = (
        scoped(get_supabase().table(_PRODUCTS_TABLE).select(f"id, {column}"), ctx)
        .eq("id", product_id)
        .limit(1)
    )
    rows = execute(query, "read product stock")
    if not rows:
        return None

    raw = rows[0].get(column)
    return StockReading(product_id=product_id, quantity=int(raw or 0), stored_null=raw is None)


def compare_and_set_stock(ctx: RequestContext, reading: StockReading, new_quantity: int) -> bool:
    """
    Write `new_quantity` only if the counter still equals the value in `reading`.

    Returns:
        True if a row was updated, False if the counter changed since it was read
    """

    column = _stock_column()
    query = (
        scoped(get_supabase().table(_PRODUCTS_TABLE).update({column: new_quantity}), ctx)
        .eq("id", reading.product_id)
    )
    if reading.stored_null:
        query = query.is_(column, "null")
    else:
        query = query.eq(column, reading.quantity)

    rows = execute(query, "update product stock")
    return bool(rows)


def list_active_products(
    ctx: RequestContext,
    *,
    search: Optional[str] = None,
    in_stock_only: bool = False,
    limit: Optional[int] = None,
) -> List[Product]:
    """Active products in the caller's branch, ordered by name."""

    query = scoped(get_supabase().table(_PRODUCTS_TABLE).select("*"), ctx).eq("status", "active")

    if search:
        query = query.ilike("name", f"%{search}%")
    if in_stock_only:
        query = query.gt(_stock_column(), 0)

    query = query.order("name")
    if limit is not None:
        query = query.limit(limit)

    return [_row_to_product(row) for row in execute(query, "list products")]


__all__ = [
    "StockReading",
    "read_stock",
    "compare_and_set_stock",
    "list_active_products",
]
