"""
Stock movement repository (persistence).

Append-only: movements are inserted and listed, never updated or deleted.
Writing the product counter itself is product_repository's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from domain.context import RequestContext
from domain.errors import PersistenceError
from domain.stock import MovementType, StockMovement
from domain.time import bound_to_iso_utc, parse_utc_datetime
from repositories._query import execute, optional_str, scoped
from repositories.client import get_supabase

# Supabase table name.
# Keep this aligned with your database schema.
_STOCK_MOVEMENTS_TABLE: str = "stock_movements"

SORTABLE_COLUMNS = frozenset({"created_at", "quantity"})


@dataclass(frozen=True, slots=True)
class StockMovementFilters:
    search: Optional[str] = None  # substring of reason
    movement_type: Optional[MovementType] = None
    product_id: Optional[str] = None
    reference_number: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = "created_at"
    ascending: bool = False


def _row_to_movement(row: Mapping[str, Any]) -> StockMovement:
    return StockMovement(
        id=str(row["id"]),
        tenant_id=str(row["tenant_id"]),
        branch_id=str(row["branch_id"]),
        product_id=str(row["product_id"]),
        movement_type=MovementType(row["movement_type"]),
        quantity=int(row["quantity"]),
        previous_quantity=int(row["previous_quantity"]),
        new_quantity=int(row["new_quantity"]),
        reason=str(row.get("reason") or ""),
        user_id=str(row["user_id"]),
        reference_number=optional_str(row.get("reference_number")),
        notes=row.get("notes"),
        created_at=parse_utc_datetime(row.get("created_at")),
    )


def insert_movement(
    ctx: RequestContext,
    *,
    product_id: str,
    movement_type: MovementType,
    quantity: int,
    previous_quantity: int,
    new_quantity: int,
    reason: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> StockMovement:
    """Record one counter change made on behalf of `ctx.user_id`."""

    payload: Dict[str, Any] = {
        "tenant_id": ctx.tenant_id,
        "branch_id": ctx.branch_id,
        "user_id": ctx.user_id,
        "product_id": product_id,
        "movement_type": movement_type.value,
        "quantity": quantity,
        "previous_quantity": previous_quantity,
        "new_quantity": new_quantity,
        "reason": reason,
        "reference_number": reference_number,
        "notes": notes,
    }

    rows = execute(get_supabase().table(_STOCK_MOVEMENTS_TABLE).insert(payload), "record stock movement")
    if not rows:
        raise PersistenceError("Failed to record stock movement: store returned no row")
    return _row_to_movement(rows[0])


def list_movements(ctx: RequestContext, filters: Optional[StockMovementFilters] = None) -> List[StockMovement]:
    """Movements in the caller's branch, newest first unless sorted otherwise."""

    filters = filters or StockMovementFilters()
    query = scoped(get_supabase().table(_STOCK_MOVEMENTS_TABLE).select("*"), ctx)

    if filters.search:
        query = query.ilike("reason", f"%{filters.search}%")
    if filters.movement_type is not None:
        query = query.eq("movement_type", filters.movement_type.value)
    if filters.product_id:
        query = query.eq("product_id", filters.product_id)
    if filters.reference_number:
        query = query.eq("reference_number", filters.reference_number)
    if filters.date_from is not None:
        query = query.gte("created_at", bound_to_iso_utc(filters.date_from))
    if filters.date_to is not None:
        query = query.lte("created_at", bound_to_iso_utc(filters.date_to))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_COLUMNS else "created_at"
    query = query.order(sort_by, desc=not filters.ascending)

    return [_row_to_movement(row) for row in execute(query, "list stock movements")]


__all__ = [
    "StockMovementFilters",
    "insert_movement",
    "list_movements",
]
