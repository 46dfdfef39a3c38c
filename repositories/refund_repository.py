"""
Refund repository (persistence).

Stores refund rows only. Updating the refunded sale is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from domain.context import RequestContext
from domain.errors import PersistenceError
from domain.sale import Refund, RefundMethod, RefundStatus
from domain.time import bound_to_iso_utc, parse_utc_datetime, to_iso_utc
from repositories._query import execute, optional_str, scoped, serialize, to_decimal
from repositories.client import get_supabase

_REFUNDS_TABLE: str = "refunds"

SORTABLE_COLUMNS = frozenset({"refund_date", "refund_amount", "created_at"})


@dataclass(frozen=True, slots=True)
class RefundFilters:
    search: Optional[str] = None  # substring of refund_reason
    status: Optional[RefundStatus] = None
    refund_method: Optional[RefundMethod] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = "created_at"
    ascending: bool = False


def _row_to_refund(row: Mapping[str, Any]) -> Refund:
    return Refund(
        id=str(row["id"]),
        tenant_id=str(row["tenant_id"]),
        branch_id=str(row["branch_id"]),
        sale_id=str(row["sale_id"]),
        customer_id=optional_str(row.get("customer_id")),
        refund_date=parse_utc_datetime(row["refund_date"]),
        refund_amount=to_decimal(row.get("refund_amount")),
        refund_reason=str(row.get("refund_reason") or ""),
        refund_method=RefundMethod(row["refund_method"]),
        status=RefundStatus(row["status"]),
        user_id=str(row["user_id"]),
        notes=str(row.get("notes") or ""),
        created_at=parse_utc_datetime(row.get("created_at")),
    )


def insert_refund(
    ctx: RequestContext,
    *,
    sale_id: str,
    customer_id: Optional[str],
    refund_date: datetime,
    refund_amount: Decimal,
    refund_reason: str,
    refund_method: RefundMethod,
    notes: Optional[str] = None,
) -> Refund:
    """Insert a completed refund row."""

    payload: Dict[str, Any] = {
        "tenant_id": ctx.tenant_id,
        "branch_id": ctx.branch_id,
        "user_id": ctx.user_id,
        "sale_id": sale_id,
        "customer_id": customer_id,
        "refund_date": to_iso_utc(refund_date, name="refund_date"),
        "refund_amount": serialize(refund_amount),
        "refund_reason": refund_reason,
        "refund_method": refund_method.value,
        "status": RefundStatus.COMPLETED.value,
        "notes": notes or "",
    }

    rows = execute(get_supabase().table(_REFUNDS_TABLE).insert(payload), "create refund")
    if not rows:
        raise PersistenceError("Failed to create refund: store returned no row")
    return _row_to_refund(rows[0])


def list_refunds(ctx: RequestContext, filters: Optional[RefundFilters] = None) -> List[Refund]:
    filters = filters or RefundFilters()
    query = scoped(get_supabase().table(_REFUNDS_TABLE).select("*"), ctx)

    if filters.search:
        query = query.ilike("refund_reason", f"%{filters.search}%")
    if filters.status is not None:
        query = query.eq("status", filters.status.value)
    if filters.refund_method is not None:
        query = query.eq("refund_method", filters.refund_method.value)
    if filters.date_from is not None:
        query = query.gte("refund_date", bound_to_iso_utc(filters.date_from))
    if filters.date_to is not None:
        query = query.lte("refund_date", bound_to_iso_utc(filters.date_to))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_COLUMNS else "created_at"
    query = query.order(sort_by, desc=not filters.ascending)

    return [_row_to_refund(row) for row in execute(query, "list refunds")]


def list_completed_refund_amounts(ctx: RequestContext) -> List[Decimal]:
    query = scoped(
        get_supabase().table(_REFUNDS_TABLE).select("refund_amount"), ctx
    ).eq("status", RefundStatus.COMPLETED.value)

    return [to_decimal(row.get("refund_amount")) for row in execute(query, "list refunds for statistics")]


__all__ = [
    "RefundFilters",
    "insert_refund",
    "list_refunds",
    "list_completed_refund_amounts",
]
