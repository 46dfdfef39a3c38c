"""
Supplier and customer lookups (read-only).
"""

from __future__ import annotations

from typing import Any, List, Mapping

from domain.catalog import Customer, Supplier
from domain.context import RequestContext
from repositories._query import execute, scoped
from repositories.client import get_supabase

_SUPPLIERS_TABLE: str = "suppliers"
_CUSTOMERS_TABLE: str = "customers"


def _row_to_supplier(row: Mapping[str, Any]) -> Supplier:
    return Supplier(
        id=str(row["id"]),
        name=str(row["name"]),
        status=str(row.get("status") or "active"),
        contact_person=row.get("contact_person"),
        email=row.get("email"),
        phone=row.get("phone"),
        address=row.get("address"),
    )


def _row_to_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(row["id"]),
        name=str(row["name"]),
        status=str(row.get("status") or "active"),
        email=row.get("email"),
        phone=row.get("phone"),
    )


def list_active_suppliers(ctx: RequestContext) -> List[Supplier]:
    """
    Active suppliers visible to the branch: those assigned to it plus the
    tenant's global suppliers (branch_id NULL).
    """

    query = (
        get_supabase()
        .table(_SUPPLIERS_TABLE)
        .select("id, name, contact_person, email, phone, address, status")
        .eq("tenant_id", ctx.tenant_id)
        .or_(f"branch_id.eq.{ctx.branch_id},branch_id.is.null")
        .eq("status", "active")
        .order("name")
    )
    return [_row_to_supplier(row) for row in execute(query, "list suppliers")]


def list_active_customers(ctx: RequestContext) -> List[Customer]:
    query = (
        scoped(get_supabase().table(_CUSTOMERS_TABLE).select("id, name, email, phone, status"), ctx)
        .eq("status", "active")
        .order("name")
    )
    return [_row_to_customer(row) for row in execute(query, "list customers")]


__all__ = ["list_active_suppliers", "list_active_customers"]
