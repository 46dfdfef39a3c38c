"""
Sales and refunds.

Handles:
- Recording a completed sale and lowering stock for each item sold
- Recording a refund and flagging the refunded sale
- Sales statistics for the branch dashboard
- Lookups the POS screen needs (sellable products, active customers)

A sale's tax and discount come from the POS cart as entered by the cashier;
only the item sum is computed here.

Stock is lowered item by item after the sale and its items are stored. A
product that cannot be adjusted does not undo the sale; it is reported in
the result's warnings so the cashier can reconcile it.

Refunds do not return stock and are not checked against the amount paid.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Sequence, Union

from domain.catalog import Customer, Product
from domain.context import RequestContext
from domain.errors import NotFoundError, PartialWriteError, PersistenceError, ValidationError
from domain.sale import (
    Refund,
    RefundMethod,
    Sale,
    SaleItemInput,
    SalePaymentMethod,
    SalePaymentStatus,
    SalesStats,
    generate_sale_number,
    validate_sale_items,
)
from domain.time import require_utc_timestamp, start_of_day, start_of_month, utc_now
from repositories import refund_repository, sale_repository
from repositories.catalog_repository import list_active_customers
from repositories.product_repository import list_active_products
from repositories.refund_repository import RefundFilters
from repositories.sale_repository import SaleFilters
from services.pricing_service import calculate_sale_totals
from services.results import ServiceResult, service_operation
from services.stock_service import StockDelta, apply_deltas

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

SALE_REASON = "Sale"


def _coerce_sale_payment_method(value: Union[SalePaymentMethod, str, None]) -> SalePaymentMethod:
    if isinstance(value, SalePaymentMethod):
        return value
    if not value:
        raise ValidationError("payment_method is required")
    try:
        return SalePaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Unsupported payment method: {value!r}") from None


def _coerce_refund_method(value: Union[RefundMethod, str, None]) -> RefundMethod:
    if isinstance(value, RefundMethod):
        return value
    if not value:
        raise ValidationError("refund_method is required")
    try:
        return RefundMethod(value)
    except ValueError:
        raise ValidationError(f"Unsupported refund method: {value!r}") from None


def _coerce_refund_amount(value: Union[Decimal, int, float, str, None]) -> Decimal:
    if value is None:
        raise ValidationError("refund_amount is required")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"refund_amount must be a number: {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"refund_amount must be a number: {value!r}")
    if amount < 0:
        raise ValidationError("refund_amount must be >= 0")
    return amount


@service_operation("create sale")
def create_sale(
    ctx: RequestContext,
    customer_id: str,
    items: Sequence[SaleItemInput],
    payment_method: Union[SalePaymentMethod, str],
    discount_amount: Decimal = _ZERO,
    tax_amount: Decimal = _ZERO,
    notes: Optional[str] = None,
) -> ServiceResult[Sale]:
    """
    Record a completed sale and take its items out of stock.

    Process:
    1. Validate customer, items, payment method and amounts
    2. Insert the sale, then its line items
    3. Lower stock by each item's quantity, one product at a time

    Returns:
        ServiceResult with the stored Sale; products whose stock could not be
        adjusted are listed in `warnings`
    """

    if not customer_id or not str(customer_id).strip():
        raise ValidationError("customer_id is required")
    validate_sale_items(items)
    method = _coerce_sale_payment_method(payment_method)

    totals = calculate_sale_totals(
        items,
        tax_amount=tax_amount if tax_amount is not None else _ZERO,
        discount_amount=discount_amount if discount_amount is not None else _ZERO,
    )
    now = utc_now()

    sale = sale_repository.insert_sale(
        ctx,
        customer_id=customer_id,
        sale_number=generate_sale_number(now),
        sale_date=now,
        total_amount=totals.total_amount,
        tax_amount=totals.tax_amount,
        discount_amount=totals.discount_amount,
        final_amount=totals.final_amount,
        payment_method=method,
        notes=notes,
    )

    try:
        lines = sale_repository.insert_sale_items(sale.id, items)
    except PersistenceError as e:
        raise PartialWriteError(
            f"Sale {sale.sale_number} was created but its items could not be saved: {e.message}",
            orphan_id=sale.id,
        ) from e

    batch = apply_deltas(
        ctx,
        [StockDelta(product_id=item.product_id, quantity=-item.quantity) for item in items],
        reason=SALE_REASON,
        reference_number=sale.sale_number,
    )
    warnings = [
        f"Stock update incomplete for product {failure.product_id}: {failure.message}"
        for failure in batch.failures
    ]

    logger.info(
        f"Sale {sale.sale_number} recorded",
        extra={
            "sale_id": sale.id,
            "customer_id": customer_id,
            "final_amount": str(totals.final_amount),
            "stock_failures": len(batch.failures),
            "branch_id": ctx.branch_id,
        },
    )
    return ServiceResult.ok(replace(sale, items=lines), warnings=warnings)


@service_operation("create refund")
def create_refund(
    ctx: RequestContext,
    sale_id: str,
    refund_amount: Decimal,
    refund_reason: str,
    refund_method: Union[RefundMethod, str],
    notes: Optional[str] = None,
) -> Refund:
    """
    Record a completed refund and mark the sale's payment as refunded.

    The refund amount is not compared with the sale's final amount or with
    earlier refunds, and sold items are not returned to stock.
    """

    amount = _coerce_refund_amount(refund_amount)
    if not refund_reason or not refund_reason.strip():
        raise ValidationError("refund_reason is required")
    method = _coerce_refund_method(refund_method)

    sale = sale_repository.get_sale_by_id(ctx, sale_id, with_items=False)
    if sale is None:
        raise NotFoundError(f"Sale not found: {sale_id}")

    refund = refund_repository.insert_refund(
        ctx,
        sale_id=sale.id,
        customer_id=sale.customer_id,
        refund_date=utc_now(),
        refund_amount=amount,
        refund_reason=refund_reason,
        refund_method=method,
        notes=notes,
    )

    try:
        sale_repository.update_payment_status(ctx, sale.id, SalePaymentStatus.REFUNDED)
    except PersistenceError as e:
        raise PartialWriteError(
            f"Refund was recorded but sale {sale.sale_number} could not be marked refunded: {e.message}",
            orphan_id=refund.id,
        ) from e

    logger.info(
        f"Refund recorded for sale {sale.sale_number}",
        extra={"refund_id": refund.id, "sale_id": sale.id, "refund_amount": str(refund.refund_amount)},
    )
    return refund


@service_operation("fetch sale")
def get_sale(ctx: RequestContext, sale_id: str) -> Sale:
    sale = sale_repository.get_sale_by_id(ctx, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale not found: {sale_id}")
    return sale


@service_operation("fetch sales")
def list_sales(ctx: RequestContext, filters: Optional[SaleFilters] = None) -> List[Sale]:
    return sale_repository.list_sales(ctx, filters)


@service_operation("fetch refunds")
def list_refunds(ctx: RequestContext, filters: Optional[RefundFilters] = None) -> List[Refund]:
    return refund_repository.list_refunds(ctx, filters)


@service_operation("fetch statistics")
def get_stats(ctx: RequestContext, now: Optional[datetime] = None) -> SalesStats:
    """
    Aggregate completed sales and refunds for the branch.

    "Today" and "this month" start at midnight UTC of `now` and at the first
    of its month. The average order value is 0 when there are no sales.
    """

    now = now or utc_now()
    require_utc_timestamp("now", now)
    today = start_of_day(now)
    month_start = start_of_month(now)

    sales = sale_repository.list_completed_sale_amounts(ctx)
    refunds = refund_repository.list_completed_refund_amounts(ctx)

    total_sales = len(sales)
    total_revenue = sum((amount for amount, _ in sales), _ZERO)
    refund_amount = sum(refunds, _ZERO)

    today_amounts = [amount for amount, created_at in sales if created_at is not None and created_at >= today]
    month_amounts = [
        amount for amount, created_at in sales if created_at is not None and created_at >= month_start
    ]

    average = total_revenue / total_sales if total_sales else _ZERO

    return SalesStats(
        total_sales=total_sales,
        total_revenue=total_revenue,
        total_refunds=len(refunds),
        refund_amount=refund_amount,
        net_revenue=total_revenue - refund_amount,
        average_order_value=average.quantize(_CENT, rounding=ROUND_HALF_UP),
        sales_today=len(today_amounts),
        revenue_today=sum(today_amounts, _ZERO),
        sales_this_month=len(month_amounts),
        revenue_this_month=sum(month_amounts, _ZERO),
    )


@service_operation("fetch products")
def list_pos_products(ctx: RequestContext) -> List[Product]:
    """Active products with stock on hand, by name."""
    return list_active_products(ctx, in_stock_only=True)


@service_operation("fetch customers")
def list_customers(ctx: RequestContext) -> List[Customer]:
    return list_active_customers(ctx)


__all__ = [
    "create_sale",
    "create_refund",
    "get_sale",
    "list_sales",
    "list_refunds",
    "get_stats",
    "list_pos_products",
    "list_customers",
]
