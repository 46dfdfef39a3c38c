"""
Tests for `services/sales_service.py`.

Covers contract rules:
- A sale is stored completed and lowers stock by each item's quantity.
- Stock that cannot be adjusted does not undo the sale; it becomes a warning.
- Each stock change made by a sale is recorded as an `out` movement
  referencing the sale number.
- A refund marks the sale refunded and leaves stock alone; a refund amount
  that is not a number is a validation error.
- Statistics count completed sales and refunds, with today/this month
  boundaries in UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.sale import RefundMethod, SaleItemInput, SalePaymentMethod, SalePaymentStatus, SaleStatus
from repositories.sale_repository import SaleFilters
from services.sales_service import (
    create_refund,
    create_sale,
    get_sale,
    get_stats,
    list_customers,
    list_pos_products,
    list_refunds,
    list_sales,
)


def _stock(store, product_id: str) -> int:
    return store.rows("products", id=product_id)[0]["stock_quantity"]


@pytest.fixture
def sale(store, ctx, seed_product):
    product_id = seed_product(stock=10)
    result = create_sale(
        ctx,
        "cust-1",
        [SaleItemInput(product_id, 3, Decimal("20"))],
        SalePaymentMethod.CASH,
    )
    assert result.success, result.error
    return result.data


def test_sale_is_completed_and_lowers_stock(store, sale) -> None:
    assert sale.status is SaleStatus.COMPLETED
    assert sale.payment_status is SalePaymentStatus.COMPLETED
    assert sale.total_amount == Decimal("60")
    assert sale.final_amount == Decimal("60")
    assert sale.sale_number.startswith("SALE-")
    assert len(sale.items) == 1
    assert _stock(store, sale.items[0].product_id) == 7


def test_sale_records_one_outbound_movement_per_item(store, sale) -> None:
    product_id = sale.items[0].product_id

    movements = store.rows("stock_movements", product_id=product_id)

    assert len(movements) == 1
    movement = movements[0]
    assert movement["movement_type"] == "out"
    assert movement["quantity"] == 3
    assert (movement["previous_quantity"], movement["new_quantity"]) == (10, 7)
    assert movement["reference_number"] == sale.sale_number
    assert movement["reason"] == "Sale"
    assert movement["user_id"] == "user-1"


def test_sale_uses_cart_tax_and_discount(store, ctx, seed_product) -> None:
    product_id = seed_product(stock=10)

    result = create_sale(
        ctx,
        "cust-1",
        [SaleItemInput(product_id, 2, Decimal("50"))],
        "mobile_money",
        discount_amount=Decimal("10"),
        tax_amount=Decimal("18"),
    )

    assert result.success, result.error
    assert result.data.payment_method is SalePaymentMethod.MOBILE_MONEY
    assert result.data.final_amount == Decimal("108")


def test_overselling_is_recorded(store, ctx, seed_product) -> None:
    product_id = seed_product(stock=1)

    result = create_sale(ctx, "cust-1", [SaleItemInput(product_id, 3, Decimal("5"))], "cash")

    assert result.success
    assert result.warnings == []
    assert _stock(store, product_id) == -2


def test_stock_failure_becomes_warning(store, ctx, seed_product) -> None:
    product_id = seed_product(stock=10)

    result = create_sale(
        ctx,
        "cust-1",
        [SaleItemInput("missing-product", 1, Decimal("5")), SaleItemInput(product_id, 2, Decimal("5"))],
        "cash",
    )

    assert result.success
    assert len(result.warnings) == 1
    assert "missing-product" in result.warnings[0]
    assert _stock(store, product_id) == 8
    assert len(store.rows("sales")) == 1


@pytest.mark.parametrize(
    "customer_id,items,method",
    [
        ("", [SaleItemInput("p-1", 1, Decimal("5"))], "cash"),
        ("cust-1", [], "cash"),
        ("cust-1", [SaleItemInput("p-1", 1, Decimal("5"))], "cheque"),
        ("cust-1", [SaleItemInput("p-1", 1, Decimal("5"))], None),
    ],
)
def test_invalid_sale_writes_nothing(store, ctx, customer_id, items, method) -> None:
    result = create_sale(ctx, customer_id, items, method)

    assert result.error_code == "validation_error"
    assert store.writes() == []


def test_sale_item_failure_is_partial_write_and_stock_untouched(store, ctx, seed_product) -> None:
    product_id = seed_product(stock=10)
    store.fail_on("sale_items", "insert")

    result = create_sale(ctx, "cust-1", [SaleItemInput(product_id, 1, Decimal("5"))], "cash")

    assert result.error_code == "partial_write"
    assert len(store.rows("sales")) == 1
    assert _stock(store, product_id) == 10


def test_refund_marks_sale_refunded_and_keeps_stock(store, ctx, sale) -> None:
    product_id = sale.items[0].product_id

    result = create_refund(ctx, sale.id, Decimal("60"), "Damaged packaging", RefundMethod.CASH)

    assert result.success, result.error
    refund = result.data
    assert refund.sale_id == sale.id
    assert refund.customer_id == "cust-1"
    assert refund.refund_amount == Decimal("60")
    assert get_sale(ctx, sale.id).data.payment_status is SalePaymentStatus.REFUNDED
    assert _stock(store, product_id) == 7


def test_refund_for_unknown_sale_is_not_found(store, ctx) -> None:
    result = create_refund(ctx, "no-such-sale", Decimal("10"), "Wrong item", "cash")

    assert result.error_code == "not_found"
    assert store.rows("refunds") == []


@pytest.mark.parametrize(
    "amount,reason,method",
    [
        (Decimal("-1"), "Wrong item", "cash"),
        (Decimal("10"), "  ", "cash"),
        (Decimal("10"), "Wrong item", "mobile_money"),
        ("abc", "Wrong item", "cash"),
        ("NaN", "Wrong item", "cash"),
        (None, "Wrong item", "cash"),
    ],
)
def test_invalid_refund_is_rejected(store, ctx, sale, amount, reason, method) -> None:
    result = create_refund(ctx, sale.id, amount, reason, method)

    assert result.error_code == "validation_error"
    assert store.rows("refunds") == []


def test_refund_is_kept_when_sale_flag_fails(store, ctx, sale) -> None:
    store.fail_on("sales", "update")

    result = create_refund(ctx, sale.id, Decimal("60"), "Expired", "card")

    assert result.error_code == "partial_write"
    assert len(store.rows("refunds")) == 1
    assert store.rows("sales", id=sale.id)[0]["payment_status"] == "completed"


def test_sales_are_isolated_by_branch(store, ctx, other_branch_ctx, sale) -> None:
    assert get_sale(other_branch_ctx, sale.id).error_code == "not_found"
    assert list_sales(other_branch_ctx).data == []
    assert create_refund(other_branch_ctx, sale.id, Decimal("1"), "x", "cash").error_code == "not_found"


def test_list_sales_and_refunds(store, ctx, sale) -> None:
    create_refund(ctx, sale.id, Decimal("5"), "Partial return", "cash")

    assert [s.id for s in list_sales(ctx, SaleFilters(payment_status=SalePaymentStatus.REFUNDED)).data] == [sale.id]
    assert list_sales(ctx, SaleFilters(search="does-not-exist")).data == []
    assert [r.refund_reason for r in list_refunds(ctx).data] == ["Partial return"]


def test_stats(store, ctx) -> None:
    now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def seed_sale(amount: str, created_at: str, status: str = "completed", branch_id: str = ctx.branch_id) -> None:
        store.seed(
            "sales",
            tenant_id=ctx.tenant_id,
            branch_id=branch_id,
            final_amount=amount,
            created_at=created_at,
            status=status,
        )

    seed_sale("100", "2026-10-18T08:00:00+00:00")
    seed_sale("50", "2026-10-02T10:00:00+00:00")
    seed_sale("30", "2026-09-30T23:59:59+00:00")
    seed_sale("999", "2026-10-18T09:00:00+00:00", status="cancelled")
    seed_sale("999", "2026-10-18T09:00:00+00:00", branch_id="branch-2")
    store.seed("refunds", tenant_id=ctx.tenant_id, branch_id=ctx.branch_id, refund_amount="20", status="completed")
    store.seed("refunds", tenant_id=ctx.tenant_id, branch_id=ctx.branch_id, refund_amount="5", status="pending")

    stats = get_stats(ctx, now=now).data

    assert stats.total_sales == 3
    assert stats.total_revenue == Decimal("180")
    assert stats.total_refunds == 1
    assert stats.refund_amount == Decimal("20")
    assert stats.net_revenue == Decimal("160")
    assert stats.average_order_value == Decimal("60.00")
    assert (stats.sales_today, stats.revenue_today) == (1, Decimal("100"))
    assert (stats.sales_this_month, stats.revenue_this_month) == (2, Decimal("150"))


def test_stats_without_sales(store, ctx) -> None:
    stats = get_stats(ctx, now=datetime(2026, 10, 18, tzinfo=timezone.utc)).data

    assert stats.total_sales == 0
    assert stats.average_order_value == Decimal("0")


def test_pos_lookups(store, ctx, seed_product) -> None:
    seed_product(stock=4, name="Cetirizine")
    seed_product(stock=0, name="Out of stock")
    seed_product(stock=9, name="Archived", status="inactive")
    store.seed("customers", tenant_id=ctx.tenant_id, branch_id=ctx.branch_id, name="Walk-in", status="active")
    store.seed("customers", tenant_id=ctx.tenant_id, branch_id="branch-2", name="Elsewhere", status="active")

    assert [p.name for p in list_pos_products(ctx).data] == ["Cetirizine"]
    assert [c.name for c in list_customers(ctx).data] == ["Walk-in"]
