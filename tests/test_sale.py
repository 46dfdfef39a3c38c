"""
Tests for `domain/sale.py`.

Covers contract rules:
- Sale numbers are SALE-<epoch ms>-<9 base-36 characters>.
- Sale timestamps must be UTC; sales are immutable.
- Item validation.
"""

from __future__ import annotations

import re
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import ValidationError
from domain.sale import (
    Sale,
    SaleItemInput,
    SalePaymentMethod,
    SalePaymentStatus,
    SaleStatus,
    generate_sale_number,
    validate_sale_items,
)


def _sale(**overrides) -> Sale:
    fields = dict(
        id="sale-1",
        tenant_id="tenant-1",
        branch_id="branch-1",
        customer_id="cust-1",
        sale_number="SALE-1-abc",
        sale_date=datetime(2026, 10, 1, tzinfo=timezone.utc),
        total_amount=Decimal("100"),
        tax_amount=Decimal("0"),
        discount_amount=Decimal("0"),
        final_amount=Decimal("100"),
        payment_method=SalePaymentMethod.CASH,
        payment_status=SalePaymentStatus.COMPLETED,
        status=SaleStatus.COMPLETED,
        user_id="user-1",
    )
    fields.update(overrides)
    return Sale(**fields)


def test_sale_number_format() -> None:
    now = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
    number = generate_sale_number(now)

    millis = int(now.timestamp() * 1000)
    assert re.fullmatch(rf"SALE-{millis}-[0-9a-z]{{9}}", number)


def test_sale_requires_utc_sale_date() -> None:
    with pytest.raises(ValueError):
        _sale(sale_date=datetime(2026, 10, 1))


def test_sale_is_immutable() -> None:
    sale = _sale()

    with pytest.raises(FrozenInstanceError):
        sale.payment_status = SalePaymentStatus.REFUNDED  # type: ignore[misc]


def test_validate_sale_items() -> None:
    validate_sale_items([SaleItemInput("p-1", 1, Decimal("0"))])

    with pytest.raises(ValidationError, match="At least one item"):
        validate_sale_items([])
    with pytest.raises(ValidationError, match="product_id"):
        validate_sale_items([SaleItemInput("", 1, Decimal("5"))])
    with pytest.raises(ValidationError, match="quantity"):
        validate_sale_items([SaleItemInput("p-1", 0, Decimal("5"))])
    with pytest.raises(ValidationError, match="unit_price"):
        validate_sale_items([SaleItemInput("p-1", 1, Decimal("-1"))])
