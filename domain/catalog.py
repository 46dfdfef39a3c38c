"""
Domain: reference data read by the engine.

Products, suppliers and customers are owned by other parts of the back-office.
The engine reads them for lookups and only ever changes a product's stock
counter, through services.stock_service.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    stock_quantity: int
    price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    sku: Optional[str] = None
    status: str = "active"


@dataclass(frozen=True, slots=True)
class Supplier:
    id: str
    name: str
    status: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Customer:
    id: str
    name: str
    status: str
    email: Optional[str] = None
    phone: Optional[str] = None


__all__ = ["Product", "Supplier", "Customer"]
