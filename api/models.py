"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Response models read directly from the domain dataclasses (from_attributes).
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.purchase import (
    PurchaseItemInput,
    PurchasePaymentMethod,
    PurchasePaymentStatus,
    PurchaseStatus,
    ReceivedItem,
)
from domain.sale import (
    RefundMethod,
    RefundStatus,
    SaleItemInput,
    SalePaymentMethod,
    SalePaymentStatus,
    SaleStatus,
)
from domain.stock import MovementType


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Purchase Models
# ============================================================================

class PurchaseItemRequest(BaseModel):
    """Line item submitted with a purchase order."""
    product_id: Optional[str] = None
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_cost: Decimal = Field(..., gt=0)
    expiry_date: Optional[str] = None
    batch_number: Optional[str] = None
    notes: Optional[str] = None

    def to_domain(self) -> PurchaseItemInput:
        return PurchaseItemInput(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            expiry_date=self.expiry_date,
            batch_number=self.batch_number,
            notes=self.notes,
        )


class CreatePurchaseRequest(BaseModel):
    """Request to create a purchase order."""
    supplier_id: str = Field(..., min_length=1)
    items: List[PurchaseItemRequest] = Field(..., min_length=1)
    discount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[PurchasePaymentMethod] = None
    expected_delivery_date: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "supplier_id": "8f7d2c1e-5a4b-4c3d-9e8f-7a6b5c4d3e2f",
                "payment_method": "bank_transfer",
                "discount": "0",
                "items": [
                    {
                        "product_id": "1b2c3d4e-5f60-4718-8293-a4b5c6d7e8f9",
                        "product_name": "Amoxicillin 500mg",
                        "quantity": 20,
                        "unit_cost": "450",
                        "batch_number": "AMX-2611",
                    }
                ],
            }
        }
    )


class UpdatePurchaseRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    supplier_id: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    payment_method: Optional[PurchasePaymentMethod] = None
    payment_status: Optional[PurchasePaymentStatus] = None
    status: Optional[PurchaseStatus] = None
    notes: Optional[str] = None
    delivery_date: Optional[datetime] = None
    received_by: Optional[str] = None
    discount: Optional[Decimal] = Field(None, ge=0)
    items: Optional[List[PurchaseItemRequest]] = Field(None, min_length=1)


class ReceivedItemRequest(BaseModel):
    product_id: Optional[str] = None
    received_quantity: int = Field(..., ge=0)

    def to_domain(self) -> ReceivedItem:
        return ReceivedItem(product_id=self.product_id, received_quantity=self.received_quantity)


class ReceivePurchaseRequest(BaseModel):
    items: List[ReceivedItemRequest]


class PurchaseLineItemResponse(_FromDomain):
    id: str
    purchase_id: str
    product_id: Optional[str] = None
    product_name: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    received_quantity: int
    expiry_date: Optional[str] = None
    batch_number: Optional[str] = None
    notes: Optional[str] = None


class PurchaseResponse(_FromDomain):
    id: str
    supplier_id: str
    purchase_number: str
    purchase_date: datetime
    expected_delivery_date: Optional[str] = None
    delivery_date: Optional[datetime] = None
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_method: Optional[PurchasePaymentMethod] = None
    payment_status: PurchasePaymentStatus
    status: PurchaseStatus
    notes: Optional[str] = None
    created_by: str
    received_by: Optional[str] = None
    items: List[PurchaseLineItemResponse] = []


class SupplierResponse(_FromDomain):
    id: str
    name: str
    status: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ProductResponse(_FromDomain):
    id: str
    name: str
    stock_quantity: int
    price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    sku: Optional[str] = None


# ============================================================================
# Sale Models
# ============================================================================

class SaleItemRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)

    def to_domain(self) -> SaleItemInput:
        return SaleItemInput(
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount=self.discount,
        )


class CreateSaleRequest(BaseModel):
    """Request to record a POS sale."""
    customer_id: str = Field(..., min_length=1)
    items: List[SaleItemRequest] = Field(..., min_length=1)
    payment_method: SalePaymentMethod
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_id": "3c2b1a09-8f7e-4d6c-b5a4-938271605f4e",
                "payment_method": "cash",
                "tax_amount": "0",
                "discount_amount": "100",
                "items": [
                    {"product_id": "1b2c3d4e-5f60-4718-8293-a4b5c6d7e8f9", "quantity": 2, "unit_price": "800"}
                ],
            }
        }
    )


class SaleLineItemResponse(_FromDomain):
    id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount: Decimal


class SaleResponse(_FromDomain):
    id: str
    customer_id: str
    sale_number: str
    sale_date: datetime
    total_amount: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    payment_method: SalePaymentMethod
    payment_status: SalePaymentStatus
    status: SaleStatus
    notes: str = ""
    user_id: str
    items: List[SaleLineItemResponse] = []


class SaleCreatedResponse(BaseModel):
    """Stored sale plus any stock adjustments that could not be applied."""
    sale: SaleResponse
    warnings: List[str] = []


class CustomerResponse(_FromDomain):
    id: str
    name: str
    status: str
    email: Optional[str] = None
    phone: Optional[str] = None


class SalesStatsResponse(_FromDomain):
    total_sales: int
    total_revenue: Decimal
    total_refunds: int
    refund_amount: Decimal
    net_revenue: Decimal
    average_order_value: Decimal
    sales_today: int
    revenue_today: Decimal
    sales_this_month: int
    revenue_this_month: Decimal


# ============================================================================
# Refund Models
# ============================================================================

class CreateRefundRequest(BaseModel):
    sale_id: str = Field(..., min_length=1)
    refund_amount: Decimal = Field(..., ge=0)
    refund_reason: str = Field(..., min_length=1)
    refund_method: RefundMethod
    notes: Optional[str] = None


class RefundResponse(_FromDomain):
    id: str
    sale_id: str
    customer_id: Optional[str] = None
    refund_date: datetime
    refund_amount: Decimal
    refund_reason: str
    refund_method: RefundMethod
    status: RefundStatus
    notes: str = ""
    user_id: str


# ============================================================================
# Stock Models
# ============================================================================

class CreateStockMovementRequest(BaseModel):
    """Manual stock movement. `adjustment` quantities may be negative."""
    product_id: str = Field(..., min_length=1)
    movement_type: MovementType
    quantity: int
    reason: str = Field(..., min_length=1)
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "c0a8012e-7f3b-4d6a-9f1e-2b5d8c4e6a10",
                "movement_type": "out",
                "quantity": 3,
                "reason": "Expired stock written off",
                "notes": "Batch 2291",
            }
        }
    )


class StockMovementResponse(_FromDomain):
    id: str
    product_id: str
    movement_type: MovementType
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    user_id: str
    branch_id: str
    created_at: Optional[datetime] = None


# ============================================================================
# Navigation Models
# ============================================================================

class NavigationItemResponse(_FromDomain):
    title: str
    path: str
    icon: str
    description: Optional[str] = None
    children: List["NavigationItemResponse"] = []


class AccessResponse(BaseModel):
    path: str
    role: Optional[str] = None
    allowed: bool


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"detail": "Purchase order not found: 42"}}
    )


NavigationItemResponse.model_rebuild()
