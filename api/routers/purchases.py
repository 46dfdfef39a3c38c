"""
Purchases API Endpoints.

Endpoints for creating, editing, receiving and deleting purchase orders,
plus the supplier and product lookups the order form needs.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_request_context, unwrap
from api.models import (
    CreatePurchaseRequest,
    ProductResponse,
    PurchaseResponse,
    ReceivePurchaseRequest,
    SupplierResponse,
    UpdatePurchaseRequest,
)
from domain.context import RequestContext
from domain.purchase import PurchasePaymentStatus, PurchaseStatus
from repositories.purchase_repository import PurchaseFilters
from services import purchase_service
from services.purchase_service import PurchaseChanges

router = APIRouter()


@router.get(
    "/purchases",
    response_model=List[PurchaseResponse],
    summary="List Purchase Orders",
)
def list_purchases(
    search: Optional[str] = Query(None, description="Substring of the purchase number"),
    status: Optional[PurchaseStatus] = Query(None),
    payment_status: Optional[PurchasePaymentStatus] = Query(None),
    supplier_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None, description="UTC timestamp, inclusive"),
    date_to: Optional[datetime] = Query(None, description="UTC timestamp, inclusive"),
    sort_by: Literal["purchase_date", "total_amount", "purchase_number", "created_at"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    ctx: RequestContext = Depends(get_request_context),
):
    filters = PurchaseFilters(
        search=search,
        status=status,
        payment_status=payment_status,
        supplier_id=supplier_id,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        ascending=sort_order == "asc",
    )
    orders = unwrap(purchase_service.list_purchases(ctx, filters))
    return [PurchaseResponse.model_validate(order) for order in orders]


@router.get(
    "/purchases/suppliers",
    response_model=List[SupplierResponse],
    summary="Suppliers Available To This Branch",
)
def list_suppliers(ctx: RequestContext = Depends(get_request_context)):
    suppliers = unwrap(purchase_service.list_suppliers(ctx))
    return [SupplierResponse.model_validate(supplier) for supplier in suppliers]


@router.get(
    "/purchases/products",
    response_model=List[ProductResponse],
    summary="Search Products For Purchase Items",
)
def search_products(
    search: Optional[str] = Query(None, description="Substring of the product name"),
    ctx: RequestContext = Depends(get_request_context),
):
    products = unwrap(purchase_service.search_products(ctx, search))
    return [ProductResponse.model_validate(product) for product in products]


@router.get("/purchases/{purchase_id}", response_model=PurchaseResponse, summary="Get Purchase Order")
def get_purchase(purchase_id: str, ctx: RequestContext = Depends(get_request_context)):
    return PurchaseResponse.model_validate(unwrap(purchase_service.get_purchase(ctx, purchase_id)))


@router.post(
    "/purchases",
    response_model=PurchaseResponse,
    status_code=201,
    summary="Create Purchase Order",
    description="Create a pending purchase order. Tax and total are computed from the items.",
)
def create_purchase(request: CreatePurchaseRequest, ctx: RequestContext = Depends(get_request_context)):
    """
    Create a purchase order.

    **Totals:**
    - subtotal = sum of quantity x unit_cost
    - tax = subtotal x 18%, rounded to a whole unit
    - total = subtotal + tax - discount (never below 0)
    """
    result = purchase_service.create_purchase(
        ctx,
        supplier_id=request.supplier_id,
        items=[item.to_domain() for item in request.items],
        discount=request.discount,
        payment_method=request.payment_method,
        notes=request.notes,
        expected_delivery_date=request.expected_delivery_date,
    )
    return PurchaseResponse.model_validate(unwrap(result))


@router.patch("/purchases/{purchase_id}", response_model=PurchaseResponse, summary="Update Purchase Order")
def update_purchase(
    purchase_id: str,
    request: UpdatePurchaseRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Update a purchase order.

    Supplying `items` replaces every line item and recomputes totals;
    `discount` is only accepted together with `items`. Setting `status` to
    `received` adds each item's quantity to stock.
    """
    changes = PurchaseChanges(
        supplier_id=request.supplier_id,
        expected_delivery_date=request.expected_delivery_date,
        payment_method=request.payment_method,
        payment_status=request.payment_status,
        status=request.status,
        notes=request.notes,
        delivery_date=request.delivery_date,
        received_by=request.received_by,
        discount=request.discount,
        items=[item.to_domain() for item in request.items] if request.items is not None else None,
    )
    return PurchaseResponse.model_validate(unwrap(purchase_service.update_purchase(ctx, purchase_id, changes)))


@router.post(
    "/purchases/{purchase_id}/receive",
    response_model=PurchaseResponse,
    summary="Receive Purchase Order",
    description="Mark an order received and add the received quantities to stock.",
)
def receive_purchase(
    purchase_id: str,
    request: ReceivePurchaseRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    result = purchase_service.mark_received(ctx, purchase_id, [item.to_domain() for item in request.items])
    return PurchaseResponse.model_validate(unwrap(result))


@router.delete("/purchases/{purchase_id}", summary="Delete Purchase Order")
def delete_purchase(purchase_id: str, ctx: RequestContext = Depends(get_request_context)):
    """Delete an order and its items. Stock is not reversed."""
    return {"deleted": unwrap(purchase_service.delete_purchase(ctx, purchase_id))}
