"""
Sales API Endpoints.

Endpoints for the POS: recording sales, browsing sales history and the
branch sales statistics.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_request_context, unwrap
from api.models import (
    CreateSaleRequest,
    CustomerResponse,
    ProductResponse,
    SaleCreatedResponse,
    SaleResponse,
    SalesStatsResponse,
)
from domain.context import RequestContext
from domain.sale import SalePaymentMethod, SalePaymentStatus, SaleStatus
from repositories.sale_repository import SaleFilters
from services import sales_service

router = APIRouter()


@router.get("/sales", response_model=List[SaleResponse], summary="List Sales")
def list_sales(
    search: Optional[str] = Query(None, description="Substring of the sale number"),
    status: Optional[SaleStatus] = Query(None),
    payment_status: Optional[SalePaymentStatus] = Query(None),
    payment_method: Optional[SalePaymentMethod] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort_by: Literal["sale_date", "total_amount", "created_at"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    ctx: RequestContext = Depends(get_request_context),
):
    filters = SaleFilters(
        search=search,
        status=status,
        payment_status=payment_status,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        ascending=sort_order == "asc",
    )
    return [SaleResponse.model_validate(sale) for sale in unwrap(sales_service.list_sales(ctx, filters))]


@router.get("/sales/stats", response_model=SalesStatsResponse, summary="Sales Statistics")
def get_sales_stats(ctx: RequestContext = Depends(get_request_context)):
    return SalesStatsResponse.model_validate(unwrap(sales_service.get_stats(ctx)))


@router.get("/sales/pos/products", response_model=List[ProductResponse], summary="Products In Stock")
def list_pos_products(ctx: RequestContext = Depends(get_request_context)):
    return [ProductResponse.model_validate(p) for p in unwrap(sales_service.list_pos_products(ctx))]


@router.get("/sales/pos/customers", response_model=List[CustomerResponse], summary="Active Customers")
def list_pos_customers(ctx: RequestContext = Depends(get_request_context)):
    return [CustomerResponse.model_validate(c) for c in unwrap(sales_service.list_customers(ctx))]


@router.get("/sales/{sale_id}", response_model=SaleResponse, summary="Get Sale")
def get_sale(sale_id: str, ctx: RequestContext = Depends(get_request_context)):
    return SaleResponse.model_validate(unwrap(sales_service.get_sale(ctx, sale_id)))


@router.post(
    "/sales",
    response_model=SaleCreatedResponse,
    status_code=201,
    summary="Record Sale",
    description="Record a completed sale and remove the sold quantities from stock.",
)
def create_sale(request: CreateSaleRequest, ctx: RequestContext = Depends(get_request_context)):
    """
    Record a POS sale.

    **Amounts:**
    - total_amount = sum of quantity x unit_price
    - final_amount = total_amount - discount_amount + tax_amount

    Products whose stock could not be lowered are listed in `warnings`;
    the sale itself is still recorded.
    """
    result = sales_service.create_sale(
        ctx,
        customer_id=request.customer_id,
        items=[item.to_domain() for item in request.items],
        payment_method=request.payment_method,
        discount_amount=request.discount_amount,
        tax_amount=request.tax_amount,
        notes=request.notes,
    )
    sale = unwrap(result)
    return SaleCreatedResponse(sale=SaleResponse.model_validate(sale), warnings=result.warnings)
