"""
Refunds API Endpoints.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_request_context, unwrap
from api.models import CreateRefundRequest, RefundResponse
from domain.context import RequestContext
from domain.sale import RefundMethod, RefundStatus
from repositories.refund_repository import RefundFilters
from services import sales_service

router = APIRouter()


@router.get("/refunds", response_model=List[RefundResponse], summary="List Refunds")
def list_refunds(
    search: Optional[str] = Query(None, description="Substring of the refund reason"),
    status: Optional[RefundStatus] = Query(None),
    refund_method: Optional[RefundMethod] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort_by: Literal["refund_date", "refund_amount", "created_at"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    ctx: RequestContext = Depends(get_request_context),
):
    filters = RefundFilters(
        search=search,
        status=status,
        refund_method=refund_method,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        ascending=sort_order == "asc",
    )
    return [RefundResponse.model_validate(r) for r in unwrap(sales_service.list_refunds(ctx, filters))]


@router.post(
    "/refunds",
    response_model=RefundResponse,
    status_code=201,
    summary="Record Refund",
    description="Record a refund and mark the sale as refunded. Stock is not returned.",
)
def create_refund(request: CreateRefundRequest, ctx: RequestContext = Depends(get_request_context)):
    result = sales_service.create_refund(
        ctx,
        sale_id=request.sale_id,
        refund_amount=request.refund_amount,
        refund_reason=request.refund_reason,
        refund_method=request.refund_method,
        notes=request.notes,
    )
    return RefundResponse.model_validate(unwrap(result))
