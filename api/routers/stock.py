"""
Stock Movements API Endpoints.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_request_context, unwrap
from api.models import CreateStockMovementRequest, StockMovementResponse
from domain.context import RequestContext
from domain.stock import MovementType
from repositories.stock_movement_repository import StockMovementFilters
from services import stock_service

router = APIRouter()


@router.get(
    "/stock/movements",
    response_model=List[StockMovementResponse],
    summary="List Stock Movements",
    description="Stock ledger of the caller's branch, newest first by default.",
)
def list_stock_movements(
    search: Optional[str] = Query(None, description="Substring of the movement reason"),
    movement_type: Optional[MovementType] = Query(None),
    product_id: Optional[str] = Query(None),
    reference_number: Optional[str] = Query(None, description="Purchase or sale number"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort_by: Literal["created_at", "quantity"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    ctx: RequestContext = Depends(get_request_context),
):
    filters = StockMovementFilters(
        search=search,
        movement_type=movement_type,
        product_id=product_id,
        reference_number=reference_number,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        ascending=sort_order == "asc",
    )
    return [StockMovementResponse.model_validate(m) for m in unwrap(stock_service.list_stock_movements(ctx, filters))]


@router.post(
    "/stock/movements",
    response_model=StockMovementResponse,
    status_code=201,
    summary="Record Stock Movement",
    description="""
    Apply a manual movement to a product's stock and record it in the ledger.

    `in` and `adjustment` add the quantity; `out` and `transfer` subtract it.
    """,
)
def record_stock_movement(request: CreateStockMovementRequest, ctx: RequestContext = Depends(get_request_context)):
    result = stock_service.record_movement(
        ctx,
        product_id=request.product_id,
        movement_type=request.movement_type,
        quantity=request.quantity,
        reason=request.reason,
        reference_number=request.reference_number,
        notes=request.notes,
    )
    return StockMovementResponse.model_validate(unwrap(result))
