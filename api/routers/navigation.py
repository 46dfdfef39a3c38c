"""
Navigation API Endpoints.

Role-based menu and route access checks for the back-office shell. The role
comes from the X-User-Role header; no tenant context is needed.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_user_role
from api.models import AccessResponse, NavigationItemResponse
from domain.navigation import get_navigation_items, has_access

router = APIRouter()


@router.get("/navigation", response_model=List[NavigationItemResponse], summary="Menu For Role")
def get_navigation(role: Optional[str] = Depends(get_user_role)):
    return [NavigationItemResponse.model_validate(item) for item in get_navigation_items(role or "")]


@router.get("/navigation/access", response_model=AccessResponse, summary="Check Route Access")
def check_access(
    path: str = Query(..., description="Application route, e.g. /branch/sales/pos"),
    role: Optional[str] = Depends(get_user_role),
):
    return AccessResponse(path=path, role=role, allowed=has_access(path, role))
