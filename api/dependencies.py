"""
Shared request plumbing for the routers.

Identity arrives in headers set by the authenticating gateway:
X-Tenant-Id, X-Branch-Id, X-User-Id (required) and X-User-Role.
"""

from typing import Dict, Optional, TypeVar

from fastapi import Header, HTTPException

from domain.context import RequestContext
from domain.errors import ValidationError
from services.results import ServiceResult

T = TypeVar("T")

# ServiceResult.error_code -> HTTP status
_STATUS_BY_ERROR_CODE: Dict[str, int] = {
    "validation_error": 400,
    "not_found": 404,
    "persistence_error": 502,
    "partial_write": 502,
}


def get_request_context(
    x_tenant_id: Optional[str] = Header(None),
    x_branch_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> RequestContext:
    """Build the caller's RequestContext; missing identity rejects the request."""

    try:
        return RequestContext(
            tenant_id=x_tenant_id or "",
            branch_id=x_branch_id or "",
            user_id=x_user_id or "",
        )
    except ValidationError as e:
        raise HTTPException(status_code=401, detail=f"Missing identity: {e.message}")


def get_user_role(x_user_role: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_role


def unwrap(result: ServiceResult[T]) -> T:
    """Return the result's data or raise the matching HTTPException."""

    if result.success:
        return result.data  # type: ignore[return-value]

    status_code = _STATUS_BY_ERROR_CODE.get(result.error_code or "", 500)
    raise HTTPException(status_code=status_code, detail=result.error)
