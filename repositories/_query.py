"""
Shared helpers for repository modules.

`execute` is the single place where store failures become PersistenceError:
postgrest raises APIError for rejected requests, and some client versions
report failures on the response's `error` attribute instead.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from postgrest.exceptions import APIError

from domain.context import RequestContext
from domain.errors import PersistenceError


def execute(query: Any, action: str) -> List[Dict[str, Any]]:
    """Run a postgrest builder and return its rows."""

    try:
        response = query.execute()
    except APIError as e:
        raise PersistenceError(f"Failed to {action}: {e.message or e}") from e

    error = getattr(response, "error", None)
    if error:
        raise PersistenceError(f"Failed to {action}: {error}")

    return list(getattr(response, "data", None) or [])


def scoped(query: Any, ctx: RequestContext) -> Any:
    """Restrict a builder to the caller's tenant and branch."""
    return query.eq("tenant_id", ctx.tenant_id).eq("branch_id", ctx.branch_id)


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def serialize(value: Any) -> Any:
    """Convert domain values into JSON-safe column values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def serialize_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: serialize(value) for key, value in payload.items()}
