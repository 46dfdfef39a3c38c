"""
Domain: caller identity.

Every engine operation runs on behalf of one user inside one tenant branch.
The context is passed explicitly to each service and repository call; every
store read and write is filtered by its tenant_id and branch_id.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError


@dataclass(frozen=True, slots=True)
class RequestContext:
    tenant_id: str
    branch_id: str
    user_id: str

    def __post_init__(self) -> None:
        for name in ("tenant_id", "branch_id", "user_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} is required")


__all__ = ["RequestContext"]
