"""
Tests for `domain/context.py` and `domain/errors.py`.
"""

from __future__ import annotations

import pytest

from domain.context import RequestContext
from domain.errors import NotFoundError, PartialWriteError, PersistenceError, ValidationError


@pytest.mark.parametrize("field", ["tenant_id", "branch_id", "user_id"])
def test_context_requires_every_identity_field(field: str) -> None:
    values = {"tenant_id": "t", "branch_id": "b", "user_id": "u"}
    values[field] = "   "

    with pytest.raises(ValidationError, match=f"{field} is required"):
        RequestContext(**values)


def test_error_codes_and_builtin_bases() -> None:
    assert isinstance(ValidationError("x"), ValueError)
    assert isinstance(NotFoundError("x"), LookupError)
    assert NotFoundError("x").code == "not_found"

    partial = PartialWriteError("items failed", orphan_id="po-9")
    assert isinstance(partial, PersistenceError)
    assert partial.code == "partial_write"
    assert partial.orphan_id == "po-9"
    assert partial.message == "items failed"
