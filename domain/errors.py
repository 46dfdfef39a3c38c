"""
Domain errors raised by the transaction engine.

Services catch these at their boundary and convert them into a
`ServiceResult`; they never escape a public service call.
"""

from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class for transaction engine failures."""

    code: str = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EngineError, ValueError):
    """A required field is missing or out of range. Raised before any write."""

    code = "validation_error"


class NotFoundError(EngineError, LookupError):
    """A referenced document or product does not exist in the caller's scope."""

    code = "not_found"


class PersistenceError(EngineError, RuntimeError):
    """The store rejected or failed an operation."""

    code = "persistence_error"


class PartialWriteError(PersistenceError):
    """
    A multi-step write failed after its first write succeeded.

    The parent row written before the failure is left in place; `orphan_id`
    names it so operators can clean it up.
    """

    code = "partial_write"

    def __init__(self, message: str, orphan_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.orphan_id = orphan_id


__all__ = [
    "EngineError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "PartialWriteError",
]
