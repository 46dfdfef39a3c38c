"""
Uniform result shape for engine operations.

Every public service operation returns a ServiceResult instead of raising:
either `data` is set, or `error` carries a human-readable message and
`error_code` the EngineError code it came from. `warnings` lists problems that
did not abort the operation (e.g. a product whose stock could not be updated).
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from domain.errors import EngineError, PartialWriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T, warnings: Sequence[str] = ()) -> "ServiceResult[T]":
        return cls(data=data, warnings=list(warnings))

    @classmethod
    def failure(cls, message: str, code: str) -> "ServiceResult[T]":
        return cls(error=message, error_code=code)


def service_operation(action: str) -> Callable[[Callable[..., Any]], Callable[..., ServiceResult[Any]]]:
    """
    Run a service function inside the engine's error boundary.

    EngineErrors become failed results carrying their message and code; any
    other exception is logged with its traceback and reported as
    "Failed to <action>". Plain return values are wrapped in a successful result.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., ServiceResult[Any]]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> ServiceResult[Any]:
            try:
                result = fn(*args, **kwargs)
            except PartialWriteError as e:
                logger.error(
                    f"Partial write during '{action}'",
                    extra={"action": action, "orphan_id": e.orphan_id, "error": e.message},
                )
                return ServiceResult.failure(e.message, e.code)
            except EngineError as e:
                logger.info(f"'{action}' rejected: {e.message}", extra={"action": action, "error_code": e.code})
                return ServiceResult.failure(e.message, e.code)
            except Exception as e:
                logger.exception(f"Unexpected failure during '{action}'", extra={"action": action})
                return ServiceResult.failure(str(e) or f"Failed to {action}", "internal_error")

            if isinstance(result, ServiceResult):
                return result
            return ServiceResult.ok(result)

        return wrapper

    return decorator


__all__ = ["ServiceResult", "service_operation"]
