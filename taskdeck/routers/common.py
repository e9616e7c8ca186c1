from __future__ import annotations

from typing import Any, TypeVar

from fastapi import HTTPException

from ..errors import BulkOperationError, ServiceError, Unauthenticated, ValidationError
from ..results import ServiceResult


T = TypeVar("T")


def http_error(error: ServiceError) -> HTTPException:
    detail: Any = error.message
    if isinstance(error, ValidationError):
        detail = {"message": error.message, "fields": error.fields}
    elif isinstance(error, BulkOperationError):
        detail = {"message": error.message, "failed_ids": error.failed_ids}

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, Unauthenticated) else None
    return HTTPException(status_code=error.status_code, detail=detail, headers=headers)


def unwrap_or_raise(result: ServiceResult[T]) -> T:
    """Return the payload of a successful result, or raise the matching HTTPException."""
    if result.error is not None:
        raise http_error(result.error)
    return result.data  # type: ignore[return-value]
