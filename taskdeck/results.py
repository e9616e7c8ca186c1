from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import ServiceError, StorageFailure, Unauthenticated, ValidationError


logger = logging.getLogger("taskdeck.service")

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Success payload XOR error, returned by every service operation."""

    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]

    @classmethod
    def success(cls, data: T) -> "ServiceResult[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: ServiceError) -> "ServiceResult[Any]":
        return cls(data=None, error=error)


def _rollback(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed")


def _describe_call(kwargs: dict[str, Any]) -> str:
    parts: list[str] = []
    user = kwargs.get("current_user")
    if user is not None:
        parts.append(f"user={getattr(user, 'id', '?')}")
    for key, value in kwargs.items():
        if key.endswith("_id") or key.endswith("_ids") or key == "template_type":
            parts.append(f"{key}={value}")
    return f" ({', '.join(parts)})" if parts else ""


def service_operation(name: str) -> Callable[[Callable[..., T]], Callable[..., ServiceResult[T]]]:
    """Wrap a service function so it never raises.

    The wrapped function receives `db` positionally and everything else as
    keywords, including `current_user`. A missing user short-circuits with
    `Unauthenticated`. Any failure rolls back the session, is logged with
    `name` and the call's identifiers, and comes back as `ServiceResult.error`.
    """

    def decorator(fn: Callable[..., T]) -> Callable[..., ServiceResult[T]]:
        @functools.wraps(fn)
        def wrapper(db: Session, **kwargs: Any) -> ServiceResult[T]:
            context = _describe_call(kwargs)
            if kwargs.get("current_user") is None:
                logger.warning("Cannot %s: no authenticated user", name)
                return ServiceResult.failure(Unauthenticated())

            try:
                return ServiceResult.success(fn(db, **kwargs))
            except ServiceError as e:
                _rollback(db)
                logger.warning("Failed to %s%s: %s", name, context, e.message)
                return ServiceResult.failure(e)
            except PydanticValidationError as e:
                _rollback(db)
                err = ValidationError.from_pydantic(e)
                logger.warning("Failed to %s%s: %s", name, context, err.message)
                return ServiceResult.failure(err)
            except SQLAlchemyError as e:
                _rollback(db)
                logger.exception("Failed to %s%s", name, context)
                return ServiceResult.failure(StorageFailure(f"Failed to {name}", cause=e))
            except Exception as e:
                _rollback(db)
                logger.exception("Unexpected error during %s%s", name, context)
                return ServiceResult.failure(StorageFailure(f"Failed to {name}", cause=e))

        return wrapper

    return decorator
