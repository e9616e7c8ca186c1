from __future__ import annotations

from typing import Iterable


class ServiceError(Exception):
    """Base class for failures reported by the service layer."""

    status_code = 500
    code = "service_error"

    def __init__(self, message: str):
        self.message = str(message)
        super().__init__(self.message)


class Unauthenticated(ServiceError):
    status_code = 401
    code = "unauthenticated"

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class NotFound(ServiceError):
    """The entity does not exist or is not visible to the caller."""

    status_code = 404
    code = "not_found"


class InvalidState(ServiceError):
    status_code = 409
    code = "invalid_state"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"


class ValidationError(ServiceError):
    """Input rejected by a schema; `fields` maps field path -> messages."""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, fields: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.fields = dict(fields or {})

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        fields: dict[str, list[str]] = {}
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
            fields.setdefault(loc, []).append(str(err.get("msg", "Invalid value")))
        summary = "; ".join(f"{k}: {', '.join(v)}" for k, v in fields.items())
        return cls(f"Invalid input ({summary})" if summary else "Invalid input", fields)


class StorageFailure(ServiceError):
    """An underlying persistence error. The original exception is kept in `cause`."""

    status_code = 500
    code = "storage_failure"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class BulkOperationError(StorageFailure):
    """Some items of a best-effort bulk operation failed; the rest were applied."""

    code = "bulk_partial_failure"

    def __init__(self, operation: str, failed_ids: Iterable[int], causes: dict[int, str] | None = None):
        self.failed_ids = list(failed_ids)
        self.causes = dict(causes or {})
        ids = ", ".join(str(i) for i in self.failed_ids)
        super().__init__(f"{operation} failed for id(s): {ids}")
