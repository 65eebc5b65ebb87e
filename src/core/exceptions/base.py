from typing import Any

from src.core.config import settings


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
        retry_after: int | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        # Seconds; set for transient failures the caller should retry
        self.retry_after = retry_after
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class InvalidFilterError(AppException):
    """Report filter does not describe a real period."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=400, details=details)


class ValidationError(AppException):
    """Operation would break a ledger rule."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class StoreUnavailableError(AppException):
    """Transient failure talking to the ledger store."""

    def __init__(self, message: str = "Ledger store is temporarily unavailable, retry later"):
        super().__init__(
            message=message,
            status_code=503,
            retry_after=settings.store_retry_after_seconds,
        )


class ConcurrencyConflictError(AppException):
    """Another reconciliation for the same student is in flight."""

    def __init__(self, student_id: int, message: str | None = None):
        msg = message or (
            f"Reconciliation for student {student_id} is already in progress, retry later"
        )
        super().__init__(
            message=msg,
            status_code=503,
            details={"student_id": student_id},
            retry_after=settings.store_retry_after_seconds,
        )
