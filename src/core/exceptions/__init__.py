from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    InvalidFilterError,
    ValidationError,
    StoreUnavailableError,
    ConcurrencyConflictError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "InvalidFilterError",
    "ValidationError",
    "StoreUnavailableError",
    "ConcurrencyConflictError",
]
