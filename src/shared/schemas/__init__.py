from src.shared.schemas.base import (
    ApiResponse,
    BaseSchema,
    MoneyAmount,
    SuccessResponse,
    ErrorResponse,
    ErrorDetail,
)

__all__ = [
    "ApiResponse",
    "BaseSchema",
    "MoneyAmount",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
]
