import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import settings
from src.core.database.errors import TRANSIENT_STORE_ERRORS
from src.core.exceptions import AppException, StoreUnavailableError
from src.shared.schemas import ErrorResponse, ErrorDetail

logger = logging.getLogger(__name__)


def _error_response(exc: AppException) -> JSONResponse:
    field = exc.details.get("field")
    response = ErrorResponse(
        message=exc.message,
        errors=[ErrorDetail(field=field, message=exc.message)],
    )
    headers = None
    if exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application exceptions."""
    return _error_response(exc)


def _format_validation_errors(errors: list[dict]) -> list[ErrorDetail]:
    details: list[ErrorDetail] = []
    for error in errors:
        loc = error.get("loc", ())
        # Drop top-level "body"/"query"/"path" for cleaner field paths
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        field = ".".join(str(part) for part in loc) if loc else None
        details.append(ErrorDetail(field=field, message=error.get("msg", "Invalid value")))
    return details


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI validation errors."""
    response = ErrorResponse(
        message="Validation error",
        errors=_format_validation_errors(exc.errors()),
    )
    return JSONResponse(
        status_code=422,
        content=response.model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTP exceptions."""
    errors = [ErrorDetail(field=None, message=str(exc.detail) if exc.detail else "HTTP error")]
    response = ErrorResponse(
        message=str(exc.detail) if exc.detail else "HTTP error",
        errors=errors,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
    )


def _friendly_db_error(exc: Exception) -> tuple[str, int]:
    """
    Convert a database error that escaped the services into a stable message.

    Full DB error text is only exposed when debug is enabled.
    """
    raw = str(getattr(exc, "orig", exc))
    lower = raw.lower()

    if "does not exist" in lower and ("column" in lower or "relation" in lower):
        # Typical after deploying code without running Alembic migrations.
        return (
            "Database schema is out of date. Run the latest migrations and try again.",
            500,
        )

    if settings.debug:
        return (raw, 500)

    return ("Database error", 500)


async def sqlalchemy_db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Transient store failures become 503 with a retry hint; anything else is a 500."""
    if isinstance(exc, TRANSIENT_STORE_ERRORS):
        logger.warning("Ledger store unavailable on %s: %s", request.url.path, exc)
        return _error_response(StoreUnavailableError())

    logger.exception("Unhandled database error on %s", request.url.path)
    message, status_code = _friendly_db_error(exc)
    response = ErrorResponse(
        message=message,
        errors=[ErrorDetail(field=None, message=message)],
    )
    return JSONResponse(status_code=status_code, content=response.model_dump())
