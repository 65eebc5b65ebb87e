"""Translation of Ledger Store access failures into domain errors."""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from src.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# Connection drops, lock timeouts, pool exhaustion: safe to retry
TRANSIENT_STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def translate_store_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise transient SQLAlchemy failures of a service call as StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except TRANSIENT_STORE_ERRORS as exc:
            logger.warning("Ledger store unavailable in %s: %s", func.__qualname__, exc)
            raise StoreUnavailableError() from exc

    return wrapper
