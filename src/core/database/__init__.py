from src.core.database.session import async_session, engine, get_db
from src.core.database.base import Base, BaseModel, BigIntPK
from src.core.database.errors import translate_store_errors

__all__ = [
    "async_session",
    "engine",
    "get_db",
    "Base",
    "BaseModel",
    "BigIntPK",
    "translate_store_errors",
]
