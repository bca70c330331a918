"""Database driver adapters.

Provides the ``Executor`` / ``Cursor`` Protocols and the SQLAlchemy async
implementation, ``ConnectionExecutor``.

Usage:
    from db_mapper.adapters import ConnectionExecutor, Executor, create_async_engine_pooled
"""

from db_mapper.adapters.base import Cursor, ExecResult, Executor
from db_mapper.adapters.sqla import (
    ConnectionExecutor,
    ResultCursor,
    create_async_engine_pooled,
    normalize_url,
)

__all__ = [
    "Cursor",
    "ExecResult",
    "Executor",
    "ConnectionExecutor",
    "ResultCursor",
    "create_async_engine_pooled",
    "normalize_url",
]
