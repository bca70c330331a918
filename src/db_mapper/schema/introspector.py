"""Live schema introspection via SQLAlchemy's ``inspect()``.

Reads table names and column metadata (name, type, nullability, key flag,
auto-increment) from any database the async engine can reach.  The
inspector API is synchronous, so every call goes through
``AsyncConnection.run_sync``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from db_mapper.schema.models import ColumnSchema, DatabaseSchema, TableSchema


class SchemaIntrospector:
    """Introspects a live database schema.

    Usage:
        async with SchemaIntrospector(engine) as introspector:
            # Full column metadata per table
            schema = await introspector.introspect()

            # Or just column names for validation
            columns = await introspector.get_column_names(["user", "article"])
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "sqlite_sequence",
    }

    def __init__(self, engine: AsyncEngine):
        """Initialize with an async engine.

        Args:
            engine: Engine to borrow a connection from.
        """
        self._engine = engine
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> SchemaIntrospector:
        """Context manager entry - opens connection."""
        self._conn = await self._engine.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> AsyncConnection:
        if self._conn is None:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def get_table_names(self) -> list[str]:
        """All user table names, sorted."""
        conn = self._require_conn()
        names: list[str] = await conn.run_sync(lambda c: inspect(c).get_table_names())
        return sorted(n for n in names if n not in self.EXCLUDED_TABLES)

    async def get_columns(self, table_name: str) -> dict[str, ColumnSchema]:
        """Column metadata for one table, in ordinal order."""
        conn = self._require_conn()
        return await conn.run_sync(_read_columns, table_name)

    async def get_column_names(self, tables: Iterable[str] | None = None) -> dict[str, set[str]]:
        """Column names per table (simplified for the comparator).

        Args:
            tables: Restrict to these tables; tables that do not exist are
                left out of the result.  Defaults to every table.

        Returns:
            Dict mapping table name to set of column names.
        """
        existing = await self.get_table_names()
        wanted = existing if tables is None else [t for t in tables if t in existing]
        result: dict[str, set[str]] = {}
        for table_name in wanted:
            result[table_name] = set((await self.get_columns(table_name)).keys())
        return result

    async def introspect(self, tables: Iterable[str] | None = None) -> DatabaseSchema:
        """Full column metadata for every (or the given) table."""
        existing = await self.get_table_names()
        wanted = existing if tables is None else [t for t in tables if t in existing]
        db_schema = DatabaseSchema()
        for table_name in wanted:
            db_schema.tables[table_name] = TableSchema(
                name=table_name,
                columns=await self.get_columns(table_name),
            )
        return db_schema


def _read_columns(sync_conn: Connection, table_name: str) -> dict[str, ColumnSchema]:
    inspector = inspect(sync_conn)
    pk_columns = set(inspector.get_pk_constraint(table_name).get("constrained_columns") or [])
    columns: dict[str, ColumnSchema] = {}
    for col in inspector.get_columns(table_name):
        name: str = col["name"]
        default: Any = col.get("default")
        columns[name] = ColumnSchema(
            name=name,
            data_type=str(col["type"]).lower(),
            is_nullable=bool(col.get("nullable", True)),
            default=None if default is None else str(default),
            primary_key=name in pk_columns,
            autoincrement=col.get("autoincrement") is True,
        )
    return columns
