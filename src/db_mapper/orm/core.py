"""ORM instance and transactions.

``ORM`` owns a pooled async engine.  Each operation borrows a connection
for its own duration: reads via ``engine.connect()``, writes via
``engine.begin()`` (commit on success, rollback on error).

``Transaction`` pins one connection until ``commit()`` or ``rollback()``;
every statement issued through it runs on that connection.

Usage:
    from db_mapper import ORM

    orm = ORM("mysql://root@localhost/test", max_open=10, max_idle=5)
    orm.add_table(Article)

    article = await orm.select_by_pk(Article, 1)
    articles = await orm.select(Article, "SELECT * FROM article WHERE author_id = :a", {"a": 3})

    async with orm.transaction() as tx:
        await tx.insert(article)
        await tx.exec_with_row_affect_check(1, "UPDATE author SET n = n + 1 WHERE author_id = :a", {"a": 3})

    await orm.close()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from db_mapper.adapters.base import ExecResult, Executor
from db_mapper.adapters.sqla import ConnectionExecutor, create_async_engine_pooled
from db_mapper.errors import OrmError, SchemaMismatchError
from db_mapper.mapping.descriptor import describe
from db_mapper.orm import queries, statements
from db_mapper.schema.comparator import expected_columns_for, validate_schema
from db_mapper.schema.introspector import SchemaIntrospector
from db_mapper.schema.models import SchemaValidationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class _Operations:
    """Query and statement methods shared by ``ORM`` and ``Transaction``.

    Subclasses provide ``_executor(write)``, an async context manager
    yielding the ``Executor`` to run on.
    """

    def _executor(self, write: bool) -> Any:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def select_one(self, cls: type[T], query: str, params: Mapping[str, Any] | None = None) -> T:
        """Load one record with its relations; raises ``NoRowsError`` if absent."""
        async with self._executor(write=False) as tdx:
            return await queries.select_one(tdx, cls, query, params)

    async def select_by_pk(self, cls: type[T], pk: Any) -> T:
        """Load one record by primary key; raises ``NoRowsError`` if absent."""
        async with self._executor(write=False) as tdx:
            return await queries.select_by_pk(tdx, cls, pk)

    async def select(self, cls: type[T], query: str, params: Mapping[str, Any] | None = None) -> list[T]:
        """Load every row as a record (relations batch-loaded) or scalar."""
        async with self._executor(write=False) as tdx:
            return await queries.select_many(tdx, cls, query, params)

    async def select_str(self, query: str, params: Mapping[str, Any] | None = None) -> str:
        async with self._executor(write=False) as tdx:
            return await queries.select_str(tdx, query, params)

    async def select_int(self, query: str, params: Mapping[str, Any] | None = None) -> int:
        async with self._executor(write=False) as tdx:
            return await queries.select_int(tdx, query, params)

    async def select_float(self, query: str, params: Mapping[str, Any] | None = None) -> float:
        async with self._executor(write=False) as tdx:
            return await queries.select_float(tdx, query, params)

    async def select_raw(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> tuple[list[str], list[list[str]]]:
        async with self._executor(write=False) as tdx:
            return await queries.select_raw(tdx, query, params)

    async def select_raw_set(self, query: str, params: Mapping[str, Any] | None = None) -> list[dict[str, str]]:
        async with self._executor(write=False) as tdx:
            return await queries.select_raw_set(tdx, query, params)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, record: Any) -> ExecResult:
        """Insert *record*; an auto-generated key is written back into it."""
        async with self._executor(write=True) as tdx:
            return await statements.insert(tdx, record)

    async def insert_batch(self, records: Sequence[Any]) -> ExecResult | None:
        """Insert same-typed *records* in one statement (see ``statements.insert_batch``)."""
        async with self._executor(write=True) as tdx:
            return await statements.insert_batch(tdx, records)

    async def exec(self, statement: str, params: Mapping[str, Any] | None = None) -> ExecResult:
        async with self._executor(write=True) as tdx:
            return await statements.exec_statement(tdx, statement, params)

    async def exec_with_param(self, template: str, source: Any) -> ExecResult:
        """Execute a ``#{name}`` template with values from a mapping or record."""
        async with self._executor(write=True) as tdx:
            return await statements.exec_with_param(tdx, template, source)

    async def exec_with_row_affect_check(
        self, expected: int, statement: str, params: Mapping[str, Any] | None = None
    ) -> None:
        """Execute and raise ``RowAffectError`` unless *expected* rows changed."""
        async with self._executor(write=True) as tdx:
            await statements.exec_with_row_affect_check(tdx, expected, statement, params)


# ============================================================================
# Transaction
# ============================================================================


class Transaction(_Operations):
    """Sequence of operations on one connection, committed or rolled back as a unit.

    Obtain one from ``ORM.begin()``, ``ORM.transaction()`` or
    ``ORM.do_transaction()``.  After ``commit()`` / ``rollback()`` the
    connection goes back to the pool and the transaction can no longer
    be used.
    """

    def __init__(self, conn: AsyncConnection, trans: AsyncTransaction) -> None:
        self._conn = conn
        self._trans = trans
        self._tdx = ConnectionExecutor(conn)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def _executor(self, write: bool) -> AsyncIterator[Executor]:
        if self._closed:
            raise OrmError("transaction has already been committed or rolled back")
        yield self._tdx

    async def commit(self) -> None:
        """Commit and release the connection."""
        if self._closed:
            raise OrmError("transaction has already been committed or rolled back")
        try:
            await self._trans.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        """Roll back and release the connection."""
        if self._closed:
            raise OrmError("transaction has already been committed or rolled back")
        try:
            await self._trans.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        self._closed = True
        await self._conn.close()

    async def _rollback_after_failure(self) -> None:
        """Roll back on the failure path; a rollback error must not mask the original."""
        if self._closed:
            return
        try:
            await self.rollback()
        except Exception:
            logger.exception("rollback failed")


# ============================================================================
# ORM
# ============================================================================


class ORM(_Operations):
    """Entry point: pooled engine, table registry and all operations.

    There is no process-wide default instance; build one (or several) in
    your application's composition root.

    Args:
        database_url: Connection URL.  Plain schemes (``mysql://``,
            ``postgresql://``, ``sqlite://``) are normalized to their async
            drivers.
        max_open: Maximum open connections in the pool.
        max_idle: Maximum idle connections kept by the pool.
        engine: Use an existing engine instead of creating one.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.
    """

    def __init__(
        self,
        database_url: str | None = None,
        max_open: int = 10,
        max_idle: int = 5,
        *,
        engine: AsyncEngine | None = None,
        **engine_kwargs: Any,
    ) -> None:
        if engine is None:
            if database_url is None:
                raise ValueError("either database_url or engine is required")
            engine = create_async_engine_pooled(database_url, max_open, max_idle, **engine_kwargs)
        self._engine: AsyncEngine = engine
        self._tables: dict[str, type] = {}

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def _executor(self, write: bool) -> AsyncIterator[Executor]:
        if write:
            async with self._engine.begin() as conn:
                yield ConnectionExecutor(conn)
        else:
            async with self._engine.connect() as conn:
                yield ConnectionExecutor(conn)

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` to verify the database is reachable."""
        async with self._engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    # ------------------------------------------------------------------
    # Table registry
    # ------------------------------------------------------------------

    def add_table(self, cls: type) -> None:
        """Register a record type.

        Builds its descriptor right away, so a malformed declaration fails
        here.  Registered tables are what ``check_tables`` and
        ``truncate_tables`` operate on.
        """
        desc = describe(cls)
        self._tables[desc.table] = cls

    def get_table_by_name(self, name: str) -> type | None:
        """Registered record type for table *name*, or None."""
        return self._tables.get(name)

    @property
    def tables(self) -> dict[str, type]:
        return dict(self._tables)

    async def validate_tables(self) -> SchemaValidationResult:
        """Compare registered record types with the live schema."""
        expected = expected_columns_for(self._tables.values())
        async with SchemaIntrospector(self._engine) as introspector:
            actual = await introspector.get_column_names(expected.keys())
        return validate_schema(actual, expected)

    async def check_tables(self) -> None:
        """Verify every registered record field has a backing column.

        Raises:
            SchemaMismatchError: Naming the table and missing fields.
        """
        result = await self.validate_tables()
        if not result.valid:
            raise SchemaMismatchError(result)

    async def truncate_table(self, table: str) -> None:
        """Delete every row of *table*."""
        async with self._engine.begin() as conn:
            if conn.dialect.name == "sqlite":
                await conn.execute(text(f"DELETE FROM {table}"))
            else:
                await conn.execute(text(f"TRUNCATE TABLE {table}"))

    async def truncate_tables(self) -> None:
        """Truncate every registered table."""
        for table in self._tables:
            await self.truncate_table(table)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin(self) -> Transaction:
        """Start a transaction on a dedicated connection.

        The caller must ``commit()`` or ``rollback()`` it; prefer
        ``transaction()`` or ``do_transaction()``.
        """
        conn = await self._engine.connect()
        try:
            trans = await conn.begin()
        except BaseException:
            await conn.close()
            raise
        return Transaction(conn, trans)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Scope a transaction to an ``async with`` block.

        Normal exit commits.  Any exception, including fatal ones such as
        cancellation or ``KeyboardInterrupt``, rolls back and is re-raised
        unchanged.
        """
        tx = await self.begin()
        try:
            yield tx
        except BaseException:
            await tx._rollback_after_failure()
            raise
        if not tx.closed:
            await tx.commit()

    async def do_transaction(self, fn: Callable[[Transaction], Awaitable[R]]) -> R:
        """Run ``fn(tx)`` in a transaction and return its result.

        Commits when *fn* returns, rolls back and re-raises when it raises.

        Example:
            async def transfer(tx: Transaction) -> None:
                await tx.exec_with_row_affect_check(1, "UPDATE ...", {...})
                await tx.exec_with_row_affect_check(1, "UPDATE ...", {...})

            await orm.do_transaction(transfer)
        """
        async with self.transaction() as tx:
            return await fn(tx)
