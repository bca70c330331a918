"""Driver-facing protocols.

Defines the ``Executor`` Protocol every ORM operation runs against, and the
``Cursor`` it returns from ``query()``.  ``ExecResult`` summarizes a
non-query statement.

All SQL text uses SQLAlchemy-style named binds (``:p_0``); parameters are a
mapping from bind name to value.

Usage:
    from contextlib import closing
    from db_mapper.adapters.base import Executor

    async def count_rows(tdx: Executor) -> int:
        with closing(await tdx.query("SELECT count(*) FROM users")) as cursor:
            return cursor.fetchone()[0]
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Outcome of ``Executor.execute``.

    Attributes:
        rows_affected: Rows changed by the statement, as reported by the driver.
        last_insert_id: Generated key of the last INSERT, or None when the
            driver does not report one.
    """

    rows_affected: int
    last_insert_id: int | None = None


class Cursor(Protocol):
    """Rows of one executed query.

    Must be closed after use regardless of outcome; wrap it in
    ``contextlib.closing``.
    """

    @property
    def columns(self) -> list[str]:
        """Column names of the result, in row order."""
        ...

    def fetchone(self) -> Sequence[Any] | None:
        """Advance to the next row and return it, or None when exhausted."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


class Executor(Protocol):
    """Statement executor that ORM operations run against.

    Implemented by ``ConnectionExecutor`` over a SQLAlchemy
    ``AsyncConnection``; a transaction is simply an executor pinned to one
    connection.
    """

    @property
    def dialect_name(self) -> str:
        """SQLAlchemy dialect name (``"postgresql"``, ``"mysql"``, ``"sqlite"``)."""
        ...

    @property
    def supports_returning(self) -> bool:
        """True if ``INSERT ... RETURNING`` is available on this connection."""
        ...

    async def execute(self, statement: str, params: Mapping[str, Any] | None = None) -> ExecResult:
        """Execute a non-query statement.

        Args:
            statement: SQL text with named binds.
            params: Bind values keyed by bind name.

        Returns:
            ``ExecResult`` with the affected-row count and last insert id.
        """
        ...

    async def query(self, statement: str, params: Mapping[str, Any] | None = None) -> Cursor:
        """Execute a query and return a cursor over its rows.

        Args:
            statement: SQL text with named binds.
            params: Bind values keyed by bind name.
        """
        ...
