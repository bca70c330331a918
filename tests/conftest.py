"""Shared fixtures: an in-memory fake ``Executor`` with query instrumentation.

``FakeExecutor`` answers ``SELECT * FROM <table> [WHERE <col> = :bind |
WHERE <col> IN (...)] [LIMIT n]`` against rows registered with
``add_table``.  Any other query must be registered verbatim with
``add_response``.  Every statement is recorded so tests can count round
trips.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from db_mapper.adapters.base import ExecResult

_SELECT = re.compile(
    r"SELECT \* FROM (?P<table>\w+)"
    r"(?: WHERE (?P<column>\w+) (?:= :(?P<bind>\w+)|IN \((?P<binds>[^)]*)\)))?"
    r"(?: LIMIT (?P<limit>\d+))?$"
)


class FakeCursor:
    """Cursor over a fixed list of rows; tracks whether it was closed."""

    def __init__(self, owner: "FakeExecutor", columns: list[str], rows: list[tuple]) -> None:
        self._owner = owner
        self._columns = columns
        self._rows = list(rows)
        self.closed = False

    @property
    def columns(self) -> list[str]:
        return self._columns

    def fetchone(self) -> tuple | None:
        if self.closed:
            raise RuntimeError("cursor is closed")
        return self._rows.pop(0) if self._rows else None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._owner.open_cursors -= 1


class FakeExecutor:
    """In-memory ``Executor`` recording every statement it receives.

    Behaves like a MySQL connection by default: no ``RETURNING``, generated
    keys come from the queued ``ExecResult``.
    """

    def __init__(self, dialect_name: str = "mysql", supports_returning: bool = False) -> None:
        self.dialect_name = dialect_name
        self.supports_returning = supports_returning
        self.tables: dict[str, tuple[list[str], list[tuple]]] = {}
        self.responses: dict[str, tuple[list[str], list[tuple]]] = {}
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self.exec_results: list[ExecResult] = []
        self.cursors: list[FakeCursor] = []
        self.open_cursors = 0
        self.max_open_cursors = 0

    # ----- setup -----

    def add_table(self, name: str, columns: list[str], rows: Sequence[tuple]) -> None:
        self.tables[name] = (columns, list(rows))

    def add_response(self, statement: str, columns: list[str], rows: Sequence[tuple]) -> None:
        self.responses[statement] = (columns, list(rows))

    def queue_result(self, rows_affected: int, last_insert_id: int | None = None) -> None:
        self.exec_results.append(ExecResult(rows_affected, last_insert_id))

    # ----- instrumentation -----

    def queries_on(self, table: str) -> list[str]:
        """Statements issued against *table*."""
        return [s for s, _ in self.queries if re.search(rf"FROM {table}\b", s)]

    # ----- Executor protocol -----

    async def execute(self, statement: str, params: Mapping[str, Any] | None = None) -> ExecResult:
        self.executed.append((statement, dict(params or {})))
        if self.exec_results:
            return self.exec_results.pop(0)
        return ExecResult(rows_affected=1)

    async def query(self, statement: str, params: Mapping[str, Any] | None = None) -> FakeCursor:
        params = dict(params or {})
        self.queries.append((statement, params))
        columns, rows = self._answer(statement, params)
        cursor = FakeCursor(self, columns, rows)
        self.cursors.append(cursor)
        self.open_cursors += 1
        self.max_open_cursors = max(self.max_open_cursors, self.open_cursors)
        return cursor

    def _answer(self, statement: str, params: dict[str, Any]) -> tuple[list[str], list[tuple]]:
        if statement in self.responses:
            return self.responses[statement]

        match = _SELECT.match(statement)
        if match is None or match["table"] not in self.tables:
            raise AssertionError(f"unexpected query: {statement}")

        columns, rows = self.tables[match["table"]]
        if match["column"]:
            idx = columns.index(match["column"])
            if match["bind"]:
                wanted = [params[match["bind"]]]
            else:
                wanted = [params[b.strip()[1:]] for b in match["binds"].split(",")]
            rows = [r for r in rows if r[idx] in wanted]
        if match["limit"]:
            rows = rows[: int(match["limit"])]
        return columns, rows


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Empty fake executor."""
    return FakeExecutor()


@pytest.fixture
def postgres_executor() -> FakeExecutor:
    """Fake executor for a PostgreSQL connection, which has ``INSERT ... RETURNING``."""
    return FakeExecutor(dialect_name="postgresql", supports_returning=True)


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """URL of a fresh on-disk SQLite database."""
    return f"sqlite:///{tmp_path}/test.db"
