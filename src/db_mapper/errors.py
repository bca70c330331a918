"""Error kinds raised by db-mapper.

Driver failures (SQLAlchemy ``DBAPIError`` and subclasses) are never
wrapped -- they reach the caller unchanged.  Everything raised by the
mapper itself derives from ``OrmError``.

Usage:
    from db_mapper.errors import NoRowsError, RowAffectError

    try:
        user = await orm.select_by_pk(User, 42)
    except NoRowsError:
        user = None
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from db_mapper.schema.models import SchemaValidationResult


class OrmError(Exception):
    """Base class for all db-mapper errors."""


class ConfigurationError(OrmError):
    """A record type is declared in a way the mapper cannot use."""


class RelationConfigError(ConfigurationError):
    """Malformed relation declaration (bad kind, target table or field shape)."""


class NoRowsError(OrmError, LookupError):
    """A single-row query returned no rows.

    Treat as "not found", not as a failure of the database.
    """

    def __init__(self, statement: str = "") -> None:
        self.statement = statement
        super().__init__(f"no rows in result set: {statement}" if statement else "no rows in result set")


class RowAffectError(OrmError):
    """Statement succeeded but affected an unexpected number of rows."""

    def __init__(self, statement: str, expected: int, actual: int) -> None:
        self.statement = statement
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"[RowAffectCheckError]: query [{statement}] should only affect "
            f"{expected} rows, really affect {actual} rows"
        )


class TypeShapeError(OrmError, TypeError):
    """Destination or input has the wrong shape (non-record target, mixed batch)."""


class MissingParamError(OrmError, KeyError):
    """A named template parameter could not be resolved."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"missing field {name}")

    def __str__(self) -> str:
        return f"missing field {self.name}"


class SchemaMismatchError(OrmError):
    """Registered record types do not match the live database schema.

    ``missing`` maps each table to the record fields it lacks columns for.
    """

    def __init__(self, report: SchemaValidationResult) -> None:
        self.report = report
        self.missing = report.fields_by_table()
        super().__init__(report.format_report())


def is_row_affect_error(err: BaseException) -> bool:
    """Return True if *err* is a row-affect mismatch."""
    return isinstance(err, RowAffectError)
