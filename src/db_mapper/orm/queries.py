"""Read operations: records, scalars and raw string rows.

Every function takes the ``Executor`` to run on as its first argument, so
the same code serves both ``ORM`` (pooled connection per call) and
``Transaction`` (one pinned connection).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from contextlib import closing
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from db_mapper.adapters.base import Executor
from db_mapper.errors import ConfigurationError, NoRowsError, TypeShapeError
from db_mapper.mapping.descriptor import describe
from db_mapper.mapping.naming import column_to_field
from db_mapper.mapping.scanner import scan_into
from db_mapper.orm.relations import resolve_batch, resolve_single

T = TypeVar("T")

SCALAR_TYPES: tuple[type, ...] = (int, str, float, bool, bytes, Decimal)


async def select_one(
    tdx: Executor,
    cls: type[T],
    query: str,
    params: Mapping[str, Any] | None = None,
) -> T:
    """Load the first row of *query* as a *cls* record, with its relations.

    Raises:
        NoRowsError: If the query returns no rows.
    """
    desc = describe(cls)
    with closing(await tdx.query(query, params)) as cursor:
        row = cursor.fetchone()
        if row is None:
            raise NoRowsError(query)
        record = scan_into(cls, cursor.columns, row, desc)
    await resolve_single(tdx, record, desc)
    return record


async def select_by_pk(tdx: Executor, cls: type[T], pk: Any) -> T:
    """Load the *cls* record whose primary key equals *pk*.

    Raises:
        ConfigurationError: If *cls* does not declare a primary key.
        NoRowsError: If no such row exists.
    """
    desc = describe(cls)
    if desc.primary_key is None:
        raise ConfigurationError(f"{desc.table} does not have primary key")
    return await select_one(
        tdx, cls, f"SELECT * FROM {desc.table} WHERE {desc.primary_key.column} = :p_0", {"p_0": pk}
    )


async def select_many(
    tdx: Executor,
    cls: type[T],
    query: str,
    params: Mapping[str, Any] | None = None,
    load_relations: bool = True,
) -> list[T]:
    """Load every row of *query*.

    For a record *cls* the relations are resolved in batch mode once all
    rows are scanned.  For a scalar *cls* (``int``, ``str``, ...) the first
    column of every row is returned.

    Raises:
        TypeShapeError: If *cls* is neither a record dataclass nor a
            supported scalar type.
    """
    if isinstance(cls, type) and issubclass(cls, SCALAR_TYPES):
        values: list[Any] = []
        with closing(await tdx.query(query, params)) as cursor:
            while (row := cursor.fetchone()) is not None:
                values.append(row[0])
        return values

    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeShapeError(f"elements type {cls!r} not supported")

    desc = describe(cls)
    records: list[T] = []
    with closing(await tdx.query(query, params)) as cursor:
        columns = cursor.columns
        while (row := cursor.fetchone()) is not None:
            records.append(scan_into(cls, columns, row, desc))
    if load_relations:
        await resolve_batch(tdx, records, desc)
    return records


async def _select_first(tdx: Executor, query: str, params: Mapping[str, Any] | None) -> Any:
    with closing(await tdx.query(query, params)) as cursor:
        row = cursor.fetchone()
    if row is None:
        raise NoRowsError(query)
    return row[0]


async def select_str(tdx: Executor, query: str, params: Mapping[str, Any] | None = None) -> str:
    """First column of the first row as ``str``."""
    value = await _select_first(tdx, query, params)
    return value.decode() if isinstance(value, bytes) else str(value)


async def select_int(tdx: Executor, query: str, params: Mapping[str, Any] | None = None) -> int:
    """First column of the first row as ``int``."""
    return int(await _select_first(tdx, query, params))


async def select_float(tdx: Executor, query: str, params: Mapping[str, Any] | None = None) -> float:
    """First column of the first row as ``float``."""
    return float(await _select_first(tdx, query, params))


# ============================================================================
# Raw string rows
# ============================================================================


def format_value(value: Any) -> str | None:
    """Render a driver value as a string; None stays None."""
    if value is None:
        return None
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode()
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float):
        return f"{value:.4f}"
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


async def select_raw(
    tdx: Executor,
    query: str,
    params: Mapping[str, Any] | None = None,
) -> tuple[list[str], list[list[str]]]:
    """Run *query* and return ``(columns, rows)`` with every value as a string.

    NULL values become empty strings.
    """
    data: list[list[str]] = []
    with closing(await tdx.query(query, params)) as cursor:
        columns = cursor.columns
        while (row := cursor.fetchone()) is not None:
            data.append([format_value(v) or "" for v in row])
    return columns, data


async def select_raw_set(
    tdx: Executor,
    query: str,
    params: Mapping[str, Any] | None = None,
) -> list[dict[str, str]]:
    """Run *query* and return one ``{FieldName: value}`` dict per row.

    Keys are field names (``column_to_field``); NULL values are left out.
    """
    data: list[dict[str, str]] = []
    with closing(await tdx.query(query, params)) as cursor:
        fields = [column_to_field(c) for c in cursor.columns]
        while (row := cursor.fetchone()) is not None:
            item: dict[str, str] = {}
            for name, value in zip(fields, row):
                rendered = format_value(value)
                if rendered is not None:
                    item[name] = rendered
            data.append(item)
    return data
