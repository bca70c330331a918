"""Write operations: insert, batch insert, templated and checked execution.

Templates use ``#{name}`` placeholders::

    await orm.exec_with_param(
        "UPDATE article SET title = #{title} WHERE article_id = #{id}",
        {"title": "new", "id": 7},
    )

Each placeholder is rewritten, left to right in a single pass, to a
positional bind ``:p_0``, ``:p_1``, ... and its value resolved from a
``ParamSource``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from contextlib import closing
from typing import Any, Protocol

from db_mapper.adapters.base import ExecResult, Executor
from db_mapper.errors import MissingParamError, OrmError, RowAffectError, TypeShapeError
from db_mapper.mapping.descriptor import Descriptor, describe
from db_mapper.mapping.naming import field_to_column

logger = logging.getLogger(__name__)

PARAM_PATTERN = re.compile(r"#\{([A-Za-z0-9_-]+)\}")


# ============================================================================
# Parameter sources
# ============================================================================


class ParamSource(Protocol):
    """Resolves a template parameter name to its value."""

    def resolve(self, name: str) -> Any:
        """Return the value for *name*.

        Raises:
            MissingParamError: If *name* cannot be resolved.
        """
        ...


class MappingParams:
    """Parameters looked up by exact key in a mapping."""

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = values

    def resolve(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise MissingParamError(name) from None


class RecordParams:
    """Parameters read from a record's attributes.

    ``#{title}`` reads ``title``; ``#{ArticleId}`` or ``#{articleId}`` fall
    back to the underscore form ``article_id``.
    """

    def __init__(self, record: Any) -> None:
        self._record = record

    def resolve(self, name: str) -> Any:
        for attr in (name, field_to_column(name)):
            if hasattr(self._record, attr):
                return getattr(self._record, attr)
        raise MissingParamError(name)


def param_source(source: Any) -> ParamSource:
    """Wrap *source* in the matching ``ParamSource``."""
    if isinstance(source, MappingParams | RecordParams):
        return source
    if isinstance(source, Mapping):
        return MappingParams(source)
    if source is None or isinstance(source, str | bytes | int | float | Sequence):
        raise TypeShapeError(f"input type {type(source).__name__} is not supported as parameter source")
    return RecordParams(source)


def compile_template(template: str, source: Any) -> tuple[str, dict[str, Any]]:
    """Rewrite ``#{name}`` placeholders to positional binds.

    Returns:
        ``(statement, params)`` where params maps ``p_0..p_n`` to values in
        order of appearance.

    Raises:
        MissingParamError: If a name cannot be resolved; nothing is executed.
    """
    resolver = param_source(source)
    params: dict[str, Any] = {}

    def _substitute(match: re.Match[str]) -> str:
        bind = f"p_{len(params)}"
        params[bind] = resolver.resolve(match.group(1))
        return f":{bind}"

    return PARAM_PATTERN.sub(_substitute, template), params


# ============================================================================
# Execution
# ============================================================================


async def exec_statement(
    tdx: Executor,
    statement: str,
    params: Mapping[str, Any] | None = None,
) -> ExecResult:
    """Execute a raw statement."""
    return await tdx.execute(statement, params)


async def exec_with_param(tdx: Executor, template: str, source: Any) -> ExecResult:
    """Execute *template* with ``#{name}`` values taken from *source*.

    *source* is a mapping or any object with attributes (typically a
    record).  A template without placeholders runs with no parameters.
    """
    statement, params = compile_template(template, source)
    if not params:
        logger.warning("no parameter found in template: %s", template)
    return await tdx.execute(statement, params)


async def exec_with_row_affect_check(
    tdx: Executor,
    expected: int,
    statement: str,
    params: Mapping[str, Any] | None = None,
) -> None:
    """Execute *statement* and require exactly *expected* affected rows.

    Raises:
        RowAffectError: If the driver reports a different count.
    """
    result = await tdx.execute(statement, params)
    if result.rows_affected != expected:
        raise RowAffectError(statement, expected, result.rows_affected)


# ============================================================================
# Insert
# ============================================================================

# Dialects whose multi-row INSERT reports the first generated id and hands
# out contiguous ids after it
_CONTIGUOUS_ID_DIALECTS = frozenset({"mysql", "mariadb"})


def _insert_columns(desc: Descriptor) -> str:
    return ", ".join(f.column for f in desc.insert_fields)


async def _insert_returning(tdx: Executor, desc: Descriptor, statement: str, params: dict[str, Any]) -> list[Any]:
    """Run *statement* with ``RETURNING <pk>``; generated keys in ascending order.

    ``RETURNING`` row order is not guaranteed, but keys generated by one
    statement ascend in VALUES order, so sorting pairs them with the input.
    """
    with closing(await tdx.query(f"{statement} RETURNING {desc.primary_key.column}", params)) as cursor:
        keys = []
        while (row := cursor.fetchone()) is not None:
            keys.append(row[0])
    return sorted(keys)


async def insert(tdx: Executor, record: Any) -> ExecResult:
    """Insert one record.

    Ignored and relation fields are never written.  When the key is
    auto-generated the new id is written back into *record*: read through
    ``RETURNING`` where the connection supports it (PostgreSQL, SQLite),
    otherwise from the driver's last insert id (MySQL).

    Raises:
        OrmError: If the database reports no generated key.
    """
    desc = describe(type(record))
    fields = desc.insert_fields
    params = {f"p_{i}": getattr(record, f.name) for i, f in enumerate(fields)}
    binds = ", ".join(f":{name}" for name in params)
    statement = f"INSERT INTO {desc.table} ({_insert_columns(desc)}) VALUES ({binds})"

    if desc.auto_key and tdx.supports_returning:
        keys = await _insert_returning(tdx, desc, statement, params)
        if not keys:
            raise OrmError(f"no generated key returned for {desc.table}")
        setattr(record, desc.primary_key.name, keys[0])
        return ExecResult(rows_affected=len(keys), last_insert_id=keys[0])

    result = await tdx.execute(statement, params)
    if desc.auto_key:
        if result.last_insert_id is None:
            raise OrmError(f"driver did not report a generated key for {desc.table}")
        setattr(record, desc.primary_key.name, result.last_insert_id)
    return result


async def insert_batch(tdx: Executor, records: Sequence[Any]) -> ExecResult | None:
    """Insert *records* with a single multi-row ``VALUES`` statement.

    All records must be of the same type.  With an auto-generated key the
    new ids are written back in input order:

    - with ``RETURNING`` (PostgreSQL, SQLite 3.35+) from the returned keys;
    - on MySQL as ``last_insert_id + i``, which holds for InnoDB's default
      auto-increment lock mode where one statement gets contiguous ids.

    Any other dialect cannot report the keys of a batch, so an auto-key
    batch is refused there before anything is written.

    Returns:
        The ``ExecResult``, or None for an empty batch.

    Raises:
        TypeShapeError: If the records are not all of one type.
        OrmError: If generated keys cannot be assigned on this dialect.
    """
    if not records:
        return None

    cls = type(records[0])
    for record in records:
        if type(record) is not cls:
            raise TypeShapeError(
                f"batch insert requires records of one type: got {type(record).__name__} "
                f"among {cls.__name__}"
            )

    desc = describe(cls)
    returning = desc.auto_key and tdx.supports_returning
    if desc.auto_key and not returning and tdx.dialect_name not in _CONTIGUOUS_ID_DIALECTS:
        raise OrmError(
            f"cannot assign generated keys of a batch insert on {tdx.dialect_name}; "
            f"insert {desc.table} records one at a time"
        )

    fields = desc.insert_fields
    params: dict[str, Any] = {}
    groups: list[str] = []
    for record in records:
        binds: list[str] = []
        for f in fields:
            name = f"p_{len(params)}"
            params[name] = getattr(record, f.name)
            binds.append(f":{name}")
        groups.append(f"({', '.join(binds)})")
    statement = f"INSERT INTO {desc.table} ({_insert_columns(desc)}) VALUES {', '.join(groups)}"

    if returning:
        keys = await _insert_returning(tdx, desc, statement, params)
        if len(keys) != len(records):
            raise OrmError(f"expected {len(records)} generated keys for {desc.table}, got {len(keys)}")
        for record, key in zip(records, keys):
            setattr(record, desc.primary_key.name, key)
        return ExecResult(rows_affected=len(keys), last_insert_id=keys[-1])

    result = await tdx.execute(statement, params)
    if desc.auto_key:
        if result.last_insert_id is None:
            raise OrmError(f"driver did not report a generated key for {desc.table}")
        for offset, record in enumerate(records):
            setattr(record, desc.primary_key.name, result.last_insert_id + offset)
    return result
