"""Relation resolution: eager-load has-one, has-many and belongs-to fields.

Two modes:

- ``resolve_single``: one parent just loaded by ``select_one``.  One
  follow-up query per relation, ``LIMIT 1`` for has-one / belongs-to.
- ``resolve_batch``: N parents loaded by ``select``.  Exactly one
  follow-up query per relation, whatever N is, using an IN-list of the
  distinct keys; children are spliced back by key.

Both run only after the parent cursor has been drained and closed, and
resolve relations sequentially in declaration order.  Any failure aborts
the whole load.

Children are matched by the key value found in the child *row*, so the
child record type does not need to declare the join column.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Sequence
from contextlib import closing
from typing import Any

from db_mapper.adapters.base import Executor
from db_mapper.mapping.descriptor import BelongsTo, Descriptor, HasMany, HasOne, describe
from db_mapper.mapping.scanner import column_index, scan_into

logger = logging.getLogger(__name__)


def bind_list(values: Iterable[Any], start: int = 0) -> tuple[str, dict[str, Any]]:
    """Render *values* as ``:p_i, :p_j, ...`` and the matching params dict."""
    names: list[str] = []
    params: dict[str, Any] = {}
    for i, value in enumerate(values, start):
        name = f"p_{i}"
        names.append(f":{name}")
        params[name] = value
    return ", ".join(names), params


async def _fetch_children(
    tdx: Executor,
    target: type,
    statement: str,
    params: dict[str, Any],
    key_column: str,
) -> list[tuple[Any, Any]]:
    """Run a follow-up query; return ``(key, child)`` pairs in row order."""
    logger.debug("relation query: %s %s", statement, params)
    target_desc = describe(target)
    pairs: list[tuple[Any, Any]] = []
    with closing(await tdx.query(statement, params)) as cursor:
        columns = cursor.columns
        key_index = column_index(columns, key_column)
        if key_index is None:
            logger.warning("column %s missing from %s rows, children not attached", key_column, target_desc.table)
            return pairs
        while (row := cursor.fetchone()) is not None:
            pairs.append((row[key_index], scan_into(target, columns, row, target_desc)))
    return pairs


# ============================================================================
# Single-parent mode
# ============================================================================


async def resolve_single(tdx: Executor, record: Any, desc: Descriptor | None = None) -> None:
    """Populate every declared relation of one freshly loaded *record*."""
    desc = desc or describe(type(record))
    if not desc.relations:
        return

    pk_value = getattr(record, desc.primary_key.name) if desc.primary_key else None

    for rel in desc.relations:
        if isinstance(rel, HasOne):
            statement = f"SELECT * FROM {rel.table} WHERE {desc.primary_key.column} = :p_0 LIMIT 1"
            pairs = await _fetch_children(tdx, rel.target, statement, {"p_0": pk_value}, desc.primary_key.column)
            if pairs:
                setattr(record, rel.field, pairs[0][1])
        elif isinstance(rel, HasMany):
            statement = f"SELECT * FROM {rel.table} WHERE {desc.primary_key.column} = :p_0"
            pairs = await _fetch_children(tdx, rel.target, statement, {"p_0": pk_value}, desc.primary_key.column)
            setattr(record, rel.field, [child for _, child in pairs])
        elif isinstance(rel, BelongsTo):
            fk_value = _foreign_key_value(record, desc, rel)
            if fk_value is None:
                continue
            statement = f"SELECT * FROM {rel.table} WHERE {rel.target_key} = :p_0 LIMIT 1"
            pairs = await _fetch_children(tdx, rel.target, statement, {"p_0": fk_value}, rel.target_key)
            if pairs:
                setattr(record, rel.field, pairs[0][1])


def _foreign_key_value(record: Any, desc: Descriptor, rel: BelongsTo) -> Any:
    return getattr(record, desc.field_for_column(rel.foreign_key).name)


# ============================================================================
# Batch mode
# ============================================================================


def _group_by(records: Sequence[Any], attr: str) -> dict[Any, list[Any]]:
    groups: dict[Any, list[Any]] = {}
    for record in records:
        key = getattr(record, attr)
        if key is None:
            continue
        groups.setdefault(key, []).append(record)
    return groups


async def resolve_batch(tdx: Executor, records: Sequence[Any], desc: Descriptor | None = None) -> None:
    """Populate every declared relation across *records* from one query result.

    Has-many collections start empty for every parent.  When several
    children share a key under a has-one relation the last one wins.
    """
    if not records:
        return
    desc = desc or describe(type(records[0]))
    if not desc.relations:
        return

    for rel in desc.relations:
        if isinstance(rel, BelongsTo):
            await _resolve_belongs_to(tdx, records, desc, rel)
        else:
            await _resolve_children(tdx, records, desc, rel)


async def _resolve_children(
    tdx: Executor,
    records: Sequence[Any],
    desc: Descriptor,
    rel: HasOne | HasMany,
) -> None:
    if isinstance(rel, HasMany):
        for record in records:
            setattr(record, rel.field, [])

    key_column = desc.primary_key.column
    groups = _group_by(records, desc.primary_key.name)
    if not groups:
        return

    in_list, params = bind_list(groups.keys())
    statement = f"SELECT * FROM {rel.table} WHERE {key_column} IN ({in_list})"
    for key, child in await _fetch_children(tdx, rel.target, statement, params, key_column):
        owners = groups.get(key)
        if not owners:
            continue
        for i, owner in enumerate(owners):
            # Each parent owns its children exclusively
            value = child if i == 0 else copy.copy(child)
            if isinstance(rel, HasOne):
                setattr(owner, rel.field, value)
            else:
                getattr(owner, rel.field).append(value)


async def _resolve_belongs_to(
    tdx: Executor,
    records: Sequence[Any],
    desc: Descriptor,
    rel: BelongsTo,
) -> None:
    groups = _group_by(records, desc.field_for_column(rel.foreign_key).name)
    if not groups:
        return

    in_list, params = bind_list(groups.keys())
    statement = f"SELECT * FROM {rel.table} WHERE {rel.target_key} IN ({in_list})"
    for key, target in await _fetch_children(tdx, rel.target, statement, params, rel.target_key):
        # Shared by reference across parents pointing at the same row
        for owner in groups.get(key, ()):
            setattr(owner, rel.field, target)
