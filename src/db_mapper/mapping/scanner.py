"""Bind result rows to freshly allocated records.

Usage:
    from db_mapper.mapping.scanner import scan_into

    record = scan_into(Article, ["article_id", "title"], (1, "hello"))
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from db_mapper.mapping.descriptor import Descriptor, describe

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_record(cls: type[T]) -> T:
    """Allocate a record without running ``__init__``.

    Every field gets its declared default (or default factory), or None if
    it has neither.  The row then overwrites the columns it carries.
    """
    record = object.__new__(cls)
    for f in dataclasses.fields(cls):
        if f.default is not dataclasses.MISSING:
            value: Any = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        else:
            value = None
        setattr(record, f.name, value)
    return record


def scan_into(
    cls: type[T],
    columns: Sequence[str],
    row: Sequence[Any],
    descriptor: Descriptor | None = None,
) -> T:
    """Build one record of *cls* from *row*.

    Columns with no matching persisted field are dropped; the schema may
    carry more columns than the record declares.

    Args:
        cls: Record dataclass.
        columns: Column names of the executed query, in row order.
        row: One row of values.
        descriptor: Pre-computed descriptor for *cls* (optional).
    """
    desc = descriptor or describe(cls)
    record = new_record(cls)
    for col, value in zip(columns, row):
        info = desc.field_for_column(col)
        if info is None:
            logger.debug("missing field for column %s on %s", col, desc.table)
            continue
        setattr(record, info.name, value)
    return record


def column_index(columns: Sequence[str], column: str) -> int | None:
    """Position of *column* in a result's columns, or None if absent."""
    try:
        return list(columns).index(column)
    except ValueError:
        return None
