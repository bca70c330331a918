"""Declarative field markers for record dataclasses.

Each helper returns a ``dataclasses.field`` whose metadata the descriptor
reads.  Plain fields need no marker -- the attribute name is the column.

Usage:
    from dataclasses import dataclass
    from db_mapper.mapping.fields import belongs_to, has_many, has_one, ignore, pk

    @dataclass
    class Article:
        article_id: int = pk(auto=True)
        title: str = ""
        author_id: int = 0
        author: Author | None = belongs_to("author")
        comments: list[Comment] = has_many("comment")
        created_at: datetime | None = ignore()
"""

from dataclasses import MISSING, field
from typing import Any

# Metadata keys
META_PK = "db_mapper.pk"
META_AUTO = "db_mapper.auto"
META_IGNORE = "db_mapper.ignore"
META_COLUMN = "db_mapper.column"
META_RELATION = "db_mapper.relation"
META_TABLE = "db_mapper.table"
META_FOREIGN_KEY = "db_mapper.foreign_key"

# Relation kinds
HAS_ONE = "has_one"
HAS_MANY = "has_many"
BELONGS_TO = "belongs_to"
RELATION_KINDS = frozenset({HAS_ONE, HAS_MANY, BELONGS_TO})


def pk(auto: bool = False, column: str | None = None, default: Any = None) -> Any:
    """Mark the primary-key field.

    Args:
        auto: The database generates the key (auto-increment).  Auto keys
            are left out of INSERT column lists and populated afterwards.
        column: Column name, if it differs from the attribute name.
        default: Value before the record is persisted.
    """
    metadata: dict[str, Any] = {META_PK: True, META_AUTO: auto}
    if column is not None:
        metadata[META_COLUMN] = column
    return field(default=default, metadata=metadata)


def column(name: str, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Plain persisted field with an explicit column name."""
    if default is MISSING and default_factory is MISSING:
        default = None
    return field(default=default, default_factory=default_factory, metadata={META_COLUMN: name})


def ignore(default: Any = None, default_factory: Any = MISSING) -> Any:
    """Exclude a field from persistence: never read, written or relation-checked."""
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata={META_IGNORE: True})
    return field(default=default, metadata={META_IGNORE: True})


def relation(kind: str, table: str, foreign_key: str | None = None) -> Any:
    """Declare a relation field of the given *kind*.

    Prefer ``has_one`` / ``has_many`` / ``belongs_to``; this is the raw form
    and accepts any string so that bad kinds fail in ``describe()``.
    """
    metadata: dict[str, Any] = {META_RELATION: kind, META_TABLE: table}
    if foreign_key is not None:
        metadata[META_FOREIGN_KEY] = foreign_key
    if kind == HAS_MANY:
        return field(default_factory=list, metadata=metadata)
    return field(default=None, metadata=metadata)


def has_one(table: str) -> Any:
    """Single child row in *table* whose parent-key column equals our key."""
    return relation(HAS_ONE, table)


def has_many(table: str) -> Any:
    """All child rows in *table* whose parent-key column equals our key."""
    return relation(HAS_MANY, table)


def belongs_to(table: str, foreign_key: str | None = None) -> Any:
    """Row in *table* referenced by our foreign-key column.

    Args:
        table: Target table.
        foreign_key: Column on this record holding the target's key.
            Defaults to the target's primary-key column name.
    """
    return relation(BELONGS_TO, table, foreign_key)
