"""Record type descriptors.

``describe(cls)`` walks a record dataclass once, in declaration order, and
produces a ``Descriptor``: table name, persisted fields, primary key and
relation declarations.  Relation shapes are validated here: a bad
declaration raises ``RelationConfigError`` when the descriptor is built,
never while rows are being scanned.

Usage:
    from db_mapper.mapping.descriptor import describe

    desc = describe(Article)
    desc.table              # "article"
    desc.insert_fields      # fields written by INSERT
    desc.relations          # (BelongsTo(...), HasMany(...))
"""

from __future__ import annotations

import dataclasses
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from db_mapper.errors import RelationConfigError, TypeShapeError
from db_mapper.mapping.fields import (
    BELONGS_TO,
    HAS_MANY,
    HAS_ONE,
    META_AUTO,
    META_COLUMN,
    META_FOREIGN_KEY,
    META_IGNORE,
    META_PK,
    META_RELATION,
    META_TABLE,
    RELATION_KINDS,
)
from db_mapper.mapping.naming import field_to_column


@dataclass(frozen=True, slots=True)
class FieldInfo:
    """One scalar field of a record type."""

    name: str
    column: str
    ignored: bool = False
    primary_key: bool = False
    auto: bool = False


@dataclass(frozen=True, slots=True)
class HasOne:
    """Single child row keyed by the owner's primary key."""

    field: str
    table: str
    target: type


@dataclass(frozen=True, slots=True)
class HasMany:
    """Ordered child rows keyed by the owner's primary key."""

    field: str
    table: str
    target: type


@dataclass(frozen=True, slots=True)
class BelongsTo:
    """Target row referenced by the owner's foreign-key column."""

    field: str
    table: str
    target: type
    foreign_key: str
    target_key: str


Relation = Union[HasOne, HasMany, BelongsTo]


@dataclass(frozen=True, slots=True)
class Descriptor:
    """Static metadata about a record type."""

    cls: type
    table: str
    fields: tuple[FieldInfo, ...]
    primary_key: FieldInfo | None
    relations: tuple[Relation, ...]
    by_column: dict[str, FieldInfo] = dataclasses.field(
        default_factory=dict, compare=False, repr=False
    )

    @property
    def auto_key(self) -> bool:
        """True if the database generates the primary key."""
        return self.primary_key is not None and self.primary_key.auto

    @property
    def persisted_fields(self) -> tuple[FieldInfo, ...]:
        """Fields that are read from rows (everything not ignored)."""
        return tuple(f for f in self.fields if not f.ignored)

    @property
    def insert_fields(self) -> tuple[FieldInfo, ...]:
        """Fields written by INSERT: not ignored and not an auto key."""
        return tuple(f for f in self.fields if not f.ignored and not (f.primary_key and f.auto))

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names backed by a persisted field."""
        return tuple(f.column for f in self.persisted_fields)

    def field_for_column(self, column: str) -> FieldInfo | None:
        """Persisted field bound to *column*, or None."""
        return self.by_column.get(column)


def table_name(cls: type) -> str:
    """Table for *cls*: ``__table__`` if set, else the underscore class name."""
    explicit = getattr(cls, "__table__", None)
    if isinstance(explicit, str) and explicit:
        return explicit
    return field_to_column(cls.__name__)


def primary_key_column(cls: type) -> str | None:
    """Column of *cls*'s primary key without building a full descriptor.

    Used for belongs-to targets so that mutually related types do not
    recurse into each other.
    """
    if not dataclasses.is_dataclass(cls):
        return None
    for f in dataclasses.fields(cls):
        if f.metadata.get(META_PK):
            return f.metadata.get(META_COLUMN, f.name)
    return None


def _optional_target(annotation: Any) -> type | None:
    """Return T for ``T | None`` / ``Optional[T]``, else None."""
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(typing.get_args(annotation)) == 2:
            return args[0]
    return None


def _list_target(annotation: Any) -> type | None:
    """Return T for ``list[T]``, else None."""
    if typing.get_origin(annotation) is list:
        args = typing.get_args(annotation)
        if len(args) == 1:
            return args[0]
    return None


def _relation(cls: type, f: dataclasses.Field, annotation: Any) -> Relation:
    kind = f.metadata[META_RELATION]
    where = f"{cls.__name__}.{f.name}"

    if kind not in RELATION_KINDS:
        raise RelationConfigError(
            f"unsupported relation kind: {kind!r} on field {where}, "
            f"only support has_one, has_many and belongs_to"
        )

    target_table = f.metadata.get(META_TABLE) or ""
    if not target_table:
        raise RelationConfigError(f"invalid table name in relation on field: {where}")

    if kind == HAS_MANY:
        target = _list_target(annotation)
        if target is None:
            raise RelationConfigError(f"{where} should be a list of records (list[T])")
    else:
        target = _optional_target(annotation)
        if target is None:
            raise RelationConfigError(f"{where} should be an optional record (T | None)")

    if not isinstance(target, type) or not dataclasses.is_dataclass(target):
        raise RelationConfigError(f"{where} target {target!r} is not a record dataclass")

    if kind == BELONGS_TO:
        target_key = primary_key_column(target)
        if target_key is None:
            raise RelationConfigError(
                f"error while getting primary key of {target_table} for belongs_to on {where}"
            )
        foreign_key = f.metadata.get(META_FOREIGN_KEY) or target_key
        return BelongsTo(f.name, target_table, target, foreign_key, target_key)
    if kind == HAS_ONE:
        return HasOne(f.name, target_table, target)
    return HasMany(f.name, target_table, target)


@lru_cache(maxsize=None)
def describe(cls: type) -> Descriptor:
    """Build the descriptor for record type *cls*.

    Raises:
        TypeShapeError: If *cls* is not a dataclass, or is a frozen one.
        RelationConfigError: If a relation declaration is malformed, or a
            belongs-to has no field for its foreign key column.
    """
    if not isinstance(cls, type) or not dataclasses.is_dataclass(cls):
        raise TypeShapeError(f"{cls!r} is not a record dataclass")
    if cls.__dataclass_params__.frozen:
        raise TypeShapeError(f"{cls.__name__} is frozen; records are populated in place")

    try:
        hints = typing.get_type_hints(cls)
    except NameError as e:
        raise RelationConfigError(f"cannot resolve annotations of {cls.__name__}: {e}") from e

    scalars: list[FieldInfo] = []
    relations: list[Relation] = []
    pk_field: FieldInfo | None = None
    for f in dataclasses.fields(cls):
        col = f.metadata.get(META_COLUMN, f.name)
        if f.metadata.get(META_IGNORE):
            scalars.append(FieldInfo(name=f.name, column=col, ignored=True))
            continue
        if META_RELATION in f.metadata:
            relations.append(_relation(cls, f, hints.get(f.name)))
            continue
        info = FieldInfo(
            name=f.name,
            column=col,
            primary_key=bool(f.metadata.get(META_PK)),
            auto=bool(f.metadata.get(META_AUTO)),
        )
        if info.primary_key:
            pk_field = info
        scalars.append(info)

    if pk_field is None:
        for rel in relations:
            if not isinstance(rel, BelongsTo):
                raise RelationConfigError(
                    f"{cls.__name__} does not have primary key, required by relation on {rel.field}"
                )

    by_column = {f.column: f for f in scalars if not f.ignored}
    for rel in relations:
        if isinstance(rel, BelongsTo) and rel.foreign_key not in by_column:
            raise RelationConfigError(
                f"{cls.__name__}.{rel.field} needs a field for foreign key column {rel.foreign_key}"
            )

    return Descriptor(
        cls=cls,
        table=table_name(cls),
        fields=tuple(scalars),
        primary_key=pk_field,
        relations=tuple(relations),
        by_column=by_column,
    )
