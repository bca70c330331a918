"""Record mapping: naming convention, field markers, descriptors, row scanning.

Usage:
    from db_mapper.mapping import describe, pk, has_many, scan_into
"""

from db_mapper.mapping.descriptor import (
    BelongsTo,
    Descriptor,
    FieldInfo,
    HasMany,
    HasOne,
    Relation,
    describe,
    table_name,
)
from db_mapper.mapping.fields import (
    BELONGS_TO,
    HAS_MANY,
    HAS_ONE,
    belongs_to,
    column,
    has_many,
    has_one,
    ignore,
    pk,
    relation,
)
from db_mapper.mapping.naming import column_to_field, field_to_column
from db_mapper.mapping.scanner import new_record, scan_into

__all__ = [
    "describe",
    "table_name",
    "Descriptor",
    "FieldInfo",
    "Relation",
    "HasOne",
    "HasMany",
    "BelongsTo",
    "pk",
    "column",
    "ignore",
    "relation",
    "has_one",
    "has_many",
    "belongs_to",
    "HAS_ONE",
    "HAS_MANY",
    "BELONGS_TO",
    "column_to_field",
    "field_to_column",
    "new_record",
    "scan_into",
]
