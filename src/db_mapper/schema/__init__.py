"""Schema introspection and table validation.

Provides schema comparison (``validate_schema``, ``expected_columns_for``)
and live database introspection (``SchemaIntrospector``).

Usage:
    from db_mapper.schema import SchemaIntrospector, expected_columns_for, validate_schema
"""

from db_mapper.schema.comparator import expected_columns_for, validate_schema
from db_mapper.schema.introspector import SchemaIntrospector
from db_mapper.schema.models import (
    ColumnSchema,
    ConnectionResult,
    DatabaseSchema,
    MissingField,
    SchemaValidationResult,
    TableSchema,
)

__all__ = [
    "validate_schema",
    "expected_columns_for",
    "SchemaIntrospector",
    "SchemaValidationResult",
    "MissingField",
    "ConnectionResult",
    "ColumnSchema",
    "TableSchema",
    "DatabaseSchema",
]
