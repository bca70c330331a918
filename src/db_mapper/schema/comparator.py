"""Table check using set operations.

Compares the columns record types need against the columns the database
actually has.  Pure logic: no I/O, no database connections.

Usage:
    from db_mapper.schema.comparator import expected_columns_for, validate_schema
    from db_mapper.schema.introspector import SchemaIntrospector

    expected = expected_columns_for([User, Article])
    async with SchemaIntrospector(engine) as introspector:
        actual = await introspector.get_column_names(expected)

    result = validate_schema(actual, expected)
    if not result.valid:
        print(result.format_report())
"""

from collections.abc import Iterable, Mapping

from db_mapper.mapping.descriptor import describe
from db_mapper.schema.models import MissingField, SchemaValidationResult


def expected_columns_for(record_types: Iterable[type]) -> dict[str, dict[str, str]]:
    """Map each record type's table to ``{column: attribute}`` for its persisted fields.

    Ignored and relation fields are not expected to have a column.  Types
    sharing a table merge their columns.
    """
    expected: dict[str, dict[str, str]] = {}
    for cls in record_types:
        desc = describe(cls)
        columns = expected.setdefault(desc.table, {})
        for f in desc.persisted_fields:
            columns.setdefault(f.column, f.name)
    return expected


def validate_schema(
    actual_columns: Mapping[str, Iterable[str]],
    expected_columns: Mapping[str, Iterable[str]],
) -> SchemaValidationResult:
    """Validate actual database columns against what the records expect.

    - Missing tables: expected but absent from *actual_columns*
    - Missing fields: expected columns absent from an existing table
    - Extra tables: present but not expected (warning only -- does not
      affect ``valid``)

    Args:
        actual_columns: Table name to column names, as returned by
            ``introspector.get_column_names()``.
        expected_columns: Table name to expected column names.  When the
            value is a ``{column: attribute}`` mapping (``expected_columns_for``),
            missing entries name the record attribute.

    Examples:
        >>> result = validate_schema(
        ...     {"user": {"user_id"}},
        ...     {"user": {"user_id": "user_id", "name": "name"}},
        ... )
        >>> result.valid
        False
        >>> result.missing_fields[0].message
        'user missing field name'
    """
    actual_tables = set(actual_columns)
    expected_tables = set(expected_columns)

    missing_tables = sorted(expected_tables - actual_tables)
    extra_tables = sorted(actual_tables - expected_tables)

    missing_fields: list[MissingField] = []
    for table in sorted(expected_tables & actual_tables):
        wanted = expected_columns[table]
        attributes = wanted if isinstance(wanted, Mapping) else {}
        for column in sorted(set(wanted) - set(actual_columns[table])):
            missing_fields.append(MissingField(table=table, column=column, attribute=attributes.get(column)))

    return SchemaValidationResult(
        valid=not missing_tables and not missing_fields,
        missing_tables=missing_tables,
        missing_fields=missing_fields,
        extra_tables=extra_tables,
    )
