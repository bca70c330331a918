"""Pydantic models for table checks and schema introspection.

- Table check: ``MissingField``, ``SchemaValidationResult``
- Connection result: ``ConnectionResult``
- Introspection: ``ColumnSchema``, ``TableSchema``, ``DatabaseSchema``

Configuration models (``DatabaseProfile``, ``DatabaseConfig``) live in
``db_mapper.config.models``.
"""

from pydantic import BaseModel, Field


# ============================================================================
# Table Check Models
# ============================================================================


class MissingField(BaseModel):
    """A persisted record field whose column is absent from its table."""

    table: str
    column: str
    attribute: str | None = None  # None when only column names were compared

    @property
    def message(self) -> str:
        return f"{self.table} missing field {self.attribute or self.column}"


class SchemaValidationResult(BaseModel):
    """Outcome of comparing record types with the live tables.

    Only missing tables and missing fields invalidate; tables nobody
    registered are reported as a warning.

    Example:
        >>> SchemaValidationResult(valid=True).format_report()
        'Schema valid'
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_fields: list[MissingField] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.missing_tables) + len(self.missing_fields)

    def fields_by_table(self) -> dict[str, list[str]]:
        """Missing field names grouped by table, in report order."""
        grouped: dict[str, list[str]] = {}
        for missing in self.missing_fields:
            grouped.setdefault(missing.table, []).append(missing.attribute or missing.column)
        return grouped

    def format_report(self) -> str:
        if self.valid:
            return "Schema valid"

        lines = ["Schema validation failed:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            lines.extend(f"    - {table}" for table in self.missing_tables)

        if self.missing_fields:
            lines.append(f"\n  Missing fields ({len(self.missing_fields)}):")
            lines.extend(f"    - {missing.message}" for missing in self.missing_fields)

        if self.extra_tables:
            lines.append(f"\n  Unregistered tables (warning): {', '.join(self.extra_tables)}")

        return "\n".join(lines)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate().

    ``schema_report`` is None when the table check was skipped.
    """

    success: bool
    profile_name: str | None = None
    schema_valid: bool = False
    schema_report: SchemaValidationResult | None = None
    error: str | None = None


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """One live column, as reported by the dialect inspector."""

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    primary_key: bool = False
    autoincrement: bool = False


class TableSchema(BaseModel):
    name: str
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)

    @property
    def primary_key(self) -> list[str]:
        """Primary-key column names, in column order."""
        return [c.name for c in self.columns.values() if c.primary_key]


class DatabaseSchema(BaseModel):
    tables: dict[str, TableSchema] = Field(default_factory=dict)
