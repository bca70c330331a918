"""db-mapper: Async dataclass row mapper with batched relation loading.

Binds SQL result rows to dataclass records, eager-loads has-one, has-many
and belongs-to relations with one follow-up query per relation, and runs
templated statements and transactions over a pooled SQLAlchemy async
engine.

Usage:
    from db_mapper import ORM, pk, has_many, belongs_to, ignore
    from db_mapper import NoRowsError, RowAffectError, is_row_affect_error
    from db_mapper import get_orm, connect_and_validate, load_db_config
"""

__version__ = "0.1.0"

# Mapping
from db_mapper.mapping.descriptor import BelongsTo, Descriptor, HasMany, HasOne, describe
from db_mapper.mapping.fields import belongs_to, column, has_many, has_one, ignore, pk, relation
from db_mapper.mapping.naming import column_to_field, field_to_column

# ORM
from db_mapper.orm.core import ORM, Transaction

# Errors
from db_mapper.errors import (
    ConfigurationError,
    MissingParamError,
    NoRowsError,
    OrmError,
    RelationConfigError,
    RowAffectError,
    SchemaMismatchError,
    TypeShapeError,
    is_row_affect_error,
)

# Config
from db_mapper.config.loader import load_db_config
from db_mapper.config.models import DatabaseConfig, DatabaseProfile

# Factory
from db_mapper.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_orm,
    resolve_url,
)

# Schema (comparator)
from db_mapper.schema.comparator import validate_schema

__all__ = [
    # Mapping
    "describe",
    "Descriptor",
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
    "column_to_field",
    "field_to_column",
    # ORM
    "ORM",
    "Transaction",
    # Errors
    "OrmError",
    "ConfigurationError",
    "RelationConfigError",
    "NoRowsError",
    "RowAffectError",
    "TypeShapeError",
    "MissingParamError",
    "SchemaMismatchError",
    "is_row_affect_error",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_orm",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "validate_schema",
]
