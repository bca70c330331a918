"""ORM operations: queries, statements, relation loading and transactions.

Usage:
    from db_mapper.orm import ORM, Transaction
"""

from db_mapper.orm.core import ORM, Transaction
from db_mapper.orm.relations import resolve_batch, resolve_single
from db_mapper.orm.statements import (
    PARAM_PATTERN,
    MappingParams,
    ParamSource,
    RecordParams,
    compile_template,
)

__all__ = [
    "ORM",
    "Transaction",
    "resolve_single",
    "resolve_batch",
    "PARAM_PATTERN",
    "ParamSource",
    "MappingParams",
    "RecordParams",
    "compile_template",
]
