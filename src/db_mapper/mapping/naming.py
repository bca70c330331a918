"""Column/field name conventions.

Columns are lower-case words joined by underscores (``test_orm_d_id``);
field names are the same words capitalized and concatenated
(``TestOrmDId``).  The two functions are exact inverses for lower-case
ASCII alphanumeric tokens.  A token that starts with a digit cannot be
capitalized, so it keeps its underscore (``v_2`` <-> ``V_2``).

Usage:
    >>> column_to_field("user_name")
    'UserName'
    >>> field_to_column("UserName")
    'user_name'
"""


def column_to_field(column: str) -> str:
    """Convert an underscore column name to a CapWords field name."""
    parts: list[str] = []
    for i, token in enumerate(column.lower().split("_")):
        if not token:
            continue
        if token[0].isdigit() and i > 0:
            parts.append("_" + token)
        else:
            parts.append(token[0].upper() + token[1:])
    return "".join(parts)


def field_to_column(field: str) -> str:
    """Convert a CapWords (or camelCase) field name to an underscore column name."""
    out: list[str] = []
    for i, ch in enumerate(field):
        if ch.isupper():
            if i > 0 and out[-1] != "_":
                out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)
