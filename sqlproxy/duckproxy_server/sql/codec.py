"""
Value codec: JSON-like values to SQL literals and bind parameters.

Literal rules:
    None            -> NULL
    bool            -> TRUE / FALSE
    int, float      -> decimal text, unquoted
    list, tuple,
    dict            -> JSON text, quoted as a string literal
    anything else   -> str(value) with every ' doubled, wrapped in '...'

Invariants:
    - bool is tested before numbers (bool is an int subclass)
    - Quote doubling is the only escaping applied to string literals
    - encode() and to_parameter() store arrays and objects as the same
      JSON text

How to change safely:
    - Literals are used for logging and for statements the driver cannot
      bind (SET, ATTACH); keep to_parameter() in step with encode()
"""

from __future__ import annotations

import json
from typing import Any


def encode(value: Any) -> str:
    """Encode a value as SQL literal text.

    Args:
        value: JSON-like value from a request body

    Returns:
        SQL literal text
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple, dict)):
        return _quote(_json_text(value))
    return _quote(str(value))


def to_parameter(value: Any) -> Any:
    """Convert a value to a bind parameter.

    Arrays and objects are stored as JSON text, matching encode().
    Everything else is handed to the driver as is.
    """
    if isinstance(value, (list, tuple, dict)):
        return _json_text(value)
    return value


def quote_identifier(name: str) -> str:
    """Quote a table, column or database identifier."""
    return '"' + name.replace('"', '""') + '"'


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _json_text(value: Any) -> str:
    return json.dumps(value, default=str)
