"""
SQL translation for DuckProxy.

This module turns untyped JSON requests into SQL statements:
- Value codec (JSON values -> literals and bind parameters)
- Table resolver (client labels -> canonical storage names)
- Statement builder (one statement per route)

Invariants:
    - Nothing in this package touches the database
    - Statements are built per request and never reused
"""

from .builder import Statement, StatementBuilder, StatementKind, parse_id
from .codec import encode, quote_identifier, to_parameter
from .tables import DEFAULT_TABLES, TableResolver, parse_aliases, singular

__all__ = [
    # Codec
    "encode",
    "to_parameter",
    "quote_identifier",
    # Tables
    "TableResolver",
    "DEFAULT_TABLES",
    "parse_aliases",
    "singular",
    # Statements
    "Statement",
    "StatementBuilder",
    "StatementKind",
    "parse_id",
]
