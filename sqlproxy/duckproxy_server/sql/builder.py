"""
Statement builder for the proxy routes.

Turns validated route parameters and request bodies into Statement values
that the PrimaryStore executes. One builder method per route.

Invariants:
    - Table and database names are always quoted identifiers
    - Column values are always bind parameters, never inlined
    - Row ids are interpolated only after being checked as digits
    - RAW statements are passed through untouched; the raw route is the
      one place arbitrary SQL reaches the store

How to change safely:
    - Keep INSERT column order equal to record key order
    - Statement.render() assumes ? appears only as a placeholder
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ValidationError
from .codec import encode, quote_identifier, to_parameter


class StatementKind(Enum):
    """Statement shapes the builder produces."""

    SELECT = "select"
    SELECT_BY_ID = "select_by_id"
    MAX_ID = "max_id"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    RAW = "raw"


@dataclass(frozen=True)
class Statement:
    """A SQL statement built for one request.

    Attributes:
        kind: Statement shape
        sql: SQL text with ? placeholders
        params: Bind parameters in placeholder order
    """

    kind: StatementKind
    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)

    def render(self) -> str:
        """SQL text with parameters inlined as literals. For logging only."""
        if not self.params:
            return self.sql
        parts = self.sql.split("?")
        rendered = [parts[0]]
        for value, rest in zip(self.params, parts[1:]):
            rendered.append(encode(value))
            rendered.append(rest)
        return "".join(rendered)

    def __str__(self) -> str:
        return self.render()


class StatementBuilder:
    """Builds statements against tables of one database.

    Attributes:
        database: Name of the attached database holding the tables

    Example:
        >>> builder = StatementBuilder("PartnerPortal")
        >>> builder.get_by_id("Companies", "7").sql
        'SELECT * FROM "PartnerPortal"."Companies" WHERE id = 7'
    """

    def __init__(self, database: str) -> None:
        self.database = database

    def _target(self, table: str) -> str:
        return f"{quote_identifier(self.database)}.{quote_identifier(table)}"

    def list(self, table: str) -> Statement:
        """SELECT every row of a table."""
        return Statement(StatementKind.SELECT, f"SELECT * FROM {self._target(table)}")

    def get_by_id(self, table: str, record_id: str | int) -> Statement:
        """SELECT the row with the given id."""
        rid = parse_id(record_id)
        return Statement(
            StatementKind.SELECT_BY_ID,
            f"SELECT * FROM {self._target(table)} WHERE id = {rid}",
        )

    def max_id(self, table: str) -> Statement:
        """Probe for the largest id in a table (0 when empty)."""
        return Statement(
            StatementKind.MAX_ID,
            f"SELECT COALESCE(MAX(id), 0) AS max_id FROM {self._target(table)}",
        )

    def insert(self, table: str, record: Mapping[str, Any]) -> Statement:
        """INSERT a record, columns in key order.

        Raises:
            ValidationError: If the record has no columns
        """
        if not record:
            raise ValidationError("Cannot insert an empty record")
        columns = ", ".join(quote_identifier(col) for col in record)
        placeholders = ", ".join("?" for _ in record)
        return Statement(
            StatementKind.INSERT,
            f"INSERT INTO {self._target(table)} ({columns}) VALUES ({placeholders})",
            tuple(to_parameter(value) for value in record.values()),
        )

    def update(self, table: str, record_id: str | int, record: Mapping[str, Any]) -> Statement:
        """UPDATE every column of the record except id.

        Raises:
            ValidationError: If no column besides id is present
        """
        rid = parse_id(record_id)
        columns = [col for col in record if col != "id"]
        if not columns:
            raise ValidationError("No fields to update")
        assignments = ", ".join(f"{quote_identifier(col)} = ?" for col in columns)
        return Statement(
            StatementKind.UPDATE,
            f"UPDATE {self._target(table)} SET {assignments} WHERE id = {rid}",
            tuple(to_parameter(record[col]) for col in columns),
        )

    def delete(self, table: str, record_id: str | int) -> Statement:
        """DELETE the row with the given id."""
        rid = parse_id(record_id)
        return Statement(
            StatementKind.DELETE,
            f"DELETE FROM {self._target(table)} WHERE id = {rid}",
        )

    def raw(self, sql: str) -> Statement:
        """Caller-supplied SQL, unmodified."""
        return Statement(StatementKind.RAW, sql)


def parse_id(record_id: str | int) -> int:
    """Check a path id is made of digits and return it as an int.

    Raises:
        ValidationError: If the id is not a non-negative integer
    """
    if isinstance(record_id, bool):
        raise ValidationError(f"Invalid id: {record_id!r}")
    if isinstance(record_id, int):
        if record_id < 0:
            raise ValidationError(f"Invalid id: {record_id}")
        return record_id
    text = str(record_id)
    if not text.isascii() or not text.isdigit():
        raise ValidationError(f"Invalid id: {text!r}")
    return int(text)
