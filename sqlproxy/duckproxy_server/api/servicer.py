"""
Request orchestration for the proxy routes.

Each route runs the same pipeline:

    Received -> Resolved -> Built -> Executed -> (Mirrored, detached) -> Responded

The servicer covers Resolved through Mirrored and returns plain data; the
HTTP layer shapes envelopes and status codes. Mutations are mirrored only
after the primary store acknowledged them, and the mirror is dispatched
without being awaited.

Invariants:
    - The primary store is always written before the mirror is scheduled
    - A failed primary write never schedules a mirror
    - Update writes the path id into the record, overriding any body id
    - Inserts without an id allocate under the table's insert lock
"""

from __future__ import annotations

import logging
from typing import Any

from ..backup import BackupReplicator, backup_action, delete_payload, record_payload
from ..errors import NotFoundError, QueryDisabledError, ValidationError
from ..sql import StatementBuilder, TableResolver, parse_id
from ..store import IdAllocator, PrimaryStore, Record

logger = logging.getLogger(__name__)

SERVICE_NAME = "Motherduck Proxy"


def _needs_id(record: dict[str, Any]) -> bool:
    """True when the client left id out (absent, null, 0 or empty)."""
    value = record.get("id")
    return value is None or value == 0 or value == ""


class ProxyServicer:
    """Implements list/get/insert/update/delete/query for any table.

    Attributes:
        store: Primary store gateway
        builder: Statement builder bound to the store's database
        resolver: Table label resolver
        allocator: Id allocator for inserts
        replicator: Backup replicator
        raw_query_enabled: Whether run_query() executes caller SQL
    """

    def __init__(
        self,
        store: PrimaryStore,
        builder: StatementBuilder,
        resolver: TableResolver,
        allocator: IdAllocator,
        replicator: BackupReplicator,
        raw_query_enabled: bool = False,
    ) -> None:
        self.store = store
        self.builder = builder
        self.resolver = resolver
        self.allocator = allocator
        self.replicator = replicator
        self.raw_query_enabled = raw_query_enabled

    async def health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "database": self.store.database,
        }

    async def list_records(self, label: str) -> list[Record]:
        """Every row of a table."""
        table = self.resolver.resolve(label)
        logger.info(f"GET {table}")
        rows = await self.store.query(self.builder.list(table))
        logger.info(f"Returned {len(rows)} rows")
        return rows

    async def get_record(self, label: str, record_id: str) -> Record:
        """One row by id.

        Raises:
            NotFoundError: If no row has that id
        """
        table = self.resolver.resolve(label)
        rows = await self.store.query(self.builder.get_by_id(table, record_id))
        if not rows:
            raise NotFoundError("Not found", details={"table": table, "id": record_id})
        return rows[0]

    async def insert_record(self, label: str, record: Any) -> Record:
        """Insert a record, assigning an id when the client sent none.

        Returns:
            The record as written, including its id
        """
        record = _require_object(record)
        table = self.resolver.resolve(label)
        logger.info(f"INSERT into {table}")

        if _needs_id(record):
            async with self.allocator.reserve(table) as next_id:
                record["id"] = next_id
                await self.store.execute(self.builder.insert(table, record))
        else:
            async with self.allocator.hold(table):
                await self.store.execute(self.builder.insert(table, record))

        logger.info("Insert successful")
        self.replicator.mirror(backup_action("save", table), record_payload(table, record))
        return record

    async def update_record(self, label: str, record_id: str, record: Any) -> Record:
        """Update the columns present in the body on the row with the path id.

        Raises:
            ValidationError: If the body has no column besides id
        """
        record = _require_object(record)
        table = self.resolver.resolve(label)
        record["id"] = parse_id(record_id)
        logger.info(f"UPDATE {table} id={record['id']}")

        await self.store.execute(self.builder.update(table, record_id, record))

        logger.info("Update successful")
        self.replicator.mirror(backup_action("update", table), record_payload(table, record))
        return record

    async def delete_record(self, label: str, record_id: str) -> None:
        """Delete the row with the path id. Deleting a missing row succeeds."""
        table = self.resolver.resolve(label)
        rid = parse_id(record_id)
        logger.info(f"DELETE from {table} id={rid}")

        await self.store.execute(self.builder.delete(table, rid))

        logger.info("Delete successful")
        self.replicator.mirror(backup_action("delete", table), delete_payload(rid))

    async def run_query(self, sql: str | None) -> list[Record]:
        """Execute caller-supplied SQL and return its rows.

        Raises:
            QueryDisabledError: If the raw query route is switched off
            ValidationError: If sql is missing or blank
        """
        if not self.raw_query_enabled:
            raise QueryDisabledError("Custom queries are disabled")
        if not sql or not sql.strip():
            raise ValidationError("Missing sql parameter")
        logger.info(f"Custom query: {sql[:100]}...")
        return await self.store.query(self.builder.raw(sql))


def _require_object(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
