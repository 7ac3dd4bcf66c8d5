"""
Row id allocation for inserts without an explicit id.

Ids are max(id) + 1, or 1 for an empty table. Probing and inserting are two
separate statements, so two concurrent inserts could read the same max.
The allocator closes that gap inside one process by holding a per-table
lock from the probe until the INSERT has run.

Invariants:
    - At most one insert per table is between probe and write at a time
    - Inserts with an explicit id take the same lock, so a probe always
      sees every earlier insert from this process

How to change safely:
    - Callers must run their INSERT inside reserve(); releasing the lock
      before the write reopens the race
    - Several proxy processes sharing one database are not coordinated
    - A table's lock entry lives only while some request holds or waits
      for it, so client-chosen labels cannot grow the lock map
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from ..sql.builder import StatementBuilder
from .gateway import PrimaryStore

logger = logging.getLogger(__name__)


@dataclass
class _TableLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class IdAllocator:
    """Serializes id allocation and insertion per table.

    Example:
        >>> async with allocator.reserve("Companies") as next_id:
        ...     record["id"] = next_id
        ...     await store.execute(builder.insert("Companies", record))
    """

    def __init__(self, store: PrimaryStore, builder: StatementBuilder) -> None:
        self.store = store
        self.builder = builder
        self._locks: dict[str, _TableLock] = {}

    @asynccontextmanager
    async def _locked(self, table: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(table, _TableLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[table]

    @asynccontextmanager
    async def hold(self, table: str) -> AsyncIterator[None]:
        """Hold the table's insert lock without allocating."""
        async with self._locked(table):
            yield

    @asynccontextmanager
    async def reserve(self, table: str) -> AsyncIterator[int]:
        """Allocate the next id and hold the table lock until the block exits.

        Yields:
            The id to assign

        Raises:
            StoreError: If the max id probe fails
        """
        async with self._locked(table):
            rows = await self.store.query(self.builder.max_id(table))
            max_id = int(rows[0]["max_id"] or 0) if rows else 0
            logger.debug(f"Allocated id {max_id + 1} for {table}")
            yield max_id + 1
