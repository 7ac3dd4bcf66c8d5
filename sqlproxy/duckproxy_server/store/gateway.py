"""
Primary store gateway backed by DuckDB.

This module owns the one connection to the authoritative database:
- MotherDuck: the motherduck extension is loaded, the token set and
  md:<database> attached
- Local: a DuckDB file (or :memory:) is attached under the database name,
  for development and tests

Invariants:
    - One connection per process, opened once in connect()
    - Driver calls run in a worker thread, one at a time, behind a lock
    - Driver errors surface as StoreError with the driver's message
    - Attach failures surface as ConfigError; they are startup fatal
    - No retries, no reconnection

How to change safely:
    - Never log the token
    - Keep query() results as plain dicts keyed by column name; handlers
      serialize them straight into responses
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import duckdb

from ..errors import ConfigError, StoreError
from ..sql.builder import Statement
from ..sql.codec import encode, quote_identifier

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class PrimaryStore:
    """Gateway to the authoritative DuckDB / MotherDuck database.

    Attributes:
        database: Name the tables are addressed under
        token: MotherDuck token (unused for local databases)
        local_path: Local DuckDB file to attach instead of MotherDuck

    Example:
        >>> store = PrimaryStore("PartnerPortal", local_path=":memory:")
        >>> await store.connect()
        >>> rows = await store.query(builder.list("Companies"))
    """

    def __init__(
        self,
        database: str,
        token: str | None = None,
        local_path: str | None = None,
    ) -> None:
        self.database = database
        self.token = token
        self.local_path = local_path
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def target(self) -> str:
        """Where the database lives, safe to log."""
        if self.local_path is not None:
            return f"local:{self.local_path}"
        return f"md:{self.database}"

    async def connect(self) -> None:
        """Open the connection and attach the database.

        Raises:
            ConfigError: If the extension, token or attach step fails
        """
        if self.is_connected:
            return

        logger.info(f"Initializing connection to {self.target}")
        try:
            self._conn = await asyncio.to_thread(self._open)
        except duckdb.Error as e:
            logger.error(f"Database initialization failed: {e}")
            if self.local_path is None:
                logger.error(
                    "Check MOTHERDUCK_TOKEN and that the database exists "
                    "in the MotherDuck account"
                )
            raise ConfigError(f"Failed to attach database {self.database}: {e}") from e

        logger.info(f"Connected to database: {self.database}")

    def _open(self) -> duckdb.DuckDBPyConnection:
        conn = duckdb.connect(":memory:")
        try:
            if self.local_path is not None:
                conn.execute(
                    f"ATTACH {encode(self.local_path)} AS {quote_identifier(self.database)}"
                )
            else:
                if not self.token:
                    raise ConfigError("MOTHERDUCK_TOKEN is required to attach a MotherDuck database")
                logger.info("Installing motherduck extension")
                conn.execute("INSTALL motherduck")
                conn.execute("LOAD motherduck")
                logger.info("Setting authentication token")
                conn.execute(f"SET motherduck_token = {encode(self.token)}")
                logger.info(f"Attaching database: {self.database}")
                conn.execute(f"ATTACH {encode('md:' + self.database)}")
        except BaseException:
            conn.close()
            raise
        return conn

    async def close(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self.is_connected:
                await asyncio.to_thread(self._conn.close)
                self._conn = None
                logger.info("Database connection closed")

    async def query(self, statement: Statement) -> list[Record]:
        """Run a statement and return its rows.

        Returns:
            Rows as dicts keyed by column name, in result order

        Raises:
            StoreError: If the driver reports an error
        """
        return await self._run(statement, fetch=True)

    async def execute(self, statement: Statement) -> None:
        """Run a statement for its effect only.

        Raises:
            StoreError: If the driver reports an error
        """
        await self._run(statement, fetch=False)

    async def _run(self, statement: Statement, fetch: bool) -> list[Record]:
        async with self._lock:
            conn = self._conn
            if conn is None:
                raise StoreError("Database is not connected")
            logger.debug(f"{statement.kind.value}: {statement.render()}")
            try:
                return await asyncio.to_thread(_call, conn, statement, fetch)
            except duckdb.Error as e:
                raise StoreError(str(e)) from e


def _call(conn: duckdb.DuckDBPyConnection, statement: Statement, fetch: bool) -> list[Record]:
    cursor = conn.execute(statement.sql, list(statement.params) or None)
    if not fetch or cursor.description is None:
        return []
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]
