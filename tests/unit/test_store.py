"""
Unit tests for the primary store gateway against a local DuckDB database.

Tests cover:
- Attach and connection lifecycle
- Query results as dicts
- Driver errors mapped to StoreError
"""

import pytest

from sqlproxy.duckproxy_server.errors import ConfigError, StoreError
from sqlproxy.duckproxy_server.store import PrimaryStore


class TestPrimaryStore:
    """Tests for PrimaryStore."""

    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        store = PrimaryStore("PartnerPortal", local_path=":memory:")
        assert not store.is_connected

        await store.connect()
        assert store.is_connected
        assert store.target == "local::memory:"

        await store.close()
        assert not store.is_connected

    @pytest.mark.asyncio
    async def test_connect_when_connected_keeps_connection(self, store, builder):
        """A second connect() does not reopen the in-memory database."""
        await store.execute(builder.insert("Companies", {"id": 1, "name": "Acme"}))

        await store.connect()

        rows = await store.query(builder.list("Companies"))
        assert [row["name"] for row in rows] == ["Acme"]

    @pytest.mark.asyncio
    async def test_query_before_connect(self, builder):
        store = PrimaryStore("PartnerPortal", local_path=":memory:")
        with pytest.raises(StoreError, match="not connected"):
            await store.query(builder.list("Companies"))

    @pytest.mark.asyncio
    async def test_motherduck_without_token(self):
        """A MotherDuck attach without a token fails as a startup error."""
        store = PrimaryStore("PartnerPortal")
        with pytest.raises(ConfigError):
            await store.connect()
        assert not store.is_connected

    @pytest.mark.asyncio
    async def test_bad_local_path(self, tmp_path):
        store = PrimaryStore("PartnerPortal", local_path=str(tmp_path / "missing" / "x.duckdb"))
        with pytest.raises(ConfigError):
            await store.connect()

    @pytest.mark.asyncio
    async def test_insert_and_query(self, store, builder):
        await store.execute(builder.insert("Companies", {"id": 1, "name": "Acme", "active": True}))
        await store.execute(builder.insert("Companies", {"name": "O'Hara", "id": 2}))

        rows = await store.query(builder.list("Companies"))

        assert len(rows) == 2
        by_id = {row["id"]: row for row in rows}
        assert by_id[1]["name"] == "Acme"
        assert by_id[1]["active"] is True
        assert by_id[2]["name"] == "O'Hara"
        assert by_id[2]["active"] is None

    @pytest.mark.asyncio
    async def test_array_stored_as_json_text(self, store, builder):
        await store.execute(builder.insert("Companies", {"id": 1, "tags": ["x", "y"]}))
        rows = await store.query(builder.get_by_id("Companies", "1"))
        assert rows[0]["tags"] == '["x", "y"]'

    @pytest.mark.asyncio
    async def test_max_id(self, store, builder):
        rows = await store.query(builder.max_id("Companies"))
        assert rows == [{"max_id": 0}]

        await store.execute(builder.insert("Companies", {"id": 7, "name": "Seven"}))
        rows = await store.query(builder.max_id("Companies"))
        assert rows == [{"max_id": 7}]

    @pytest.mark.asyncio
    async def test_execute_returns_nothing(self, store, builder):
        assert await store.execute(builder.delete("Companies", 1)) is None

    @pytest.mark.asyncio
    async def test_missing_table_is_store_error(self, store, builder):
        """Unknown tables surface as StoreError with the driver's message."""
        with pytest.raises(StoreError) as exc_info:
            await store.query(builder.list("Nope"))
        assert "Nope" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_column_is_store_error(self, store, builder):
        with pytest.raises(StoreError):
            await store.execute(builder.insert("Companies", {"id": 1, "missing": "x"}))
