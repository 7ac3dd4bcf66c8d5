"""
Shared fixtures for DuckProxy tests.

- store: PrimaryStore attached to an in-memory DuckDB database with a
  Companies table
- webhook: fake backup webhook served by aiohttp's TestServer
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from sqlproxy.duckproxy_server.sql import StatementBuilder
from sqlproxy.duckproxy_server.store import PrimaryStore

DATABASE = "PartnerPortal"


@pytest.fixture
def builder():
    """Statement builder for the test database."""
    return StatementBuilder(DATABASE)


@pytest.fixture
async def store(builder):
    """Connected store with an empty Companies table."""
    store = PrimaryStore(DATABASE, local_path=":memory:")
    await store.connect()
    await store.execute(
        builder.raw(
            f'CREATE TABLE "{DATABASE}"."Companies" '
            "(id INTEGER, name VARCHAR, active BOOLEAN, tags VARCHAR, founded DATE)"
        )
    )
    yield store
    await store.close()


@dataclass
class FakeWebhook:
    """Records webhook calls and answers according to its mode.

    Modes:
        ok: {"success": true}
        reject: {"success": false, "message": "Sheet is locked"}
        error: HTTP 500
        hang: waits for release before answering ok
    """

    mode: str = "ok"
    calls: list[dict[str, Any]] = field(default_factory=list)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    url: str = ""

    async def handle(self, request: web.Request) -> web.Response:
        self.calls.append(dict(request.query))
        if self.mode == "error":
            return web.Response(status=500, text="boom")
        if self.mode == "reject":
            return web.json_response({"success": False, "message": "Sheet is locked"})
        if self.mode == "hang":
            await self.release.wait()
        return web.json_response({"success": True, "message": "saved"})


@pytest.fixture
async def webhook():
    """Running fake webhook."""
    fake = FakeWebhook()
    app = web.Application()
    app.router.add_get("/exec", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.url = str(server.make_url("/exec"))
    yield fake
    fake.release.set()
    await server.close()
