"""
Unit tests for server startup, shutdown and logging setup.
"""

import asyncio
import logging
import socket

import json_log_formatter
import pytest
from aiohttp import ClientSession

from sqlproxy.duckproxy_server.config import (
    BackupConfig,
    HttpConfig,
    ObservabilityConfig,
    ServerConfig,
    StoreConfig,
)
from sqlproxy.duckproxy_server.errors import ConfigError
from sqlproxy.duckproxy_server.main import Server, setup_logging


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _local_config(port: int) -> ServerConfig:
    return ServerConfig(
        store=StoreConfig(local_path=":memory:"),
        backup=BackupConfig(enabled=False),
        http=HttpConfig(host="127.0.0.1", port=port),
    )


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_format(self):
        setup_logging(ServerConfig(observability=ObservabilityConfig(log_format="json")))
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
        assert root.level == logging.INFO

    def test_text_format_and_level(self):
        config = ServerConfig(
            observability=ObservabilityConfig(log_level="debug", log_format="text")
        )
        setup_logging(config)
        root = logging.getLogger()
        assert not isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
        assert root.level == logging.DEBUG


class TestServer:
    """Tests for the Server lifecycle."""

    @pytest.mark.asyncio
    async def test_serves_until_shutdown(self):
        port = _free_port()
        server = Server(_local_config(port))
        task = asyncio.create_task(server.start())

        for _ in range(50):
            if server.runner is not None and server._running:
                break
            await asyncio.sleep(0.02)

        async with ClientSession() as session:
            async with session.get(f"http://127.0.0.1:{port}/") as resp:
                assert resp.status == 200
                assert (await resp.json())["database"] == "PartnerPortal"

        server.request_shutdown()
        await task
        await server.stop()

        assert server.runner is None
        assert not server.store.is_connected

    @pytest.mark.asyncio
    async def test_attach_failure_is_fatal(self):
        """MotherDuck mode without a token fails before the port opens."""
        config = ServerConfig(
            store=StoreConfig(token=None),
            backup=BackupConfig(enabled=False),
            http=HttpConfig(host="127.0.0.1", port=_free_port()),
        )
        server = Server(config)

        with pytest.raises(ConfigError):
            await server.start()

        assert server.runner is None
        assert server.servicer is None
