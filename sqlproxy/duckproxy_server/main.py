"""
DuckProxy Server - Main entry point.

This module starts the proxy with all components:
- Primary store connection (MotherDuck or a local DuckDB file)
- Backup replicator (webhook mirror)
- HTTP server (REST API)

Usage:
    python -m sqlproxy.duckproxy_server

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store is attached before the HTTP port is opened
    - A store attach failure exits non-zero
    - Shutdown stops the HTTP runner, then drains pending backup tasks,
      then closes the store

How to change safely:
    - Add new components with enable/disable flags
    - Test shutdown sequence thoroughly
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import json_log_formatter
from aiohttp import web

from .api import ProxyServicer, create_http_app
from .backup import BackupReplicator, RetryPolicy
from .config import ServerConfig
from .errors import ConfigError
from .sql import StatementBuilder, TableResolver
from .store import IdAllocator, PrimaryStore

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 10.0


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class Server:
    """DuckProxy server orchestrator.

    Manages the lifecycle of all server components:
    - Primary store connection
    - Backup replicator
    - HTTP server

    Attributes:
        config: Server configuration
        store: Primary store gateway
        replicator: Backup replicator
        servicer: Route orchestration
        runner: aiohttp application runner

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        """Initialize the server.

        Args:
            config: Optional server configuration (loaded from env if not provided)
        """
        self.config = config or ServerConfig.from_env()
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self.store: PrimaryStore | None = None
        self.replicator: BackupReplicator | None = None
        self.servicer: ProxyServicer | None = None
        self.runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start the server and wait until shutdown is requested.

        Raises:
            ConfigError: If the primary store cannot be attached
        """
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting DuckProxy server")
        self.config.log_config()

        try:
            self.store = PrimaryStore(
                database=self.config.store.database,
                token=self.config.store.token,
                local_path=self.config.store.local_path,
            )
            await self.store.connect()

            backup = self.config.backup
            self.replicator = BackupReplicator(
                url=backup.url,
                enabled=backup.enabled,
                retry=RetryPolicy(
                    max_attempts=backup.max_attempts,
                    base_delay=backup.retry_delay_ms / 1000.0,
                    max_delay=backup.max_retry_delay_ms / 1000.0,
                ),
                timeout_seconds=backup.timeout_seconds,
            )

            builder = StatementBuilder(self.config.store.database)
            resolver = TableResolver(self.config.http.table_aliases)
            self.servicer = ProxyServicer(
                store=self.store,
                builder=builder,
                resolver=resolver,
                allocator=IdAllocator(self.store, builder),
                replicator=self.replicator,
                raw_query_enabled=self.config.http.raw_query_enabled,
            )

            app = create_http_app(self.servicer, self.config.http)
            self.runner = web.AppRunner(app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.config.http.host, self.config.http.port)
            await site.start()

            self._running = True
            self._log_banner(resolver)

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=not isinstance(e, ConfigError))
            await self._cleanup()
            raise

    def _log_banner(self, resolver: TableResolver) -> None:
        http = self.config.http
        logger.info(f"DuckProxy server running on http://{http.host}:{http.port}")
        logger.info(f"Database: {self.config.store.database}")
        logger.info(
            f"Google Sheets backup: {'enabled' if self.replicator.enabled else 'disabled'}"
        )
        logger.info(
            "API endpoints: GET /api/{table}, GET /api/{table}/{id}, POST /api/{table}, "
            "PUT /api/{table}/{id}, DELETE /api/{table}/{id}"
            + (", GET /api/query?sql=" if http.raw_query_enabled else "")
        )
        logger.info(f"Tables: {', '.join(resolver.tables)}")

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self._running:
            return

        logger.info("Stopping DuckProxy server")
        await self._cleanup()
        self._running = False
        logger.info("DuckProxy server stopped")

    async def _cleanup(self) -> None:
        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        if self.replicator:
            await self.replicator.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
            await self.replicator.close()

        if self.store:
            await self.store.close()

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    # Load configuration
    try:
        config = ServerConfig.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Create server inside the loop it will run on
    server = Server(config)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    exit_code = 0
    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    except Exception:
        exit_code = 1
    finally:
        loop.run_until_complete(server.stop())
        loop.close()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
