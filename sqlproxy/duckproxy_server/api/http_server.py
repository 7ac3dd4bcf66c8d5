"""
HTTP server implementation for DuckProxy.

REST surface (all responses JSON):

    GET    /                      health
    GET    /api/query?sql=...     custom query (disabled unless configured)
    GET    /api/{table}           all rows
    GET    /api/{table}/{id}      one row
    POST   /api/{table}           insert (id assigned when absent)
    PUT    /api/{table}/{id}      update
    DELETE /api/{table}/{id}      delete

Invariants:
    - Success envelope: {"success": true, "data": ...}; delete has no data
    - Failure envelope: {"success": false, "error": "<message>"}
    - {id} only matches digits, so no other id text reaches SQL
    - /api/query is registered before /api/{table}

How to change safely:
    - Map new ProxyError subclasses through their status attribute
    - Keep handlers thin; orchestration lives in ProxyServicer
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ..config import HttpConfig
from ..errors import ProxyError, ValidationError
from .servicer import ProxyServicer

logger = logging.getLogger(__name__)

ID_PATTERN = r"{id:\d+}"

_dumps = functools.partial(json.dumps, default=str)


def ok(data: Any = None, include_data: bool = True) -> web.Response:
    """Success envelope."""
    body: dict[str, Any] = {"success": True}
    if include_data:
        body["data"] = data
    return web.json_response(body, dumps=_dumps)


def fail(message: str, status: int) -> web.Response:
    """Failure envelope."""
    return web.json_response({"success": False, "error": message}, status=status)


def create_http_app(
    servicer: ProxyServicer,
    config: HttpConfig | None = None,
) -> web.Application:
    """Create the aiohttp application.

    Args:
        servicer: ProxyServicer instance
        config: HTTP server configuration

    Returns:
        aiohttp Application instance
    """
    config = config or HttpConfig()
    app = web.Application()

    # Add routes
    app.router.add_get("/", lambda r: handle_health(r, servicer))
    app.router.add_get("/api/query", lambda r: handle_query(r, servicer))
    app.router.add_get("/api/{table}", lambda r: handle_list(r, servicer))
    app.router.add_post("/api/{table}", lambda r: handle_insert(r, servicer))
    app.router.add_get(f"/api/{{table}}/{ID_PATTERN}", lambda r: handle_get(r, servicer))
    app.router.add_put(f"/api/{{table}}/{ID_PATTERN}", lambda r: handle_update(r, servicer))
    app.router.add_delete(f"/api/{{table}}/{ID_PATTERN}", lambda r: handle_delete(r, servicer))

    # Add CORS middleware
    def add_cors_headers(request: web.Request, headers: Any) -> None:
        origin = request.headers.get("Origin", "*")
        if "*" in config.cors_origins or origin in config.cors_origins:
            headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        headers["Access-Control-Allow-Headers"] = "Content-Type"

    @web.middleware
    async def cors_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response = web.Response()
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                add_cors_headers(request, e.headers)
                raise

        add_cors_headers(request, response.headers)
        return response

    app.middlewares.append(cors_middleware)

    # Add error handler, inside CORS so failure envelopes carry the headers
    @web.middleware
    async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        try:
            return await handler(request)
        except ProxyError as e:
            if e.status >= 500:
                logger.error(f"{request.method} {request.path} failed: {e.message}")
            else:
                logger.info(f"{request.method} {request.path} rejected: {e.message}")
            return fail(e.message, e.status)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.error(f"HTTP handler error: {e}", exc_info=True)
            return fail(str(e), 500)

    app.middlewares.append(error_middleware)

    return app


async def read_json(request: web.Request) -> Any:
    """Parse the request body as JSON.

    Raises:
        ValidationError: If the body is not valid UTF-8 JSON
    """
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")


async def handle_health(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle GET / - Health check."""
    return web.json_response(await servicer.health())


async def handle_list(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle GET /api/{table} - All rows."""
    rows = await servicer.list_records(request.match_info["table"])
    return ok(rows)


async def handle_get(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle GET /api/{table}/{id} - One row."""
    row = await servicer.get_record(request.match_info["table"], request.match_info["id"])
    return ok(row)


async def handle_insert(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle POST /api/{table} - Insert."""
    body = await read_json(request)
    record = await servicer.insert_record(request.match_info["table"], body)
    return ok(record)


async def handle_update(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle PUT /api/{table}/{id} - Update."""
    body = await read_json(request)
    record = await servicer.update_record(
        request.match_info["table"], request.match_info["id"], body
    )
    return ok(record)


async def handle_delete(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle DELETE /api/{table}/{id} - Delete."""
    await servicer.delete_record(request.match_info["table"], request.match_info["id"])
    return ok(include_data=False)


async def handle_query(request: web.Request, servicer: ProxyServicer) -> web.Response:
    """Handle GET /api/query?sql=... - Custom query."""
    rows = await servicer.run_query(request.query.get("sql"))
    return ok(rows)
