"""
API module for DuckProxy.

This module provides the external interface:
- ProxyServicer: per-route orchestration (resolve, build, execute, mirror)
- create_http_app: aiohttp application exposing the REST surface

Invariants:
    - Reads and writes go to the primary store only
    - Mirroring happens after the write and never delays the response

How to change safely:
    - Keep the response envelopes stable; browser clients depend on them
"""

from .http_server import create_http_app
from .servicer import ProxyServicer

__all__ = [
    "ProxyServicer",
    "create_http_app",
]
