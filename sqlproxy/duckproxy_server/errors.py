"""
Error types for the DuckProxy server.

This module defines every exception the proxy raises on purpose:
- ProxyError: Base exception
- ConfigError: Startup-fatal configuration or store attach failure
- StoreError: Any database call failure
- NotFoundError: Lookup by id matched zero rows
- ValidationError: Missing or malformed request input
- QueryDisabledError: Raw SQL route is switched off
- BackupError: Mirror delivery failure (logged, never surfaced)

Invariants:
    - All errors inherit from ProxyError
    - Each error carries the HTTP status the handler boundary maps it to
    - Error messages are safe to return to clients (no secrets)
"""

from __future__ import annotations

from typing import Any


class ProxyError(Exception):
    """Base exception for all proxy errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        status: HTTP status used when the error reaches a client
        details: Additional error context
    """

    status = 500
    default_code = "PROXY_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class ConfigError(ProxyError):
    """Configuration is invalid or the primary store could not be attached.

    Raised at startup only. The process must exit non-zero rather than
    listen without a working store.
    """

    default_code = "CONFIG_ERROR"


class StoreError(ProxyError):
    """The database driver reported an error.

    The message is the driver's own message. Never retried.
    """

    default_code = "STORE_ERROR"


class NotFoundError(ProxyError):
    """A lookup by id returned zero rows."""

    status = 404
    default_code = "NOT_FOUND"


class ValidationError(ProxyError):
    """Request input is missing or malformed.

    Raised when:
    - The raw query route has no sql parameter
    - A body is not a JSON object
    - An update has no column besides id
    """

    status = 400
    default_code = "VALIDATION_ERROR"


class QueryDisabledError(ProxyError):
    """The raw SQL route is disabled by configuration."""

    status = 403
    default_code = "QUERY_DISABLED"


class BackupError(ProxyError):
    """Delivery to the backup webhook failed.

    Only ever seen inside the replicator, which logs it.
    """

    default_code = "BACKUP_ERROR"
