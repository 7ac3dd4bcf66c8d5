"""
Backup mirroring for DuckProxy.

Every successful mutation is mirrored to a spreadsheet-style store through
an HTTP webhook. The backup is advisory: failures are logged, never
surfaced to clients.
"""

from .replicator import (
    BackupReplicator,
    RetryPolicy,
    backup_action,
    delete_payload,
    record_payload,
)

__all__ = [
    "BackupReplicator",
    "RetryPolicy",
    "backup_action",
    "record_payload",
    "delete_payload",
]
