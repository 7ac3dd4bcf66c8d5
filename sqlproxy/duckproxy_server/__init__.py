"""
DuckProxy Server - REST-to-SQL proxy for MotherDuck with a webhook backup mirror.

This package exposes table-parameterized REST endpoints that translate into
SQL against a single analytical database:
- Value codec and statement builder turn JSON requests into SQL
- The primary store (DuckDB / MotherDuck) is the only authoritative state
- Every successful mutation is mirrored to a spreadsheet backup webhook

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│    HTTP     │────▶│  ProxyServicer  │
    │  (browser)  │     │   Server    │     │                 │
    └─────────────┘     └─────────────┘     └────────┬────────┘
                                                     │
                              ┌──────────────────────┼──────────────────┐
                              │ (awaited)                    (detached) │
                              ▼                                         ▼
                     ┌─────────────────┐                      ┌──────────────────┐
                     │  PrimaryStore   │                      │ BackupReplicator │
                     │ (DuckDB / MD)   │                      │    (webhook)     │
                     └─────────────────┘                      └──────────────────┘

Invariants:
    - The primary store is written before anything is mirrored
    - Backup outcomes never change an HTTP response
    - Column values are bound parameters; only the raw query route runs
      caller SQL, and it is off unless RAW_QUERY_ENABLED=true

How to change safely:
    - Backup action names and payload keys are a contract with the webhook
    - Response envelopes are a contract with browser clients

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
