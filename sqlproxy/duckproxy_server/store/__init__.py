"""
Primary store access for DuckProxy.

- PrimaryStore: the single DuckDB / MotherDuck connection
- IdAllocator: serialized max+1 id assignment for inserts

Invariants:
    - The PrimaryStore is the only durable state in the process
    - Writes are acknowledged only after the driver returns
"""

from .gateway import PrimaryStore, Record
from .identity import IdAllocator

__all__ = [
    "PrimaryStore",
    "Record",
    "IdAllocator",
]
