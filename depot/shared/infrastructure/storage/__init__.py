"""Local state persistence (key-value stores and the SafeStore wrapper)."""

from depot.shared.infrastructure.storage.kv_store import (
    DuckDBKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
)
from depot.shared.infrastructure.storage.safe_store import EvictionReason, SafeStore

__all__ = [
    "DuckDBKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "EvictionReason",
    "SafeStore",
]
