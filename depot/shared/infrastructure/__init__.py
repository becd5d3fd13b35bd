"""
Shared Infrastructure Module
=============================

Technical adapters for external systems (local key-value store, hosted backend).
"""

# Storage
from depot.shared.infrastructure.storage.kv_store import (
    KeyValueStore,
    MemoryKeyValueStore,
    DuckDBKeyValueStore,
)
from depot.shared.infrastructure.storage.safe_store import SafeStore, EvictionReason

# Backend
from depot.shared.infrastructure.backend.base import (
    BackendError,
    BackendInitError,
    BackendRequestError,
    OfflineCacheError,
    BackendHandle,
    BackendSDK,
)
from depot.shared.infrastructure.backend.bridge import BackendBridge
from depot.shared.infrastructure.backend.rest_sdk import RestBackendSDK

__all__ = [
    # Storage
    "KeyValueStore",
    "MemoryKeyValueStore",
    "DuckDBKeyValueStore",
    "SafeStore",
    "EvictionReason",
    # Backend
    "BackendError",
    "BackendInitError",
    "BackendRequestError",
    "OfflineCacheError",
    "BackendHandle",
    "BackendSDK",
    "BackendBridge",
    "RestBackendSDK",
]
