"""Backend connection: SDK contract, bridge and REST SDK."""

from depot.shared.infrastructure.backend.base import (
    CACHE_LOCKED,
    CACHE_UNSUPPORTED,
    BackendError,
    BackendHandle,
    BackendInitError,
    BackendRequestError,
    BackendSDK,
    OfflineCacheError,
)
from depot.shared.infrastructure.backend.bridge import BackendBridge
from depot.shared.infrastructure.backend.rest_sdk import (
    DocumentService,
    IdentityService,
    RestBackendSDK,
)

__all__ = [
    "CACHE_LOCKED",
    "CACHE_UNSUPPORTED",
    "BackendError",
    "BackendHandle",
    "BackendInitError",
    "BackendRequestError",
    "BackendSDK",
    "OfflineCacheError",
    "BackendBridge",
    "DocumentService",
    "IdentityService",
    "RestBackendSDK",
]
