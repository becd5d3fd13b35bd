"""Backend SDK contract, handle and error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, runtime_checkable

from depot.shared.core.configuration import BackendConfig

# Offline cache failure codes
CACHE_LOCKED = "failed-precondition"      # another execution context holds the cache
CACHE_UNSUPPORTED = "unimplemented"       # the runtime cannot persist the cache


class BackendError(Exception):
    """Base class for backend failures."""


class BackendInitError(BackendError):
    """The backend application could not be constructed."""


class OfflineCacheError(BackendError):
    """Enabling the offline cache failed.

    Args:
        code: Failure class, e.g. ``CACHE_LOCKED`` or ``CACHE_UNSUPPORTED``
    """

    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or code)


class BackendRequestError(BackendError):
    """A REST call returned an error status."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(f"{status_code}: {message}" if message else str(status_code))


@runtime_checkable
class BackendSDK(Protocol):
    """Factory calls the bridge needs from a backend SDK."""

    def get_apps(self) -> List[Any]: ...

    def get_app(self, name: str = ...) -> Any: ...

    async def initialize_app(self, config: BackendConfig) -> Any: ...

    def get_data_service(self, app: Any) -> Any: ...

    def get_identity_service(self, app: Any) -> Any: ...

    async def enable_offline_cache(self, data_service: Any) -> None: ...


@dataclass
class BackendHandle:
    """The single live backend connection."""
    app: Optional[Any] = None
    data_service: Optional[Any] = None
    identity_service: Optional[Any] = None
    initialized: bool = False

    def reset(self) -> None:
        self.app = None
        self.data_service = None
        self.identity_service = None
        self.initialized = False
