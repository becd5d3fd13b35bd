"""Backend Bridge for Depot.

Owns the one connection to the hosted backend (application, document data
service, identity service). Construction is lazy and idempotent: concurrent
callers that arrive before the first attempt completes await the same
in-flight task, so at most one application is ever built. A failed attempt
leaves the handle fully reset and a later call starts again from scratch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from depot.shared.core import events
from depot.shared.core.configuration import BackendConfig
from depot.shared.core.event_bus import EventBus
from depot.shared.infrastructure.backend.base import (
    CACHE_LOCKED,
    CACHE_UNSUPPORTED,
    BackendHandle,
    BackendSDK,
    OfflineCacheError,
)

logger = logging.getLogger(__name__)

WEB_PLATFORM = "web"


class BackendBridge:
    """Lazily constructed, process-wide backend handle.

    Build one per process and pass it to consumers explicitly.
    """

    def __init__(
        self,
        sdk: BackendSDK,
        config: BackendConfig,
        event_bus: Optional[EventBus] = None,
    ):
        self.sdk = sdk
        self.config = config
        self.event_bus = event_bus
        self._handle = BackendHandle()
        self._init_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self.offline_cache_enabled = False

    @property
    def handle(self) -> BackendHandle:
        return self._handle

    @property
    def is_initialized(self) -> bool:
        return self._handle.initialized

    async def initialize(self) -> None:
        """Ensure the backend is initialized. Never raises for init failures."""
        if self._handle.initialized:
            return

        if self._init_task is None:
            self._init_task = asyncio.create_task(self._initialize())
            self._init_task.add_done_callback(self._clear_init_task)

        # Shielded so a cancelled caller does not cancel the shared attempt
        await asyncio.shield(self._init_task)

    def _clear_init_task(self, task: asyncio.Task) -> None:
        if self._init_task is task:
            self._init_task = None

    async def _initialize(self) -> None:
        platform = self.config.platform
        try:
            app = self._find_app(self.config.app_name)
            if app is not None:
                logger.debug(f"Reusing existing backend app '{self.config.app_name}'")
            else:
                app = await self.sdk.initialize_app(self.config)

            data_service = self.sdk.get_data_service(app)
            identity_service = self.sdk.get_identity_service(app)

            if platform == WEB_PLATFORM:
                self.offline_cache_enabled = await self._enable_offline_cache(data_service)

            self._handle.app = app
            self._handle.data_service = data_service
            self._handle.identity_service = identity_service
            self._handle.initialized = True
        except Exception as e:
            logger.error(f"Backend initialization error: {e}")
            self._handle.reset()
            self.offline_cache_enabled = False
            await self._publish(
                events.TOPIC_BACKEND_INIT_FAILED,
                events.create_backend_init_failed_event(str(e)),
            )
            return

        logger.info(f"Backend initialized successfully for {platform}")
        await self._publish(
            events.TOPIC_BACKEND_INITIALIZED,
            events.create_backend_initialized_event(
                self.config.app_name, platform, self.offline_cache_enabled
            ),
        )

    def _find_app(self, name: str) -> Optional[Any]:
        for app in self.sdk.get_apps():
            if getattr(app, "name", None) == name:
                return app
        return None

    async def _enable_offline_cache(self, data_service: Any) -> bool:
        """Try to turn on the offline cache; failures only cost the cache."""
        try:
            await self.sdk.enable_offline_cache(data_service)
        except OfflineCacheError as e:
            if e.code == CACHE_LOCKED:
                logger.warning("Offline cache is held by another context, continuing without it")
            elif e.code == CACHE_UNSUPPORTED:
                logger.warning("Runtime does not support the offline cache, continuing without it")
            else:
                logger.warning(f"Offline cache unavailable ({e.code}), continuing without it")
            return False
        except Exception as e:
            logger.warning(f"Offline cache unavailable ({e}), continuing without it")
            return False
        logger.info("Offline persistence enabled for the data service")
        return True

    def get_data_service(self) -> Optional[Any]:
        """Current data service handle, or None.

        When not yet initialized this schedules initialization in the
        background and still returns immediately.
        """
        if not self._handle.initialized:
            self._trigger_lazy_initialize()
        return self._handle.data_service

    def get_identity_service(self) -> Optional[Any]:
        """Current identity service handle, or None (see get_data_service)."""
        if not self._handle.initialized:
            self._trigger_lazy_initialize()
        return self._handle.identity_service

    async def ensure_data_service(self) -> Optional[Any]:
        await self.initialize()
        return self._handle.data_service

    async def ensure_identity_service(self) -> Optional[Any]:
        await self.initialize()
        return self._handle.identity_service

    def _trigger_lazy_initialize(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, lazy backend initialization skipped")
            return
        task = loop.create_task(self.initialize())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def close(self) -> None:
        """Release SDK resources (HTTP clients) on shutdown."""
        closer = getattr(self.sdk, "aclose", None)
        if closer is not None:
            try:
                await closer()
            except Exception as e:
                logger.warning(f"Error closing backend SDK: {e}")

    async def _publish(self, topic: str, payload: dict) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(topic, payload)
