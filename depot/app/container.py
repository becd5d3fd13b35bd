"""Application container.

Builds every session-layer component once and hands them to each other
explicitly. There is no global instance: whoever builds the container owns
it and passes it (or its parts) to the code that needs them.

Usage:
    container = AppContainer.build(config)
    await container.start()
    ...
    await container.close()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Coroutine, Optional, Set

from depot.app.navigation.router import BusRouter
from depot.app.navigation.session_gate import SessionGate
from depot.app.state.session_state import SessionState
from depot.shared.core.configuration import SystemConfig
from depot.shared.core.event_bus import EventBus
from depot.shared.domain.auth.session_service import SessionService
from depot.shared.infrastructure.backend.base import BackendSDK
from depot.shared.infrastructure.backend.bridge import BackendBridge
from depot.shared.infrastructure.backend.rest_sdk import RestBackendSDK
from depot.shared.infrastructure.storage.kv_store import DuckDBKeyValueStore, KeyValueStore
from depot.shared.infrastructure.storage.safe_store import SafeStore

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    config: SystemConfig
    bus: EventBus
    kv_store: KeyValueStore
    store: SafeStore
    backend: BackendBridge
    sessions: SessionService
    state: SessionState
    router: BusRouter
    gate: SessionGate
    tasks: Set[asyncio.Task] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        config: SystemConfig,
        kv_store: Optional[KeyValueStore] = None,
        sdk: Optional[BackendSDK] = None,
        bus: Optional[EventBus] = None,
    ) -> "AppContainer":
        """Wire the components.

        Args:
            config: Merged system configuration
            kv_store: Underlying local store (DuckDB file from config if omitted)
            sdk: Backend SDK (REST SDK if omitted)
            bus: Event bus (a new one if omitted)
        """
        bus = bus or EventBus()
        kv_store = kv_store or DuckDBKeyValueStore(config.storage.db_path)
        store = SafeStore(kv_store, config.storage.identity_markers, event_bus=bus)
        backend = BackendBridge(
            sdk or RestBackendSDK(timeout=config.backend.request_timeout),
            config.backend,
            event_bus=bus,
        )
        router = BusRouter(bus, initial_path=config.gate.initial_route)
        return cls(
            config=config,
            bus=bus,
            kv_store=kv_store,
            store=store,
            backend=backend,
            sessions=SessionService(bus, store),
            state=SessionState(bus, initial_route=config.gate.initial_route),
            router=router,
            gate=SessionGate(router, config.gate, event_bus=bus),
        )

    async def start(self) -> None:
        """Bind state observers to the bus (no I/O yet)."""
        await self.state.initialize()
        await self.gate.start()
        logger.info("Session layer started")

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Run ``coro`` as a task the container waits for on close."""
        task = asyncio.create_task(coro, name=name)
        self.tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self.tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error during {task.get_name()}: {task.exception()}")

    async def close(self) -> None:
        await self.gate.close()
        await self.state.close()
        if self.tasks:
            _, pending = await asyncio.wait(list(self.tasks), timeout=5.0)
            for task in pending:
                task.cancel()
        await self.bus.wait_until_idle(timeout=5.0)
        await self.backend.close()
        closer = getattr(self.kv_store, "close", None)
        if closer is not None:
            closer()
        logger.info("Session layer closed")
