"""Shared fixtures and fakes for the session-layer tests."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from depot.shared.core.configuration import BackendConfig, GateConfig
from depot.shared.core.event_bus import EventBus
from depot.shared.infrastructure.backend.base import OfflineCacheError
from depot.shared.infrastructure.storage.kv_store import MemoryKeyValueStore
from depot.shared.infrastructure.storage.safe_store import SafeStore


class FakeApp:
    def __init__(self, name: str):
        self.name = name


class FakeSDK:
    """Backend SDK double that counts constructions and can be told to fail."""

    def __init__(
        self,
        init_delay: float = 0.0,
        fail_times: int = 0,
        cache_error: Optional[str] = None,
    ):
        self.init_delay = init_delay
        self.fail_times = fail_times
        self.cache_error = cache_error
        self.apps: List[FakeApp] = []
        self.init_calls = 0
        self.cache_calls = 0

    def get_apps(self) -> List[FakeApp]:
        return list(self.apps)

    def get_app(self, name: str = "[DEFAULT]") -> FakeApp:
        return self.apps[0]

    async def initialize_app(self, config: BackendConfig) -> FakeApp:
        self.init_calls += 1
        await asyncio.sleep(self.init_delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("handshake failed")
        app = FakeApp(config.app_name)
        self.apps.append(app)
        return app

    def get_data_service(self, app: FakeApp) -> Any:
        return ("data", app)

    def get_identity_service(self, app: FakeApp) -> Any:
        return ("identity", app)

    async def enable_offline_cache(self, data_service: Any) -> None:
        self.cache_calls += 1
        if self.cache_error is not None:
            raise OfflineCacheError(self.cache_error)


class RecordingRouter:
    """Router double that records replace() calls without publishing."""

    def __init__(self, path: str = "/"):
        self.path = path
        self.replaced: List[str] = []

    def segments(self) -> List[str]:
        return [p for p in self.path.split("/") if p]

    async def replace(self, path: str) -> None:
        self.path = path
        self.replaced.append(path)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> SafeStore:
    return SafeStore(kv)


@pytest.fixture
def fake_sdk() -> FakeSDK:
    return FakeSDK()


@pytest.fixture
def backend_config() -> BackendConfig:
    return BackendConfig(api_key="test-key", project_id="depot-test")


@pytest.fixture
def gate_config() -> GateConfig:
    return GateConfig(navigation_delay=0.05)


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()
