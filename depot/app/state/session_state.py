"""Session State Management.

Folds authentication and routing events into one observable snapshot and
owns the readiness latch that gates the splash screen.
"""

from __future__ import annotations

from dataclasses import dataclass

from depot.shared.core import events
from depot.shared.core.event_bus import EventBus, EventPayload


@dataclass(frozen=True)
class SessionSnapshot:
    """What the session gate sees on each observation."""
    is_authenticated: bool
    is_loading: bool
    is_ready: bool
    route_group: str

    @classmethod
    def from_payload(cls, payload: EventPayload) -> "SessionSnapshot":
        return cls(
            is_authenticated=bool(payload.get("is_authenticated")),
            is_loading=bool(payload.get("is_loading")),
            is_ready=bool(payload.get("is_ready")),
            route_group=str(payload.get("route_group") or ""),
        )


class SessionState:
    """Observed session state.

    This class subscribes to auth and route events and republishes a
    ``session.changed`` snapshot after every change. It does not decide
    anything about navigation.

    ``is_ready`` flips to True the first time loading finishes and never
    flips back, whatever later auth events say.
    """

    def __init__(self, event_bus: EventBus, initial_route: str = "/") -> None:
        """Initialize session state.

        Args:
            event_bus: The shared event bus
            initial_route: Path the screen stack starts on
        """
        self.bus = event_bus

        self.is_authenticated = False
        self.is_loading = True
        self.route_segments: list[str] = route_segments(initial_route)

        self._ready = False
        self._started = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def route_group(self) -> str:
        return self.route_segments[0] if self.route_segments else ""

    async def initialize(self) -> None:
        """Bind to the event bus. Safe to call more than once."""
        if self._started:
            return

        await self.bus.subscribe(events.TOPIC_AUTH_STATE, self._handle_auth_state)
        await self.bus.subscribe(events.TOPIC_ROUTE_CHANGED, self._handle_route_changed)
        self._started = True

    async def close(self) -> None:
        if not self._started:
            return
        await self.bus.unsubscribe(events.TOPIC_AUTH_STATE, self._handle_auth_state)
        await self.bus.unsubscribe(events.TOPIC_ROUTE_CHANGED, self._handle_route_changed)
        self._started = False

    # --- Public Actions ---

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            is_authenticated=self.is_authenticated,
            is_loading=self.is_loading,
            is_ready=self._ready,
            route_group=self.route_group,
        )

    async def apply_auth(self, is_authenticated: bool, is_loading: bool) -> None:
        """Record an auth resolution and publish the new snapshot."""
        self.is_authenticated = is_authenticated
        self.is_loading = is_loading
        if not is_loading:
            self._ready = True
        await self._publish_snapshot()

    async def apply_route(self, segments: list[str]) -> None:
        self.route_segments = list(segments)
        await self._publish_snapshot()

    async def _publish_snapshot(self) -> None:
        await self.bus.publish(
            events.TOPIC_SESSION_CHANGED,
            events.create_session_changed_event(
                self.is_authenticated,
                self.is_loading,
                self._ready,
                self.route_group,
            ),
        )

    # --- Event Handlers ---

    async def _handle_auth_state(self, payload: EventPayload) -> None:
        await self.apply_auth(
            bool(payload.get("is_authenticated")),
            bool(payload.get("is_loading")),
        )

    async def _handle_route_changed(self, payload: EventPayload) -> None:
        segments = payload.get("segments")
        if segments is None:
            segments = route_segments(str(payload.get("path", "")))
        await self.apply_route(list(segments))


def route_segments(path: str) -> list[str]:
    """Split ``/product/42`` into ``['product', '42']``."""
    return [part for part in path.split("/") if part]
