"""Router contract and an event-bus-backed implementation."""

from __future__ import annotations

import logging
from typing import List, Protocol, runtime_checkable

from depot.app.state.session_state import route_segments
from depot.shared.core import events
from depot.shared.core.event_bus import EventBus

logger = logging.getLogger(__name__)


@runtime_checkable
class Router(Protocol):
    """Imperative screen-stack control."""

    async def replace(self, path: str) -> None: ...

    def segments(self) -> List[str]: ...


class BusRouter:
    """Tracks the current path and announces every change on the event bus.

    ``replace`` swaps the current screen (no back entry) and publishes both a
    ``nav.replace`` intent and the resulting ``route.changed``; ``navigate``
    is a user-driven push and only publishes ``route.changed``.
    """

    def __init__(self, event_bus: EventBus, initial_path: str = "/"):
        self.bus = event_bus
        self.path = initial_path
        self.history: List[str] = [initial_path]

    def segments(self) -> List[str]:
        return route_segments(self.path)

    async def replace(self, path: str) -> None:
        previous = self.path
        self.path = path
        self.history[-1] = path
        logger.info(f"Navigation replace: {previous} -> {path}")
        await self.bus.publish(
            events.TOPIC_NAV_REPLACE,
            events.create_nav_replace_event(path, previous),
        )
        await self._announce()

    async def navigate(self, path: str) -> None:
        self.path = path
        self.history.append(path)
        logger.debug(f"Navigation push: {path}")
        await self._announce()

    async def _announce(self) -> None:
        await self.bus.publish(
            events.TOPIC_ROUTE_CHANGED,
            events.create_route_changed_event(self.path, self.segments()),
        )
