"""Session Gate.

Navigation state machine driven by asynchronous authentication resolution.

States:
- Splash: not ready yet, render the loading placeholder, never navigate
- LoggedOut: ready, not authenticated
- LoggedIn: ready, authenticated

The gate reacts to ``session.changed`` snapshots; it never changes auth state
itself. Each meaningful observation supersedes whatever navigation the
previous one scheduled, and a scheduled navigation only fires if no newer
observation arrived during its delay (generation check).
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Tuple

from depot.app.navigation.router import Router
from depot.app.state.session_state import SessionSnapshot
from depot.shared.core import events
from depot.shared.core.configuration import GateConfig
from depot.shared.core.event_bus import EventBus, EventPayload

logger = logging.getLogger(__name__)

LOADING_PLACEHOLDER = "loading"


class GatePhase(str, Enum):
    SPLASH = "splash"
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class NavigationTarget(str, Enum):
    NONE = "none"
    LOGIN = "login"
    LANDING = "landing"


def decide_navigation(
    is_authenticated: bool,
    in_login_group: bool,
    changed: bool,
) -> NavigationTarget:
    """Pure decision table for one observation.

    ``changed`` means the auth flag differs from the previous observation.
    A signed-out user outside the login group goes to login; a sign-out that
    happens on the login screen also re-targets login so it supersedes any
    pending post-login navigation. A sign-in on the login screen goes to the
    landing screen. Everything else stays put.
    """
    if not is_authenticated:
        if not in_login_group or changed:
            return NavigationTarget.LOGIN
        return NavigationTarget.NONE
    if in_login_group and changed:
        return NavigationTarget.LANDING
    return NavigationTarget.NONE


class SessionGate:
    """Issues at most one navigation per meaningful session change."""

    def __init__(
        self,
        router: Router,
        config: Optional[GateConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.router = router
        self.config = config or GateConfig()
        self.event_bus = event_bus

        self._ready = False
        self._last_authenticated: Optional[bool] = None
        self._last_key: Optional[Tuple[bool, str]] = None

        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._pending_target = NavigationTarget.NONE
        self._in_flight = False

        self.navigations_scheduled = 0
        self.navigations_fired = 0
        self._started = False

    # --- Lifecycle ---

    async def start(self) -> None:
        if self._started:
            return
        if self.event_bus is not None:
            await self.event_bus.subscribe(events.TOPIC_SESSION_CHANGED, self._handle_session_changed)
        self._started = True

    async def close(self) -> None:
        """Tear down: drop the subscription and any pending navigation."""
        self.cancel_pending()
        if self._started and self.event_bus is not None:
            await self.event_bus.unsubscribe(events.TOPIC_SESSION_CHANGED, self._handle_session_changed)
        self._started = False

    def cancel_pending(self) -> None:
        """Invalidate and cancel the scheduled navigation, if any."""
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            logger.debug(f"Cancelled pending navigation to {self._pending_target.value}")
        self._pending = None
        self._pending_target = NavigationTarget.NONE
        self._in_flight = False

    # --- State ---

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def phase(self) -> GatePhase:
        if not self._ready:
            return GatePhase.SPLASH
        return GatePhase.LOGGED_IN if self._last_authenticated else GatePhase.LOGGED_OUT

    @property
    def pending_target(self) -> NavigationTarget:
        return self._pending_target

    def render(self, child: Any) -> Any:
        """Return ``child`` once ready, the loading placeholder before that."""
        return child if self._ready else LOADING_PLACEHOLDER

    # --- Observation ---

    async def _handle_session_changed(self, payload: EventPayload) -> None:
        self.observe(SessionSnapshot.from_payload(payload))

    def observe(self, snapshot: SessionSnapshot) -> NavigationTarget:
        """React to one session snapshot; returns what was scheduled."""
        if not snapshot.is_ready:
            return NavigationTarget.NONE
        self._ready = True

        key = (snapshot.is_authenticated, snapshot.route_group)
        if key == self._last_key:
            # Only is_loading or nothing changed
            return NavigationTarget.NONE
        self._last_key = key

        self.cancel_pending()

        in_login_group = snapshot.route_group == self.config.login_group
        previous = self._last_authenticated
        self._last_authenticated = snapshot.is_authenticated

        if snapshot.is_authenticated:
            changed = previous is not True
        else:
            # Only a real sign-out counts; the first signed-out observation does not
            changed = previous is True

        target = decide_navigation(snapshot.is_authenticated, in_login_group, changed)
        if target is not NavigationTarget.NONE:
            self._schedule(target)
        return target

    def _schedule(self, target: NavigationTarget) -> None:
        if self._in_flight:
            logger.debug(f"Navigation already in flight, not scheduling {target.value}")
            return

        self._in_flight = True
        self._pending_target = target
        self.navigations_scheduled += 1
        self._pending = asyncio.create_task(self._fire(self._generation, target))
        logger.debug(f"Scheduled navigation to {target.value} (generation {self._generation})")

    async def _fire(self, generation: int, target: NavigationTarget) -> None:
        await asyncio.sleep(self.config.navigation_delay)
        if generation != self._generation:
            return

        self._pending = None
        self._pending_target = NavigationTarget.NONE
        self._in_flight = False

        path = self.config.login_route if target is NavigationTarget.LOGIN else self.config.landing_route
        self.navigations_fired += 1
        try:
            await self.router.replace(path)
        except Exception as e:
            # No retry: recovery belongs to the router
            logger.exception(f"Navigation to {path} failed", exc_info=e)
