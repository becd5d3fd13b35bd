"""Session Service for restoring, starting and ending the signed-in session."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from depot.shared.core import events
from depot.shared.core.event_bus import EventBus
from depot.shared.infrastructure.storage.safe_store import SafeStore

logger = logging.getLogger(__name__)

SESSION_KEY = "@inventory_session"
CURRENT_USER_KEY = "@current_user_id"


class Session(BaseModel):
    """The persisted signed-in session."""

    user_id: str
    username: str
    login_time: str


class SessionService:
    """Persists the session through the SafeStore and announces auth state.

    Until ``restore()`` finishes the published state is ``is_loading=True``;
    every later change publishes ``is_loading=False``.
    """

    def __init__(self, event_bus: EventBus, store: SafeStore):
        self.event_bus = event_bus
        self.store = store
        self.session: Optional[Session] = None
        self.is_loading = True

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    async def announce(self) -> None:
        """Publish the current auth state."""
        await self.event_bus.publish(
            events.TOPIC_AUTH_STATE,
            events.create_auth_state_event(
                self.is_authenticated,
                self.is_loading,
                self.session.user_id if self.session else None,
            ),
        )

    async def restore(self) -> Optional[Session]:
        """Load the persisted session; corrupted entries resolve to signed-out."""
        try:
            data = await self.store.read_json(SESSION_KEY)
            self.session = self._parse(data)
            if data is not None and self.session is None:
                logger.error("Stored session has an unexpected shape, clearing...")
                await self.store.remove(SESSION_KEY)
                await self.store.remove(CURRENT_USER_KEY)
            elif self.session is not None:
                logger.info(f"Session loaded for user: {self.session.username}")
        finally:
            self.is_loading = False
            await self.announce()
        return self.session

    def _parse(self, data: Any) -> Optional[Session]:
        if not isinstance(data, dict):
            return None
        try:
            return Session(**data)
        except ValidationError as e:
            logger.debug(f"Session validation failed: {e}")
            return None

    async def start_session(self, user_id: str, username: str) -> Session:
        """Persist a new session for an already verified user.

        Raises:
            RuntimeError: If the session could not be stored
        """
        session = Session(
            user_id=user_id,
            username=username,
            login_time=datetime.now(timezone.utc).isoformat(),
        )
        payload: Dict[str, Any] = session.model_dump()
        if not await self.store.write_json(SESSION_KEY, payload):
            raise RuntimeError("Failed to persist session")
        if not await self.store.write(CURRENT_USER_KEY, user_id):
            await self.store.remove(SESSION_KEY)
            raise RuntimeError("Failed to persist current user id")

        self.session = session
        self.is_loading = False
        logger.info(f"Session started for user: {username}")
        await self.announce()
        return session

    async def end_session(self) -> None:
        """Sign out: remove the persisted session and announce signed-out."""
        logger.info("Logging out user...")
        await self.store.remove(SESSION_KEY)
        await self.store.remove(CURRENT_USER_KEY)
        self.session = None
        self.is_loading = False
        await self.announce()
        logger.info("Logout successful")

    async def current_user_id(self) -> Optional[str]:
        return await self.store.read(CURRENT_USER_KEY)
