"""Canonical event definitions for the Depot session layer."""

from __future__ import annotations

import time
from typing import Literal

from .event_bus import EventPayload

# Session / navigation
TOPIC_AUTH_STATE = "auth.state"
TOPIC_ROUTE_CHANGED = "route.changed"
TOPIC_SESSION_CHANGED = "session.changed"
TOPIC_NAV_REPLACE = "nav.replace"

# Storage
TOPIC_STORAGE_EVICTED = "storage.evicted"

# Backend lifecycle
TOPIC_BACKEND_INITIALIZED = "backend.initialized"
TOPIC_BACKEND_INIT_FAILED = "backend.init_failed"

# Diagnostics
TOPIC_LOGS_EVENT = "logs.event"


def create_auth_state_event(
    is_authenticated: bool,
    is_loading: bool,
    user_id: str | None = None,
) -> EventPayload:
    """Create an authentication state event."""
    return {
        "is_authenticated": is_authenticated,
        "is_loading": is_loading,
        "user_id": user_id,
    }


def create_route_changed_event(path: str, segments: list[str]) -> EventPayload:
    """Create a route changed event (the screen stack now shows ``path``)."""
    return {
        "path": path,
        "segments": list(segments),
    }


def create_session_changed_event(
    is_authenticated: bool,
    is_loading: bool,
    is_ready: bool,
    route_group: str,
) -> EventPayload:
    """Create a session snapshot event consumed by the session gate."""
    return {
        "is_authenticated": is_authenticated,
        "is_loading": is_loading,
        "is_ready": is_ready,
        "route_group": route_group,
    }


def create_nav_replace_event(path: str, previous: str | None) -> EventPayload:
    return {
        "path": path,
        "previous": previous,
    }


def create_storage_evicted_event(key: str, reason: str) -> EventPayload:
    """Create a storage eviction event.

    Args:
        key: The key removed from the underlying store
        reason: Name of the validation predicate that rejected the value
    """
    return {
        "key": key,
        "reason": reason,
        "ts": time.time(),
    }


def create_backend_initialized_event(app_name: str, platform: str, offline_cache: bool) -> EventPayload:
    return {
        "app_name": app_name,
        "platform": platform,
        "offline_cache": offline_cache,
    }


def create_backend_init_failed_event(error: str) -> EventPayload:
    return {
        "error": error,
        "ts": time.time(),
    }


def create_logs_event(
    message: str,
    level: Literal["info", "warning", "error", "success"] = "info",
    topic: str | None = None,
) -> EventPayload:
    """Create a log event."""
    return {
        "message": message,
        "level": level,
        "topic": topic,
        "ts": time.time(),
    }
