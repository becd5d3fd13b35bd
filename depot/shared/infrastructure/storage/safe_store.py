"""Corruption-tolerant wrapper around the local key-value store.

The local store is shared across app versions and can hold artifacts of old
serialization bugs (``"[object Object]"``), partial writes or manual edits.
Every read is treated as untrusted input: a value is validated before it is
returned, and a value that fails validation is evicted so it cannot be
observed again. Absence is the only failure signal callers ever see.

Keys containing an identity marker (``user_id`` by default) hold an opaque
token rather than JSON and skip the JSON check.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

from depot.shared.core import events
from depot.shared.core.event_bus import EventBus
from depot.shared.infrastructure.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

OBJECT_ARTIFACTS = ("[object", "object Object")
POISON_TOKENS = frozenset({"undefined", "null", "object", "nan"})


class EvictionReason(str, Enum):
    """Names of the validation predicates, in evaluation order."""
    EMPTY = "empty"
    BLANK = "blank"
    POISON_TOKEN = "poison_token"
    INVALID_JSON = "invalid_json"


def _is_empty(text: str, is_identity: bool) -> bool:
    return text == ""


def _is_blank(text: str, is_identity: bool) -> bool:
    return not text.strip()


def _is_poisoned(text: str, is_identity: bool) -> bool:
    trimmed = text.strip()
    if any(artifact in trimmed for artifact in OBJECT_ARTIFACTS):
        return True
    return trimmed.lower() in POISON_TOKENS


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _is_invalid_json(text: str, is_identity: bool) -> bool:
    if is_identity:
        return False
    try:
        json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return True
    return False


PREDICATES: Tuple[Tuple[EvictionReason, Callable[[str, bool], bool]], ...] = (
    (EvictionReason.EMPTY, _is_empty),
    (EvictionReason.BLANK, _is_blank),
    (EvictionReason.POISON_TOKEN, _is_poisoned),
    (EvictionReason.INVALID_JSON, _is_invalid_json),
)


class SafeStore:
    """Validate-then-trust access to a :class:`KeyValueStore`."""

    def __init__(
        self,
        backend: KeyValueStore,
        identity_markers: Iterable[str] = ("user_id",),
        event_bus: Optional[EventBus] = None,
    ):
        self.backend = backend
        self.identity_markers = tuple(identity_markers)
        self.event_bus = event_bus

    def is_identity_key(self, key: str) -> bool:
        return any(marker in key for marker in self.identity_markers)

    def classify(self, key: str, text: str) -> Optional[EvictionReason]:
        """Return the first failing predicate for ``text`` under ``key``, or None if valid."""
        is_identity = self.is_identity_key(key)
        for reason, predicate in PREDICATES:
            if predicate(text, is_identity):
                return reason
        return None

    async def read(self, key: str) -> Optional[str]:
        """Fetch and validate ``key``; returns the trimmed text or None."""
        try:
            value = await self.backend.get(key)
        except Exception as e:
            logger.error(f"Error reading {key}: {e}")
            return None

        if value is None:
            return None
        if not isinstance(value, str):
            await self._evict(key, EvictionReason.POISON_TOKEN)
            return None

        reason = self.classify(key, value)
        if reason is not None:
            await self._evict(key, reason)
            return None

        return value.strip()

    async def write(self, key: str, text: Any) -> bool:
        """Commit ``text`` under ``key`` if it passes validation."""
        if not isinstance(text, str):
            logger.error(f"Attempted to store non-string value for {key}: {type(text).__name__}")
            return False

        reason = self.classify(key, text)
        if reason is not None:
            logger.error(f"Refusing to store {key}: {reason.value}")
            return False

        try:
            await self.backend.set(key, text)
        except Exception as e:
            logger.error(f"Error writing {key}: {e}")
            return False
        return True

    async def remove(self, key: str) -> None:
        """Best-effort delete; never raises."""
        try:
            await self.backend.remove(key)
        except Exception as e:
            logger.error(f"Error removing {key}: {e}")

    async def read_json(self, key: str) -> Any:
        """Read and decode a JSON value; None when absent or evicted."""
        text = await self.read(key)
        if text is None or self.is_identity_key(key):
            return text
        return json.loads(text)

    async def write_json(self, key: str, value: Any) -> bool:
        try:
            serialized = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Attempted to store unserializable value for {key}: {e}")
            return False
        return await self.write(key, serialized)

    async def verify_all(self) -> List[str]:
        """Sweep every stored key and evict the corrupted ones.

        Returns:
            The keys that were evicted
        """
        try:
            keys = await self.backend.keys()
        except Exception as e:
            logger.error(f"Could not list stored keys: {e}")
            return []

        logger.info(f"Verifying storage integrity for {len(keys)} keys...")
        evicted: List[str] = []
        for key in keys:
            try:
                value = await self.backend.get(key)
            except Exception as e:
                logger.error(f"Error checking key {key}: {e}")
                await self._evict(key, EvictionReason.POISON_TOKEN)
                evicted.append(key)
                continue

            if value is None:
                continue
            reason = self.classify(key, value) if isinstance(value, str) else EvictionReason.POISON_TOKEN
            if reason is not None:
                await self._evict(key, reason)
                evicted.append(key)

        logger.info(f"Storage verification complete ({len(evicted)} evicted)")
        return evicted

    async def _evict(self, key: str, reason: EvictionReason) -> None:
        logger.error(f"Corrupted data detected in {key} ({reason.value}), clearing...")
        await self.remove(key)
        if self.event_bus is not None:
            await self.event_bus.publish(
                events.TOPIC_STORAGE_EVICTED,
                events.create_storage_evicted_event(key, reason.value),
            )
