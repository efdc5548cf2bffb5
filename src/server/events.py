"""Utilities for serializing UI events, parsing client messages, and sticky state."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from queue import Queue
from typing import Any, Callable, Hashable, Optional, Protocol

from contracts.ui_protocol import (
    COMMAND_ACTIONS,
    MESSAGE_COMMAND,
    MESSAGE_VISIBILITY,
    STICKY_EVENT_ORDER,
    STICKY_EVENT_TYPES,
)


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


class StickyEventStore:
    """Thread-safe cache of sticky events replayed to new websocket clients."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]


@dataclass(frozen=True)
class UICommandEvent:
    """Command sent by a UI client, e.g. `{"type": "command", "action": "start"}`."""
    action: str
    payload: dict[str, Any] = field(default_factory=dict)
    client_id: Optional[Hashable] = None


@dataclass(frozen=True)
class UIVisibilityEvent:
    """A client reported whether its page is visible."""
    client_id: Hashable
    visible: bool


@dataclass(frozen=True)
class UIClientConnectedEvent:
    client_id: Hashable


@dataclass(frozen=True)
class UIClientDisconnectedEvent:
    client_id: Hashable


UIEvent = (
    UICommandEvent
    | UIVisibilityEvent
    | UIClientConnectedEvent
    | UIClientDisconnectedEvent
)


class UIEventPublisher(Protocol):
    def publish(self, event: UIEvent) -> None: ...


class QueueEventPublisher:
    """Event publisher that pushes client events to the runtime queue."""

    def __init__(self, queue: Queue):
        self._queue = queue

    def publish(self, event: UIEvent) -> None:
        self._queue.put(event)


class ClientMessageError(ValueError):
    """Raised when a websocket client sends an unusable message."""


def parse_client_message(raw: str | bytes, client_id: Hashable) -> UIEvent:
    """Turn one websocket text frame into a runtime event."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as error:
        raise ClientMessageError(f"Message is not valid JSON: {error}") from error
    if not isinstance(data, dict):
        raise ClientMessageError("Message must be a JSON object")

    message_type = data.get("type")
    if message_type == MESSAGE_VISIBILITY:
        visible = data.get("visible")
        if not isinstance(visible, bool):
            raise ClientMessageError("visibility.visible must be a boolean")
        return UIVisibilityEvent(client_id=client_id, visible=visible)

    if message_type == MESSAGE_COMMAND:
        action = data.get("action")
        if action not in COMMAND_ACTIONS:
            raise ClientMessageError(f"Unknown command action: {action!r}")
        payload = {
            key: value
            for key, value in data.items()
            if key not in ("type", "action")
        }
        return UICommandEvent(action=action, payload=payload, client_id=client_id)

    raise ClientMessageError(f"Unknown message type: {message_type!r}")
