"""Tracks whether any UI client is currently showing the app."""

from __future__ import annotations

import logging
import threading
from typing import Hashable, Optional, Protocol


class VisibilityLike(Protocol):
    def is_foreground(self) -> bool:
        ...


class AppVisibility:
    """Foreground when at least one connected client reports itself visible.

    Clients count as visible on connect until they report otherwise.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("runtime.visibility")
        self._lock = threading.Lock()
        self._clients: dict[Hashable, bool] = {}

    def is_foreground(self) -> bool:
        with self._lock:
            return any(self._clients.values())

    def client_connected(self, client_id: Hashable) -> None:
        with self._lock:
            self._clients[client_id] = True
        self._logger.debug("UI client visible: %s", client_id)

    def client_disconnected(self, client_id: Hashable) -> None:
        with self._lock:
            self._clients.pop(client_id, None)
        self._logger.debug("UI client gone: %s", client_id)

    def set_visible(self, client_id: Hashable, visible: bool) -> None:
        with self._lock:
            if client_id not in self._clients:
                return
            self._clients[client_id] = bool(visible)
        self._logger.debug("UI client %s visible=%s", client_id, visible)
