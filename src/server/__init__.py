"""UI server module for static web UI, websocket streaming, and command intake."""

from .config import ServerConfigurationError, UIServerConfig
from .events import QueueEventPublisher
from .service import UIServer

__all__ = [
    "QueueEventPublisher",
    "ServerConfigurationError",
    "UIServerConfig",
    "UIServer",
]
