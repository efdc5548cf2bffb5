"""Runtime engine exports."""

from .arbiter import DeliveryArbiter, DeliveryDecision
from .commands import RuntimeCommandDispatcher
from .loop import RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from .visibility import AppVisibility

__all__ = [
    "AppVisibility",
    "DeliveryArbiter",
    "DeliveryDecision",
    "RuntimeBootstrap",
    "RuntimeCommandDispatcher",
    "RuntimeEngine",
    "RuntimeHooks",
]
