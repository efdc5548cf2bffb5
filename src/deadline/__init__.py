"""Durable end-of-interval deadlines that survive process death."""

from .errors import DeadlineError, SchedulingPermissionDenied, TriggerError
from .ledger import ArmedRecord, DeliveryLedger, LedgerError
from .payload import (
    DEFAULT_SOUND_REF,
    EXPIRY_BREAK,
    EXPIRY_WORK,
    DeadlinePayload,
    ExpiryPhase,
    PayloadError,
    PendingDeadline,
    expiry_phase_for,
)
from .scheduler import DEFAULT_SAFETY_MARGIN_SECONDS, DeadlineScheduler
from .trigger import DurableTrigger, SystemdTimerTrigger

__all__ = [
    "ArmedRecord",
    "DEFAULT_SAFETY_MARGIN_SECONDS",
    "DEFAULT_SOUND_REF",
    "DeadlineError",
    "DeadlinePayload",
    "DeadlineScheduler",
    "DeliveryLedger",
    "DurableTrigger",
    "EXPIRY_BREAK",
    "EXPIRY_WORK",
    "ExpiryPhase",
    "LedgerError",
    "PayloadError",
    "PendingDeadline",
    "SchedulingPermissionDenied",
    "SystemdTimerTrigger",
    "TriggerError",
    "expiry_phase_for",
]
