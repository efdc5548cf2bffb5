"""Error types raised by durable deadline scheduling."""


class DeadlineError(Exception):
    """Base error for deadline scheduling and trigger management."""


class TriggerError(DeadlineError):
    """Raised when the host trigger facility rejects an operation."""


class SchedulingPermissionDenied(TriggerError):
    """Raised when the host refuses to register an exact wall-clock trigger.

    Callers treat this as a degraded guarantee: the live countdown keeps
    working, but delivery no longer survives process death.
    """


class LedgerError(DeadlineError):
    """Raised when the delivery ledger in the state directory cannot be used."""
