"""Arms and cancels the single durable deadline for the running interval."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from typing import Callable, Optional

from .errors import LedgerError, TriggerError
from .ledger import DeliveryLedger
from .payload import DeadlinePayload, ExpiryPhase, PendingDeadline, EXPIRY_WORK
from .trigger import DurableTrigger

DEFAULT_SAFETY_MARGIN_SECONDS = 2.0


class DeadlineScheduler:
    """Keeps at most one durable trigger outstanding.

    Arming a deadline supersedes whatever was armed before, including a
    deadline left in the ledger by a previous process. Cancellation is best
    effort: trigger failures are logged and never raised, because a trigger
    that fires for a superseded deadline is a no-op on the delivery side.
    """

    def __init__(
        self,
        *,
        trigger: DurableTrigger,
        ledger: DeliveryLedger,
        safety_margin_seconds: float = DEFAULT_SAFETY_MARGIN_SECONDS,
        now_fn: Optional[Callable[[], dt.datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if safety_margin_seconds < 0:
            raise ValueError("safety_margin_seconds cannot be negative")
        self._trigger = trigger
        self._ledger = ledger
        self._safety_margin_seconds = float(safety_margin_seconds)
        self._now_fn = now_fn or (lambda: dt.datetime.now(dt.timezone.utc))
        self._logger = logger or logging.getLogger("deadline")
        self._lock = threading.Lock()
        self._pending: Optional[PendingDeadline] = None

    @property
    def pending(self) -> Optional[PendingDeadline]:
        with self._lock:
            return self._pending

    @property
    def ledger(self) -> DeliveryLedger:
        return self._ledger

    def arm(
        self,
        duration_seconds: float,
        phase_at_expiry: ExpiryPhase,
        sound_ref: str,
    ) -> PendingDeadline:
        """Register a trigger for now + duration + safety margin.

        Raises `SchedulingPermissionDenied` when the host refuses and
        `LedgerError` when the state directory is unusable; in both cases
        nothing stays armed.
        """
        with self._lock:
            self._cancel_locked(self._pending)
            self._cancel_recorded_locked()
            self._ledger.prune_claims()

            deadline_id = uuid.uuid4().hex
            fires_at = self._now_fn() + dt.timedelta(
                seconds=max(0.0, float(duration_seconds)) + self._safety_margin_seconds
            )
            payload = DeadlinePayload(
                deadline_id=deadline_id,
                sound_ref=sound_ref,
                phase_is_work=phase_at_expiry == EXPIRY_WORK,
            )

            # Recorded before registration so a trigger can never find itself unknown.
            self._ledger.record_armed(
                deadline_id,
                fires_at=fires_at,
                phase_at_expiry=phase_at_expiry,
            )
            try:
                token = self._trigger.schedule_at(fires_at, payload)
            except TriggerError:
                self._clear_armed(deadline_id)
                raise

            try:
                self._ledger.record_armed(
                    deadline_id,
                    fires_at=fires_at,
                    phase_at_expiry=phase_at_expiry,
                    token=token,
                )
            except LedgerError:
                self._cancel_token(token)
                raise

            self._pending = PendingDeadline(
                deadline_id=deadline_id,
                fires_at=fires_at,
                phase_at_expiry=phase_at_expiry,
                sound_ref=sound_ref,
                token=token,
            )
            self._logger.info(
                "Deadline armed: id=%s phase=%s fires_at=%s",
                deadline_id,
                phase_at_expiry,
                fires_at.isoformat(),
            )
            return self._pending

    def cancel(self, deadline_id: Optional[str] = None) -> bool:
        """Cancel the pending deadline, or only `deadline_id` if given.

        Returns True when something was cancelled.
        """
        with self._lock:
            pending = self._pending
            if pending is None:
                return False
            if deadline_id is not None and pending.deadline_id != deadline_id:
                return False
            return self._cancel_locked(pending)

    def _cancel_locked(self, pending: Optional[PendingDeadline]) -> bool:
        if pending is None:
            return False

        self._pending = None
        self._clear_armed(pending.deadline_id)
        if pending.token:
            self._cancel_token(pending.token)
        self._logger.info("Deadline cancelled: id=%s", pending.deadline_id)
        return True

    def _cancel_recorded_locked(self) -> None:
        record = self._ledger.armed()
        if record is None:
            return
        self._logger.info(
            "Superseding deadline left by a previous process: id=%s",
            record.deadline_id,
        )
        self._clear_armed(record.deadline_id)
        if record.token:
            self._cancel_token(record.token)

    def _clear_armed(self, deadline_id: str) -> None:
        try:
            self._ledger.clear_armed(deadline_id)
        except LedgerError as error:
            self._logger.warning("Failed to clear armed deadline %s: %s", deadline_id, error)

    def _cancel_token(self, token: str) -> None:
        try:
            self._trigger.cancel(token)
        except TriggerError as error:
            self._logger.warning("Failed to cancel durable trigger %s: %s", token, error)
