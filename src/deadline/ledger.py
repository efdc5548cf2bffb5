"""File-backed record of the armed deadline and of delivered deadlines.

The ledger is the only state shared between the live process and a
standalone alarm process started by a durable trigger. Delivery claims use
exclusive file creation, so whichever process claims a deadline first is the
only one that delivers it.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .errors import LedgerError

ARMED_FILE = "armed.json"
CLAIM_PREFIX = "delivered-"
DEFAULT_CLAIM_MAX_AGE_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class ArmedRecord:
    """Ledger view of the deadline currently expected to fire."""
    deadline_id: str
    fires_at: str
    phase_at_expiry: str
    token: Optional[str] = None


class DeliveryLedger:
    """Cross-process bookkeeping for once-only deadline delivery."""

    def __init__(self, state_dir: str | Path, logger: Optional[logging.Logger] = None):
        self._state_dir = Path(state_dir).expanduser()
        self._logger = logger or logging.getLogger("deadline.ledger")
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise LedgerError(
                f"Failed to create ledger directory {self._state_dir}: {error}"
            ) from error

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    def record_armed(
        self,
        deadline_id: str,
        *,
        fires_at: dt.datetime,
        phase_at_expiry: str,
        token: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "deadline_id": deadline_id,
            "fires_at": fires_at.isoformat(),
            "phase_at_expiry": phase_at_expiry,
            "token": token,
        }
        try:
            self._write_json_atomic(self._state_dir / ARMED_FILE, payload)
        except OSError as error:
            raise LedgerError(f"Failed to record armed deadline {deadline_id}: {error}") from error

    def armed(self) -> Optional[ArmedRecord]:
        path = self._state_dir / ARMED_FILE
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as error:
            self._logger.warning("Ignoring unreadable armed record %s: %s", path, error)
            return None

        if not isinstance(raw, dict) or not raw.get("deadline_id"):
            self._logger.warning("Ignoring malformed armed record %s", path)
            return None
        return ArmedRecord(
            deadline_id=str(raw["deadline_id"]),
            fires_at=str(raw.get("fires_at", "")),
            phase_at_expiry=str(raw.get("phase_at_expiry", "")),
            token=raw.get("token") or None,
        )

    def is_armed(self, deadline_id: str) -> bool:
        record = self.armed()
        return record is not None and record.deadline_id == deadline_id

    def clear_armed(self, deadline_id: Optional[str] = None) -> None:
        """Remove the armed record, optionally only if it matches `deadline_id`."""
        if deadline_id is not None and not self.is_armed(deadline_id):
            return
        try:
            (self._state_dir / ARMED_FILE).unlink()
        except FileNotFoundError:
            pass
        except OSError as error:
            raise LedgerError(f"Failed to clear armed deadline: {error}") from error

    def claim(self, deadline_id: str) -> bool:
        """Return True for the first caller to claim delivery of `deadline_id`."""
        path = self._claim_path(deadline_id)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            return False
        except OSError as error:
            raise LedgerError(f"Failed to claim deadline {deadline_id}: {error}") from error
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(f"{os.getpid()}\n")
        return True

    def is_claimed(self, deadline_id: str) -> bool:
        return self._claim_path(deadline_id).exists()

    def prune_claims(self, max_age_seconds: float = DEFAULT_CLAIM_MAX_AGE_SECONDS) -> int:
        cutoff = time.time() - max_age_seconds
        removed = 0
        try:
            paths = list(self._state_dir.glob(f"{CLAIM_PREFIX}*"))
        except OSError as error:
            self._logger.warning("Failed to list delivery claims: %s", error)
            return 0
        for path in paths:
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as error:
                self._logger.warning("Failed to prune claim %s: %s", path, error)
        if removed:
            self._logger.debug("Pruned %d stale delivery claims", removed)
        return removed

    def _claim_path(self, deadline_id: str) -> Path:
        safe_id = "".join(ch for ch in deadline_id if ch.isalnum() or ch in "-_")
        if not safe_id:
            raise ValueError("deadline_id must contain alphanumeric characters")
        return self._state_dir / f"{CLAIM_PREFIX}{safe_id}"

    def _write_json_atomic(self, path: Path, payload: dict[str, Any]) -> None:
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=str(path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
            os.replace(temp_name, path)
        except BaseException:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise
