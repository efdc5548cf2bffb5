"""Deadline records and the opaque payload carried by durable triggers."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Literal, Optional

ExpiryPhase = Literal["work", "break"]

EXPIRY_WORK: ExpiryPhase = "work"
EXPIRY_BREAK: ExpiryPhase = "break"

DEFAULT_SOUND_REF = "default"


class PayloadError(ValueError):
    """Raised when trigger payload arguments cannot be decoded."""


@dataclass(frozen=True)
class DeadlinePayload:
    """Everything the standalone alarm process needs; nothing else is shared."""
    deadline_id: str
    sound_ref: str
    phase_is_work: bool

    @property
    def phase_at_expiry(self) -> ExpiryPhase:
        return EXPIRY_WORK if self.phase_is_work else EXPIRY_BREAK

    def to_args(self) -> list[str]:
        return [
            "--deadline-id",
            self.deadline_id,
            "--sound",
            self.sound_ref or DEFAULT_SOUND_REF,
            "--phase",
            self.phase_at_expiry,
        ]

    @classmethod
    def from_values(
        cls,
        *,
        deadline_id: str,
        sound_ref: Optional[str],
        phase: str,
    ) -> "DeadlinePayload":
        deadline_id = (deadline_id or "").strip()
        if not deadline_id:
            raise PayloadError("deadline_id cannot be empty")
        if phase not in (EXPIRY_WORK, EXPIRY_BREAK):
            raise PayloadError(f"phase must be 'work' or 'break', got: {phase!r}")
        return cls(
            deadline_id=deadline_id,
            sound_ref=(sound_ref or "").strip() or DEFAULT_SOUND_REF,
            phase_is_work=phase == EXPIRY_WORK,
        )


@dataclass(frozen=True)
class PendingDeadline:
    """A durable trigger armed for the end of the current interval."""
    deadline_id: str
    fires_at: dt.datetime
    phase_at_expiry: ExpiryPhase
    sound_ref: str
    token: Optional[str] = None


def expiry_phase_for(phase: str) -> ExpiryPhase:
    """Collapse cycle phases to the two kinds a trigger distinguishes."""
    return EXPIRY_WORK if phase == "work" else EXPIRY_BREAK

