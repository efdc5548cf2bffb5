"""Validated work/break durations and long-break cadence."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_CYCLES_BEFORE_LONG_BREAK,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_WORK_MINUTES,
)


class InvalidDurationError(ValueError):
    """Raised when a configured duration or cycle count is not positive."""


@dataclass(frozen=True)
class CycleConfig:
    """Interval lengths in seconds plus the number of cycles before a long break."""
    work_seconds: int = DEFAULT_WORK_MINUTES * 60
    break_seconds: int = DEFAULT_BREAK_MINUTES * 60
    long_break_seconds: int = DEFAULT_LONG_BREAK_MINUTES * 60
    cycles_before_long_break: int = DEFAULT_CYCLES_BEFORE_LONG_BREAK

    def __post_init__(self) -> None:
        for field_name in ("work_seconds", "break_seconds", "long_break_seconds"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidDurationError(f"{field_name} must be an integer, got: {value!r}")
            if value <= 0:
                raise InvalidDurationError(
                    f"{field_name} must be greater than zero, got: {value}"
                )

        cycles = self.cycles_before_long_break
        if isinstance(cycles, bool) or not isinstance(cycles, int):
            raise InvalidDurationError(
                f"cycles_before_long_break must be an integer, got: {cycles!r}"
            )
        if cycles <= 0:
            raise InvalidDurationError(
                f"cycles_before_long_break must be greater than zero, got: {cycles}"
            )

    @classmethod
    def from_minutes(
        cls,
        work_minutes: int,
        break_minutes: int,
        long_break_minutes: int,
        cycles_before_long_break: int,
    ) -> "CycleConfig":
        return cls(
            work_seconds=minutes_to_seconds(work_minutes),
            break_seconds=minutes_to_seconds(break_minutes),
            long_break_seconds=minutes_to_seconds(long_break_minutes),
            cycles_before_long_break=cycles_before_long_break,
        )

    @property
    def work_minutes(self) -> int:
        return self.work_seconds // 60

    @property
    def break_minutes(self) -> int:
        return self.break_seconds // 60

    @property
    def long_break_minutes(self) -> int:
        return self.long_break_seconds // 60


def minutes_to_seconds(minutes: int) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidDurationError(f"Duration in minutes must be an integer, got: {minutes!r}")
    return minutes * 60
