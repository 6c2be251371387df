"""
Core types, enums, and data classes for the schedule engine.

This module contains the fundamental data structures shared by the entry
store, the display synchronizer and the timer lanes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple


class TaskStatus(Enum):
    """Status of periodic lane jobs."""

    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ErrorType(Enum):
    """Classification of error types for lane logging."""

    TRANSIENT = "transient"  # Temporary errors that may resolve (network, timeout)
    PERMANENT = "permanent"  # Errors that won't resolve on the next pass (config, auth)
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class TimerKind(Enum):
    """The periodic processes run by the engine."""

    FILL = "fill"
    EMPTY = "empty"
    UPDATE_FINE = "update_fine"
    UPDATE_MEDIUM = "update_medium"
    UPDATE_COARSE = "update_coarse"


class TriggerKind(Enum):
    """Things that can be announced for one occurrence of an entry."""

    START = "start"
    END = "end"
    REMINDER = "reminder"
    END_REMINDER = "end_reminder"
    CUSTOM = "custom"


def trigger_rank(kind: TriggerKind) -> int:
    """Tie-break for slots due at the same instant; END sorts after all others."""
    return 1 if kind is TriggerKind.END else 0


class OperationStatus(Enum):
    """Outcome of a mutating engine operation."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    WRITE_NOT_ACKNOWLEDGED = "write_not_acknowledged"
    EXTERNAL_SEND_FAILURE = "external_send_failure"
    REJECTED = "rejected"
    UNEXPECTED = "unexpected"


_USER_MESSAGES: dict[OperationStatus, str] = {
    OperationStatus.SUCCESS: "Done.",
    OperationStatus.NOT_FOUND: "That event could not be found.",
    OperationStatus.WRITE_NOT_ACKNOWLEDGED: "The change could not be saved, please try again.",
    OperationStatus.EXTERNAL_SEND_FAILURE: "The event message could not be posted or edited.",
    OperationStatus.REJECTED: "That request is not allowed for this event right now.",
    OperationStatus.UNEXPECTED: "Something went wrong, please try again later.",
}


class OperationResult(NamedTuple):
    """Result of a mutating engine operation."""

    status: OperationStatus
    entry_id: int | None = None
    message_id: int | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        """True when the operation fully completed."""
        return self.status is OperationStatus.SUCCESS

    @property
    def user_message(self) -> str:
        """Human readable outcome for the invoking command."""
        return _USER_MESSAGES[self.status]

    def __bool__(self) -> bool:
        return self.success


class WriteResult(NamedTuple):
    """Acknowledgement returned by every document collection write."""

    acknowledged: bool
    matched_count: int = 0

    @property
    def ok(self) -> bool:
        """True when the write was acknowledged and touched a document."""
        return self.acknowledged and self.matched_count > 0


@dataclass(frozen=True)
class Trigger:
    """One announcement slot of an occurrence, derived from an entry."""

    key: str
    kind: TriggerKind
    fire_at: datetime
    template: str | None
    target_channel_id: int | None = None


@dataclass(order=True)
class AnnouncementJob:
    """A queued announcement waiting for its fire time."""

    fire_at: datetime
    entry_id: int = field(compare=False)
    key: str = field(compare=False)
    kind: TriggerKind = field(compare=False)
    template: str | None = field(compare=False)
    target_channel_id: int | None = field(compare=False, default=None)
    occurrence_start: datetime | None = field(compare=False, default=None)
    rank: int = 0

    @property
    def identity(self) -> tuple[int, str, datetime | None]:
        """Identifies the slot independently of fire time."""
        return (self.entry_id, self.key, self.occurrence_start)


@dataclass
class PassReport:
    """Counters describing what one timer pass did."""

    kind: TimerKind
    examined: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return (
            f"{self.kind.value}: examined={self.examined} processed={self.processed} "
            f"skipped={self.skipped} failed={self.failed}"
        )
