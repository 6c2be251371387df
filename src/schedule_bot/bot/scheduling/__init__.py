"""
Schedule engine package for Schedule Bot.

This package contains the entry model, the entry store and its document
collection backends, the display synchronizer, and the two timer lanes
(announcements and display refresh).
"""

from .types import (
    TaskStatus,
    ErrorType,
    TimerKind,
    TriggerKind,
    OperationStatus,
    OperationResult,
    WriteResult,
    Trigger,
    AnnouncementJob,
    PassReport,
)
from .entry import CustomAnnouncement, Recurrence, ScheduleEntry
from .persistence import DocumentCollection, JsonFileCollection, MemoryCollection
from .identifiers import IdAllocator
from .store import EntryStore
from .display import DisplaySynchronizer
from .announcements import AnnouncementEngine, AnnouncementQueue
from .refresh import DisplayRefreshCascade
from .error_handling import ErrorClassifier
from .task_manager import TimerLane

__all__ = [
    # Types and enums
    "TaskStatus",
    "ErrorType",
    "TimerKind",
    "TriggerKind",
    "OperationStatus",
    "OperationResult",
    "WriteResult",
    "Trigger",
    "AnnouncementJob",
    "PassReport",
    # Entry model
    "CustomAnnouncement",
    "Recurrence",
    "ScheduleEntry",
    # Core components
    "DocumentCollection",
    "JsonFileCollection",
    "MemoryCollection",
    "IdAllocator",
    "EntryStore",
    "DisplaySynchronizer",
    "AnnouncementEngine",
    "AnnouncementQueue",
    "DisplayRefreshCascade",
    "ErrorClassifier",
    "TimerLane",
]
