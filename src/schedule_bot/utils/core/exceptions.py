"""
Basic exception classes for Schedule Bot.

This module contains fundamental exception classes that are used throughout
the codebase without creating import cycles. Engine operations report
expected failures through result values; these exceptions cover storage
I/O faults.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling strategies."""

    STORAGE = "storage"
    UNKNOWN = "unknown"


class ScheduleBotError(Exception):
    """Base exception class for Schedule Bot specific errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.category: ErrorCategory = category
        self.recoverable: bool = recoverable


class StorageError(ScheduleBotError):
    """Persistent store I/O errors (unreadable or unwritable collection)."""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        super().__init__(message, category=ErrorCategory.STORAGE, recoverable=recoverable)
