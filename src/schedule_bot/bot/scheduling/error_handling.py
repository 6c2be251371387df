"""
Error classification for the timer lanes.

Failures escaping a timer pass are classified so the log states whether the
next pass is likely to succeed. Passes are never retried within a cycle.
"""

import asyncio
import logging

import discord

from .types import ErrorType
from ...utils.core.exceptions import ScheduleBotError

logger = logging.getLogger(__name__)


class ErrorClassifier:
    """Classifies errors raised inside timer passes."""

    @staticmethod
    def classify_error(error: BaseException) -> ErrorType:
        """
        Classify an error to describe how it is expected to behave.

        Args:
            error: The exception to classify

        Returns:
            ErrorType for the log line
        """
        if isinstance(error, discord.RateLimited):
            return ErrorType.RATE_LIMITED
        if isinstance(error, discord.HTTPException) and error.status == 429:
            return ErrorType.RATE_LIMITED
        if isinstance(error, (discord.Forbidden, discord.LoginFailure)):
            return ErrorType.PERMANENT
        if isinstance(error, ScheduleBotError):
            return ErrorType.TRANSIENT if error.recoverable else ErrorType.PERMANENT
        if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
            return ErrorType.TRANSIENT
        if isinstance(error, discord.HTTPException) and error.status >= 500:
            return ErrorType.TRANSIENT

        error_str = str(error).lower()
        if any(
            keyword in error_str
            for keyword in ["timeout", "connection", "network", "temporary", "unavailable"]
        ):
            return ErrorType.TRANSIENT
        if any(keyword in error_str for keyword in ["rate limit", "too many requests"]):
            return ErrorType.RATE_LIMITED
        if any(
            keyword in error_str
            for keyword in ["unauthorized", "forbidden", "permission", "configuration"]
        ):
            return ErrorType.PERMANENT

        return ErrorType.UNKNOWN
