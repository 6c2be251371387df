"""Tests for timer pass error classification."""

import asyncio
from unittest.mock import MagicMock

import discord
import pytest

from schedule_bot.bot.scheduling import ErrorClassifier, ErrorType
from schedule_bot.utils.core.exceptions import StorageError


def _http_error(cls: type[discord.HTTPException], status: int) -> discord.HTTPException:
    response = MagicMock()
    response.status = status
    response.reason = "test"
    return cls(response, "test error")


class TestErrorClassifier:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (_http_error(discord.HTTPException, 429), ErrorType.RATE_LIMITED),
            (_http_error(discord.Forbidden, 403), ErrorType.PERMANENT),
            (_http_error(discord.HTTPException, 503), ErrorType.TRANSIENT),
            (asyncio.TimeoutError(), ErrorType.TRANSIENT),
            (ConnectionError("reset"), ErrorType.TRANSIENT),
            (StorageError("collection unwritable"), ErrorType.TRANSIENT),
            (StorageError("collection not readable", recoverable=False), ErrorType.PERMANENT),
            (RuntimeError("Too many requests"), ErrorType.RATE_LIMITED),
            (RuntimeError("missing permission"), ErrorType.PERMANENT),
            (ValueError("bad value"), ErrorType.UNKNOWN),
        ],
    )
    def test_classification(self, error: BaseException, expected: ErrorType) -> None:
        assert ErrorClassifier.classify_error(error) is expected
